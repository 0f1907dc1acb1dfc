"""Object naming rules for transcodes and transcripts."""

import posixpath
import re
from typing import Optional

_RESULT_SUFFIX_RE = re.compile(r"_result-\d+$")
_TRANSCRIPT_SUFFIX_RE = re.compile(r"_transcript(?:_[^_]*)?$")
_JSON_EXT_RE = re.compile(r"\.json$", re.IGNORECASE)


def _replace_extension(name: str, extension: str) -> str:
    root, _ = posixpath.splitext(name)
    return root + extension


def transcode_name_for(name: str) -> str:
    """``rec/clip.m4a`` -> ``rec/clip.flac``."""
    return _replace_extension(name, ".flac")


def text_name_for_audio(name: str) -> str:
    """``rec/clip.m4a`` -> ``clip.txt``."""
    return _replace_extension(posixpath.basename(name), ".txt")


def text_name_for_result(name: str) -> Optional[str]:
    """Derive the transcript name from a batch recognition output name.

    Batch jobs name their output after the input file with a
    ``_transcript_<id>`` suffix and sometimes a ``_result-<n>`` suffix::

        out/clip_transcript_9f3a_result-2.json -> out/clip.txt

    Returns:
        The ``.txt`` name, or ``None`` if ``name`` is not a JSON file or
        nothing remains once the suffixes are removed.
    """
    if not _JSON_EXT_RE.search(name):
        return None
    folder, base = posixpath.split(name)
    base = _JSON_EXT_RE.sub("", base)
    base = _RESULT_SUFFIX_RE.sub("", base)
    base = _TRANSCRIPT_SUFFIX_RE.sub("", base)
    if not base:
        return None
    return posixpath.join(folder, base + ".txt")
