"""
Audio conversion utilities.

This module converts incoming audio files to the canonical encoding sent to
the speech recogniser: single channel, 16 kHz, 16‑bit samples in a FLAC
container with all metadata stripped.  Conversions are performed locally
using the `pydub` library which in turn relies on `ffmpeg`.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

from pydub import AudioSegment

from .exceptions import TranscodeError

SUPPORTED_EXTENSIONS = {".m4a", ".mp3", ".wav", ".flac", ".mp4", ".aac", ".ogg", ".webm"}

TARGET_SAMPLE_RATE = 16_000
TARGET_SAMPLE_WIDTH = 2  # bytes, i.e. 16-bit


def transcode_to_flac(input_path: str, *, target_sample_rate: int = TARGET_SAMPLE_RATE) -> str:
    """Convert an audio file to a mono 16‑bit FLAC file.

    Args:
        input_path: Path to the source audio file.
        target_sample_rate: Desired sample rate for the output.

    Returns:
        The path to the converted file.  The file lives in a temporary
        directory and should be cleaned up by the caller.

    Raises:
        TranscodeError: If ffmpeg cannot decode or encode the file.
    """
    fd, tmp_path = tempfile.mkstemp(suffix=".flac")
    os.close(fd)
    try:
        audio = AudioSegment.from_file(input_path)
        audio = (
            audio.set_channels(1)
            .set_frame_rate(target_sample_rate)
            .set_sample_width(TARGET_SAMPLE_WIDTH)
        )
        audio.export(tmp_path, format="flac", parameters=["-map_metadata", "-1"])
    except Exception as exc:
        cleanup_temp_file(tmp_path)
        raise TranscodeError(os.path.basename(input_path), exc) from exc
    return tmp_path


def is_supported_audio(path: str) -> bool:
    """Check whether the file at ``path`` has a supported audio extension."""
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def cleanup_temp_file(path: Optional[str]) -> None:
    """Remove a temporary file if it exists.

    Args:
        path: Path to the temporary file.  Nothing happens if ``path`` is
            ``None`` or the file does not exist.
    """
    if path and os.path.exists(path):
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
