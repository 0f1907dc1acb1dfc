"""
Transcript extraction.

Synchronous responses (converted with ``MessageToDict``) and the JSON files
written by batch jobs share the same nested structure::

    {"results": [{"alternatives": [{"transcript": "...", "confidence": 0.9}]}]}

Only the first alternative of each result is used, since it is the most
probable one.
"""

import json
from typing import Any, Dict, List, Mapping, Union

from .exceptions import MalformedResultError

# Written instead of an empty file so a reader can tell "recognition ran but
# heard nothing" apart from "recognition never ran".
EMPTY_TRANSCRIPT_PLACEHOLDER = "[no speech detected]"


def parse_recognition_json(raw: Union[str, bytes], object_name: str = "") -> Dict[str, Any]:
    """Parse a batch recognition output file.

    Raises:
        MalformedResultError: If ``raw`` is not a JSON object or its
            ``results`` field is not a list.
    """
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise MalformedResultError(object_name, exc) from exc
    if not isinstance(data, dict):
        raise MalformedResultError(object_name)
    if not isinstance(data.get("results", []), list):
        raise MalformedResultError(object_name)
    return data


def extract_transcript(result: Mapping[str, Any]) -> str:
    """Join the best transcript of each result with blank lines.

    Returns:
        The joined text, or :data:`EMPTY_TRANSCRIPT_PLACEHOLDER` when no
        result carries a non‑blank transcript.
    """
    pieces: List[str] = []
    segments = result.get("results")
    if not isinstance(segments, list):
        segments = []
    for segment in segments:
        if not isinstance(segment, Mapping):
            continue
        alternatives = segment.get("alternatives")
        if not isinstance(alternatives, list) or not alternatives or not isinstance(alternatives[0], Mapping):
            continue
        transcript = alternatives[0].get("transcript")
        if isinstance(transcript, str) and transcript.strip():
            pieces.append(transcript.strip())
    text = "\n\n".join(pieces).strip()
    return text or EMPTY_TRANSCRIPT_PLACEHOLDER
