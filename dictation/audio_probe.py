"""
Duration and silence probes.

Both probes run the ffmpeg binary as a subprocess and read its diagnostic
(stderr) stream.  Each run has a hard timeout: on expiry the child is killed
and the probe reports "unknown" (duration) or ``False`` (silence) instead of
failing the invocation.  The text parsing is kept in :func:`parse_duration`
and :func:`parse_silence_runs` so it can be tested without ffmpeg.
"""

from __future__ import annotations

import logging
import re
import subprocess
from typing import List, Optional, Tuple

from pydub import AudioSegment

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"Duration:\s*(\d+):(\d{1,2}):(\d{1,2}(?:\.\d+)?)")
_SILENCE_START_RE = re.compile(r"silence_start:\s*(-?\d+(?:\.\d+)?)")
_SILENCE_DURATION_RE = re.compile(r"silence_duration:\s*(\d+(?:\.\d+)?)")


def parse_duration(diagnostics: str) -> Optional[float]:
    """Return the first ``Duration: H:MM:SS[.ff]`` value in seconds, if any."""
    match = _DURATION_RE.search(diagnostics)
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def parse_silence_runs(diagnostics: str) -> Tuple[List[float], bool]:
    """Parse ``silencedetect`` output.

    Returns:
        A tuple of (durations of closed silence runs, whether the last run
        was opened and never closed).
    """
    durations = [float(m.group(1)) for m in _SILENCE_DURATION_RE.finditer(diagnostics)]
    starts = len(_SILENCE_START_RE.findall(diagnostics))
    return durations, starts > len(durations)


def _run(args: List[str], timeout: float) -> Optional[str]:
    """Run ffmpeg and return its stderr, or ``None`` on timeout."""
    try:
        completed = subprocess.run(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        # subprocess.run kills the child before re-raising.
        return None
    return completed.stderr.decode("utf-8", errors="replace")


def probe_duration(path: str, *, timeout: float, ffmpeg: Optional[str] = None) -> Optional[float]:
    """Measure the duration of a local audio file.

    Args:
        path: Local audio file.
        timeout: Seconds to wait before killing ffmpeg.
        ffmpeg: Binary to run; defaults to the converter pydub found.

    Returns:
        Duration in seconds, or ``None`` when ffmpeg timed out or printed no
        parseable duration.

    Raises:
        OSError: If the binary cannot be started.
    """
    binary = ffmpeg or AudioSegment.converter
    diagnostics = _run([binary, "-hide_banner", "-nostdin", "-i", path], timeout)
    if diagnostics is None:
        logger.warning("Duration probe timed out after %ss for %s", timeout, path)
        return None
    duration = parse_duration(diagnostics)
    if duration is None:
        logger.info("No duration reported for %s", path)
    return duration


def detect_long_silence(
    path: str,
    *,
    min_silence_seconds: float,
    threshold_db: float,
    timeout: float,
    ffmpeg: Optional[str] = None,
) -> bool:
    """Report whether the file contains a long enough silent stretch.

    A run counts when its level stays at or below ``threshold_db`` for at
    least ``min_silence_seconds``.  ffmpeg only opens a run once it has
    lasted the minimum, so a run still open at end of stream also counts.

    Returns:
        ``True`` if a qualifying run was found; ``False`` otherwise,
        including on timeout.
    """
    binary = ffmpeg or AudioSegment.converter
    args = [
        binary,
        "-hide_banner",
        "-nostdin",
        "-nostats",
        "-i",
        path,
        "-af",
        f"silencedetect=noise={threshold_db:g}dB:d={min_silence_seconds:g}",
        "-f",
        "null",
        "-",
    ]
    diagnostics = _run(args, timeout)
    if diagnostics is None:
        logger.warning("Silence detection timed out after %ss for %s", timeout, path)
        return False
    durations, open_run = parse_silence_runs(diagnostics)
    return open_run or any(d >= min_silence_seconds for d in durations)
