"""
Recognition path selection.

Short‑form recognition models cut off aggressively at the first long pause,
so a recording's duration alone is not enough to pick a model.  The
selector combines the measured duration with the silence flag:

* unknown duration, or longer than the sync ceiling – batch recognition
  with the long‑form model;
* otherwise synchronous recognition, using the long‑form model when a long
  silence was detected and the short‑form model when it was not.
"""

import enum
import math
from dataclasses import dataclass
from typing import Optional


class RecognitionPath(str, enum.Enum):
    SYNC = "sync"
    ASYNC = "async"


@dataclass(frozen=True)
class RoutingDecision:
    path: RecognitionPath
    model: str


def select_path(
    duration: Optional[float],
    has_long_silence: Optional[bool],
    sync_ceiling_seconds: float,
    *,
    long_model: str = "long",
    short_model: str = "short",
) -> RoutingDecision:
    """Pick the recognition path and model for one recording.

    Args:
        duration: Length in seconds, or ``None`` when the probe could not
            determine it.  Non‑finite values count as unknown.
        has_long_silence: Result of the silence detector.  ``None`` means it
            was not run and is treated as ``False``.
        sync_ceiling_seconds: Longest recording sent to the synchronous call.
        long_model: Model tolerant of pauses.
        short_model: Low‑latency model for short utterances.
    """
    if duration is None or not math.isfinite(duration) or duration > sync_ceiling_seconds:
        return RoutingDecision(RecognitionPath.ASYNC, long_model)
    model = long_model if has_long_silence else short_model
    return RoutingDecision(RecognitionPath.SYNC, model)
