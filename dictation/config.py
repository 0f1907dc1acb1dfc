"""
Runtime settings for the dictation pipeline.

All settings come from environment variables and are read once per process
by :func:`load_settings`.  Required variables:

* ``BUCKET_UPLOADS`` – bucket that receives raw audio uploads.
* ``FLAC_TRANSCODES_BUCKET`` – holding bucket for transcoded audio sent to
  batch recognition.
* ``TXT_TRANSCRIPTS_BUCKET`` – bucket where batch recognition deposits its
  JSON output and where the ``.txt`` transcripts are written.
* ``RECOGNIZER`` – full Speech‑to‑Text v2 recognizer resource name.

Everything else has a default; see :class:`Settings`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from pydub import AudioSegment

from .atomic_writer import WriteStrategy
from .exceptions import ConfigurationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    uploads_bucket: str
    transcodes_bucket: str
    transcripts_bucket: str
    recognizer: str
    language_codes: Tuple[str, ...] = ("en-US",)
    long_model: str = "long"
    short_model: str = "short"
    sync_max_seconds: float = 55.0
    silence_min_seconds: float = 2.0
    silence_threshold_db: float = -35.0
    probe_timeout_seconds: float = 15.0
    silence_timeout_seconds: float = 60.0
    transcripts_prefix: str = ""
    write_strategy: WriteStrategy = WriteStrategy.TEMP_THEN_PROMOTE
    enable_automatic_punctuation: bool = False
    signed_url_ttl_seconds: int = 900
    ffmpeg_binary: str = "ffmpeg"

    @property
    def recognizer_location(self) -> str:
        """Location segment of the recognizer name (``global`` if absent)."""
        parts = self.recognizer.split("/")
        if len(parts) >= 4 and parts[2] == "locations":
            return parts[3]
        return "global"


def _require(environ: Mapping[str, str], key: str) -> str:
    value = (environ.get(key) or "").strip()
    if not value:
        raise ConfigurationError(key)
    return value


def _float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(key, f"not a number ({raw!r})") from None


def _bool(environ: Mapping[str, str], key: str, default: bool) -> bool:
    raw = environ.get(key)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(key, f"not a boolean ({raw!r})")


def _write_strategy(environ: Mapping[str, str]) -> WriteStrategy:
    raw = (environ.get("WRITE_STRATEGY") or "").strip().lower()
    if not raw:
        # Older deployments only set CREATE_ONLY.
        if _bool(environ, "CREATE_ONLY", False):
            return WriteStrategy.CREATE_ONLY
        return WriteStrategy.TEMP_THEN_PROMOTE
    try:
        return WriteStrategy(raw)
    except ValueError:
        raise ConfigurationError("WRITE_STRATEGY", f"unknown strategy ({raw!r})") from None


def _language_codes(environ: Mapping[str, str]) -> Tuple[str, ...]:
    raw = environ.get("LANGUAGE_CODES") or "en-US"
    codes = tuple(code.strip() for code in raw.split(",") if code.strip())
    if not codes:
        raise ConfigurationError("LANGUAGE_CODES", "no language codes given")
    return codes


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from the environment.

    Raises:
        ConfigurationError: If a required variable is missing or a value
            cannot be parsed.  Nothing is processed before this succeeds.
    """
    if environ is None:
        environ = os.environ

    recognizer = _require(environ, "RECOGNIZER")
    if not recognizer.startswith("projects/") or "/recognizers/" not in recognizer:
        raise ConfigurationError("RECOGNIZER", f"not a recognizer resource name ({recognizer!r})")

    threshold_db = _float(environ, "SILENCE_THRESHOLD_DB", -35.0)
    if threshold_db >= 0:
        raise ConfigurationError("SILENCE_THRESHOLD_DB", "must be negative decibels")

    probe_timeout = _float(environ, "PROBE_TIMEOUT_SECONDS", 15.0)
    silence_timeout = _float(environ, "SILENCE_TIMEOUT_SECONDS", 60.0)
    if probe_timeout <= 0 or silence_timeout <= probe_timeout:
        raise ConfigurationError(
            "SILENCE_TIMEOUT_SECONDS", "must be greater than PROBE_TIMEOUT_SECONDS"
        )

    prefix = (environ.get("TRANSCRIPTS_PREFIX") or "").strip().strip("/")
    if prefix:
        prefix += "/"

    return Settings(
        uploads_bucket=_require(environ, "BUCKET_UPLOADS"),
        transcodes_bucket=_require(environ, "FLAC_TRANSCODES_BUCKET"),
        transcripts_bucket=_require(environ, "TXT_TRANSCRIPTS_BUCKET"),
        recognizer=recognizer,
        language_codes=_language_codes(environ),
        long_model=(environ.get("SPEECH_MODEL") or "long").strip(),
        short_model=(environ.get("SHORT_SPEECH_MODEL") or "short").strip(),
        sync_max_seconds=_float(environ, "SYNC_MAX_SECONDS", 55.0),
        silence_min_seconds=_float(environ, "SILENCE_MIN_SECONDS", 2.0),
        silence_threshold_db=threshold_db,
        probe_timeout_seconds=probe_timeout,
        silence_timeout_seconds=silence_timeout,
        transcripts_prefix=prefix,
        write_strategy=_write_strategy(environ),
        enable_automatic_punctuation=_bool(environ, "ENABLE_AUTOMATIC_PUNCTUATION", False),
        signed_url_ttl_seconds=int(_float(environ, "SIGNED_URL_TTL_SECONDS", 900)),
        ffmpeg_binary=(environ.get("FFMPEG_BINARY") or AudioSegment.converter or "ffmpeg").strip(),
    )
