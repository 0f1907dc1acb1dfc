"""
Orchestration layer for the dictation pipeline.

This module defines the two flows that are called from the Cloud Function
entrypoint in :mod:`dictation.main`:

* When audio is uploaded to the uploads bucket, the pipeline downloads it,
  measures its duration and silences, picks a recognition path, transcodes
  it to FLAC and then either recognises it inline (writing the transcript
  straight away) or uploads the FLAC and starts a batch job.
* When a batch job deposits its JSON output in the transcripts bucket, the
  pipeline extracts, normalises and writes the transcript.

Each invocation is independent.  Writes go through the atomic writer, so a
retried or duplicated trigger never leaves a partial transcript behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from google.cloud import storage

from . import audio_probe, audio_processor, naming, stt_service
from .atomic_writer import AtomicTextWriter, WriteOutcome
from .config import Settings
from .exceptions import MalformedResultError
from .routing import RecognitionPath, RoutingDecision, select_path
from .storage import GcsBucket
from .transcript_extractor import extract_transcript, parse_recognition_json
from .transcript_normalizer import normalize_transcript

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Clients and settings shared by every invocation in a process."""

    settings: Settings
    uploads: GcsBucket
    transcodes: GcsBucket
    transcripts: GcsBucket
    speech_client: Any
    writer: AtomicTextWriter


def build_runtime(settings: Settings) -> Runtime:
    storage_client = storage.Client()
    transcripts = GcsBucket(storage_client, settings.transcripts_bucket)
    return Runtime(
        settings=settings,
        uploads=GcsBucket(storage_client, settings.uploads_bucket),
        transcodes=GcsBucket(storage_client, settings.transcodes_bucket),
        transcripts=transcripts,
        speech_client=stt_service.speech_client_for(settings.recognizer_location),
        writer=AtomicTextWriter(transcripts, settings.write_strategy),
    )


@dataclass
class AudioAsset:
    """One uploaded recording and the scratch files made from it."""

    bucket: str
    name: str
    generation: Optional[int] = None
    duration: Optional[float] = None
    has_long_silence: Optional[bool] = None
    scratch_paths: List[str] = field(default_factory=list)

    def new_scratch_path(self, suffix: str) -> str:
        fd, path = tempfile.mkstemp(suffix=suffix)
        os.close(fd)
        self.scratch_paths.append(path)
        return path

    def cleanup(self) -> None:
        for path in self.scratch_paths:
            audio_processor.cleanup_temp_file(path)
        self.scratch_paths.clear()


def _generation(event: Dict[str, Any]) -> Optional[int]:
    value = event.get("generation")
    if value is None or not str(value).isdigit():
        return None
    return int(value)


def process_audio_upload(runtime: Runtime, event: Dict[str, Any]) -> Optional[RoutingDecision]:
    """Route and dispatch a newly uploaded recording.

    Args:
        runtime: Process-wide clients and settings.
        event: Storage event with at least ``bucket`` and ``name``; the
            optional ``generation`` pins the download to that version.

    Returns:
        The routing decision, or ``None`` when the upload was skipped.

    Raises:
        Storage, transcoding and synchronous recognition errors propagate so
        the trigger retries the invocation.
    """
    settings = runtime.settings
    bucket_name = event.get("bucket")
    file_name = event.get("name")
    if bucket_name != settings.uploads_bucket or not file_name:
        logger.info(json.dumps({"event": "skip_bucket", "bucket": bucket_name, "file": file_name}))
        return None
    if not audio_processor.is_supported_audio(file_name):
        logger.info(json.dumps({"event": "skip_type", "file": file_name}))
        return None

    asset = AudioAsset(bucket=bucket_name, name=file_name, generation=_generation(event))
    logger.info(
        json.dumps(
            {
                "event": "audio_received",
                "file": file_name,
                "generation": asset.generation,
                "content_type": event.get("contentType"),
                "size": event.get("size"),
            }
        )
    )
    try:
        local_path = asset.new_scratch_path(Path(file_name).suffix)
        runtime.uploads.download_to_filename(file_name, local_path, generation=asset.generation)

        asset.duration = audio_probe.probe_duration(
            local_path, timeout=settings.probe_timeout_seconds, ffmpeg=settings.ffmpeg_binary
        )
        if asset.duration is not None and asset.duration <= settings.sync_max_seconds:
            asset.has_long_silence = audio_probe.detect_long_silence(
                local_path,
                min_silence_seconds=settings.silence_min_seconds,
                threshold_db=settings.silence_threshold_db,
                timeout=settings.silence_timeout_seconds,
                ffmpeg=settings.ffmpeg_binary,
            )
        decision = select_path(
            asset.duration,
            asset.has_long_silence,
            settings.sync_max_seconds,
            long_model=settings.long_model,
            short_model=settings.short_model,
        )
        logger.info(
            json.dumps(
                {
                    "event": "routed",
                    "file": file_name,
                    "duration": asset.duration,
                    "long_silence": asset.has_long_silence,
                    "path": decision.path.value,
                    "model": decision.model,
                }
            )
        )

        flac_path = audio_processor.transcode_to_flac(local_path)
        asset.scratch_paths.append(flac_path)

        if decision.path is RecognitionPath.SYNC:
            _recognize_inline(runtime, asset, flac_path, decision)
        else:
            _submit_batch(runtime, asset, flac_path, decision)
        return decision
    finally:
        asset.cleanup()


def _recognize_inline(runtime: Runtime, asset: AudioAsset, flac_path: str, decision: RoutingDecision) -> WriteOutcome:
    settings = runtime.settings
    with open(flac_path, "rb") as f:
        content = f.read()
    response = stt_service.recognize_sync(
        runtime.speech_client,
        content,
        recognizer=settings.recognizer,
        model=decision.model,
        language_codes=settings.language_codes,
        enable_automatic_punctuation=settings.enable_automatic_punctuation,
    )
    text = normalize_transcript(extract_transcript(response))
    text_name = settings.transcripts_prefix + naming.text_name_for_audio(asset.name)
    outcome = runtime.writer.write(text_name, text)
    logger.info(
        json.dumps(
            {
                "event": "transcript_saved" if outcome.written else "transcript_exists",
                "bucket": runtime.transcripts.name,
                "path": text_name,
                "chars": len(text),
            }
        )
    )
    return outcome


def _submit_batch(runtime: Runtime, asset: AudioAsset, flac_path: str, decision: RoutingDecision) -> Optional[str]:
    settings = runtime.settings
    flac_name = naming.transcode_name_for(asset.name)
    runtime.transcodes.upload_file(flac_path, flac_name, content_type="audio/flac")
    source_uri = runtime.transcodes.uri(flac_name)
    output_uri = runtime.transcripts.uri(settings.transcripts_prefix)
    operation_name = stt_service.start_batch(
        runtime.speech_client,
        source_uri,
        output_uri,
        recognizer=settings.recognizer,
        model=decision.model,
        language_codes=settings.language_codes,
        enable_automatic_punctuation=settings.enable_automatic_punctuation,
    )
    if operation_name is None:
        logger.error(json.dumps({"event": "batch_start_failed", "input": source_uri}))
    else:
        logger.info(
            json.dumps(
                {"event": "batch_started", "operation": operation_name, "input": source_uri, "output": output_uri}
            )
        )
    return operation_name


def process_result_upload(runtime: Runtime, event: Dict[str, Any]) -> Optional[WriteOutcome]:
    """Turn a batch recognition JSON file into a ``.txt`` transcript.

    Malformed JSON and unrecognised names are logged and skipped, since
    retrying cannot fix them.  Download and write errors propagate.

    Returns:
        The write outcome, or ``None`` when nothing was written.
    """
    settings = runtime.settings
    bucket_name = event.get("bucket")
    file_name = event.get("name")
    if bucket_name != settings.transcripts_bucket or not file_name:
        logger.info(json.dumps({"event": "skip_bucket", "bucket": bucket_name, "file": file_name}))
        return None
    if not file_name.lower().endswith(".json"):
        logger.info(json.dumps({"event": "skip_type", "file": file_name}))
        return None
    if not file_name.startswith(settings.transcripts_prefix):
        logger.info(json.dumps({"event": "skip_prefix", "file": file_name, "prefix": settings.transcripts_prefix}))
        return None
    text_name = naming.text_name_for_result(file_name)
    if text_name is None:
        logger.warning(json.dumps({"event": "unrecognized_name", "file": file_name}))
        return None

    raw = runtime.transcripts.download_bytes(file_name)
    try:
        result = parse_recognition_json(raw, file_name)
    except MalformedResultError as exc:
        logger.error(json.dumps({"event": "parse_error", "file": file_name, "error": str(exc.cause or exc)}))
        return None

    text = normalize_transcript(extract_transcript(result))
    outcome = runtime.writer.write(text_name, text)
    logger.info(
        json.dumps(
            {
                "event": "transcript_saved" if outcome.written else "transcript_exists",
                "bucket": bucket_name,
                "path": text_name,
                "chars": len(text),
            }
        )
    )
    return outcome
