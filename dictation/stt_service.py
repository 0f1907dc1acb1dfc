"""
Google Speech‑to‑Text v2 service wrapper.

Two ways of running recognition are exposed:

* :func:`recognize_sync` sends the audio bytes inline and waits for the
  response.  Failures propagate so the trigger retries the invocation.
* :func:`start_batch` starts a batch job reading from Cloud Storage and
  writing its JSON output back to Cloud Storage.  It returns as soon as the
  job is accepted; a start failure is logged and swallowed because the
  transcoded audio has already been uploaded and a retry would only submit
  a duplicate job.

Usage::

    from dictation.stt_service import recognize_sync, speech_client_for

    client = speech_client_for("us-central1")
    response = recognize_sync(client, audio_bytes, recognizer=recognizer, model="short")
    print(response["results"])
"""

import logging
from typing import Any, Dict, Optional, Sequence

from google.api_core import exceptions as gexc
from google.api_core.client_options import ClientOptions
from google.cloud.speech_v2 import SpeechClient
from google.cloud.speech_v2.types import cloud_speech
from google.protobuf.json_format import MessageToDict
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (gexc.ServiceUnavailable, gexc.TooManyRequests, gexc.DeadlineExceeded)


def speech_client_for(location: str) -> SpeechClient:
    """Create a client bound to the regional endpoint of ``location``."""
    if location == "global":
        return SpeechClient()
    return SpeechClient(client_options=ClientOptions(api_endpoint=f"{location}-speech.googleapis.com"))


def build_recognition_config(
    model: str,
    language_codes: Sequence[str] = ("en-US",),
    enable_automatic_punctuation: bool = False,
) -> cloud_speech.RecognitionConfig:
    """Recognition config shared by the sync and batch calls."""
    return cloud_speech.RecognitionConfig(
        auto_decoding_config=cloud_speech.AutoDetectDecodingConfig(),
        language_codes=list(language_codes),
        model=model,
        features=cloud_speech.RecognitionFeatures(
            enable_automatic_punctuation=enable_automatic_punctuation,
        ),
    )


@retry(
    retry=retry_if_exception_type(TRANSIENT_ERRORS),
    wait=wait_exponential(multiplier=1, max=8),
    stop=stop_after_attempt(3),
    reraise=True,
)
def _recognize(client: SpeechClient, request: cloud_speech.RecognizeRequest) -> Any:
    return client.recognize(request=request)


def recognize_sync(
    client: SpeechClient,
    content: bytes,
    *,
    recognizer: str,
    model: str,
    language_codes: Sequence[str] = ("en-US",),
    enable_automatic_punctuation: bool = False,
) -> Dict[str, Any]:
    """Recognise inline audio and return the response as a dictionary.

    The dictionary has the same ``results[].alternatives[].transcript``
    shape as the JSON written by batch jobs.

    Raises:
        google.api_core.exceptions.GoogleAPICallError: After retries of
            transient errors are exhausted, or immediately for other errors.
    """
    request = cloud_speech.RecognizeRequest(
        recognizer=recognizer,
        config=build_recognition_config(model, language_codes, enable_automatic_punctuation),
        content=content,
    )
    logger.info("Starting sync recognition with model %s (%d bytes)", model, len(content))
    response = _recognize(client, request)
    logger.info("Sync recognition complete")
    return MessageToDict(response._pb)


def start_batch(
    client: SpeechClient,
    source_uri: str,
    output_uri: str,
    *,
    recognizer: str,
    model: str,
    language_codes: Sequence[str] = ("en-US",),
    enable_automatic_punctuation: bool = False,
) -> Optional[str]:
    """Start a batch recognition job without waiting for it.

    Args:
        client: Speech client.
        source_uri: ``gs://`` URI of the transcoded audio.
        output_uri: ``gs://`` prefix where the service writes its JSON.

    Returns:
        The long‑running operation name, or ``None`` if the job could not be
        started.
    """
    request = cloud_speech.BatchRecognizeRequest(
        recognizer=recognizer,
        config=build_recognition_config(model, language_codes, enable_automatic_punctuation),
        files=[cloud_speech.BatchRecognizeFileMetadata(uri=source_uri)],
        recognition_output_config=cloud_speech.RecognitionOutputConfig(
            gcs_output_config=cloud_speech.GcsOutputConfig(uri=output_uri),
        ),
    )
    try:
        operation = client.batch_recognize(request=request)
    except gexc.GoogleAPICallError:
        logger.exception("Failed to start batch recognition for %s", source_uri)
        return None
    name = operation.operation.name
    logger.info("Started batch recognition %s for %s -> %s", name, source_uri, output_uri)
    return name
