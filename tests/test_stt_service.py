from unittest.mock import Mock

import pytest
from google.api_core import exceptions as gexc
from google.cloud.speech_v2.types import cloud_speech

from dictation import stt_service

RECOGNIZER = "projects/demo/locations/global/recognizers/_"


def make_response(*transcripts):
    return cloud_speech.RecognizeResponse(
        results=[
            cloud_speech.SpeechRecognitionResult(
                alternatives=[cloud_speech.SpeechRecognitionAlternative(transcript=t)]
            )
            for t in transcripts
        ]
    )


class FakeSpeechClient:
    def __init__(self, responses=None, batch_error=None):
        self.responses = list(responses or [])
        self.batch_error = batch_error
        self.requests = []

    def recognize(self, request=None):
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def batch_recognize(self, request=None):
        self.requests.append(request)
        if self.batch_error is not None:
            raise self.batch_error
        op = Mock()
        op.operation.name = "projects/demo/locations/global/operations/42"
        return op


@pytest.fixture(autouse=True)
def no_retry_sleep(monkeypatch):
    monkeypatch.setattr(stt_service._recognize.retry, "sleep", lambda seconds: None)


def test_recognize_sync_returns_dict():
    client = FakeSpeechClient([make_response("hello comma world", "second")])
    result = stt_service.recognize_sync(
        client, b"flac", recognizer=RECOGNIZER, model="short", language_codes=("en-US", "en-GB")
    )
    assert result == {
        "results": [
            {"alternatives": [{"transcript": "hello comma world"}]},
            {"alternatives": [{"transcript": "second"}]},
        ]
    }
    request = client.requests[0]
    assert request.recognizer == RECOGNIZER
    assert request.content == b"flac"
    assert request.config.model == "short"
    assert list(request.config.language_codes) == ["en-US", "en-GB"]
    assert request.config.features.enable_automatic_punctuation is False


def test_recognize_sync_retries_transient_errors():
    client = FakeSpeechClient([gexc.ServiceUnavailable("busy"), make_response("ok")])
    result = stt_service.recognize_sync(client, b"flac", recognizer=RECOGNIZER, model="long")
    assert result["results"][0]["alternatives"][0]["transcript"] == "ok"
    assert len(client.requests) == 2


def test_recognize_sync_gives_up_after_three_attempts():
    client = FakeSpeechClient([gexc.ServiceUnavailable("busy")] * 3)
    with pytest.raises(gexc.ServiceUnavailable):
        stt_service.recognize_sync(client, b"flac", recognizer=RECOGNIZER, model="long")
    assert len(client.requests) == 3


def test_recognize_sync_propagates_other_errors_immediately():
    client = FakeSpeechClient([gexc.InvalidArgument("bad audio")])
    with pytest.raises(gexc.InvalidArgument):
        stt_service.recognize_sync(client, b"flac", recognizer=RECOGNIZER, model="long")
    assert len(client.requests) == 1


def test_start_batch_returns_operation_name():
    client = FakeSpeechClient()
    name = stt_service.start_batch(
        client, "gs://flac/clip.flac", "gs://txt/", recognizer=RECOGNIZER, model="long"
    )
    assert name.endswith("/operations/42")
    request = client.requests[0]
    assert request.files[0].uri == "gs://flac/clip.flac"
    assert request.recognition_output_config.gcs_output_config.uri == "gs://txt/"
    assert request.config.model == "long"


def test_start_batch_failure_is_swallowed():
    client = FakeSpeechClient(batch_error=gexc.InternalServerError("boom"))
    assert stt_service.start_batch(
        client, "gs://flac/clip.flac", "gs://txt/", recognizer=RECOGNIZER, model="long"
    ) is None


def test_speech_client_for_regional_endpoint(monkeypatch):
    created = []
    monkeypatch.setattr(stt_service, "SpeechClient", lambda **kwargs: created.append(kwargs) or Mock())
    stt_service.speech_client_for("global")
    stt_service.speech_client_for("europe-west4")
    assert created[0] == {}
    assert created[1]["client_options"].api_endpoint == "europe-west4-speech.googleapis.com"
