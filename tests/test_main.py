import pytest

from dictation import main
from dictation.exceptions import ConfigurationError


@pytest.fixture
def dispatched(monkeypatch, runtime):
    calls = []
    monkeypatch.setattr(main, "get_runtime", lambda: runtime)
    monkeypatch.setattr(main.tasks, "process_audio_upload", lambda rt, ev: calls.append(("audio", ev["name"])))
    monkeypatch.setattr(main.tasks, "process_result_upload", lambda rt, ev: calls.append(("result", ev["name"])))
    return calls


def test_gcs_event_dispatches_by_bucket(dispatched):
    main.gcs_event({"bucket": "audio-uploads", "name": "clip.m4a"}, None)
    main.gcs_event({"bucket": "audio-txt", "name": "clip_transcript_1.json"}, None)
    main.gcs_event({"bucket": "audio-txt", "name": "clip.txt"}, None)
    main.gcs_event({"bucket": "elsewhere", "name": "clip.m4a"}, None)
    main.gcs_event({"bucket": "audio-uploads"}, None)
    assert dispatched == [("audio", "clip.m4a"), ("result", "clip_transcript_1.json")]


def test_missing_configuration_fails_before_processing(monkeypatch):
    monkeypatch.setattr(main, "_runtime", None)
    for key in ("BUCKET_UPLOADS", "FLAC_TRANSCODES_BUCKET", "TXT_TRANSCRIPTS_BUCKET", "RECOGNIZER"):
        monkeypatch.delenv(key, raising=False)
    with pytest.raises(ConfigurationError):
        main.gcs_event({"bucket": "audio-uploads", "name": "clip.m4a"}, None)


def test_sign_returns_url(dispatched, runtime):
    runtime.transcripts.objects["clip.txt"] = "hello."
    client = main.app.test_client()
    rv = client.get("/sign", query_string={"name": "clip.txt"})
    assert rv.status_code == 200
    assert rv.get_json() == {"url": "https://storage.example/audio-txt/clip.txt?ttl=900"}


def test_sign_missing_name(dispatched):
    rv = main.app.test_client().get("/sign")
    assert rv.status_code == 400


def test_sign_unknown_object(dispatched):
    rv = main.app.test_client().get("/sign", query_string={"name": "nope.txt"})
    assert rv.status_code == 404
    assert rv.get_json() == {"error": "not-found"}


def test_sign_failure(dispatched, runtime, monkeypatch):
    runtime.transcripts.objects["clip.txt"] = "hello."

    def broken(key, ttl_seconds):
        raise RuntimeError("no signing key")

    monkeypatch.setattr(runtime.transcripts, "signed_read_url", broken)
    rv = main.app.test_client().get("/sign", query_string={"name": "clip.txt"})
    assert rv.status_code == 500
    assert rv.get_json() == {"error": "signing-failed"}


def test_events_route_replays_storage_event(dispatched):
    client = main.app.test_client()
    assert client.post("/events", json={"bucket": "audio-uploads", "name": "clip.m4a"}).status_code == 200
    assert client.post("/events", json={"bucket": "audio-uploads"}).status_code == 400
    assert dispatched == [("audio", "clip.m4a")]
