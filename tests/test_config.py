import pytest

from dictation.atomic_writer import WriteStrategy
from dictation.config import load_settings
from dictation.exceptions import ConfigurationError

BASE_ENV = {
    "BUCKET_UPLOADS": "audio-uploads",
    "FLAC_TRANSCODES_BUCKET": "audio-flac",
    "TXT_TRANSCRIPTS_BUCKET": "audio-txt",
    "RECOGNIZER": "projects/demo/locations/us-central1/recognizers/_",
    "FFMPEG_BINARY": "ffmpeg",
}


def test_defaults():
    settings = load_settings(BASE_ENV)
    assert settings.uploads_bucket == "audio-uploads"
    assert settings.language_codes == ("en-US",)
    assert settings.long_model == "long"
    assert settings.short_model == "short"
    assert settings.sync_max_seconds == 55.0
    assert settings.write_strategy is WriteStrategy.TEMP_THEN_PROMOTE
    assert settings.enable_automatic_punctuation is False
    assert settings.transcripts_prefix == ""
    assert settings.recognizer_location == "us-central1"


@pytest.mark.parametrize("missing", ["BUCKET_UPLOADS", "FLAC_TRANSCODES_BUCKET", "TXT_TRANSCRIPTS_BUCKET", "RECOGNIZER"])
def test_missing_required_setting_is_fatal(missing):
    env = dict(BASE_ENV)
    env[missing] = "  "
    with pytest.raises(ConfigurationError) as excinfo:
        load_settings(env)
    assert excinfo.value.setting == missing


def test_overrides():
    env = dict(
        BASE_ENV,
        LANGUAGE_CODES="en-US, en-GB,,",
        SYNC_MAX_SECONDS="30",
        SILENCE_MIN_SECONDS="1.5",
        SILENCE_THRESHOLD_DB="-50",
        TRANSCRIPTS_PREFIX="/transcribed-files/",
        WRITE_STRATEGY="create-only",
        ENABLE_AUTOMATIC_PUNCTUATION="true",
    )
    settings = load_settings(env)
    assert settings.language_codes == ("en-US", "en-GB")
    assert settings.sync_max_seconds == 30.0
    assert settings.silence_min_seconds == 1.5
    assert settings.silence_threshold_db == -50.0
    assert settings.transcripts_prefix == "transcribed-files/"
    assert settings.write_strategy is WriteStrategy.CREATE_ONLY
    assert settings.enable_automatic_punctuation is True


def test_legacy_create_only_flag():
    assert load_settings(dict(BASE_ENV, CREATE_ONLY="true")).write_strategy is WriteStrategy.CREATE_ONLY
    settings = load_settings(dict(BASE_ENV, CREATE_ONLY="true", WRITE_STRATEGY="temp-then-promote"))
    assert settings.write_strategy is WriteStrategy.TEMP_THEN_PROMOTE


@pytest.mark.parametrize(
    "key, value",
    [
        ("SYNC_MAX_SECONDS", "soon"),
        ("SILENCE_THRESHOLD_DB", "10"),
        ("SILENCE_TIMEOUT_SECONDS", "5"),
        ("WRITE_STRATEGY", "overwrite"),
        ("ENABLE_AUTOMATIC_PUNCTUATION", "maybe"),
        ("RECOGNIZER", "my-recognizer"),
    ],
)
def test_invalid_values_are_fatal(key, value):
    with pytest.raises(ConfigurationError):
        load_settings(dict(BASE_ENV, **{key: value}))


def test_global_recognizer_location():
    env = dict(BASE_ENV, RECOGNIZER="projects/demo/locations/global/recognizers/dictation")
    assert load_settings(env).recognizer_location == "global"
