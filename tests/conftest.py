import threading

import pytest

from dictation.atomic_writer import AtomicTextWriter, WriteStrategy
from dictation.config import Settings
from dictation.exceptions import ObjectExistsError
from dictation.tasks import Runtime


class FakeBucket:
    def __init__(self, name):
        self.name = name
        self.objects = {}
        self.uploads = []
        self.downloads = []
        self._lock = threading.Lock()

    def uri(self, key):
        return f"gs://{self.name}/{key}"

    def download_to_filename(self, key, local_path, *, generation=None):
        self.downloads.append((key, generation))
        with open(local_path, "wb") as f:
            f.write(self.objects[key])

    def download_bytes(self, key):
        data = self.objects[key]
        return data if isinstance(data, bytes) else data.encode("utf-8")

    def upload_file(self, local_path, key, *, content_type=None):
        with open(local_path, "rb") as f:
            self.objects[key] = f.read()
        self.uploads.append((key, content_type))

    def save_text(self, key, text, *, create_only=False):
        with self._lock:
            if create_only and key in self.objects:
                raise ObjectExistsError(key)
            self.objects[key] = text

    def copy(self, source_key, dest_key, *, create_only=False):
        with self._lock:
            if create_only and dest_key in self.objects:
                raise ObjectExistsError(dest_key)
            self.objects[dest_key] = self.objects[source_key]

    def delete(self, key):
        with self._lock:
            return self.objects.pop(key, None) is not None

    def exists(self, key):
        return key in self.objects

    def signed_read_url(self, key, ttl_seconds):
        return f"https://storage.example/{self.name}/{key}?ttl={ttl_seconds}"


@pytest.fixture
def settings():
    return Settings(
        uploads_bucket="audio-uploads",
        transcodes_bucket="audio-flac",
        transcripts_bucket="audio-txt",
        recognizer="projects/demo/locations/global/recognizers/_",
        sync_max_seconds=55,
        ffmpeg_binary="ffmpeg",
    )


@pytest.fixture
def runtime(settings):
    transcripts = FakeBucket(settings.transcripts_bucket)
    return Runtime(
        settings=settings,
        uploads=FakeBucket(settings.uploads_bucket),
        transcodes=FakeBucket(settings.transcodes_bucket),
        transcripts=transcripts,
        speech_client=object(),
        writer=AtomicTextWriter(transcripts, WriteStrategy.TEMP_THEN_PROMOTE),
    )
