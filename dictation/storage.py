"""
Cloud Storage access.

:class:`GcsBucket` wraps one bucket with the handful of operations the
pipeline needs.  Create‑only writes use the ``if_generation_match=0``
precondition, so the service itself rejects a second writer.
"""

import posixpath
from datetime import timedelta
from typing import Optional

from google.api_core.exceptions import NotFound, PreconditionFailed
from google.cloud import storage

from .exceptions import ObjectExistsError

TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


class GcsBucket:
    """Object store operations scoped to a single bucket."""

    def __init__(self, client: storage.Client, bucket_name: str):
        self.name = bucket_name
        self._bucket = client.bucket(bucket_name)

    def uri(self, key: str) -> str:
        return f"gs://{self.name}/{key}"

    def download_to_filename(self, key: str, local_path: str, *, generation: Optional[int] = None) -> None:
        """Download ``key`` to ``local_path``, pinned to ``generation`` if given."""
        self._bucket.blob(key, generation=generation).download_to_filename(local_path)

    def download_bytes(self, key: str) -> bytes:
        return self._bucket.blob(key).download_as_bytes()

    def upload_file(self, local_path: str, key: str, *, content_type: Optional[str] = None) -> None:
        self._bucket.blob(key).upload_from_filename(local_path, content_type=content_type)

    def save_text(self, key: str, text: str, *, create_only: bool = False) -> None:
        """Write ``text`` to ``key``.

        Raises:
            ObjectExistsError: If ``create_only`` is set and ``key`` exists.
        """
        blob = self._bucket.blob(key)
        blob.cache_control = "no-cache"
        kwargs = {"if_generation_match": 0} if create_only else {}
        try:
            blob.upload_from_string(text, content_type=TEXT_CONTENT_TYPE, **kwargs)
        except PreconditionFailed:
            raise ObjectExistsError(key) from None

    def copy(self, source_key: str, dest_key: str, *, create_only: bool = False) -> None:
        """Server-side copy within the bucket.

        Raises:
            ObjectExistsError: If ``create_only`` is set and ``dest_key`` exists.
        """
        kwargs = {"if_generation_match": 0} if create_only else {}
        try:
            self._bucket.copy_blob(self._bucket.blob(source_key), self._bucket, dest_key, **kwargs)
        except PreconditionFailed:
            raise ObjectExistsError(dest_key) from None

    def delete(self, key: str) -> bool:
        """Delete ``key``; returns ``False`` if it did not exist."""
        try:
            self._bucket.blob(key).delete()
        except NotFound:
            return False
        return True

    def exists(self, key: str) -> bool:
        return self._bucket.blob(key).exists()

    def signed_read_url(self, key: str, ttl_seconds: int) -> str:
        """Mint a V4 signed GET URL that downloads ``key`` as an attachment."""
        return self._bucket.blob(key).generate_signed_url(
            version="v4",
            method="GET",
            expiration=timedelta(seconds=ttl_seconds),
            response_disposition=f'attachment; filename="{posixpath.basename(key)}"',
        )
