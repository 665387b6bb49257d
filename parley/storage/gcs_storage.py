"""Google Cloud Storage-backed result store."""

from __future__ import annotations

import os
from typing import Any

from google.cloud import storage

from .base import BaseStorage


class GCSStorage(BaseStorage):
    """Result store for Google Cloud Storage; metadata is set on the blob."""

    @property
    def scheme(self) -> str:
        return "gs"

    def __init__(
        self,
        *,
        bucket: str,
        prefix: str = "",
        project: str | None = None,
        creds_path: str | None = None,
        client: Any | None = None,
    ) -> None:
        super().__init__(bucket=bucket, prefix=prefix)
        if client is None:
            if creds_path:
                os.environ.setdefault("GOOGLE_APPLICATION_CREDENTIALS", creds_path)
            client = storage.Client(project=project)
        self._bucket = client.bucket(self.bucket)

    def save_bytes(
        self,
        *,
        data: bytes,
        object_key: str,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:
        blob = self._bucket.blob(object_key)
        if metadata:
            blob.metadata = dict(metadata)
        blob.upload_from_string(data, content_type=content_type)
        return self.build_uri(object_key)
