"""S3-backed result store."""

from __future__ import annotations

from typing import Any

import boto3

from .base import BaseStorage


class S3Storage(BaseStorage):
    """Result store for Amazon S3; metadata becomes ``x-amz-meta-*`` headers."""

    @property
    def scheme(self) -> str:
        return "s3"

    def __init__(
        self,
        *,
        bucket: str,
        prefix: str = "",
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        region_name: str | None = None,
        client: Any | None = None,
    ) -> None:
        super().__init__(bucket=bucket, prefix=prefix)
        if client is None:
            session_kwargs = {
                "aws_access_key_id": aws_access_key_id,
                "aws_secret_access_key": aws_secret_access_key,
                "region_name": region_name,
            }
            client = boto3.client("s3", **{k: v for k, v in session_kwargs.items() if v})
        self._client = client

    def save_bytes(
        self,
        *,
        data: bytes,
        object_key: str,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:
        request: dict[str, Any] = {"Bucket": self.bucket, "Key": object_key, "Body": data}
        if content_type:
            request["ContentType"] = content_type
        if metadata:
            request["Metadata"] = dict(metadata)
        self._client.put_object(**request)
        return self.build_uri(object_key)
