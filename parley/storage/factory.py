"""Result store resolution from an output URI or path."""

from __future__ import annotations

from urllib.parse import urlparse

from ..config import load_gcs_storage_config, load_results_dir, load_s3_storage_config
from .base import BaseStorage
from .gcs_storage import GCSStorage
from .local_storage import LocalStorage
from .s3_storage import S3Storage


def is_remote_storage_uri(uri: str | None) -> bool:
    """Return true when URI uses a supported remote storage scheme."""
    if not uri:
        return False
    return urlparse(uri).scheme.lower() in {"s3", "gs"}


def create_storage(output: str | None = None) -> BaseStorage:
    """Create a store for ``output``: ``s3://…``, ``gs://…``, ``file://…`` or a plain path.

    With no output, results go to ``PARLEY_RESULTS_DIR`` (default ``results``).
    """
    if not output:
        return LocalStorage(root=load_results_dir())

    parsed = urlparse(output)
    scheme = parsed.scheme.lower()
    bucket = parsed.netloc.strip() or None
    prefix = parsed.path.lstrip("/")

    if scheme == "s3":
        cfg = load_s3_storage_config()
        resolved_bucket = bucket or cfg.bucket
        if not resolved_bucket:
            raise ValueError("Missing S3 bucket. Provide bucket in output URI or set S3_BUCKET.")
        return S3Storage(
            bucket=resolved_bucket,
            prefix=prefix,
            aws_access_key_id=cfg.aws_access_key_id,
            aws_secret_access_key=cfg.aws_secret_access_key,
            region_name=cfg.region,
        )

    if scheme == "gs":
        cfg = load_gcs_storage_config()
        resolved_bucket = bucket or cfg.bucket
        if not resolved_bucket:
            raise ValueError("Missing GCS bucket. Provide bucket in output URI or set GCS_BUCKET.")
        return GCSStorage(bucket=resolved_bucket, prefix=prefix, project=cfg.project, creds_path=cfg.creds_path)

    if scheme == "file":
        return LocalStorage(root=parsed.path)
    if scheme == "" or len(scheme) == 1:  # plain path (or a Windows drive letter)
        return LocalStorage(root=output)

    raise ValueError(f"Unsupported storage URI scheme: {parsed.scheme!r}")
