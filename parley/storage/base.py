"""Base abstractions for conversation result stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
import json
from typing import Any


class BaseStorage(ABC):
    """One JSON document per execution, keyed ``<prefix>/<execution_id>.json``."""

    def __init__(self, *, bucket: str, prefix: str = "") -> None:
        if not bucket.strip():
            raise ValueError("bucket must be non-empty")
        self.bucket = bucket.strip()
        self.prefix = prefix.strip().strip("/")

    @property
    @abstractmethod
    def scheme(self) -> str:
        """URI scheme of stored objects (`s3`, `gs` or `file`)."""

    def build_object_key(self, relative_path: str) -> str:
        path = relative_path.strip().lstrip("/")
        if not path:
            raise ValueError("relative_path must be non-empty")
        return "/".join(p for p in (self.prefix, path) if p)

    def build_uri(self, object_key: str) -> str:
        return f"{self.scheme}://{self.bucket}/{object_key}"

    @abstractmethod
    def save_bytes(
        self,
        *,
        data: bytes,
        object_key: str,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:
        """Write ``data`` under ``object_key``; return the object URI."""

    def save_json(
        self,
        payload: dict[str, Any],
        *,
        relative_path: str,
        metadata: dict[str, str] | None = None,
    ) -> str:
        return self.save_bytes(
            data=json.dumps(payload, indent=2, default=str).encode("utf-8"),
            object_key=self.build_object_key(relative_path),
            content_type="application/json",
            metadata=metadata,
        )

    def save_result(self, execution_id: str, payload: dict[str, Any]) -> str:
        """Persist a conversation result map, tagged with its id and status."""
        if not execution_id or "/" in execution_id or execution_id.startswith("."):
            raise ValueError(f"Invalid execution id for storage: {execution_id!r}")
        tags = {"execution-id": execution_id}
        if payload.get("status"):
            tags["status"] = str(payload["status"])
        return self.save_json(payload, relative_path=f"{execution_id}.json", metadata=tags)
