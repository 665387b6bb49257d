"""Local-filesystem result store."""

from __future__ import annotations

from pathlib import Path

from .base import BaseStorage


class LocalStorage(BaseStorage):
    """Writes results under a local directory, which plays the bucket role.

    Object metadata has no filesystem counterpart and is dropped.
    """

    @property
    def scheme(self) -> str:
        return "file"

    def __init__(self, *, root: str | Path) -> None:
        self.root = Path(root).expanduser().resolve()
        super().__init__(bucket=str(self.root))

    def build_uri(self, object_key: str) -> str:
        return (self.root / object_key).as_uri()

    def save_bytes(
        self,
        *,
        data: bytes,
        object_key: str,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> str:
        target = self.root / object_key
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return self.build_uri(object_key)
