from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import BinaryIO
from uuid import uuid4

from . import exceptions

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


def _safe_name(file_name: str | None) -> str:
    name = Path(file_name or "").name.strip().replace(" ", "_")
    return name or "image"


class LocalBlobStore:
    """Image blobs kept as flat files under a single root directory.

    Stored names are ``<time_ns>_<token>_<original name>`` so repeated uploads of
    the same file never collide, even across products sharing the directory.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, stored_name: str) -> Path:
        return self.root / Path(stored_name).name

    def exists(self, stored_name: str) -> bool:
        return self.path_for(stored_name).is_file()

    def list_names(self, *, older_than: float | None = None) -> list[str]:
        """Stored names in the root, optionally only those last modified before ``older_than``."""

        if not self.root.is_dir():
            return []
        names: list[str] = []
        for path in self.root.iterdir():
            if not path.is_file():
                continue
            if older_than is not None and path.stat().st_mtime >= older_than:
                continue
            names.append(path.name)
        return sorted(names)

    def make_name(self, suggested_name: str | None) -> str:
        return f"{time.time_ns()}_{uuid4().hex[:8]}_{_safe_name(suggested_name)}"

    def store(self, payload: bytes | BinaryIO, suggested_name: str | None = None) -> str:
        stored_name = self.make_name(suggested_name)
        destination = self.path_for(stored_name)
        opened = False
        ok = False
        try:
            self.ensure_root()
            with destination.open("xb") as buffer:
                opened = True
                if isinstance(payload, (bytes, bytearray, memoryview)):
                    buffer.write(payload)
                else:
                    while chunk := payload.read(_CHUNK_SIZE):
                        buffer.write(chunk)
            ok = True
        except (OSError, ValueError) as exc:
            raise exceptions.StorageWriteError(f"Failed to save image {suggested_name!r}: {exc}") from exc
        finally:
            if opened and not ok:
                destination.unlink(missing_ok=True)
        logger.debug("Stored blob %s", stored_name)
        return stored_name

    def delete(self, stored_name: str) -> None:
        try:
            self.path_for(stored_name).unlink(missing_ok=True)
        except OSError as exc:
            raise exceptions.StorageDeleteError(f"Failed to delete image {stored_name!r}: {exc}") from exc
        logger.debug("Deleted blob %s", stored_name)
