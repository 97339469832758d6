"""Receipt storage collaborator.

Receipt bytes live outside this service; expenses only keep a reference.
When a reference stops being used it is released through a ``ReceiptStore``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from shiftledger.core.config import get_settings

logger = logging.getLogger(__name__)


class ReceiptStore(Protocol):
    def release(self, ref: str) -> None:
        """Drop the stored receipt behind ``ref``; unknown refs are ignored."""
        ...


class LocalReceiptStore:
    """Deletes receipt files kept under a local directory."""

    def __init__(self, root: Path) -> None:
        self.root = root.resolve()

    def _local_path(self, ref: str) -> Path | None:
        candidate = Path(ref)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        candidate = candidate.resolve()
        if not candidate.is_relative_to(self.root):
            return None
        return candidate

    def release(self, ref: str) -> None:
        path = self._local_path(ref)
        if path is None:
            logger.debug("Receipt %s is not stored locally; nothing to release", ref)
            return
        if path.is_file():
            path.unlink()
            logger.info("Released receipt %s", ref)


def get_receipt_store() -> ReceiptStore:
    return LocalReceiptStore(Path(get_settings().receipt_dir))
