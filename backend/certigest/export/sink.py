from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger("certigest.export")


class ExportSinkError(RuntimeError):
    """Raised when a finished dossier cannot be delivered."""


@dataclass(frozen=True)
class Delivery:
    file_name: str
    size_bytes: int
    location: str | None = None


class ExportSink(Protocol):
    def deliver(self, content: bytes, suggested_file_name: str) -> Delivery:
        ...


def _safe_file_name(suggested_file_name: str) -> str:
    return Path(suggested_file_name).name or "dossie.pdf"


class MemorySink:
    """Keeps the delivered bytes so the HTTP layer can stream them back as a download."""

    def __init__(self) -> None:
        self.content: bytes | None = None
        self.file_name: str | None = None

    def deliver(self, content: bytes, suggested_file_name: str) -> Delivery:
        self.content = content
        self.file_name = _safe_file_name(suggested_file_name)
        return Delivery(file_name=self.file_name, size_bytes=len(content))


class LocalDirectorySink:
    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def deliver(self, content: bytes, suggested_file_name: str) -> Delivery:
        file_name = _safe_file_name(suggested_file_name)
        destination = self._root / file_name
        # Write next to the target and rename so readers never see a half-written dossier.
        partial = destination.with_name(f".{file_name}.partial")
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            partial.write_bytes(content)
            partial.replace(destination)
        except OSError as exc:
            partial.unlink(missing_ok=True)
            raise ExportSinkError(f"Failed to write dossier to '{destination}': {exc}") from exc

        logger.info(
            "dossier_delivered",
            extra={
                "event": "dossier_delivered",
                "sink": "local",
                "file_name": file_name,
                "size_bytes": len(content),
            },
        )
        return Delivery(file_name=file_name, size_bytes=len(content), location=str(destination))
