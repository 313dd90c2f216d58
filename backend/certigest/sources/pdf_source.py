from __future__ import annotations

import io
from pathlib import Path

from pypdf import PasswordType, PdfReader, PdfWriter

from certigest.sources.base import UNREADABLE_PDF, LoadedSource


class PdfSourceLoader:
    loader_id = "pdf"
    _EXTENSIONS = {".pdf"}

    def supports(self, *, file_name: str) -> bool:
        return Path(file_name).suffix.lower() in self._EXTENSIONS

    def load(self, *, content: bytes, file_name: str, label: str) -> LoadedSource:
        del file_name, label
        try:
            reader = PdfReader(io.BytesIO(content), strict=False)
            if reader.is_encrypted and reader.decrypt("") == PasswordType.NOT_DECRYPTED:
                return LoadedSource(loader_id=self.loader_id, error=UNREADABLE_PDF, detail="PDF is password protected")
            if len(reader.pages) == 0:
                return LoadedSource(loader_id=self.loader_id, error=UNREADABLE_PDF, detail="PDF has no pages")

            # Round-trip through a private writer so every page is known to serialize
            # before it reaches the shared dossier document.
            writer = PdfWriter()
            for page in reader.pages:
                writer.add_page(page)
            buffer = io.BytesIO()
            writer.write(buffer)
            normalized = PdfReader(io.BytesIO(buffer.getvalue()))
            return LoadedSource(loader_id=self.loader_id, pages=list(normalized.pages))
        except Exception as exc:
            return LoadedSource(
                loader_id=self.loader_id,
                error=UNREADABLE_PDF,
                detail=f"pdf parse failed: {exc}",
            )
