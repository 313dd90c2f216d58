from __future__ import annotations

from certigest.sources.base import UNSUPPORTED_FORMAT, LoadedSource, PageLayout, SourceLoader
from certigest.sources.image_source import jpeg_loader, png_loader
from certigest.sources.pdf_source import PdfSourceLoader


class SourceLoaderRegistry:
    def __init__(self, loaders: list[SourceLoader] | None = None, *, layout: PageLayout | None = None) -> None:
        page_layout = layout or PageLayout()
        self._loaders = loaders or [
            PdfSourceLoader(),
            png_loader(page_layout),
            jpeg_loader(page_layout),
        ]

    def find(self, file_name: str) -> SourceLoader | None:
        for loader in self._loaders:
            if loader.supports(file_name=file_name):
                return loader
        return None

    def is_supported(self, file_name: str) -> bool:
        return self.find(file_name) is not None

    def load(self, *, content: bytes, file_name: str, label: str) -> LoadedSource:
        loader = self.find(file_name)
        if loader is None:
            return LoadedSource(
                loader_id="none",
                error=UNSUPPORTED_FORMAT,
                detail="No loader registered for this file type.",
            )
        return loader.load(content=content, file_name=file_name, label=label)
