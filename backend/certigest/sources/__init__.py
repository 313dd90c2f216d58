from certigest.sources.base import (
    UNREADABLE_IMAGE,
    UNREADABLE_PDF,
    UNSUPPORTED_FORMAT,
    ImagePlacement,
    LoadedSource,
    PageLayout,
    fit_image,
)
from certigest.sources.registry import SourceLoaderRegistry

__all__ = [
    "UNREADABLE_IMAGE",
    "UNREADABLE_PDF",
    "UNSUPPORTED_FORMAT",
    "ImagePlacement",
    "LoadedSource",
    "PageLayout",
    "SourceLoaderRegistry",
    "fit_image",
]
