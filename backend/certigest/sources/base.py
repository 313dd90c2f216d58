from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from pypdf import PageObject


UNREADABLE_PDF = "unreadable PDF"
UNREADABLE_IMAGE = "unreadable image"
UNSUPPORTED_FORMAT = "unsupported format"


@dataclass(frozen=True)
class PageLayout:
    width: float = 595.28
    height: float = 841.89
    margin: float = 50.0
    label_font_size: float = 12.0
    label_offset: float = 40.0

    def __post_init__(self) -> None:
        if self.margin < 0 or self.width <= 2 * self.margin or self.height <= 2 * self.margin:
            raise ValueError("Page must be larger than twice its margin.")
        if self.label_offset >= self.margin:
            raise ValueError("Label offset must be smaller than the margin so the label stays clear of the image.")

    @property
    def available_width(self) -> float:
        return self.width - 2 * self.margin

    @property
    def available_height(self) -> float:
        return self.height - 2 * self.margin


@dataclass(frozen=True)
class ImagePlacement:
    x: float
    y: float
    width: float
    height: float
    scale: float


def fit_image(image_width: float, image_height: float, layout: PageLayout) -> ImagePlacement:
    """Scale an image uniformly into the page's printable area and center it."""
    if image_width <= 0 or image_height <= 0:
        raise ValueError("Image dimensions must be positive.")
    scale = min(layout.available_width / image_width, layout.available_height / image_height)
    width = image_width * scale
    height = image_height * scale
    return ImagePlacement(
        x=(layout.width - width) / 2,
        y=(layout.height - height) / 2,
        width=width,
        height=height,
        scale=scale,
    )


@dataclass(frozen=True)
class LoadedSource:
    loader_id: str
    pages: list[PageObject] = field(default_factory=list)
    error: str | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.pages)


class SourceLoader(Protocol):
    loader_id: str

    def supports(self, *, file_name: str) -> bool:
        ...

    def load(self, *, content: bytes, file_name: str, label: str) -> LoadedSource:
        ...
