from __future__ import annotations

import io
from pathlib import Path

from PIL import Image
from pypdf import PdfReader
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from certigest.sources.base import UNREADABLE_IMAGE, LoadedSource, PageLayout, fit_image


LABEL_FONT = "Helvetica"
MIN_LABEL_FONT_SIZE = 6.0


def _label_font_size(label: str, layout: PageLayout) -> float:
    size = layout.label_font_size
    while size > MIN_LABEL_FONT_SIZE and stringWidth(label, LABEL_FONT, size) > layout.available_width:
        size -= 0.5
    return size


def render_image_page(image: Image.Image, *, label: str, layout: PageLayout) -> bytes:
    """Draw ``image`` centered on a single page with ``label`` above the printable area."""
    if image.mode not in ("RGB", "RGBA", "L"):
        has_alpha = "A" in image.getbands() or "transparency" in image.info
        image = image.convert("RGBA" if has_alpha else "RGB")

    placement = fit_image(image.width, image.height, layout)
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=(layout.width, layout.height))
    pdf.drawImage(
        ImageReader(image),
        placement.x,
        placement.y,
        width=placement.width,
        height=placement.height,
        mask="auto",
    )
    if label:
        pdf.setFont(LABEL_FONT, _label_font_size(label, layout))
        pdf.drawString(layout.margin, layout.height - layout.label_offset, label)
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


class ImageSourceLoader:
    """Single raster image rendered onto one dossier page.

    The expected format comes from the extension; content that decodes as a different
    format is rejected the same way undecodable bytes are.
    """

    def __init__(self, *, loader_id: str, extensions: set[str], formats: set[str], layout: PageLayout) -> None:
        self.loader_id = loader_id
        self._extensions = extensions
        self._formats = formats
        self._layout = layout

    def supports(self, *, file_name: str) -> bool:
        return Path(file_name).suffix.lower() in self._extensions

    def load(self, *, content: bytes, file_name: str, label: str) -> LoadedSource:
        del file_name
        try:
            with Image.open(io.BytesIO(content)) as image:
                if image.format not in self._formats:
                    return LoadedSource(
                        loader_id=self.loader_id,
                        error=UNREADABLE_IMAGE,
                        detail=f"expected {'/'.join(sorted(self._formats))} content, found {image.format}",
                    )
                image.load()
                rendered = render_image_page(image, label=label, layout=self._layout)
            reader = PdfReader(io.BytesIO(rendered))
            return LoadedSource(loader_id=self.loader_id, pages=list(reader.pages))
        except Exception as exc:
            return LoadedSource(
                loader_id=self.loader_id,
                error=UNREADABLE_IMAGE,
                detail=f"image decode failed: {exc}",
            )


def png_loader(layout: PageLayout) -> ImageSourceLoader:
    return ImageSourceLoader(loader_id="png", extensions={".png"}, formats={"PNG"}, layout=layout)


def jpeg_loader(layout: PageLayout) -> ImageSourceLoader:
    # Pillow reports multi-picture JPEGs from phone cameras as MPO.
    return ImageSourceLoader(loader_id="jpeg", extensions={".jpg", ".jpeg"}, formats={"JPEG", "MPO"}, layout=layout)
