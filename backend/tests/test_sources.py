from __future__ import annotations

import pytest

from certigest.sources import PageLayout, SourceLoaderRegistry, fit_image
from certigest.sources.image_source import png_loader
from certigest.sources.pdf_source import PdfSourceLoader


def test_wide_image_on_square_area_is_limited_by_width_and_centered() -> None:
    layout = PageLayout(width=600, height=600, margin=50, label_offset=40)

    placement = fit_image(400, 200, layout)

    assert placement.scale == pytest.approx(1.25)
    assert placement.width == pytest.approx(500)
    assert placement.height == pytest.approx(250)
    assert placement.x == pytest.approx(50)
    assert placement.y == pytest.approx(175)


def test_fit_image_never_exceeds_printable_area_and_keeps_aspect_ratio() -> None:
    layout = PageLayout()
    for width, height in [(10, 10), (3000, 200), (200, 3000), (1240, 1754), (1, 1)]:
        placement = fit_image(width, height, layout)
        assert placement.width <= layout.available_width + 1e-6
        assert placement.height <= layout.available_height + 1e-6
        assert placement.width / placement.height == pytest.approx(width / height)
        assert placement.x >= layout.margin - 1e-6
        assert placement.y >= layout.margin - 1e-6
        assert placement.x + placement.width / 2 == pytest.approx(layout.width / 2)
        assert placement.y + placement.height / 2 == pytest.approx(layout.height / 2)


def test_fit_image_rejects_empty_dimensions() -> None:
    with pytest.raises(ValueError):
        fit_image(0, 100, PageLayout())


def test_page_layout_keeps_label_outside_the_image_area() -> None:
    with pytest.raises(ValueError):
        PageLayout(margin=30, label_offset=40)
    with pytest.raises(ValueError):
        PageLayout(width=90, height=500, margin=50, label_offset=40)


def test_pdf_loader_returns_every_page(make_pdf) -> None:
    loaded = PdfSourceLoader().load(content=make_pdf(["one", "two", "three"]), file_name="x.pdf", label="L")

    assert loaded.ok
    assert loaded.loader_id == "pdf"
    assert len(loaded.pages) == 3


def test_pdf_loader_reports_unreadable_content() -> None:
    loaded = PdfSourceLoader().load(content=b"", file_name="empty.pdf", label="L")

    assert not loaded.ok
    assert loaded.error == "unreadable PDF"
    assert loaded.pages == []


def test_image_loader_renders_one_page_with_standard_size(make_image) -> None:
    layout = PageLayout()
    loaded = png_loader(layout).load(content=make_image("PNG", mode="RGBA"), file_name="x.png", label="Label")

    assert loaded.ok
    assert len(loaded.pages) == 1
    page = loaded.pages[0]
    assert float(page.mediabox.width) == pytest.approx(layout.width, abs=0.01)
    assert float(page.mediabox.height) == pytest.approx(layout.height, abs=0.01)
    assert "Label" in (page.extract_text() or "")


def test_image_loader_accepts_grayscale_and_palette_images(make_image) -> None:
    loader = png_loader(PageLayout())

    assert loader.load(content=make_image("PNG", mode="L"), file_name="g.png", label="").ok
    assert loader.load(content=make_image("PNG", mode="P"), file_name="p.png", label="").ok


@pytest.mark.parametrize(
    ("file_name", "loader_id"),
    [
        ("a.pdf", "pdf"),
        ("A.PDF", "pdf"),
        ("b.png", "png"),
        ("c.jpg", "jpeg"),
        ("d.jpeg", "jpeg"),
    ],
)
def test_registry_classifies_by_extension(file_name: str, loader_id: str) -> None:
    loader = SourceLoaderRegistry().find(file_name)

    assert loader is not None
    assert loader.loader_id == loader_id


def test_registry_reports_unsupported_formats() -> None:
    registry = SourceLoaderRegistry()

    for file_name in ("notes.docx", "scan.tiff", "no_extension", "archive.pdf.zip"):
        assert not registry.is_supported(file_name)
        loaded = registry.load(content=b"data", file_name=file_name, label="")
        assert loaded.error == "unsupported format"
        assert loaded.loader_id == "none"


def test_pdf_loader_opens_pdf_encrypted_with_empty_user_password(make_pdf) -> None:
    loaded = PdfSourceLoader().load(content=make_pdf(["open"], password=""), file_name="x.pdf", label="L")

    assert loaded.ok
    assert len(loaded.pages) == 1


def test_pdf_loader_rejects_pdf_that_needs_a_password(make_pdf) -> None:
    loaded = PdfSourceLoader().load(content=make_pdf(["secret"], password="s3nha"), file_name="x.pdf", label="L")

    assert loaded.error == "unreadable PDF"
    assert loaded.detail == "PDF is password protected"
