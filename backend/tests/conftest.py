from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Callable, Iterator

import pytest

from certigest.config import settings
from certigest.store import RecordStore


def _build_pdf_bytes(page_texts: list[str], *, password: str | None = None) -> bytes:
    from pypdf import PdfWriter
    from pypdf.generic import DecodedStreamObject, DictionaryObject, NameObject

    writer = PdfWriter()
    font = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/Font"),
            NameObject("/Subtype"): NameObject("/Type1"),
            NameObject("/BaseFont"): NameObject("/Helvetica"),
        }
    )
    font_ref = writer._add_object(font)

    for text in page_texts:
        page = writer.add_blank_page(width=612, height=792)
        page[NameObject("/Resources")] = DictionaryObject(
            {NameObject("/Font"): DictionaryObject({NameObject("/F1"): font_ref})}
        )
        safe_text = text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
        content_stream = DecodedStreamObject()
        content_stream.set_data(f"BT /F1 12 Tf 72 720 Td ({safe_text}) Tj ET".encode("latin-1"))
        page[NameObject("/Contents")] = writer._add_object(content_stream)

    if password is not None:
        writer.encrypt(user_password=password, owner_password=f"{password}-owner", algorithm="RC4-128")

    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def _build_image_bytes(image_format: str = "PNG", size: tuple[int, int] = (200, 100), mode: str = "RGB") -> bytes:
    from PIL import Image

    color: object = (30, 90, 160) if mode == "RGB" else (30, 90, 160, 128) if mode == "RGBA" else 128
    image = Image.new(mode, size, color=color)
    buffer = BytesIO()
    image.save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture()
def make_pdf() -> Callable[..., bytes]:
    return _build_pdf_bytes


@pytest.fixture()
def make_image() -> Callable[..., bytes]:
    return _build_image_bytes


@pytest.fixture()
def store(tmp_path: Path) -> Iterator[RecordStore]:
    record_store = RecordStore(f"sqlite:///{tmp_path}/records.db").open()
    try:
        yield record_store
    finally:
        record_store.close()


@pytest.fixture()
def isolated_settings(tmp_path: Path) -> Iterator[None]:
    original = {
        "database_url": settings.database_url,
        "export_root": settings.export_root,
        "assembly_workers": settings.assembly_workers,
        "max_upload_file_bytes": settings.max_upload_file_bytes,
        "auth_enabled": settings.auth_enabled,
        "auth_issuer": settings.auth_issuer,
        "auth_audience": settings.auth_audience,
    }
    settings.database_url = f"sqlite:///{tmp_path}/api.db"
    settings.export_root = str(tmp_path / "exports")
    settings.auth_enabled = False
    yield
    for key, value in original.items():
        setattr(settings, key, value)
