import io

import fitz  # PyMuPDF
import pytest
from PIL import Image, ImageDraw

from pdf_compression_service import create_app


def image_bytes(size, mode="RGB", fmt="JPEG", **save_kwargs) -> bytes:
    """A test image with some structure so encoders have real work to do."""
    color = (40, 120, 200, 128) if mode == "RGBA" else (40, 120, 200)
    img = Image.new(mode, size, color=color[: len(mode)])
    draw = ImageDraw.Draw(img)
    w, h = size
    draw.rectangle((w // 8, h // 8, w // 2, h // 2), fill=(240, 200, 30, 255)[: len(mode)])
    draw.ellipse((w // 2, h // 3, w - 1, h - 1), fill=(10, 10, 10, 0)[: len(mode)])
    out = io.BytesIO()
    img.save(out, format=fmt, **save_kwargs)
    return out.getvalue()


def pdf_with_images(*images: bytes) -> bytes:
    """One-page PDF with each image placed on it through PyMuPDF."""
    doc = fitz.open()
    page = doc.new_page(width=612, height=792)
    for i, data in enumerate(images):
        top = 20 + i * 200
        page.insert_image(fitz.Rect(20, top, 220, top + 180), stream=data)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def app(tmp_path):
    return create_app({"TESTING": True, "LOG_TO_FILES": False, "LOG_DIR": str(tmp_path)})


@pytest.fixture
def client(app):
    return app.test_client()
