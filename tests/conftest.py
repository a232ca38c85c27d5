"""
Shared fixtures: generated PDFs and images, a Qt application and a loaded
editing session.
"""
import io
import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import fitz  # noqa: E402
import pytest  # noqa: E402
from PIL import Image  # noqa: E402
from PyQt5.QtWidgets import QApplication  # noqa: E402

from pdfdesk.core.session import EditorSession  # noqa: E402

A4 = (595, 842)


def build_pdf(*page_texts, size=A4, metadata=None, encrypt_with=None) -> bytes:
    """Build a PDF with one page per text; ``None`` leaves a page blank."""
    doc = fitz.open()
    for text in page_texts:
        page = doc.new_page(width=size[0], height=size[1])
        if text:
            page.insert_text((72, 72), text, fontsize=12)
    if metadata:
        doc.set_metadata(metadata)
    if encrypt_with:
        data = doc.tobytes(encryption=fitz.PDF_ENCRYPT_AES_256,
                           user_pw=encrypt_with, owner_pw=encrypt_with + "-owner")
    else:
        data = doc.tobytes()
    doc.close()
    return data


def read_pages(data: bytes, password=None):
    """Plain text of every page, stripped."""
    doc = fitz.open(stream=data, filetype="pdf")
    if password:
        doc.authenticate(password)
    try:
        return [page.get_text().strip() for page in doc]
    finally:
        doc.close()


def build_image(width=400, height=100, color="red", fmt="PNG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def pages_of():
    return read_pages


@pytest.fixture
def make_image():
    return build_image


@pytest.fixture
def two_page_pdf():
    return build_pdf("a1", "b1")


@pytest.fixture
def png_bytes():
    return build_image()


@pytest.fixture
def session(two_page_pdf):
    editor = EditorSession()
    editor.open_document(two_page_pdf)
    yield editor
    editor.reset()


@pytest.fixture
def opened_documents(monkeypatch):
    """Record every document opened through ``fitz.open`` during a test."""
    opened = []
    real_open = fitz.open

    def tracking_open(*args, **kwargs):
        doc = real_open(*args, **kwargs)
        opened.append(doc)
        return doc

    monkeypatch.setattr(fitz, "open", tracking_open)
    return opened
