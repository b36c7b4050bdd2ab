import io

import pytest
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas


def _build_pdf(page_texts: list[str]) -> bytes:
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    for text in page_texts:
        c.drawString(72, 720, text)
        c.showPage()
    c.save()
    return buf.getvalue()


@pytest.fixture()
def sample_pdf_bytes() -> bytes:
    """Generate a minimal single-page POD receipt."""
    return _build_pdf(["Container MSCU1234567 40HC FULL"])


@pytest.fixture()
def multi_page_pdf_bytes() -> bytes:
    """Generate a two-page PDF with one receipt on each page."""
    return _build_pdf(["Receipt one", "Receipt two"])


@pytest.fixture()
def three_page_pdf_bytes() -> bytes:
    """Generate a three-page PDF."""
    return _build_pdf(["Receipt one", "Receipt two", "Receipt three"])


@pytest.fixture()
def blank_pdf_bytes() -> bytes:
    """Generate a valid PDF with a single blank page."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=letter)
    c.showPage()
    c.save()
    return buf.getvalue()
