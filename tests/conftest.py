import os

os.environ["LOG_TO_FILE"] = "0"
os.environ.setdefault("DEBUG", "0")

import fitz
import pytest

from quizmark.config import get_config, reset_config
from quizmark.models import StudentRecord


@pytest.fixture(autouse=True)
def fresh_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config(tmp_path):
    cfg = get_config()
    cfg.ocr.temp_dir = str(tmp_path / "scratch")
    return cfg


def make_pdf(page_texts, width=595, height=842):
    """In-memory PDF with one page per text."""
    doc = fitz.open()
    try:
        for text in page_texts:
            page = doc.new_page(width=width, height=height)
            if text:
                page.insert_textbox(fitz.Rect(72, 72, width - 72, 400), text, fontsize=11)
        return doc.tobytes()
    finally:
        doc.close()


def marker(i):
    return f"SRCPAGE{i:02d}"


def marked_pdf(page_count):
    return make_pdf([marker(i) for i in range(page_count)])


def pdf_page_texts(pdf_bytes):
    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    try:
        return [page.get_text("text") for page in doc]
    finally:
        doc.close()


def student(name="", roll="", score=0, max_score=100, **extra):
    data = {"student_name": name, "roll_number": roll, "total_score": score, "max_score": max_score}
    data.update(extra)
    return StudentRecord.from_dict(data)
