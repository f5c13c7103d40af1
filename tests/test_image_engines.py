import base64
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import cv2
import numpy as np
import pytesseract
import pytest
from PIL import Image

from conftest import make_pdf
from quizmark.engines import RasterPage, TesseractEngine, VisionImagesEngine, VisionPdfEngine
from quizmark.engines import tesseract as tesseract_module
from quizmark.utils.image_utils import base64_length, encode_png, png_data_uri_with_cap

PAGE_TEXT = "Question one: solve for x when two x plus three equals eleven"
HANDWRITING_HINTS = ["en", "en-t-i0-handwrit"]
FALLBACK_HINTS = ["und", "en"]


class Abort(BaseException):
    pass


def annotation(text="", error=""):
    return SimpleNamespace(
        error=SimpleNamespace(message=error),
        full_text_annotation=SimpleNamespace(text=text),
    )


def leftover_files(config):
    return [p for p in config.ocr.scratch_root().rglob("*") if p.is_file()]


def small_images_engine(config, client):
    config.ocr.images_dpi = 30
    config.ocr.variant_width = 400
    return VisionImagesEngine(config, client=client)


def write_page_image(tmp_path):
    image = np.full((120, 200, 3), 255, dtype=np.uint8)
    cv2.putText(image, "Q1 x=4", (10, 70), cv2.FONT_HERSHEY_SIMPLEX, 1.2, (0, 0, 0), 2)
    path = tmp_path / "page_001.jpg"
    cv2.imwrite(str(path), image)
    return RasterPage(index=0, path=path, width=200, height=120)


# Cloud Vision, native PDF

def pdf_client(error_pages=(), file_error=""):
    client = MagicMock()
    requested = []

    def annotate(requests):
        pages = list(requests[0].pages)
        requested.append(pages)
        responses = [
            annotation(error="page unreadable") if p in error_pages else annotation(f"{PAGE_TEXT} page {p}")
            for p in pages
        ]
        file_response = SimpleNamespace(error=SimpleNamespace(message=file_error), responses=responses)
        return SimpleNamespace(responses=[file_response])

    client.batch_annotate_files.side_effect = annotate
    return client, requested


def test_vision_pdf_sends_five_page_windows(config):
    client, requested = pdf_client()
    result = VisionPdfEngine(config, client=client).extract(make_pdf([""] * 7))

    assert requested == [[1, 2, 3, 4, 5], [6, 7]]
    assert result.ok
    assert result.pages_total == 7
    assert result.page_texts[6] == f"{PAGE_TEXT} page 7"


def test_vision_pdf_skips_pages_with_errors(config):
    client, _ = pdf_client(error_pages={3})
    result = VisionPdfEngine(config, client=client).extract(make_pdf([""] * 4))

    assert result.page_texts[2] == ""
    assert result.pages_kept == 3
    assert f"{PAGE_TEXT} page 4" in result.text


def test_vision_pdf_file_error_fails_engine(config):
    client, _ = pdf_client(file_error="quota exceeded")
    result = VisionPdfEngine(config, client=client).extract(make_pdf([""]))

    assert not result.ok
    assert "quota exceeded" in result.reason


# Cloud Vision, image variants

def test_images_engine_runs_both_hint_passes_per_variant(config):
    client = MagicMock()
    client.document_text_detection.return_value = annotation(PAGE_TEXT)
    engine = small_images_engine(config, client)

    result = engine.extract(make_pdf(["", ""]))

    assert result.ok
    assert result.page_texts == [PAGE_TEXT, PAGE_TEXT]
    hints = [list(c.kwargs["image_context"].language_hints) for c in client.document_text_detection.call_args_list]
    variants_per_page = len(engine.variants.plan())
    assert hints == [HANDWRITING_HINTS, FALLBACK_HINTS] * variants_per_page * 2


def test_images_engine_keeps_longer_hint_pass(config):
    client = MagicMock()

    def detect(image, image_context):
        if list(image_context.language_hints) == FALLBACK_HINTS:
            return annotation(PAGE_TEXT + " and show the working")
        return annotation(PAGE_TEXT)

    client.document_text_detection.side_effect = detect
    result = small_images_engine(config, client).extract(make_pdf([""]))

    assert result.text == PAGE_TEXT + " and show the working"


def test_images_engine_drops_pages_below_quality_gate(config):
    client = MagicMock()
    client.document_text_detection.return_value = annotation("x = 4")

    result = small_images_engine(config, client).extract(make_pdf(["", ""]))

    assert result.ok
    assert result.text == ""
    assert result.page_texts == ["", ""]
    assert result.pages_kept == 0
    assert not result.is_meaningful


def test_images_engine_survives_failed_passes(config):
    client = MagicMock()
    client.document_text_detection.side_effect = [annotation(error="deadline")] + [annotation(PAGE_TEXT)] * 100

    result = small_images_engine(config, client).extract(make_pdf([""]))
    assert result.text == PAGE_TEXT


def test_images_engine_removes_scratch_files(config):
    client = MagicMock()
    client.document_text_detection.return_value = annotation(PAGE_TEXT)

    small_images_engine(config, client).extract(make_pdf(["", ""]))
    assert leftover_files(config) == []


def test_images_engine_removes_scratch_files_on_error(config):
    client = MagicMock()
    client.document_text_detection.side_effect = Abort

    with pytest.raises(Abort):
        small_images_engine(config, client).extract(make_pdf([""]))
    assert leftover_files(config) == []


def test_unreadable_variant_is_skipped(tmp_path, config, monkeypatch):
    config.ocr.variant_width = 400
    engine = VisionImagesEngine(config, client=MagicMock())
    engine.detect_text = MagicMock(return_value=PAGE_TEXT)
    page = write_page_image(tmp_path)

    read_bytes = Path.read_bytes

    def flaky_read_bytes(path):
        if path.name.endswith("_v2_t150.jpg"):
            raise OSError("disk went away")
        return read_bytes(path)

    monkeypatch.setattr(Path, "read_bytes", flaky_read_bytes)

    text = engine.ocr_page(page)

    assert text == PAGE_TEXT
    passes = len(config.ocr.language_hint_passes)
    assert engine.detect_text.call_count == (len(engine.variants.plan()) - 1) * passes


# Tesseract

@pytest.fixture
def fake_pdf2image(monkeypatch):
    """Two blank page images instead of a poppler render."""
    def convert(pdf_bytes, dpi, output_folder, fmt, paths_only):
        paths = []
        for i in range(2):
            path = Path(output_folder) / f"page-{i + 1:02d}.jpg"
            Image.new("RGB", (60, 40), "white").save(path)
            paths.append(str(path))
        return paths

    monkeypatch.setattr(tesseract_module, "convert_from_bytes", convert)
    monkeypatch.setattr(pytesseract, "get_tesseract_version", lambda: "5.3.0")


def test_tesseract_runs_both_psm_passes_and_keeps_longer(config, fake_pdf2image, monkeypatch):
    calls = []

    def image_to_string(img, lang, config):
        page = Path(img.filename).name
        calls.append((page, config))
        if page == "page-02.jpg":
            return "??"
        if config.endswith("--psm 7"):
            return PAGE_TEXT + " in one line"
        return PAGE_TEXT

    monkeypatch.setattr(pytesseract, "image_to_string", image_to_string)

    result = TesseractEngine(config).extract(b"%PDF-fake")

    assert result.ok
    assert result.page_texts == [PAGE_TEXT + " in one line", ""]
    assert result.pages_kept == 1
    assert calls == [
        ("page-01.jpg", "--oem 1 --psm 6"),
        ("page-01.jpg", "--oem 1 --psm 7"),
        ("page-02.jpg", "--oem 1 --psm 6"),
        ("page-02.jpg", "--oem 1 --psm 7"),
    ]
    assert leftover_files(config) == []


def test_tesseract_failed_pass_falls_back_to_other_mode(config, fake_pdf2image, monkeypatch):
    def image_to_string(img, lang, config):
        if config.endswith("--psm 6"):
            raise pytesseract.TesseractError(1, "bad segmentation")
        return PAGE_TEXT

    monkeypatch.setattr(pytesseract, "image_to_string", image_to_string)

    result = TesseractEngine(config).extract(b"%PDF-fake")
    assert result.page_texts == [PAGE_TEXT, PAGE_TEXT]


def test_tesseract_missing_binary_is_skipped(config, monkeypatch):
    def missing():
        raise pytesseract.TesseractNotFoundError()

    monkeypatch.setattr(pytesseract, "get_tesseract_version", missing)

    result = TesseractEngine(config).extract(b"%PDF-fake")
    assert not result.ok
    assert result.reason == "engine not configured"


# Data URI cap

def noise_image(height=400, width=1200):
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


def test_base64_length_matches_encoder():
    for n in range(0, 10):
        assert base64_length(n) == len(base64.b64encode(b"x" * n))


def test_data_uri_under_generous_cap_keeps_width():
    uri, width = png_data_uri_with_cap(noise_image(), max_bytes=50 * 1024 * 1024, min_width=100)
    assert width == 1200
    assert uri.startswith("data:image/png;base64,")


def test_data_uri_cap_counts_encoded_size():
    image = noise_image()
    cap = len(encode_png(image))

    uri, width = png_data_uri_with_cap(image, max_bytes=cap, min_width=100)

    encoded = uri.split(",", 1)[1]
    assert width < 1200
    assert len(encoded) <= cap


def test_data_uri_stops_at_min_width():
    uri, width = png_data_uri_with_cap(noise_image(), max_bytes=10, min_width=900)
    assert 900 * 0.85 < width <= 900
    assert uri.startswith("data:image/png;base64,")
