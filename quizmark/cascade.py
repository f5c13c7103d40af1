"""
OCR cascade controller.

Runs engines in a fixed order per mode and stops at the first result that
passes the quality gate. The engine order is data (ENGINE_SEQUENCES), so
adding a mode does not touch the control flow.

Runs are serialized process-wide by OCR_LOCK. The naming context is passed
explicitly to every engine; `current_naming` only mirrors the active run
for diagnostics and is reset to neutral when the run ends, however it ends.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .config import Config, get_config
from .exceptions import ConfigurationError, ValidationError
from .logger import get_logger
from .models import EngineAttempt, OcrNamingContext, OcrRunReport
from .engines import (
    OCREngine,
    EmbeddedTextEngine,
    VisionPdfEngine,
    VisionImagesEngine,
    TesseractEngine,
    OpenAIVisionEngine,
    GeminiVisionEngine,
)
from .utils.text_utils import clean_extracted_text
from .utils.timing import Timer

logger = get_logger(__name__)

DEFAULT_MODE = "auto"

# Cheapest / most precise first, heavy image OCR and local OCR last
ENGINE_SEQUENCES: Dict[str, Tuple[str, ...]] = {
    "auto": ("pdf-text", "vision-pdf", "openai-ocr", "gemini-ocr", "images", "tesseract"),
    "vision-pdf": ("vision-pdf", "images", "tesseract"),
    "images": ("images", "tesseract"),
    "tesseract": ("tesseract",),
    "openai-ocr": ("openai-ocr", "tesseract"),
    "gemini-ocr": ("gemini-ocr", "tesseract"),
}

# Re-entrant so a caller can hold it across download + OCR + persist
OCR_LOCK = threading.RLock()


def build_default_engines(config: Optional[Config] = None) -> Dict[str, OCREngine]:
    """Instantiate every engine, keyed by its cascade name."""
    config = config or get_config()
    engines: List[OCREngine] = [
        EmbeddedTextEngine(config),
        VisionPdfEngine(config),
        VisionImagesEngine(config),
        TesseractEngine(config),
        OpenAIVisionEngine(config),
        GeminiVisionEngine(config),
    ]
    return {engine.name: engine for engine in engines}


class OcrCascade:
    """Ordered fallback over OCR engines with a quality gate."""

    def __init__(
        self,
        engines: Mapping[str, OCREngine],
        sequences: Optional[Mapping[str, Sequence[str]]] = None,
        lock: Optional[threading.RLock] = None,
    ):
        self.engines = dict(engines)
        self.sequences = {k: tuple(v) for k, v in (sequences or ENGINE_SEQUENCES).items()}
        self.lock = lock or OCR_LOCK
        self.current_naming = OcrNamingContext.neutral()

    @classmethod
    def default(cls, config: Optional[Config] = None) -> "OcrCascade":
        return cls(build_default_engines(config))

    @property
    def modes(self) -> Tuple[str, ...]:
        return tuple(self.sequences)

    def sequence_for(self, mode: str) -> List[OCREngine]:
        """Engines to try for a mode, in order."""
        if mode not in self.sequences:
            raise ValidationError(
                "Invalid engine",
                field_name="engine",
                field_value=mode,
                expected=", ".join(self.sequences),
            )
        missing = [name for name in self.sequences[mode] if name not in self.engines]
        if missing:
            raise ConfigurationError(f"No engine registered for: {', '.join(missing)}")
        return [self.engines[name] for name in self.sequences[mode]]

    def run(
        self,
        pdf_bytes: bytes,
        naming: Optional[OcrNamingContext] = None,
        mode: str = DEFAULT_MODE,
    ) -> OcrRunReport:
        """
        Extract text from a PDF.

        Never raises for engine failures; an exhausted cascade returns the
        last engine's (possibly empty) text with `winner` unset.

        Raises:
            ValidationError: unknown mode
        """
        engines = self.sequence_for(mode)
        naming = naming or OcrNamingContext.neutral()

        with self.lock:
            self.current_naming = naming
            try:
                return self._run_sequence(pdf_bytes, naming, mode, engines)
            finally:
                self.current_naming = OcrNamingContext.neutral()

    def _run_sequence(
        self,
        pdf_bytes: bytes,
        naming: OcrNamingContext,
        mode: str,
        engines: List[OCREngine],
    ) -> OcrRunReport:
        timer = Timer()
        report = OcrRunReport(mode=mode)
        logger.info(f"OCR cascade started (engine={mode}, steps={len(engines)})")

        last_text = ""
        for engine in engines:
            result = engine.extract(pdf_bytes, naming)
            attempt = EngineAttempt.from_result(result)
            report.attempts.append(attempt)
            last_text = result.text
            report.page_texts = result.page_texts

            if attempt.meaningful:
                report.winner = engine.name
                logger.info(f"OCR cascade settled on {engine.name} ({attempt.chars} chars)")
                break
            logger.warning(f"{engine.name} gave no usable text: {attempt.reason}")

        report.text = clean_extracted_text(last_text)
        report.duration_sec = timer.elapsed

        if report.is_empty:
            logger.warning("No text detected by OCR")
        elif report.low_quality:
            logger.warning(f"OCR exhausted all engines; keeping {len(report.text)} low-quality chars")
        else:
            logger.info(f"OCR extracted {len(report.text)} characters in {timer}")
        return report
