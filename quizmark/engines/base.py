"""
Base OCR engine class.

Every engine turns PDF bytes into best-effort text. Engines never raise
past `extract()`: any exception becomes a failure result carrying the
reason, so the cascade can log why an engine produced nothing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from ..config import Config, get_config
from ..logger import get_logger
from ..models import OcrNamingContext, OcrResult
from ..utils.timing import Timer


class OCREngine(ABC):
    """
    Abstract base class for all OCR strategies.

    Provides:
    - Consistent logging
    - Timing instrumentation
    - Exception-to-result conversion
    - Configuration access
    """

    # Engine name used in cascade sequences and logs (override in subclass)
    name: str = "OCREngine"

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()
        self.logger = get_logger(f"quizmark.engines.{self.name}")

    @property
    def debug_mode(self) -> bool:
        return self.config.debug

    def log_debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message (only in debug mode)."""
        if self.debug_mode:
            extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
            self.logger.debug(f"{message} {extra}".strip())

    def log_info(self, message: str, **kwargs: Any) -> None:
        extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
        self.logger.info(f"{message} {extra}".strip())

    def log_warning(self, message: str, **kwargs: Any) -> None:
        extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
        self.logger.warning(f"{message} {extra}".strip())

    def is_available(self) -> bool:
        """
        Whether the engine has what it needs (credentials, binaries).

        Unavailable engines are skipped by the cascade with a failure result.
        """
        return True

    @abstractmethod
    def _extract(self, pdf_bytes: bytes, naming: OcrNamingContext) -> OcrResult:
        """
        Produce text for the whole document.

        May raise; `extract()` turns exceptions into failure results.
        """

    def extract(self, pdf_bytes: bytes, naming: Optional[OcrNamingContext] = None) -> OcrResult:
        """
        Run the engine with timing and error containment.

        Returns:
            Success result (possibly empty text) or failure result with reason
        """
        naming = naming or OcrNamingContext.neutral()
        timer = Timer()

        if not self.is_available():
            result = OcrResult.failure(self.name, "engine not configured")
            self.log_warning(f"{self.name} skipped", reason=result.reason)
            return result

        self.log_info(f"Starting {self.name}")
        try:
            result = self._extract(pdf_bytes, naming)
        except Exception as e:
            result = OcrResult.failure(self.name, f"{type(e).__name__}: {e}")
            self.logger.warning(f"{self.name} failed: {e}", exc_info=self.debug_mode)

        result.duration_sec = timer.elapsed
        self.log_info(
            f"{self.name} extracted {len(result.text)} chars",
            pages=f"{result.pages_kept}/{result.pages_total}",
            duration=f"{result.duration_sec:.2f}s",
        )
        return result
