"""
Centralized configuration management.

Configuration is loaded from:
1. Environment variables
2. .env file (if present)
3. Default values

Usage:
    from quizmark.config import get_config
    config = get_config()
    print(config.ocr.images_dpi)  # 350 unless OCR_IMAGES_DPI is set
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv


# Existing environment variables win over .env entries
load_dotenv(Path(__file__).resolve().parent.parent / ".env", override=False)


def _get_bool_env(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key, "").strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return default


def _get_int_env(key: str, default: int) -> int:
    """Get integer from environment variable."""
    value = os.getenv(key, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_int_tuple_env(key: str, default: Tuple[int, ...]) -> Tuple[int, ...]:
    """Get comma-separated integers from environment variable."""
    value = os.getenv(key, "").strip()
    if not value:
        return default
    try:
        return tuple(int(part) for part in value.split(",") if part.strip())
    except ValueError:
        return default


@dataclass
class OCRConfig:
    """Rasterization, variant and per-engine OCR settings."""
    # Rasterization DPI per engine family
    images_dpi: int = field(default_factory=lambda: _get_int_env("OCR_IMAGES_DPI", 350))
    tesseract_dpi: int = field(default_factory=lambda: _get_int_env("OCR_TESSERACT_DPI", 300))
    llm_dpi: int = field(default_factory=lambda: _get_int_env("OCR_LLM_DPI", 420))

    # Image variants
    variant_width: int = field(default_factory=lambda: _get_int_env("OCR_VARIANT_WIDTH", 2500))
    thresholds: Tuple[int, ...] = field(
        default_factory=lambda: _get_int_tuple_env("OCR_THRESHOLDS", (150, 175))
    )
    rotations: Tuple[int, ...] = field(
        default_factory=lambda: _get_int_tuple_env("OCR_ROTATIONS", (-4, -2, 0, 2, 4))
    )
    variant_workers: int = field(default_factory=lambda: _get_int_env("OCR_VARIANT_WORKERS", 4))

    # Cloud Vision language hint passes (handwriting-biased first)
    language_hint_passes: Tuple[Tuple[str, ...], ...] = (
        ("en", "en-t-i0-handwrit"),
        ("und", "en"),
    )

    # Tesseract
    tesseract_path: str = field(default_factory=lambda: os.getenv("TESSERACT_PATH", ""))
    tesseract_languages: str = field(default_factory=lambda: os.getenv("OCR_LANGUAGES", "eng"))
    tesseract_psm_passes: Tuple[int, ...] = (6, 7)

    # Vision-language model page preprocessing
    llm_min_width: int = 1800
    llm_max_width: int = 2800
    llm_default_width: int = 2400
    data_uri_cap_bytes: int = field(
        default_factory=lambda: _get_int_env("OCR_DATA_URI_CAP_BYTES", 19 * 1024 * 1024)
    )
    min_page_chars: int = 20

    # Scratch directory for rasterized pages (system temp when empty)
    temp_dir: str = field(default_factory=lambda: os.getenv("OCR_TEMP_DIR", ""))

    def scratch_root(self) -> Path:
        """Directory under which per-run temporary folders are created."""
        root = Path(self.temp_dir) if self.temp_dir else Path(tempfile.gettempdir())
        root.mkdir(parents=True, exist_ok=True)
        return root


@dataclass
class AIConfig:
    """Vision-language model settings for the LLM OCR engines."""
    openai_api_key: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    openai_base_url: str = field(default_factory=lambda: os.getenv("OPENAI_BASE_URL", ""))
    ocr_model: str = field(default_factory=lambda: os.getenv("OPENAI_OCR_MODEL", ""))
    fallback_models: Tuple[str, ...] = ("gpt-4o-mini", "gpt-4o")
    timeout_sec: int = field(default_factory=lambda: _get_int_env("AI_TIMEOUT_SEC", 60))
    max_tokens: int = field(default_factory=lambda: _get_int_env("AI_MAX_TOKENS", 4096))

    # Gemini (relay first, then the official REST API)
    google_api_key: str = field(default_factory=lambda: os.getenv("GOOGLE_API_KEY", ""))
    gemini_model: str = field(default_factory=lambda: os.getenv("GEMINI_MODEL", "gemini-2.5-flash"))
    gemini_base_url: str = field(
        default_factory=lambda: os.getenv(
            "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
        )
    )
    relay_base_url: str = field(default_factory=lambda: os.getenv("GEMINIOCR_BASE_URL", ""))
    relay_path: str = field(default_factory=lambda: os.getenv("GEMINIOCR_PATH", "/api/recognize"))
    relay_api_key: str = field(default_factory=lambda: os.getenv("GEMINIOCR_API_KEY", ""))

    @property
    def model_candidates(self) -> Tuple[str, ...]:
        """Ordered, de-duplicated model identifiers to try per page."""
        seen = []
        for model in (self.ocr_model, *self.fallback_models):
            model = (model or "").strip()
            if model and model not in seen:
                seen.append(model)
        return tuple(seen)

    def get_normalized_base_url(self) -> Optional[str]:
        """
        Get base_url for the OpenAI SDK.

        The SDK expects a base URL without the endpoint; None keeps the SDK default.
        """
        u = (self.openai_base_url or "").strip()
        if not u:
            return None
        u = u.rstrip("/")
        if u.endswith("/chat/completions"):
            u = u[: -len("/chat/completions")]
        return u.rstrip("/") + "/"


@dataclass
class S3Config:
    """AWS S3 configuration for quiz and artifact blobs."""
    # AWS credentials (can also use IAM roles, AWS_PROFILE, etc.)
    access_key_id: str = field(default_factory=lambda: os.getenv("AWS_ACCESS_KEY_ID", ""))
    secret_access_key: str = field(default_factory=lambda: os.getenv("AWS_SECRET_ACCESS_KEY", ""))
    session_token: str = field(default_factory=lambda: os.getenv("AWS_SESSION_TOKEN", ""))
    region: str = field(default_factory=lambda: os.getenv("AWS_REGION", "ap-south-1"))
    endpoint_url: str = field(default_factory=lambda: os.getenv("S3_ENDPOINT_URL", ""))

    # Buckets
    quizzes_bucket: str = field(default_factory=lambda: os.getenv("S3_QUIZZES_BUCKET", "quizzes"))
    graded_bucket: str = field(default_factory=lambda: os.getenv("S3_GRADED_BUCKET", "graded"))
    results_bucket: str = field(default_factory=lambda: os.getenv("S3_RESULTS_BUCKET", "results"))

    # Public URL prefix for uploaded artifacts (virtual-hosted S3 URL when empty)
    public_base_url: str = field(default_factory=lambda: os.getenv("S3_PUBLIC_BASE_URL", ""))

    # Connection settings
    connect_timeout: int = field(default_factory=lambda: _get_int_env("S3_CONNECT_TIMEOUT", 10))
    read_timeout: int = field(default_factory=lambda: _get_int_env("S3_READ_TIMEOUT", 60))
    max_retries: int = field(default_factory=lambda: _get_int_env("S3_MAX_RETRIES", 3))

    @property
    def has_credentials(self) -> bool:
        """Check if explicit credentials are configured."""
        return bool(self.access_key_id and self.secret_access_key)


@dataclass
class DBConfig:
    """Database configuration (PostgreSQL)."""
    host: str = field(default_factory=lambda: os.getenv("DB_HOST", ""))
    port: int = field(default_factory=lambda: _get_int_env("DB_PORT", 5432))
    name: str = field(default_factory=lambda: os.getenv("DB_NAME", ""))
    user: str = field(default_factory=lambda: os.getenv("DB_USER", ""))
    password: str = field(default_factory=lambda: os.getenv("DB_PASSWORD", ""))
    schema: str = field(default_factory=lambda: os.getenv("DB_SCHEMA", "public"))
    ssl_mode: str = field(default_factory=lambda: os.getenv("DB_SSL_MODE", "prefer"))

    @property
    def is_configured(self) -> bool:
        """Check if minimal DB config is present."""
        return bool(self.host and self.name and self.user)


@dataclass
class Config:
    """
    Main application configuration.

    All settings are loaded from environment variables with sensible defaults.
    Set DEBUG=1 in environment to enable debug mode.
    """

    # Base directory (project root)
    base_dir: Path = field(default_factory=lambda: Path(__file__).resolve().parent.parent)
    logs_dir: Path = field(default=None)

    # Debug mode (verbose logging, keeps per-engine diagnostics)
    debug: bool = field(default_factory=lambda: _get_bool_env("DEBUG", False))
    log_to_file: bool = field(default_factory=lambda: _get_bool_env("LOG_TO_FILE", True))

    # Sub-configurations
    ocr: OCRConfig = field(default_factory=OCRConfig)
    ai: AIConfig = field(default_factory=AIConfig)
    s3: S3Config = field(default_factory=S3Config)
    db: DBConfig = field(default_factory=DBConfig)

    def __post_init__(self):
        """Resolve paths after initialization."""
        if self.logs_dir is None:
            self.logs_dir = self.base_dir / os.getenv("LOG_DIR", "logs")


# Global config instance (lazily initialized)
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
