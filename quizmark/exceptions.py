"""
Custom exceptions for the quiz grading backend.

All application-specific exceptions inherit from QuizmarkError.
"""

from __future__ import annotations

from typing import Optional, Any


class QuizmarkError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message: Human-readable error message
        details: Additional error details (for debugging)
        recoverable: Whether the error can potentially be recovered from
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(QuizmarkError):
    """
    Invalid or missing configuration.

    Examples:
        - Missing API key for a requested engine
        - Database not configured
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details=details, recoverable=False)


class PDFProcessingError(QuizmarkError):
    """
    Failed to open, rasterize or assemble a PDF.

    Examples:
        - Corrupted PDF bytes
        - Page index outside the document
    """

    def __init__(
        self,
        message: str,
        pdf_path: Optional[str] = None,
        page_number: Optional[int] = None
    ):
        details = {}
        if pdf_path:
            details["pdf_path"] = pdf_path
        if page_number is not None:
            details["page_number"] = page_number
        super().__init__(message, details=details, recoverable=False)


class OCREngineError(QuizmarkError):
    """
    An OCR engine could not produce text.

    Raised inside engines and turned into a failure result at the
    engine boundary; the cascade moves on to the next engine.
    """

    def __init__(
        self,
        message: str,
        engine: Optional[str] = None,
        page_number: Optional[int] = None
    ):
        details = {}
        if engine:
            details["engine"] = engine
        if page_number is not None:
            details["page_number"] = page_number
        super().__init__(message, details=details, recoverable=True)


class QuizNotFoundError(QuizmarkError):
    """No quiz row exists for the given id."""

    def __init__(self, quiz_id: str):
        super().__init__("Quiz not found", details={"quiz_id": quiz_id}, recoverable=False)


class SourceDocumentError(QuizmarkError):
    """
    The quiz's original PDF is missing or could not be downloaded.

    Fatal: no partial artifact is produced.
    """

    def __init__(
        self,
        message: str,
        quiz_id: Optional[str] = None,
        blob_key: Optional[str] = None
    ):
        details = {}
        if quiz_id:
            details["quiz_id"] = quiz_id
        if blob_key:
            details["blob_key"] = blob_key
        super().__init__(message, details=details, recoverable=False)


class NoGradedResultsError(QuizmarkError):
    """The quiz has no graded results to build an artifact from."""

    def __init__(self, quiz_id: Optional[str] = None):
        details = {"quiz_id": quiz_id} if quiz_id else None
        super().__init__("No graded results available", details=details, recoverable=False)


class StorageError(QuizmarkError):
    """
    Blob storage upload or download failed.
    """

    def __init__(
        self,
        message: str,
        bucket: Optional[str] = None,
        key: Optional[str] = None,
        operation: Optional[str] = None  # "upload" or "download"
    ):
        details = {}
        if bucket:
            details["bucket"] = bucket
        if key:
            details["key"] = key
        if operation:
            details["operation"] = operation
        super().__init__(message, details=details, recoverable=True)


class DataPersistenceError(QuizmarkError):
    """
    Failed to read or write quiz data in the database.
    """

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        operation: Optional[str] = None
    ):
        details = {}
        if table:
            details["table"] = table
        if operation:
            details["operation"] = operation
        super().__init__(message, details=details, recoverable=False)


class ValidationError(QuizmarkError):
    """
    Input validation failed.

    Examples:
        - Unknown OCR engine mode
        - Rubric question with max_marks out of range
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
        expected: Optional[str] = None
    ):
        details = {}
        if field_name:
            details["field_name"] = field_name
        if field_value is not None:
            details["field_value"] = str(field_value)[:100]
        if expected:
            details["expected"] = expected
        super().__init__(message, details=details, recoverable=False)
