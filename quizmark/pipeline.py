"""
Quiz pipeline orchestrator.

Coordinates the repository, blob store, OCR cascade and PDF builders for
one quiz at a time:

1. process_quiz          download the scanned PDF, run the OCR cascade,
                         overwrite the quiz's extracted text
2. ingest_grading        parse a grader reply, award the solution key full
                         marks, overwrite the graded results
3. build_composite_pack  Solution?/Best/Avg/Low pages, uploaded
4. build_full_roster     every page, block-first pages annotated, uploaded
5. export_csv            one row per graded record, uploaded
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from .cascade import DEFAULT_MODE, OcrCascade
from .composite import CompositeResult, build_composite_pack, build_full_roster
from .config import Config, get_config
from .exceptions import (
    NoGradedResultsError,
    SourceDocumentError,
    StorageError,
    ValidationError,
)
from .grading import apply_solution_key, export_results_csv, parse_graded, validate_rubric
from .logger import get_logger
from .models import OcrNamingContext, OcrRunReport, Quiz, StudentRecord
from .persistence import QuizRepository
from .segmentation import PageMapping, map_pdf_pages_to_students
from .utils.s3_utils import BlobStore, resolve_blob
from .utils.timing import Timer

logger = get_logger(__name__)

ARTIFACT_COMPOSITE = "composite_pack"
ARTIFACT_ROSTER = "full_roster"
ARTIFACT_CSV = "results_csv"


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


class QuizPipeline:
    """
    Runs quiz operations end to end.

    Example:
        >>> pipeline = QuizPipeline()
        >>> report = pipeline.process_quiz("quiz-123", engine="auto")
        >>> print(report.winner, len(report.text))
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        repository: Optional[QuizRepository] = None,
        store: Optional[BlobStore] = None,
        cascade: Optional[OcrCascade] = None,
    ):
        self.config = config or get_config()
        self.repository = repository or QuizRepository(self.config.db)
        self.store = store or BlobStore(self.config.s3)
        self._cascade = cascade

    @property
    def cascade(self) -> OcrCascade:
        if self._cascade is None:
            self._cascade = OcrCascade.default(self.config)
        return self._cascade

    def download_source(self, quiz: Quiz) -> bytes:
        """
        Fetch the quiz's original PDF.

        Raises:
            SourceDocumentError: no PDF reference, or the download failed
        """
        if not quiz.original_pdf:
            raise SourceDocumentError("Quiz has no original PDF", quiz_id=quiz.id)

        try:
            bucket, key = resolve_blob(quiz.original_pdf, self.config.s3.quizzes_bucket)
        except ValueError as e:
            raise SourceDocumentError(str(e), quiz_id=quiz.id, blob_key=quiz.original_pdf) from e

        try:
            data = self.store.download_bytes(bucket, key)
        except StorageError as e:
            raise SourceDocumentError(
                "Failed to download original quiz PDF", quiz_id=quiz.id, blob_key=key
            ) from e

        if not data:
            raise SourceDocumentError("Original quiz PDF is empty", quiz_id=quiz.id, blob_key=key)
        return data

    def process_quiz(self, quiz_id: str, engine: str = DEFAULT_MODE) -> OcrRunReport:
        """
        OCR a quiz's scanned PDF and overwrite its extracted text.

        An exhausted cascade is not an error: the (possibly empty) text is
        saved and the report flags it as low quality.
        """
        cascade = self.cascade
        cascade.sequence_for(engine)

        # One OCR request at a time, from download to persisted text
        with cascade.lock:
            quiz = self.repository.get_quiz(quiz_id)
            pdf_bytes = self.download_source(quiz)
            logger.info(
                f"OCR quiz {quiz.id}: {len(pdf_bytes)} bytes, engine={engine}, "
                f"pages_per_student={quiz.pages_per_student}, solution_first={quiz.first_paper_is_solution}"
            )
            report = cascade.run(pdf_bytes, OcrNamingContext.for_quiz(quiz), engine)
            self.repository.update_extracted_text(quiz.id, report.text, report.page_texts)

        if report.low_quality:
            logger.warning(f"Quiz {quiz_id}: low-quality OCR ({len(report.text)} chars); retry with another engine")
        return report

    def ingest_grading(
        self,
        quiz_id: str,
        raw: Any,
        rubric: Optional[List[Dict[str, Any]]] = None,
    ) -> List[StudentRecord]:
        """
        Store a grader reply as the quiz's graded results.

        The rubric the reply was graded against, when given, is checked first
        so a malformed rubric never leaves results behind.

        Raises:
            ValidationError: the rubric is malformed or the reply holds no student records
        """
        validate_rubric(rubric)
        quiz = self.repository.get_quiz(quiz_id)
        records = parse_graded(raw)
        if not records:
            raise ValidationError("Grader reply contained no student records", field_name="graded")

        records = apply_solution_key(records, quiz.first_paper_is_solution)
        self.repository.save_graded(quiz.id, records)
        return records

    def _graded_quiz(self, quiz_id: str) -> Quiz:
        quiz = self.repository.get_quiz(quiz_id)
        if not quiz.graded:
            raise NoGradedResultsError(quiz.id)
        return quiz

    def render_composite_pack(self, quiz_id: str) -> CompositeResult:
        """Build the Solution/Best/Avg/Low pack without uploading it."""
        quiz = self._graded_quiz(quiz_id)
        pdf_bytes = self.download_source(quiz)
        return build_composite_pack(
            pdf_bytes,
            quiz.graded,
            pages_per_student=quiz.pages_per_student,
            first_is_solution=quiz.first_paper_is_solution,
            quiz_id=quiz.id,
        )

    def build_composite_pack(self, quiz_id: str) -> str:
        """Build and upload the composite pack; returns its public URL."""
        timer = Timer()
        result = self.render_composite_pack(quiz_id)
        key = f"sbaw/{quiz_id}-SBAB-{_timestamp_ms()}.pdf"
        url = self.store.upload_bytes(self.config.s3.graded_bucket, key, result.pdf_bytes, "application/pdf")
        self.repository.record_artifact(quiz_id, ARTIFACT_COMPOSITE, url)
        logger.info(f"Composite pack for quiz {quiz_id} ready in {timer}")
        return url

    def build_full_roster(self, quiz_id: str) -> str:
        """Build and upload the all-pages annotated roster; returns its public URL."""
        quiz = self._graded_quiz(quiz_id)
        pdf_bytes = self.download_source(quiz)
        merged = build_full_roster(pdf_bytes, quiz.graded, quiz.pages_per_student)

        key = f"green/{quiz.id}-green-merged-{_timestamp_ms()}.pdf"
        url = self.store.upload_bytes(self.config.s3.graded_bucket, key, merged, "application/pdf")
        self.repository.record_artifact(quiz.id, ARTIFACT_ROSTER, url)
        return url

    def page_mapping(self, quiz_id: str) -> PageMapping:
        """Which source pages belong to which graded student."""
        quiz = self._graded_quiz(quiz_id)
        return map_pdf_pages_to_students(self.download_source(quiz), quiz.graded, quiz.page_texts)

    def export_csv(self, quiz_id: str) -> str:
        """Upload the results CSV; returns its public URL."""
        quiz = self._graded_quiz(quiz_id)
        content = export_results_csv(quiz.id, quiz.created_at, quiz.graded)

        key = f"csv/{quiz.id}-{_timestamp_ms()}.csv"
        url = self.store.upload_bytes(self.config.s3.results_bucket, key, content.encode("utf-8"), "text/csv")
        self.repository.record_artifact(quiz.id, ARTIFACT_CSV, url)
        return url
