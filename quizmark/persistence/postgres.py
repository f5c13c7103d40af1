"""
PostgreSQL quiz repository.
"""
from __future__ import annotations

import logging
from typing import Optional, List, Any, Dict, Sequence

import psycopg2
from psycopg2.extras import Json, RealDictCursor

from ..config import DBConfig
from ..exceptions import DataPersistenceError, QuizNotFoundError
from ..models import Quiz, StudentRecord

logger = logging.getLogger(__name__)

QUIZ_COLUMNS = (
    "id, title, section, original_pdf, no_of_pages, read_first_paper_is_solution, "
    "extracted_text, page_texts, graded_json, created_at"
)


class QuizRepository:
    """
    PostgreSQL repository for quizzes and their generated artifacts.

    Handles:
    - Connection management
    - Schema initialization
    - Extracted text and graded results (full overwrite per run)
    - Artifact URLs (composite pack, full roster, CSV)
    """

    def __init__(self, config: DBConfig, connection=None):
        """
        Initialize repository.

        Args:
            config: Database configuration
            connection: Existing DB-API connection (tests)
        """
        self.config = config
        self._conn = connection

    def _get_connection(self):
        """Get or create database connection."""
        if self._conn is None or self._conn.closed:
            try:
                self._conn = psycopg2.connect(
                    host=self.config.host,
                    port=self.config.port,
                    dbname=self.config.name,
                    user=self.config.user,
                    password=self.config.password,
                    sslmode=self.config.ssl_mode,
                    options=f"-c search_path={self.config.schema}",
                )
                self._conn.autocommit = False
            except psycopg2.Error as e:
                logger.error(f"Failed to connect to PostgreSQL: {e}")
                raise DataPersistenceError(f"Cannot connect to database: {e}", operation="connect") from e
        return self._conn

    def close(self) -> None:
        if self._conn is not None and not self._conn.closed:
            self._conn.close()
        self._conn = None

    def _write(self, table: str, operation: str, query: str, params: Sequence[Any]) -> int:
        """Run one write statement in its own transaction; returns rowcount."""
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(query, params)
                rowcount = cur.rowcount
            conn.commit()
            return rowcount
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"{operation} on {table} failed: {e}")
            raise DataPersistenceError(str(e), table=table, operation=operation) from e

    def init_db(self):
        """Initialize database schema."""
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS quizzes (
                        id TEXT PRIMARY KEY,
                        title TEXT,
                        section TEXT,
                        original_pdf TEXT,
                        no_of_pages INTEGER DEFAULT 1,
                        read_first_paper_is_solution BOOLEAN DEFAULT TRUE,
                        extracted_text TEXT DEFAULT '',
                        page_texts JSONB DEFAULT '[]',
                        graded_json JSONB DEFAULT '[]',
                        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
                        updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
                    );
                """)
                cur.execute("ALTER TABLE quizzes ADD COLUMN IF NOT EXISTS page_texts JSONB DEFAULT '[]';")

                cur.execute("""
                    CREATE TABLE IF NOT EXISTS quiz_artifacts (
                        id SERIAL PRIMARY KEY,
                        quiz_id TEXT REFERENCES quizzes(id) ON DELETE CASCADE,
                        kind TEXT NOT NULL,
                        url TEXT NOT NULL,
                        created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
                    );
                """)

                cur.execute("CREATE INDEX IF NOT EXISTS idx_quiz_artifacts_quiz_id ON quiz_artifacts(quiz_id);")

            conn.commit()
            logger.info("Database schema initialized")
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"Failed to initialize database: {e}")
            raise DataPersistenceError(str(e), operation="init_db") from e

    def get_quiz(self, quiz_id: str) -> Quiz:
        """
        Load a quiz row.

        Raises:
            QuizNotFoundError: no row with this id
        """
        conn = self._get_connection()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(f"SELECT {QUIZ_COLUMNS} FROM quizzes WHERE id = %s", (quiz_id,))
                row = cur.fetchone()
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            raise DataPersistenceError(str(e), table="quizzes", operation="select") from e

        if not row:
            raise QuizNotFoundError(quiz_id)
        return Quiz.from_row(dict(row))

    def update_extracted_text(self, quiz_id: str, text: str, page_texts: Optional[List[str]] = None) -> None:
        """Overwrite the quiz's extracted text and its per-page texts."""
        updated = self._write(
            "quizzes",
            "update",
            "UPDATE quizzes SET extracted_text = %s, page_texts = %s, updated_at = CURRENT_TIMESTAMP "
            "WHERE id = %s",
            (text, Json(list(page_texts or [])), quiz_id),
        )
        if not updated:
            raise QuizNotFoundError(quiz_id)
        logger.info(f"Saved {len(text)} chars of extracted text for quiz {quiz_id}")

    def save_graded(self, quiz_id: str, records: List[StudentRecord]) -> None:
        """Overwrite the quiz's graded results."""
        payload = [r.to_dict() for r in records]
        updated = self._write(
            "quizzes",
            "update",
            "UPDATE quizzes SET graded_json = %s, updated_at = CURRENT_TIMESTAMP WHERE id = %s",
            (Json(payload), quiz_id),
        )
        if not updated:
            raise QuizNotFoundError(quiz_id)
        logger.info(f"Saved {len(records)} graded records for quiz {quiz_id}")

    def record_artifact(self, quiz_id: str, kind: str, url: str) -> None:
        """Remember where a generated artifact was uploaded."""
        self._write(
            "quiz_artifacts",
            "insert",
            "INSERT INTO quiz_artifacts (quiz_id, kind, url) VALUES (%s, %s, %s)",
            (quiz_id, kind, url),
        )

    def list_artifacts(self, quiz_id: str) -> List[Dict[str, Any]]:
        conn = self._get_connection()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    "SELECT kind, url, created_at FROM quiz_artifacts WHERE quiz_id = %s ORDER BY id",
                    (quiz_id,),
                )
                rows = cur.fetchall()
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            raise DataPersistenceError(str(e), table="quiz_artifacts", operation="select") from e
        return [dict(r) for r in rows]
