"""
Data persistence layer.

Quiz rows and generated artifact URLs live in PostgreSQL.
"""

from .postgres import QuizRepository

__all__ = [
    "QuizRepository",
]
