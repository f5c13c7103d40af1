"""
Quizmark: OCR cascade, page segmentation and annotated result packs for
scanned quiz answer scripts.
"""

__version__ = "0.1.0"
