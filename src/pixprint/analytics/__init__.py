"""Batch similarity reports for tuning fingerprint settings."""

from .matrix import DirectoryReport, SimilarityMatrix, compare_directories, format_report

__all__ = ["DirectoryReport", "SimilarityMatrix", "compare_directories", "format_report"]
