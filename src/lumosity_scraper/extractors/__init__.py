"""Extractors turning captured API responses into canonical records."""

from .responses import extract_relevant_data, is_relevant_payload

__all__ = ["extract_relevant_data", "is_relevant_payload"]
