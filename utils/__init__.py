"""
Shared helpers.
"""

from utils.text_utils import strip_diacritics, clean_string

__all__ = [
    "strip_diacritics",
    "clean_string",
]
