"""
Text utilities for handling Czech text with diacritics.

Used for slug generation and cell cleanup.
"""

import unicodedata
from typing import Optional


def strip_diacritics(text: str) -> str:
    """
    Remove accent marks while keeping base characters.

    - "Kateřina Nováková" → "Katerina Novakova"
    - "Příprava" → "Priprava"
    """
    # NFD decomposition separates base chars from accents
    normalized = unicodedata.normalize('NFD', text)

    # Combining characters are in Unicode category 'Mn'
    return ''.join(
        c for c in normalized
        if unicodedata.category(c) != 'Mn'
    )


def clean_string(value: Optional[str], max_length: Optional[int] = None) -> Optional[str]:
    """
    Clean a raw cell for storage (preserves accents).

    - Strips whitespace
    - Truncates to max length when given
    - Returns None for empty/whitespace-only strings
    """
    if value is None:
        return None

    value = str(value).strip()

    if not value:
        return None

    if max_length is not None and len(value) > max_length:
        value = value[:max_length]

    return value
