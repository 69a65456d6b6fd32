"""
Locale strategies for import heuristics.

Everything country-specific that the field transformers need (phone country
code, VAT prefix, currency tokens, decimal comma rule, first-name list) lives
here so another deployment can pass its own strategy instead.
"""

import re
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class LocaleStrategy:
    """Country-specific parsing conventions."""
    country_code: str
    national_number_length: int
    vat_prefix: str
    default_country: str
    currency_tokens: tuple[str, ...]
    common_first_names: frozenset[str]
    two_digit_year_pivot: int = 50

    def expand_year(self, year: int) -> int:
        """Expand a two-digit year (above the pivot → 19xx, otherwise 20xx)."""
        if year >= 100:
            return year
        return year + (1900 if year > self.two_digit_year_pivot else 2000)

    def normalize_number(self, text: str) -> str:
        """
        Rewrite a cleaned numeric string to use "." as decimal point.

        A "," followed by at most two digits is a decimal comma; any other
        "," groups thousands. Several dots are thousands separators.
        """
        if "," in text:
            integer, _, fraction = text.partition(",")
            if fraction and len(fraction) <= 2 and "," not in fraction:
                text = integer.replace(".", "") + "." + fraction
            else:
                text = text.replace(",", "")

        if text.count(".") > 1:
            text = text.replace(".", "")

        return text

    def strip_currency(self, text: str) -> str:
        """Remove currency tokens, case-insensitive."""
        for token in self.currency_tokens:
            text = re.sub(re.escape(token), "", text, flags=re.IGNORECASE)
        return text

    def order_name(self, first: str, second: str) -> tuple[str, str]:
        """
        Decide (first_name, last_name) for a two-token name.

        Czech exports often store "Surname Given"; a known first name in
        either position decides, otherwise the input order is kept.
        """
        if first in self.common_first_names:
            return first, second
        if second in self.common_first_names:
            return second, first
        return first, second


CZECH_LOCALE = LocaleStrategy(
    country_code="420",
    national_number_length=9,
    vat_prefix="CZ",
    default_country="Česká republika",
    currency_tokens=("CZK", "Kč", ",-"),
    common_first_names=frozenset({
        "Jan", "Petr", "Pavel", "Martin", "Josef", "Tomáš", "Jiří", "Jaroslav",
        "Eva", "Jana", "Marie", "Anna", "Alena", "Kateřina", "Petra", "Lucie",
    }),
)

DEFAULT_LOCALE = CZECH_LOCALE


def get_locale(code: Optional[str] = None) -> LocaleStrategy:
    """Return the locale strategy for a code; only "cs" ships today."""
    if code in (None, "cs", "cs-CZ"):
        return CZECH_LOCALE
    raise ValueError(f"Unsupported import locale: {code}")
