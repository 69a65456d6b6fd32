"""
Field transformers for CSV imports.

Pure normalization functions shared by every entity mapper. All of them are
total: unparseable input gives None (or a best-effort value), never an
exception.
"""

import re
import time
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Callable, Optional

from importers.locale import LocaleStrategy, DEFAULT_LOCALE
from utils.text_utils import strip_diacritics, clean_string


_DATE_PATTERNS = (
    # D.M.YYYY / DD.MM.YYYY
    (re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$"), "dmy"),
    # DD.MM.YY
    (re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{2})$"), "dmy"),
    # D. M. YYYY
    (re.compile(r"^(\d{1,2})\.\s+(\d{1,2})\.\s+(\d{4})$"), "dmy"),
    # YYYY-MM-DD
    (re.compile(r"^(\d{4})-(\d{2})-(\d{2})$"), "ymd"),
)

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PHONE_MIN_DIGITS = 9
PHONE_MAX_DIGITS = 15


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


# ===================
# DATES AND TIMES
# ===================

def parse_date(
    value: Optional[str],
    locale: LocaleStrategy = DEFAULT_LOCALE
) -> Optional[date]:
    """
    Parse a Czech or ISO date string.

    Accepts "5.3.2024", "05.03.24", "5. 3. 2024" and "2024-03-05".
    Two-digit years pivot at 50 (51 → 1951, 24 → 2024).
    Impossible calendar dates ("31.2.2024") give None.
    """
    if _is_blank(value):
        return None

    text = str(value).strip()

    for pattern, order in _DATE_PATTERNS:
        match = pattern.match(text)
        if not match:
            continue

        if order == "ymd":
            year, month, day = (int(g) for g in match.groups())
        else:
            day, month, year = (int(g) for g in match.groups())

        try:
            return date(locale.expand_year(year), month, day)
        except ValueError:
            return None

    return None


def parse_time(value: Optional[str]) -> Optional[str]:
    """
    Extract HH:MM from a cell.

    - "06:00 (12.11.2014)" → "06:00"
    - "9:15" → "09:15"
    """
    if _is_blank(value):
        return None

    match = re.search(r"(\d{1,2}):(\d{2})", str(value))
    if not match:
        return None

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None

    return f"{hours:02d}:{minutes:02d}"


def parse_minutes(value: Optional[str]) -> Optional[int]:
    """
    Parse a duration into total minutes.

    - "60 min" → 60
    - "2h" / "2 hodiny" → 120
    - "1:30" → 90
    - "45" → 45
    """
    if _is_blank(value):
        return None

    text = str(value).strip().lower()

    match = re.match(r"^(\d+)\s*min", text)
    if match:
        return int(match.group(1))

    match = re.match(r"^(\d+)\s*h", text)
    if match:
        return int(match.group(1)) * 60

    match = re.match(r"^(\d+):(\d{1,2})$", text)
    if match:
        return int(match.group(1)) * 60 + int(match.group(2))

    match = re.match(r"^\d+", text)
    if match:
        return int(match.group(0))

    return None


# ===================
# CONTACT DATA
# ===================

def normalize_phone(
    value: Optional[str],
    locale: LocaleStrategy = DEFAULT_LOCALE
) -> Optional[str]:
    """
    Normalize a phone number to international format.

    Non-digits and leading trunk zeros are dropped. A national number
    (exactly 9 digits) gets the country code. Output is grouped
    "+420 123 456 789".
    """
    if _is_blank(value):
        return None

    digits = re.sub(r"\D", "", str(value)).lstrip("0")

    if len(digits) == locale.national_number_length:
        digits = locale.country_code + digits

    if len(digits) < PHONE_MIN_DIGITS or len(digits) > PHONE_MAX_DIGITS:
        return None

    prefix, national = digits[:-9], digits[-9:]
    return f"+{prefix} {national[0:3]} {national[3:6]} {national[6:9]}"


def normalize_email(value: Optional[str]) -> Optional[str]:
    """Lowercase and trim an email; None if it does not look like one."""
    if _is_blank(value):
        return None

    email = str(value).strip().lower()
    if _EMAIL_PATTERN.match(email):
        return email
    return None


def normalize_postal_code(value: Optional[str]) -> Optional[str]:
    """Normalize Czech postal code (PSČ): "506 01" → "50601"."""
    if _is_blank(value):
        return None

    cleaned = re.sub(r"\s", "", str(value))
    if re.fullmatch(r"\d{5}", cleaned):
        return cleaned
    return None


def split_name(
    value: Optional[str],
    locale: LocaleStrategy = DEFAULT_LOCALE
) -> tuple[str, str]:
    """
    Split a full name into (first_name, last_name).

    - "Jan" → ("Jan", "")
    - "Novák Jan" → ("Jan", "Novák")
    - "Jan Pavel Novák" → ("Jan Pavel", "Novák")
    """
    if _is_blank(value):
        return "", ""

    parts = str(value).split()

    if len(parts) == 1:
        return parts[0], ""

    if len(parts) == 2:
        return locale.order_name(parts[0], parts[1])

    return " ".join(parts[:-1]), parts[-1]


# ===================
# TAX IDS
# ===================

def normalize_ico(value: Optional[str]) -> Optional[str]:
    """
    Normalize company ID (IČO) to 8 digits.

    Shorter numbers are left-padded with zeros; longer ones are invalid.
    """
    if _is_blank(value):
        return None

    digits = re.sub(r"\D", "", str(value))
    if not digits or len(digits) > 8:
        return None

    return digits.zfill(8)


def normalize_dic(
    value: Optional[str],
    locale: LocaleStrategy = DEFAULT_LOCALE
) -> Optional[str]:
    """
    Normalize VAT ID (DIČ): optional country prefix plus 8-10 digits.

    - "CZ12345678" → "CZ12345678"
    - "12345678" → "CZ12345678"
    - "SK 2020123456" → "SK2020123456"
    """
    if _is_blank(value):
        return None

    text = str(value).strip().upper()

    prefix = locale.vat_prefix
    match = re.match(r"^([A-Z]{2})", text)
    if match:
        prefix = match.group(1)
        text = text[2:]

    digits = re.sub(r"\D", "", text)
    if 8 <= len(digits) <= 10:
        return prefix + digits

    return None


# ===================
# NUMBERS
# ===================

def _to_decimal(value: Optional[str], locale: LocaleStrategy) -> Optional[Decimal]:
    if _is_blank(value):
        return None

    text = locale.strip_currency(str(value))
    text = re.sub(r"\s", "", text)
    text = locale.normalize_number(text)

    if not text:
        return None

    try:
        number = Decimal(text)
    except InvalidOperation:
        return None

    if not number.is_finite():
        return None

    return number


def parse_price(
    value: Optional[str],
    locale: LocaleStrategy = DEFAULT_LOCALE
) -> Optional[int]:
    """
    Parse a money amount rounded half-up to whole units.

    - "5 000,00 CZK" → 5000
    - "2500.000 Kč" → 2500
    - "1.234,50" → 1235
    """
    number = _to_decimal(value, locale)
    if number is None:
        return None

    # quantize fails past the context precision (28 digits)
    try:
        return int(number.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return None


def parse_number(
    value: Optional[str],
    locale: LocaleStrategy = DEFAULT_LOCALE
) -> Optional[float]:
    """Parse a locale-formatted number without rounding."""
    number = _to_decimal(value, locale)
    if number is None:
        return None
    return float(number)


def parse_size(value: Optional[str]) -> Optional[float]:
    """Parse a size in centimeters: "4.0 cm" → 4.0."""
    if _is_blank(value):
        return None

    match = re.search(r"\d+(?:[.,]\d+)?", str(value))
    if not match:
        return None

    return float(match.group(0).replace(",", "."))


def parse_gps(value: Optional[str]) -> Optional[dict]:
    """
    Parse "lat,lng" coordinates.

    "50.212462,15.853255" → {"lat": 50.212462, "lng": 15.853255}
    """
    if _is_blank(value):
        return None

    parts = [p.strip() for p in str(value).split(",")]
    if len(parts) != 2:
        return None

    try:
        lat, lng = float(parts[0]), float(parts[1])
    except ValueError:
        return None

    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None

    return {"lat": lat, "lng": lng}


# ===================
# TEXT
# ===================

def slugify(value: Optional[str]) -> str:
    """URL-safe slug: "Šípková Růženka!" → "sipkova-ruzenka"."""
    if not value:
        return ""

    text = strip_diacritics(str(value)).lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")


def to_rich_text(value: Optional[str]) -> Optional[dict]:
    """
    Convert plain text to a rich-text document.

    Blank lines separate paragraphs; single newlines become spaces.
    """
    if _is_blank(value):
        return None

    paragraphs = re.split(r"\n\s*\n+", str(value).strip())

    content = []
    for paragraph in paragraphs:
        text = " ".join(paragraph.split())
        content.append({
            "type": "paragraph",
            "content": [{"type": "text", "text": text}] if text else [],
        })

    return {"type": "doc", "content": content}


# ===================
# CATEGORICAL MAPPINGS
# ===================

ORGANIZATION_TYPES = {
    "Agentury": "private_company",
    "Divadla,Kulturní zařízení": "cultural_center",
    "Divadla": "cultural_center",
    "Kulturní zařízení": "cultural_center",
    "Základní školy": "elementary_school",
    "Mateřské školy": "kindergarten",
    "Mateřská centra": "kindergarten",
    "Střední školy": "high_school",
    "Školy": "elementary_school",
    "Neziskové organizace": "nonprofit",
    "Městské úřady": "municipality",
    "Soukromé firmy": "private_company",
}

PAYMENT_METHODS = {
    "banka": "bank_transfer",
    "převodem": "bank_transfer",
    "hotově": "cash",
    "hotovost": "cash",
    "doproplacená": "cash",
    "kartou": "card",
}


def map_organization_type(value: Optional[str]) -> Optional[str]:
    """
    Map a legacy customer group to an organization type.

    Substring match, first entry wins; unknown groups map to "other".
    """
    if _is_blank(value):
        return None

    lowered = str(value).lower()
    for key, org_type in ORGANIZATION_TYPES.items():
        if key.lower() in lowered:
            return org_type

    return "other"


def map_payment_method(value: Optional[str]) -> Optional[str]:
    """Map a legacy payment method label; unknown labels give None."""
    if _is_blank(value):
        return None
    return PAYMENT_METHODS.get(str(value).strip().lower())


# ===================
# PLACEHOLDER EMAILS
# ===================

def _millisecond_clock() -> str:
    return str(int(time.time() * 1000))


class PlaceholderEmailFactory:
    """
    Synthesizes addresses for customers imported without an email.

    With a company ID the address is stable across reruns. Otherwise it
    embeds a token from `token_source` (millisecond clock by default), so
    pass a fixed source when results must be reproducible.
    """

    def __init__(
        self,
        domain: str,
        token_source: Optional[Callable[[], str]] = None
    ):
        self.domain = domain
        self.token_source = token_source or _millisecond_clock

    def generate(
        self,
        ico: Optional[str] = None,
        name: Optional[str] = None,
        index: int = 0
    ) -> str:
        if ico:
            return f"import-ico-{ico}@{self.domain}"

        token = self.token_source()
        slug = slugify(name)[:30].strip("-") if name else ""
        if slug:
            return f"import-{slug}-{token}@{self.domain}"

        return f"import-{token}-{index}@{self.domain}"

    def is_placeholder(self, email: Optional[str]) -> bool:
        return bool(email) and email.endswith(f"@{self.domain}")


__all__ = [
    "parse_date",
    "parse_time",
    "parse_minutes",
    "normalize_phone",
    "normalize_email",
    "normalize_postal_code",
    "split_name",
    "normalize_ico",
    "normalize_dic",
    "parse_price",
    "parse_number",
    "parse_size",
    "parse_gps",
    "slugify",
    "to_rich_text",
    "clean_string",
    "map_organization_type",
    "map_payment_method",
    "PlaceholderEmailFactory",
]
