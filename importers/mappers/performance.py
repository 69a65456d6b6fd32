"""
Performance (repertoire) mapper.

Natural key is the title; the slug derived from it is what collides with
existing records.
"""

from dataclasses import dataclass, asdict
from datetime import date
from typing import Optional

from importers.mappers.base import (
    EntityMapper,
    Heuristic,
    MappedRecord,
    TargetField,
    SKIP_TARGET,
    IMPORT_SOURCE,
)
from importers.transformers import clean_string, parse_date, parse_minutes, slugify, to_rich_text
from importers.validators import ValidationRule


STATUS_ACTIVE = "active"
DEFAULT_CATEGORY = "other"

PERFORMANCE_CATEGORIES = (
    ("pohád", "fairy_tale"),
    ("muzikál", "musical"),
    ("konc", "concert"),
    ("loutk", "puppet"),
    ("dospěl", "adult"),
    ("škol", "school"),
)


def map_category(value: Optional[str], table: tuple[tuple[str, str], ...]) -> str:
    """First substring hit in `table`, else "other"."""
    if not value:
        return DEFAULT_CATEGORY

    lowered = value.lower()
    for needle, category in table:
        if needle in lowered:
            return category
    return DEFAULT_CATEGORY


@dataclass
class MappedPerformance(MappedRecord):
    title: str
    slug: str
    category: str = DEFAULT_CATEGORY
    status: str = STATUS_ACTIVE
    featured: bool = False
    order: int = 0
    subtitle: Optional[str] = None
    excerpt: Optional[str] = None
    description: Optional[dict] = None
    duration: Optional[int] = None
    premiere: Optional[date] = None
    age_range: Optional[str] = None
    technical_requirements: Optional[dict] = None
    source: str = IMPORT_SOURCE

    def to_dict(self) -> dict:
        data = asdict(self)
        data["premiere"] = self.premiere.isoformat() if self.premiere else None
        return data


class CatalogItemMapper(EntityMapper):
    """Shared projection for titled catalog entries (performances, games)."""

    category_table: tuple[tuple[str, str], ...] = ()

    natural_keys = ("slug",)
    duplicate_fields = ("slug",)

    def _common(self, data: dict[str, str], row_index: int) -> Optional[dict]:
        title = clean_string(data.get("title"), max_length=200)
        if not title:
            return None

        slug = slugify(title)
        if not slug:
            return None

        description = clean_string(data.get("description"))
        excerpt = clean_string(data.get("excerpt"))
        if not excerpt and description:
            excerpt = description.split("\n")[0][:200]

        return {
            "title": title,
            "slug": slug,
            "category": map_category(data.get("category"), self.category_table),
            "order": row_index,
            "subtitle": clean_string(data.get("subtitle")),
            "excerpt": excerpt,
            "description": to_rich_text(description),
            "duration": parse_minutes(data.get("duration")),
            "age_range": clean_string(data.get("age_range")),
        }

    @staticmethod
    def _requirements(**values) -> Optional[dict]:
        present = {k: v for k, v in values.items() if v is not None}
        return present or None


class PerformanceMapper(CatalogItemMapper):
    entity_type = "performance"
    label = "Představení"
    category_table = PERFORMANCE_CATEGORIES

    column_dictionary = {
        "Název": "title",
        "Podtitul": "subtitle",
        "Kategorie": "category",
        "Délka": "duration",
        "Premiéra": "premiere",
        "Popis": "description",
        "Perex": "excerpt",
        "Věk": "age_range",
        "Prostor": "stage_size",
        "Ozvučení": "sound",
        "Příprava": "setup_time",
    }

    heuristics = (
        Heuristic("title", contains=("název", "title"), excludes=("sub",)),
        Heuristic("subtitle", contains=("podtitul", "subtitle")),
        Heuristic("category", contains=("kategor", "žánr")),
        Heuristic("duration", contains=("délka", "trvání", "duration")),
        Heuristic("premiere", contains=("premiér",)),
        Heuristic("excerpt", contains=("perex", "anotace")),
        Heuristic("description", contains=("popis", "description")),
        Heuristic("age_range", contains=("věk",), equals=("age", "age range")),
        Heuristic("stage_size", contains=("prostor", "jeviště", "rozměr")),
        Heuristic("sound", contains=("ozvuč", "zvuk")),
        Heuristic("setup_time", contains=("příprav", "stavba")),
    )

    target_fields = (
        TargetField("title", "Název", required=True),
        TargetField("subtitle", "Podtitul"),
        TargetField("category", "Kategorie"),
        TargetField("duration", "Délka (min)"),
        TargetField("premiere", "Premiéra"),
        TargetField("excerpt", "Perex"),
        TargetField("description", "Popis"),
        TargetField("age_range", "Věková kategorie"),
        TargetField("stage_size", "Prostor"),
        TargetField("sound", "Ozvučení"),
        TargetField("setup_time", "Příprava"),
        SKIP_TARGET,
    )

    rules = (
        ValidationRule("title", "Název", required=True, min_length=1, max_length=200),
        ValidationRule("duration", "Délka představení", type="number", min_value=1, max_value=600),
        ValidationRule("premiere", "Premiéra", type="date"),
    )

    def project(self, data: dict[str, str], row_index: int) -> Optional[MappedPerformance]:
        common = self._common(data, row_index)
        if common is None:
            return None

        return MappedPerformance(
            **common,
            premiere=parse_date(data.get("premiere"), self.locale),
            technical_requirements=self._requirements(
                stage_size=clean_string(data.get("stage_size")),
                sound=clean_string(data.get("sound")),
                setup_minutes=parse_minutes(data.get("setup_time")),
            ),
        )
