"""
Game mapper.

Same shape as performances without a premiere; adds the player count.
"""

import re
from dataclasses import dataclass, asdict
from typing import Optional

from importers.mappers.base import Heuristic, MappedRecord, TargetField, SKIP_TARGET, IMPORT_SOURCE
from importers.mappers.performance import CatalogItemMapper, DEFAULT_CATEGORY, STATUS_ACTIVE
from importers.transformers import clean_string, parse_size
from importers.validators import ValidationRule


GAME_CATEGORIES = (
    ("tým", "team"),
    ("soutěž", "competition"),
    ("kreativ", "creative"),
    ("pohyb", "movement"),
    ("vědom", "quiz"),
    ("kvíz", "quiz"),
)


def parse_players(value: Optional[str]) -> Optional[dict]:
    """
    Parse a player count.

    - "2-6 hráčů" → {"min": 2, "max": 6}
    - "8" → {"min": 8, "max": 8}
    """
    if not value:
        return None

    numbers = [int(n) for n in re.findall(r"\d+", value)]
    if not numbers:
        return None

    return {"min": min(numbers[:2]), "max": max(numbers[:2])}


@dataclass
class MappedGame(MappedRecord):
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
    age_range: Optional[str] = None
    players: Optional[dict] = None
    technical_requirements: Optional[dict] = None
    source: str = IMPORT_SOURCE

    def to_dict(self) -> dict:
        return asdict(self)


class GameMapper(CatalogItemMapper):
    entity_type = "game"
    label = "Hry"
    category_table = GAME_CATEGORIES

    column_dictionary = {
        "Název": "title",
        "Podtitul": "subtitle",
        "Kategorie": "category",
        "Délka": "duration",
        "Počet hráčů": "players",
        "Popis": "description",
        "Perex": "excerpt",
        "Věk": "age_range",
        "Prostor": "space",
        "Velikost": "size",
    }

    heuristics = (
        Heuristic("title", contains=("název", "title"), excludes=("sub",)),
        Heuristic("subtitle", contains=("podtitul", "subtitle")),
        Heuristic("category", contains=("kategor", "typ")),
        Heuristic("duration", contains=("délka", "trvání", "duration")),
        Heuristic("players", contains=("hráč", "player", "účastník")),
        Heuristic("excerpt", contains=("perex", "anotace")),
        Heuristic("description", contains=("popis", "description")),
        Heuristic("age_range", contains=("věk",), equals=("age", "age range")),
        Heuristic("space", contains=("prostor", "místo")),
        Heuristic("size", contains=("velikost", "rozměr")),
    )

    target_fields = (
        TargetField("title", "Název", required=True),
        TargetField("subtitle", "Podtitul"),
        TargetField("category", "Kategorie"),
        TargetField("duration", "Délka (min)"),
        TargetField("players", "Počet hráčů"),
        TargetField("excerpt", "Perex"),
        TargetField("description", "Popis"),
        TargetField("age_range", "Věková kategorie"),
        TargetField("space", "Prostor"),
        TargetField("size", "Velikost (cm)"),
        SKIP_TARGET,
    )

    rules = (
        ValidationRule("title", "Název", required=True, min_length=1, max_length=200),
        ValidationRule("duration", "Délka", type="number", min_value=1, max_value=600),
        ValidationRule("players", "Počet hráčů", pattern=r"\d"),
    )

    def project(self, data: dict[str, str], row_index: int) -> Optional[MappedGame]:
        common = self._common(data, row_index)
        if common is None:
            return None

        return MappedGame(
            **common,
            players=parse_players(data.get("players")),
            technical_requirements=self._requirements(
                space=clean_string(data.get("space")),
                size_cm=parse_size(data.get("size")),
            ),
        )
