from __future__ import annotations

from typing import Mapping

FALLBACK_URL = "/images/other/placeholder.svg"

DEFAULT_IMAGE_MAP: dict[str, str] = {
    "location": "/images/buildings/building1.svg",
    "location_alt": "/images/buildings/building2.svg",
    "darkarts": "/images/food/food1.svg",
    "character": "/images/animals/animal1.svg",
    "villain": "/images/shapes/triangle.svg",
    "influence": "/images/money/money.svg",
    "attack": "/images/lightning.svg",
    "control": "/images/skull.svg",
    "potion": "/images/potion.svg",
    "charm": "/images/charm.svg",
    "creature": "/images/creature.svg",
    "ally": "/images/ally.svg",
    "item": "/images/item.svg",
    "spell_generic": "/images/spell.svg",
    "shape_triangle": "/images/shapes/triangle.svg",
    "shape_square": "/images/shapes/square.svg",
    "building_tower": "/images/buildings/building2.svg",
    "food_chocolate": "/images/food/food1.svg",
    "lightning": "/images/lightning.svg",
    "skull": "/images/skull.svg",
}


class ImageAssetService:
    """Card image key -> public URL, with a fixed placeholder for unknown keys."""

    def __init__(self, mapping: Mapping[str, str] | None = None) -> None:
        source = DEFAULT_IMAGE_MAP if mapping is None else mapping
        self._map = {k.lower(): v for k, v in source.items()}

    def url_for(self, key: str) -> str:
        return self._map.get(key.lower(), FALLBACK_URL)
