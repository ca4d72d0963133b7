from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

CardType = Literal[
    "Spell", "Item", "Ally", "DarkArts", "Villain", "Location", "Creature", "Potion", "Charm"
]
MARKET_TYPES: frozenset[CardType] = frozenset(
    {"Spell", "Item", "Ally", "Potion", "Charm", "Creature"}
)

GamePhase = Literal["Lobby", "CharacterCreation", "InProgress", "Completed"]

Archetype = Literal["Harry", "Ron", "Hermione", "Neville", "Ginny", "Luna"]

TraitName = Literal[
    "Courage",
    "Mentor",
    "Protector",
    "Loyalty",
    "Collector",
    "Tactician",
    "Scholar",
    "Prepared",
    "Brilliant",
    "Herbology",
    "Stubborn",
    "Leader",
    "Bold",
    "Swift",
    "Inspiring",
    "Quirky",
    "Insightful",
    "Hopeful",
]

# Once-per-turn gates, one per trait effect.
TurnFlag = Literal[
    "courage_bonus",
    "brilliant_bonus",
    "collector_discount",
    "tactician_bonus",
    "mentor_used",
    "swift_used",
    "insight_used",
    "quirky_draw",
]


@dataclass(frozen=True)
class InfluenceDelta:
    type: Literal["influence"]
    amount: int


@dataclass(frozen=True)
class AttackDelta:
    type: Literal["attack"]
    amount: int


@dataclass(frozen=True)
class HealDelta:
    type: Literal["heal"]
    amount: int


@dataclass(frozen=True)
class DrawDelta:
    type: Literal["card_draw"]
    amount: int


@dataclass(frozen=True)
class ControlDelta:
    type: Literal["control_progress"]
    amount: int


ResourceDelta = InfluenceDelta | AttackDelta | HealDelta | DrawDelta | ControlDelta


@dataclass(frozen=True)
class CardEffect:
    """Ordered resource deltas plus a direct draw count.

    Both draw sources stack: ``draw_cards`` is applied after every
    ``DrawDelta`` in ``resources``.
    """

    resources: tuple[ResourceDelta, ...] = ()
    draw_cards: int = 0
    note: str | None = None


@dataclass(frozen=True)
class CardDefinition:
    id: int
    name: str
    type: CardType
    cost: int
    text: str
    image_key: str
    effect: CardEffect = field(default_factory=CardEffect)


@dataclass(frozen=True)
class VillainDefinition(CardDefinition):
    max_health: int = 0


@dataclass(frozen=True)
class LocationDefinition(CardDefinition):
    control_track_length: int = 0


@dataclass(frozen=True)
class CardDatabase:
    """Immutable card catalog used by the engine."""

    cards: dict[int, CardDefinition]

    def get(self, card_id: int) -> CardDefinition:
        return self.cards[card_id]

    def all_ids(self) -> Sequence[int]:
        return list(self.cards.keys())

    def find_by_name(self, name: str) -> CardDefinition:
        for card in self.cards.values():
            if card.name == name:
                return card
        raise KeyError(name)

    def marketable_ids(self) -> list[int]:
        return [cid for cid, c in self.cards.items() if c.type in MARKET_TYPES]

    def villain_ids(self) -> list[int]:
        return [cid for cid, c in self.cards.items() if isinstance(c, VillainDefinition)]

    def location_ids(self) -> list[int]:
        return [cid for cid, c in self.cards.items() if isinstance(c, LocationDefinition)]

    def dark_arts_ids(self) -> list[int]:
        return [cid for cid, c in self.cards.items() if c.type == "DarkArts"]


@dataclass(frozen=True)
class Trait:
    id: str
    name: TraitName
    description: str
    tier: int


@dataclass(frozen=True)
class CharacterBuild:
    archetype: Archetype
    display_name: str = ""
    selected_trait_ids: tuple[str, ...] = ()

    @property
    def is_ready(self) -> bool:
        return len(self.selected_trait_ids) > 0


@dataclass(frozen=True)
class TraitRegistry:
    """Archetype -> ordered tiered traits. Loaded once, passed explicitly."""

    trees: dict[Archetype, tuple[Trait, ...]]

    def tree(self, archetype: Archetype) -> tuple[Trait, ...]:
        return self.trees.get(archetype, ())

    def trait_ids(self, archetype: Archetype) -> set[str]:
        return {t.id for t in self.tree(archetype)}

    def has_trait(self, build: CharacterBuild | None, name: TraitName) -> bool:
        if build is None:
            return False
        selected = set(build.selected_trait_ids)
        return any(t.name == name and t.id in selected for t in self.tree(build.archetype))
