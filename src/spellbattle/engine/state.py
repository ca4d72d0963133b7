from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable

from .types import (
    CardDatabase,
    CharacterBuild,
    GamePhase,
    LocationDefinition,
    TraitName,
    TraitRegistry,
    TurnFlag,
)

Event = dict[str, object]

SOLO_SEAT_SEP = "#"


@dataclass(frozen=True)
class GameConfig:
    starting_health: int = 10
    hand_size: int = 5
    supply_size: int = 10
    villain_count: int = 2
    dark_arts_stack_size: int = 10
    dark_arts_damage: int = 1
    dark_arts_control: int = 1
    villain_strike_damage: int = 1
    starter_influence_card: str = "Alohomora"
    starter_influence_count: int = 7
    starter_attack_card: str = "Stupefy"
    starter_attack_count: int = 3
    max_players: int = 6


@dataclass
class VillainInstance:
    card_id: int
    max_health: int
    health: int

    @property
    def alive(self) -> bool:
        return self.health > 0


@dataclass
class PlayerState:
    player_id: str
    name: str
    max_health: int
    health: int
    influence: int = 0
    attack: int = 0
    library: list[int] = field(default_factory=list)  # top = end
    hand: list[int] = field(default_factory=list)
    discard: list[int] = field(default_factory=list)
    in_play: list[int] = field(default_factory=list)
    build: CharacterBuild | None = None
    turn_flags: set[TurnFlag] = field(default_factory=set)
    turn_counters: dict[TraitName, int] = field(default_factory=dict)

    @property
    def is_ready(self) -> bool:
        return self.build is not None and self.build.is_ready

    def owned_count(self) -> int:
        return len(self.library) + len(self.hand) + len(self.discard) + len(self.in_play)

    def reset_turn_scope(self) -> None:
        self.turn_flags.clear()
        self.turn_counters.clear()


@dataclass
class StepResult:
    ok: bool
    events: list[Event]
    error: str | None = None


@dataclass
class GameState:
    room_code: str
    cards: CardDatabase
    traits: TraitRegistry
    config: GameConfig
    phase: GamePhase = "Lobby"
    solo_controller_id: str | None = None
    players: list[PlayerState] = field(default_factory=list)
    active_index: int = 0
    supply: list[int] = field(default_factory=list)
    dark_arts_deck: list[int] = field(default_factory=list)  # top = end
    villain_deck: list[int] = field(default_factory=list)  # top = end
    active_villains: list[VillainInstance] = field(default_factory=list)
    active_location_id: int | None = None
    location_control: int = 0
    log: list[str] = field(default_factory=list)
    event_log: list[Event] = field(default_factory=list)
    # Builds a fresh random source per shuffle/restock; never shared across calls.
    rng_factory: Callable[[], random.Random] = random.Random

    @property
    def is_solo(self) -> bool:
        return self.solo_controller_id is not None

    @property
    def active_player(self) -> PlayerState | None:
        if not self.players:
            return None
        return self.players[self.active_index]

    @property
    def active_location(self) -> LocationDefinition | None:
        if self.active_location_id is None:
            return None
        loc = self.cards.get(self.active_location_id)
        assert isinstance(loc, LocationDefinition)
        return loc

    def player(self, player_id: str) -> PlayerState | None:
        for p in self.players:
            if p.player_id == player_id:
                return p
        return None

    def villain(self, card_id: int) -> VillainInstance | None:
        for v in self.active_villains:
            if v.card_id == card_id:
                return v
        return None

    def has_trait(self, player: PlayerState, name: TraitName) -> bool:
        return self.traits.has_trait(player.build, name)

    def controls(self, connection_id: str, player_id: str) -> bool:
        """True if ``connection_id`` may act as ``player_id``."""
        if player_id == connection_id:
            return True
        if not self.is_solo or connection_id != self.solo_controller_id:
            return False
        return player_id.startswith(f"{connection_id}{SOLO_SEAT_SEP}")


def solo_seat_id(controller_id: str, seat: int) -> str:
    return f"{controller_id}{SOLO_SEAT_SEP}{seat}"


def emit(state: GameState, event_type: str, message: str, **payload: object) -> Event:
    event: Event = {"type": event_type, "message": message, **payload}
    state.log.append(message)
    state.event_log.append(event)
    return event


def shuffle(state: GameState, items: list[int]) -> None:
    rng = state.rng_factory()
    rng.shuffle(items)


def draw_cards(state: GameState, player: PlayerState, count: int) -> int:
    """Draw up to ``count`` cards, reshuffling the discard into an empty library.

    Stops quietly when both piles are empty; returns the number drawn.
    """
    drawn = 0
    for _ in range(max(0, count)):
        if not player.library:
            if not player.discard:
                break
            shuffle(state, player.discard)
            player.library.extend(player.discard)
            player.discard.clear()
        player.hand.append(player.library.pop())
        drawn += 1
    return drawn


def heal_player(state: GameState, player: PlayerState, amount: int) -> int:
    if amount <= 0:
        return 0
    before = player.health
    player.health = min(player.max_health, player.health + amount)
    return player.health - before


def damage_player(state: GameState, player: PlayerState, amount: int) -> int:
    if amount <= 0:
        return 0
    dealt = min(player.health, amount)
    player.health -= dealt
    return dealt
