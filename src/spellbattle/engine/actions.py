from __future__ import annotations

from dataclasses import dataclass

from .types import CharacterBuild


@dataclass(frozen=True)
class StartGameAction:
    player_id: str


@dataclass(frozen=True)
class ConfirmCharacterAction:
    player_id: str
    build: CharacterBuild


@dataclass(frozen=True)
class PlayCardAction:
    player_id: str
    card_id: int


@dataclass(frozen=True)
class BuyCardAction:
    player_id: str
    card_id: int


@dataclass(frozen=True)
class EndTurnAction:
    player_id: str | None = None


@dataclass(frozen=True)
class AttackVillainAction:
    player_id: str
    villain_id: int
    amount: int


@dataclass(frozen=True)
class UseMentorAction:
    player_id: str
    target_player_id: str


@dataclass(frozen=True)
class UseSwiftDiscardAction:
    player_id: str
    card_id: int


@dataclass(frozen=True)
class UseInsightAction:
    player_id: str
    discard: bool


Action = (
    StartGameAction
    | ConfirmCharacterAction
    | PlayCardAction
    | BuyCardAction
    | EndTurnAction
    | AttackVillainAction
    | UseMentorAction
    | UseSwiftDiscardAction
    | UseInsightAction
)
