"""Headless rules engine for the cooperative deck-building battle.

IMPORTANT: This package must never import transport or I/O code.
"""

from .actions import (
    AttackVillainAction,
    BuyCardAction,
    ConfirmCharacterAction,
    EndTurnAction,
    PlayCardAction,
    StartGameAction,
    UseInsightAction,
    UseMentorAction,
    UseSwiftDiscardAction,
)
from .game import add_player, create_new_game, create_solo_game, step
from .state import GameConfig, GameState, PlayerState, StepResult
from .types import CardDatabase, CardType, CharacterBuild, GamePhase, TraitRegistry

__all__ = [
    "AttackVillainAction",
    "BuyCardAction",
    "CardDatabase",
    "CardType",
    "CharacterBuild",
    "ConfirmCharacterAction",
    "EndTurnAction",
    "GameConfig",
    "GamePhase",
    "GameState",
    "PlayCardAction",
    "PlayerState",
    "StartGameAction",
    "StepResult",
    "TraitRegistry",
    "UseInsightAction",
    "UseMentorAction",
    "UseSwiftDiscardAction",
    "add_player",
    "create_new_game",
    "create_solo_game",
    "step",
]
