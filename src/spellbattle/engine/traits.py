"""Trait hooks.

Each hook is called by the rules engine at a fixed point of the turn and
applies the bonuses of whichever traits the hero's build has selected.
Once-per-turn traits are gated by a ``TurnFlag`` on the player; capped
traits count through ``PlayerState.turn_counters``. Both are wiped at
end of turn.
"""

from __future__ import annotations

from .state import GameState, PlayerState, draw_cards, emit, heal_player
from .types import CardDefinition, TraitName, TurnFlag

SCHOLAR_CAP = 2
BOLD_MIN_COST = 4


def _once(player: PlayerState, flag: TurnFlag) -> bool:
    """Claim a once-per-turn gate. False if already claimed this turn."""
    if flag in player.turn_flags:
        return False
    player.turn_flags.add(flag)
    return True


def _count(player: PlayerState, name: TraitName, cap: int) -> bool:
    used = player.turn_counters.get(name, 0)
    if used >= cap:
        return False
    player.turn_counters[name] = used + 1
    return True


def heal_bonus(state: GameState, player: PlayerState) -> int:
    return 1 if state.has_trait(player, "Herbology") else 0


def on_card_played(state: GameState, player: PlayerState, card: CardDefinition) -> None:
    if state.has_trait(player, "Courage") and _once(player, "courage_bonus"):
        player.attack += 1
        emit(state, "TRAIT", f"Courage: {player.name} gains 1 attack.", player=player.player_id, trait="Courage")

    if card.type == "Spell":
        if state.has_trait(player, "Scholar") and _count(player, "Scholar", SCHOLAR_CAP):
            player.influence += 1
            emit(state, "TRAIT", f"Scholar: {player.name} gains 1 influence.", player=player.player_id, trait="Scholar")
        if state.has_trait(player, "Brilliant") and _once(player, "brilliant_bonus"):
            player.attack += 1
            emit(state, "TRAIT", f"Brilliant: {player.name} gains 1 attack.", player=player.player_id, trait="Brilliant")

    if card.type == "Ally":
        if state.has_trait(player, "Leader"):
            target = _most_wounded_other(state, player)
            if target is not None:
                healed = heal_player(state, target, 1)
                if healed > 0:
                    emit(
                        state,
                        "TRAIT",
                        f"Leader: {player.name} heals {target.name} for {healed}.",
                        player=player.player_id,
                        target=target.player_id,
                        trait="Leader",
                    )
        for other in state.players:
            if other is player or not state.has_trait(other, "Loyalty"):
                continue
            other.influence += 1
            emit(state, "TRAIT", f"Loyalty: {other.name} gains 1 influence.", player=other.player_id, trait="Loyalty")


def _most_wounded_other(state: GameState, player: PlayerState) -> PlayerState | None:
    n = len(state.players)
    start = state.players.index(player)
    best: PlayerState | None = None
    # seat order after the acting hero breaks ties
    for offset in range(1, n):
        cand = state.players[(start + offset) % n]
        if best is None or cand.health < best.health:
            best = cand
    return best


def effective_cost(state: GameState, player: PlayerState, card: CardDefinition) -> tuple[int, bool]:
    """Return (cost, uses_collector_discount) without claiming the discount."""
    if (
        card.type == "Item"
        and state.has_trait(player, "Collector")
        and "collector_discount" not in player.turn_flags
    ):
        return max(0, card.cost - 1), True
    return card.cost, False


def on_card_bought(state: GameState, player: PlayerState, card: CardDefinition, discounted: bool) -> None:
    if discounted:
        player.turn_flags.add("collector_discount")
        emit(state, "TRAIT", f"Collector: {card.name} costs 1 less.", player=player.player_id, trait="Collector")
    if state.has_trait(player, "Tactician") and _once(player, "tactician_bonus"):
        player.attack += 1
        emit(state, "TRAIT", f"Tactician: {player.name} gains 1 attack.", player=player.player_id, trait="Tactician")
    if state.has_trait(player, "Bold") and card.cost >= BOLD_MIN_COST:
        player.attack += 1
        emit(state, "TRAIT", f"Bold: {player.name} gains 1 attack.", player=player.player_id, trait="Bold")


def on_villain_defeated(state: GameState, player: PlayerState) -> None:
    if not state.has_trait(player, "Inspiring"):
        return
    for p in state.players:
        p.influence += 1
    emit(state, "TRAIT", "Inspiring: all heroes gain 1 influence.", player=player.player_id, trait="Inspiring")


def on_dark_arts(state: GameState, player: PlayerState, damage_taken: int) -> None:
    if state.has_trait(player, "Protector"):
        healed = heal_player(state, player, 1)
        if healed > 0:
            emit(state, "TRAIT", f"Protector: {player.name} heals 1.", player=player.player_id, trait="Protector")
    if damage_taken > 0 and state.has_trait(player, "Stubborn"):
        player.attack += 1
        emit(state, "TRAIT", f"Stubborn: {player.name} gains 1 attack.", player=player.player_id, trait="Stubborn")


def on_turn_start(state: GameState, player: PlayerState) -> None:
    if state.has_trait(player, "Prepared"):
        drawn = draw_cards(state, player, 1)
        emit(state, "TRAIT", f"Prepared: {player.name} draws {drawn}.", player=player.player_id, trait="Prepared")


def on_turn_end(state: GameState, player: PlayerState) -> None:
    if state.has_trait(player, "Hopeful") and player.attack == 0:
        player.influence += 1
        emit(state, "TRAIT", f"Hopeful: {player.name} gains 1 influence.", player=player.player_id, trait="Hopeful")


def on_discard(state: GameState, player: PlayerState) -> None:
    if state.has_trait(player, "Quirky") and _once(player, "quirky_draw"):
        drawn = draw_cards(state, player, 1)
        emit(state, "TRAIT", f"Quirky: {player.name} draws {drawn}.", player=player.player_id, trait="Quirky")
