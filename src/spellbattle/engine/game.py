from __future__ import annotations

import random
from collections.abc import Iterable, Sequence
from typing import Callable

from . import traits
from .actions import (
    Action,
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
from .state import (
    GameConfig,
    GameState,
    PlayerState,
    StepResult,
    VillainInstance,
    damage_player,
    draw_cards,
    emit,
    heal_player,
    shuffle,
    solo_seat_id,
)
from .types import (
    AttackDelta,
    CardDatabase,
    CardEffect,
    CharacterBuild,
    ControlDelta,
    DrawDelta,
    HealDelta,
    InfluenceDelta,
    TraitRegistry,
    VillainDefinition,
)


def _reject(msg: str) -> StepResult:
    return StepResult(ok=False, events=[], error=msg)


def _accept(state: GameState, mark: int) -> StepResult:
    return StepResult(ok=True, events=state.event_log[mark:])


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def create_new_game(
    cards: CardDatabase,
    traits_registry: TraitRegistry,
    room_code: str,
    config: GameConfig | None = None,
    rng_factory: Callable[[], random.Random] | None = None,
) -> GameState:
    """Build a fresh room in the Lobby phase.

    Content selection is deterministic (catalog order); only shuffles and
    market restocks draw on ``rng_factory``.
    """
    cfg = config or GameConfig()
    state = GameState(room_code=room_code, cards=cards, traits=traits_registry, config=cfg)
    if rng_factory is not None:
        state.rng_factory = rng_factory

    state.supply = cards.marketable_ids()[: cfg.supply_size]

    locations = cards.location_ids()
    state.active_location_id = locations[0] if locations else None

    villain_ids = cards.villain_ids()
    for vid in villain_ids[: cfg.villain_count]:
        vdef = cards.get(vid)
        assert isinstance(vdef, VillainDefinition)
        state.active_villains.append(
            VillainInstance(card_id=vid, max_health=vdef.max_health, health=vdef.max_health)
        )
    # top = end, so the next unseen villain sits last
    state.villain_deck = list(reversed(villain_ids[cfg.villain_count :]))

    _refill_dark_arts(state)
    emit(state, "GAME_CREATED", f"Room {room_code} created.", room=room_code)
    return state


def create_solo_game(
    cards: CardDatabase,
    traits_registry: TraitRegistry,
    room_code: str,
    controller_id: str,
    names: Sequence[str],
    config: GameConfig | None = None,
    rng_factory: Callable[[], random.Random] | None = None,
) -> GameState:
    """One connection controlling several seats, cycling turns among them."""
    state = create_new_game(cards, traits_registry, room_code, config=config, rng_factory=rng_factory)
    state.solo_controller_id = controller_id
    for i, name in enumerate(names[: state.config.max_players]):
        add_player(state, solo_seat_id(controller_id, i + 1), name)
    return state


def _refill_dark_arts(state: GameState) -> None:
    ids = state.cards.dark_arts_ids()
    if not ids:
        return
    state.dark_arts_deck = [ids[i % len(ids)] for i in range(state.config.dark_arts_stack_size)]


def add_player(state: GameState, player_id: str, name: str) -> PlayerState | None:
    if state.phase not in ("Lobby", "CharacterCreation"):
        return None
    if state.player(player_id) is not None:
        return None
    cfg = state.config
    influence = state.cards.find_by_name(cfg.starter_influence_card)
    attack = state.cards.find_by_name(cfg.starter_attack_card)

    player = PlayerState(
        player_id=player_id,
        name=name,
        max_health=cfg.starting_health,
        health=cfg.starting_health,
    )
    player.library.extend([influence.id] * cfg.starter_influence_count)
    player.library.extend([attack.id] * cfg.starter_attack_count)
    shuffle(state, player.library)
    draw_cards(state, player, cfg.hand_size)
    state.players.append(player)
    emit(state, "PLAYER_JOINED", f"{name} joined the room.", player=player_id)
    return player


def start_game(state: GameState) -> StepResult:
    if state.phase != "Lobby":
        return _reject("Game already started.")
    if not state.players:
        return _reject("No players.")
    mark = len(state.event_log)
    state.phase = "CharacterCreation"
    state.active_index = 0
    emit(state, "PHASE_CHANGED", "Game started. Proceed to character creation.", phase=state.phase)
    return _accept(state, mark)


def confirm_character(state: GameState, player_id: str, build: CharacterBuild) -> StepResult:
    if state.phase != "CharacterCreation":
        return _reject("Not in character creation.")
    player = state.player(player_id)
    if player is None and state.is_solo and player_id == state.solo_controller_id:
        player = next((p for p in state.players if not p.is_ready), None)
    if player is None:
        return _reject("Unknown player.")

    known = state.traits.trait_ids(build.archetype)
    if not known:
        return _reject("Unknown archetype.")
    if not set(build.selected_trait_ids) <= known:
        return _reject("Unknown trait.")

    mark = len(state.event_log)
    player.build = build
    if build.display_name:
        player.name = build.display_name
    emit(
        state,
        "CHARACTER_CONFIRMED",
        f"{player.name} chose {build.archetype}.",
        player=player.player_id,
        archetype=build.archetype,
    )

    if all(p.is_ready for p in state.players):
        state.phase = "InProgress"
        state.active_index = 0
        emit(state, "PHASE_CHANGED", "All heroes ready. Let the battle begin!", phase=state.phase)
        start_turn(state)
    return _accept(state, mark)


# ---------------------------------------------------------------------------
# Effect resolution
# ---------------------------------------------------------------------------


def apply_effect(state: GameState, player: PlayerState, effect: CardEffect, heal_bonus: int = 0) -> None:
    """Apply resource deltas in order, then the direct draw count.

    The two draw sources are cumulative.
    """
    for delta in effect.resources:
        if isinstance(delta, InfluenceDelta):
            player.influence += delta.amount
        elif isinstance(delta, AttackDelta):
            player.attack += delta.amount
        elif isinstance(delta, HealDelta):
            amount = delta.amount + heal_bonus if delta.amount > 0 else delta.amount
            heal_player(state, player, amount)
        elif isinstance(delta, DrawDelta):
            draw_cards(state, player, delta.amount)
        elif isinstance(delta, ControlDelta):
            _advance_control(state, delta.amount)
    if effect.draw_cards > 0:
        draw_cards(state, player, effect.draw_cards)


def _advance_control(state: GameState, amount: int) -> None:
    loc = state.active_location
    if loc is None:
        return
    state.location_control = max(0, min(loc.control_track_length, state.location_control + amount))


# ---------------------------------------------------------------------------
# Turn cycle
# ---------------------------------------------------------------------------


def start_turn(state: GameState) -> None:
    if state.phase != "InProgress":
        return
    active = state.active_player
    assert active is not None
    cfg = state.config

    # Dark Arts hits everyone, whoever's turn it is
    if not state.dark_arts_deck:
        _refill_dark_arts(state)
    da_name = "Dark Arts"
    if state.dark_arts_deck:
        da_name = state.cards.get(state.dark_arts_deck.pop()).name
    emit(
        state,
        "DARK_ARTS",
        f"{da_name}: all heroes take {cfg.dark_arts_damage} damage.",
        card=da_name,
        amount=cfg.dark_arts_damage,
    )
    for p in state.players:
        dealt = damage_player(state, p, cfg.dark_arts_damage)
        traits.on_dark_arts(state, p, dealt)

    loc = state.active_location
    if loc is not None:
        _advance_control(state, cfg.dark_arts_control)
        emit(
            state,
            "CONTROL_ADVANCED",
            f"{loc.name} control is {state.location_control}/{loc.control_track_length}.",
            control=state.location_control,
        )

    strikers = [v for v in state.active_villains if v.alive]
    if strikers:
        dealt = damage_player(state, active, cfg.villain_strike_damage * len(strikers))
        emit(
            state,
            "VILLAIN_STRIKE",
            f"Villains strike {active.name} for {dealt}.",
            player=active.player_id,
            amount=dealt,
        )

    emit(state, "TURN_STARTED", f"{active.name}'s turn.", player=active.player_id)
    traits.on_turn_start(state, active)
    evaluate_outcome(state)


def evaluate_outcome(state: GameState) -> bool:
    """Move to Completed on victory or defeat. Victory is checked first."""
    if state.phase != "InProgress":
        return state.phase == "Completed"
    if state.active_villains and all(v.health <= 0 for v in state.active_villains):
        state.phase = "Completed"
        emit(state, "GAME_ENDED", "All villains defeated. The heroes win!", result="victory")
        return True
    loc = state.active_location
    if loc is not None and state.location_control >= loc.control_track_length:
        state.phase = "Completed"
        emit(state, "GAME_ENDED", f"{loc.name} has fallen. The heroes lose.", result="defeat")
        return True
    return False


def _resolve_actor(state: GameState, player_id: str) -> PlayerState | None:
    player = state.player(player_id)
    if player is None and state.is_solo and player_id == state.solo_controller_id:
        return state.active_player
    return player


def _turn_actor(state: GameState, player_id: str) -> PlayerState | StepResult:
    if state.phase != "InProgress":
        return _reject("Game is not in progress.")
    player = _resolve_actor(state, player_id)
    if player is None:
        return _reject("Unknown player.")
    if player is not state.active_player:
        return _reject("Not your turn.")
    return player


def end_turn(state: GameState, player_id: str | None = None) -> StepResult:
    if state.phase != "InProgress":
        return _reject("Game is not in progress.")
    if player_id is not None:
        actor = _turn_actor(state, player_id)
        if isinstance(actor, StepResult):
            return actor
    p = state.active_player
    assert p is not None
    mark = len(state.event_log)

    traits.on_turn_end(state, p)

    p.discard.extend(p.hand)
    p.discard.extend(p.in_play)
    p.hand.clear()
    p.in_play.clear()
    p.influence = 0
    p.attack = 0
    for each in state.players:
        each.reset_turn_scope()

    draw_cards(state, p, state.config.hand_size)
    emit(state, "TURN_ENDED", f"{p.name} ends their turn.", player=p.player_id)

    state.active_index = (state.active_index + 1) % len(state.players)
    start_turn(state)
    return _accept(state, mark)


# ---------------------------------------------------------------------------
# Player actions
# ---------------------------------------------------------------------------


def play_card(state: GameState, player_id: str, card_id: int) -> StepResult:
    actor = _turn_actor(state, player_id)
    if isinstance(actor, StepResult):
        return actor
    if card_id not in actor.hand:
        return _reject("Card not in hand.")
    mark = len(state.event_log)
    card = state.cards.get(card_id)
    actor.hand.remove(card_id)
    actor.in_play.append(card_id)
    emit(state, "CARD_PLAYED", f"{actor.name} played {card.name}.", player=actor.player_id, card_id=card_id)
    apply_effect(state, actor, card.effect, heal_bonus=traits.heal_bonus(state, actor))
    traits.on_card_played(state, actor, card)
    return _accept(state, mark)


def buy_card(state: GameState, player_id: str, card_id: int) -> StepResult:
    actor = _turn_actor(state, player_id)
    if isinstance(actor, StepResult):
        return actor
    if card_id not in state.supply:
        return _reject("Card not in supply.")
    card = state.cards.get(card_id)
    cost, discounted = traits.effective_cost(state, actor, card)
    if actor.influence < cost:
        return _reject("Not enough influence.")

    mark = len(state.event_log)
    actor.influence -= cost
    state.supply.remove(card_id)
    actor.discard.append(card_id)
    emit(
        state,
        "CARD_BOUGHT",
        f"{actor.name} bought {card.name}.",
        player=actor.player_id,
        card_id=card_id,
        cost=cost,
    )
    _restock_supply(state)
    traits.on_card_bought(state, actor, card, discounted)
    return _accept(state, mark)


def _restock_supply(state: GameState) -> None:
    market = state.cards.marketable_ids()
    if not market:
        return
    rng = state.rng_factory()
    new_id = rng.choice(market)
    state.supply.append(new_id)
    emit(state, "SUPPLY_RESTOCKED", f"{state.cards.get(new_id).name} enters the market.", card_id=new_id)


def attack_villain(state: GameState, player_id: str, villain_id: int, amount: int) -> StepResult:
    actor = _turn_actor(state, player_id)
    if isinstance(actor, StepResult):
        return actor
    if amount <= 0 or amount > actor.attack:
        return _reject("Not enough attack.")
    villain = state.villain(villain_id)
    if villain is None or not villain.alive:
        return _reject("Invalid villain.")

    mark = len(state.event_log)
    name = state.cards.get(villain_id).name
    actor.attack -= amount
    villain.health = max(0, villain.health - amount)
    emit(
        state,
        "VILLAIN_DAMAGED",
        f"{actor.name} deals {amount} to {name}.",
        player=actor.player_id,
        villain_id=villain_id,
        amount=amount,
    )
    if villain.health == 0:
        emit(state, "VILLAIN_DEFEATED", f"{name} is defeated!", villain_id=villain_id)
        traits.on_villain_defeated(state, actor)
        evaluate_outcome(state)
    return _accept(state, mark)


def use_mentor(state: GameState, player_id: str, target_player_id: str) -> StepResult:
    actor = _turn_actor(state, player_id)
    if isinstance(actor, StepResult):
        return actor
    if not state.has_trait(actor, "Mentor") or "mentor_used" in actor.turn_flags:
        return _reject("Mentor unavailable.")
    target = state.player(target_player_id)
    if target is None or target is actor:
        return _reject("Invalid target.")

    mark = len(state.event_log)
    actor.turn_flags.add("mentor_used")
    drawn = draw_cards(state, target, 1)
    emit(
        state,
        "TRAIT",
        f"Mentor: {actor.name} helps {target.name} draw {drawn}.",
        player=actor.player_id,
        target=target.player_id,
        trait="Mentor",
    )
    return _accept(state, mark)


def use_swift_discard(state: GameState, player_id: str, card_id: int) -> StepResult:
    actor = _turn_actor(state, player_id)
    if isinstance(actor, StepResult):
        return actor
    if not state.has_trait(actor, "Swift") or "swift_used" in actor.turn_flags:
        return _reject("Swift unavailable.")
    if card_id not in actor.hand:
        return _reject("Card not in hand.")

    mark = len(state.event_log)
    actor.turn_flags.add("swift_used")
    actor.hand.remove(card_id)
    actor.discard.append(card_id)
    drawn = draw_cards(state, actor, 1)
    emit(
        state,
        "TRAIT",
        f"Swift: {actor.name} discards {state.cards.get(card_id).name} and draws {drawn}.",
        player=actor.player_id,
        card_id=card_id,
        trait="Swift",
    )
    traits.on_discard(state, actor)
    return _accept(state, mark)


def use_insight(state: GameState, player_id: str, discard: bool) -> StepResult:
    actor = _turn_actor(state, player_id)
    if isinstance(actor, StepResult):
        return actor
    if not state.has_trait(actor, "Insightful") or "insight_used" in actor.turn_flags:
        return _reject("Insight unavailable.")
    if not actor.library:
        return _reject("Library is empty.")

    mark = len(state.event_log)
    actor.turn_flags.add("insight_used")
    top = actor.library[-1]
    name = state.cards.get(top).name
    emit(state, "TRAIT", f"Insightful: {actor.name} reveals {name}.", player=actor.player_id, card_id=top, trait="Insightful")
    if discard:
        actor.discard.append(actor.library.pop())
        emit(state, "CARD_DISCARDED", f"{actor.name} discards {name}.", player=actor.player_id, card_id=top)
        traits.on_discard(state, actor)
    return _accept(state, mark)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def step(state: GameState, action: Action) -> StepResult:
    """Apply a single command to the game state, in place."""
    if state.phase == "Completed":
        return _reject("Game already ended.")

    if isinstance(action, StartGameAction):
        if _resolve_actor(state, action.player_id) is None:
            return _reject("Unknown player.")
        return start_game(state)
    if isinstance(action, ConfirmCharacterAction):
        return confirm_character(state, action.player_id, action.build)
    if isinstance(action, PlayCardAction):
        return play_card(state, action.player_id, action.card_id)
    if isinstance(action, BuyCardAction):
        return buy_card(state, action.player_id, action.card_id)
    if isinstance(action, EndTurnAction):
        return end_turn(state, action.player_id)
    if isinstance(action, AttackVillainAction):
        return attack_villain(state, action.player_id, action.villain_id, action.amount)
    if isinstance(action, UseMentorAction):
        return use_mentor(state, action.player_id, action.target_player_id)
    if isinstance(action, UseSwiftDiscardAction):
        return use_swift_discard(state, action.player_id, action.card_id)
    if isinstance(action, UseInsightAction):
        return use_insight(state, action.player_id, action.discard)
    return _reject("Unknown action.")


def replay(state: GameState, actions: Iterable[Action]) -> GameState:
    for a in actions:
        step(state, a)
        if state.phase == "Completed":
            break
    return state
