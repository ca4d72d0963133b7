from __future__ import annotations


from .actions import Action
from .state import GameState, PlayerState, VillainInstance
from .types import CardDefinition, CharacterBuild, LocationDefinition, VillainDefinition


def action_to_dict(a: Action) -> dict[str, object]:
    d: dict[str, object] = {"type": type(a).__name__}
    for k, v in vars(a).items():
        d[k] = _build_to_dict(v) if isinstance(v, CharacterBuild) else v
    return d


def _build_to_dict(b: CharacterBuild | None) -> dict[str, object] | None:
    if b is None:
        return None
    return {
        "archetype": b.archetype,
        "display_name": b.display_name,
        "selected_trait_ids": list(b.selected_trait_ids),
    }


def _card_to_dict(c: CardDefinition) -> dict[str, object]:
    d: dict[str, object] = {
        "id": c.id,
        "name": c.name,
        "type": c.type,
        "cost": c.cost,
        "text": c.text,
        "image_key": c.image_key,
    }
    if c.effect.note:
        d["note"] = c.effect.note
    if isinstance(c, VillainDefinition):
        d["max_health"] = c.max_health
    if isinstance(c, LocationDefinition):
        d["control_track_length"] = c.control_track_length
    return d


def _villain_to_dict(v: VillainInstance) -> dict[str, object]:
    return {"card_id": v.card_id, "max_health": v.max_health, "health": v.health}


def _player_to_dict(p: PlayerState) -> dict[str, object]:
    return {
        "player_id": p.player_id,
        "name": p.name,
        "max_health": p.max_health,
        "health": p.health,
        "influence": p.influence,
        "attack": p.attack,
        "library": list(p.library),
        "hand": list(p.hand),
        "discard": list(p.discard),
        "in_play": list(p.in_play),
        "build": _build_to_dict(p.build),
        "turn_flags": sorted(p.turn_flags),
        "turn_counters": dict(sorted(p.turn_counters.items())),
    }


def snapshot(state: GameState) -> dict[str, object]:
    """Return a JSON-serializable canonical snapshot of the full game state."""
    return {
        "room_code": state.room_code,
        "phase": state.phase,
        "solo_controller_id": state.solo_controller_id,
        "active_index": state.active_index,
        "players": [_player_to_dict(p) for p in state.players],
        "supply": list(state.supply),
        "dark_arts_deck": list(state.dark_arts_deck),
        "villain_deck": list(state.villain_deck),
        "active_villains": [_villain_to_dict(v) for v in state.active_villains],
        "active_location_id": state.active_location_id,
        "location_control": state.location_control,
        "cards": {str(cid): _card_to_dict(c) for cid, c in state.cards.cards.items()},
        "log": list(state.log),
    }
