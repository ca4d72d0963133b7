from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping, get_args

from jsonschema import Draft202012Validator

from spellbattle.engine.types import (
    Archetype,
    AttackDelta,
    CardDatabase,
    CardDefinition,
    CardEffect,
    ControlDelta,
    DrawDelta,
    HealDelta,
    InfluenceDelta,
    LocationDefinition,
    ResourceDelta,
    Trait,
    TraitName,
    TraitRegistry,
    VillainDefinition,
)


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.path))
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int) or isinstance(v, bool):
        raise ContentError(f"Expected int for {key}")
    return v


def _optional_str(obj: Mapping[str, object], key: str) -> str | None:
    v = obj.get(key)
    if v is None:
        return None
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _parse_delta(raw: Mapping[str, object]) -> ResourceDelta:
    t = raw.get("type")
    amount = _require_int(raw, "amount")
    if t == "influence":
        return InfluenceDelta(type="influence", amount=amount)
    if t == "attack":
        return AttackDelta(type="attack", amount=amount)
    if t == "heal":
        return HealDelta(type="heal", amount=amount)
    if t == "card_draw":
        return DrawDelta(type="card_draw", amount=amount)
    if t == "control_progress":
        return ControlDelta(type="control_progress", amount=amount)
    raise ContentError(f"Unknown resource type: {t}")


def _parse_effect(raw: object) -> CardEffect:
    if raw is None:
        return CardEffect()
    if not isinstance(raw, dict):
        raise ContentError("effect must be an object")
    deltas: list[ResourceDelta] = []
    for d in raw.get("resources", []):
        if isinstance(d, dict):
            deltas.append(_parse_delta(d))
    draw = raw.get("draw_cards", 0)
    if not isinstance(draw, int):
        raise ContentError("Expected int for draw_cards")
    return CardEffect(resources=tuple(deltas), draw_cards=draw, note=_optional_str(raw, "note"))


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def _load_validated(self, name: str) -> dict[str, object]:
        path = self._data_dir / f"{name}.json"
        raw = _load_json(path)
        schema = _load_json(self._schema_dir / f"{name}.schema.json")
        validate_json(raw, schema, context=str(path))
        if not isinstance(raw, dict):
            raise ContentError(f"{name}.json must be an object")
        return raw

    def load_cards_db(self) -> CardDatabase:
        raw = self._load_validated("cards")
        raw_cards = raw.get("cards")
        if not isinstance(raw_cards, list):
            raise ContentError("cards.json.cards must be a list")

        cards: dict[int, CardDefinition] = {}
        seen_names: set[str] = set()
        # ids are assigned by position, starting at 1
        for card_id, item in enumerate(raw_cards, start=1):
            if not isinstance(item, dict):
                raise ContentError(f"Card #{card_id} must be an object")
            name = _require_str(item, "name")
            if name in seen_names:
                raise ContentError(f"Duplicate card name: {name}")
            seen_names.add(name)
            ctype = _require_str(item, "type")
            common = dict(
                id=card_id,
                name=name,
                type=ctype,
                cost=_require_int(item, "cost"),
                text=_require_str(item, "text"),
                image_key=_require_str(item, "image_key"),
                effect=_parse_effect(item.get("effect")),
            )
            card: CardDefinition
            if ctype == "Villain":
                card = VillainDefinition(**common, max_health=_require_int(item, "max_health"))  # type: ignore[arg-type]
            elif ctype == "Location":
                card = LocationDefinition(
                    **common, control_track_length=_require_int(item, "control_track_length")  # type: ignore[arg-type]
                )
            else:
                card = CardDefinition(**common)  # type: ignore[arg-type]
            cards[card_id] = card
        return CardDatabase(cards=cards)

    def load_trait_registry(self) -> TraitRegistry:
        raw = self._load_validated("traits")
        raw_trees = raw.get("archetypes")
        if not isinstance(raw_trees, dict):
            raise ContentError("traits.json.archetypes must be an object")

        known_archetypes = set(get_args(Archetype))
        known_names = set(get_args(TraitName))
        seen_ids: set[str] = set()
        trees: dict[Archetype, tuple[Trait, ...]] = {}
        for archetype, lst in raw_trees.items():
            if archetype not in known_archetypes or not isinstance(lst, list):
                raise ContentError(f"Unknown archetype: {archetype}")
            out: list[Trait] = []
            for t in lst:
                if not isinstance(t, dict):
                    continue
                tid = _require_str(t, "id")
                name = _require_str(t, "name")
                if name not in known_names:
                    raise ContentError(f"Unknown trait name: {name}")
                if tid in seen_ids:
                    raise ContentError(f"Duplicate trait id: {tid}")
                seen_ids.add(tid)
                out.append(
                    Trait(
                        id=tid,
                        name=name,  # type: ignore[arg-type]
                        description=_require_str(t, "description"),
                        tier=_require_int(t, "tier"),
                    )
                )
            # tier order
            trees[archetype] = tuple(sorted(out, key=lambda tr: tr.tier))  # type: ignore[index]
        return TraitRegistry(trees=trees)

    def validate_all(self) -> None:
        # Load is validation (schema + parse)
        _ = self.load_cards_db()
        _ = self.load_trait_registry()
