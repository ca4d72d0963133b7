from __future__ import annotations

import json
from pathlib import Path

import pytest

from spellbattle.paths import get_paths
from spellbattle.services.content import ContentError, ContentService


def test_content_schemas_validate() -> None:
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    content.validate_all()


def _copy_content(tmp_path: Path) -> Path:
    paths = get_paths()
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    for name in ("cards.json", "traits.json"):
        (data_dir / name).write_text((paths.data_dir / name).read_text(encoding="utf-8"), encoding="utf-8")
    return data_dir


def test_card_ids_are_assigned_in_file_order() -> None:
    paths = get_paths()
    cards = ContentService(paths.data_dir, paths.schema_dir).load_cards_db()
    assert cards.get(1).name == "Alohomora"
    assert list(cards.all_ids()) == list(range(1, len(cards.cards) + 1))
    with pytest.raises(KeyError):
        cards.get(0)


def test_villain_without_health_is_rejected(tmp_path: Path) -> None:
    data_dir = _copy_content(tmp_path)
    raw = json.loads((data_dir / "cards.json").read_text(encoding="utf-8"))
    for card in raw["cards"]:
        if card["type"] == "Villain":
            del card["max_health"]
    (data_dir / "cards.json").write_text(json.dumps(raw), encoding="utf-8")

    content = ContentService(data_dir, get_paths().schema_dir)
    with pytest.raises(ContentError, match="Schema validation failed"):
        content.load_cards_db()


def test_unknown_trait_name_is_rejected(tmp_path: Path) -> None:
    data_dir = _copy_content(tmp_path)
    raw = json.loads((data_dir / "traits.json").read_text(encoding="utf-8"))
    raw["archetypes"]["Harry"][0]["name"] = "Courageous"
    (data_dir / "traits.json").write_text(json.dumps(raw), encoding="utf-8")

    content = ContentService(data_dir, get_paths().schema_dir)
    with pytest.raises(ContentError):
        content.load_trait_registry()


def test_missing_file_is_a_content_error(tmp_path: Path) -> None:
    content = ContentService(tmp_path, get_paths().schema_dir)
    with pytest.raises(ContentError, match="Missing content file"):
        content.load_cards_db()


def test_trait_trees_are_tier_ordered() -> None:
    paths = get_paths()
    traits = ContentService(paths.data_dir, paths.schema_dir).load_trait_registry()
    assert len(traits.trees) == 6
    for tree in traits.trees.values():
        assert [t.tier for t in tree] == [1, 2, 3]
    assert [t.name for t in traits.tree("Luna")] == ["Quirky", "Insightful", "Hopeful"]
