from __future__ import annotations

import random

from spellbattle.engine.game import (
    add_player,
    attack_villain,
    buy_card,
    confirm_character,
    create_new_game,
    end_turn,
    play_card,
    start_game,
    use_insight,
    use_mentor,
    use_swift_discard,
)
from spellbattle.engine.types import CharacterBuild, Trait, TraitRegistry
from spellbattle.paths import get_paths
from spellbattle.services.content import ContentService

NEUTRAL = CharacterBuild("Ron", selected_trait_ids=("ron.loyalty",))


def _load_content():
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    return content.load_cards_db(), content.load_trait_registry()


def _game(*builds: CharacterBuild):
    cards, traits = _load_content()
    state = create_new_game(cards, traits, "TRAIT", rng_factory=lambda: random.Random(11))
    for i in range(len(builds)):
        add_player(state, f"p{i}", f"Hero {i}")
    start_game(state)
    for i, b in enumerate(builds):
        confirm_character(state, f"p{i}", b)
    assert state.phase == "InProgress"
    return state


def _build(archetype: str, *trait_ids: str) -> CharacterBuild:
    return CharacterBuild(archetype, selected_trait_ids=trait_ids)  # type: ignore[arg-type]


def _cid(state, name: str) -> int:
    return state.cards.find_by_name(name).id


def test_has_trait_needs_selection_not_just_archetype() -> None:
    state = _game(_build("Harry", "harry.mentor"), NEUTRAL)
    p0 = state.players[0]
    assert state.has_trait(p0, "Mentor")
    assert not state.has_trait(p0, "Courage")
    assert not state.has_trait(p0, "Loyalty")


def test_courage_only_on_first_card() -> None:
    state = _game(_build("Harry", "harry.courage"), NEUTRAL)
    p0 = state.players[0]
    a = _cid(state, "Alohomora")
    p0.hand = [a, a]
    play_card(state, "p0", a)
    play_card(state, "p0", a)
    assert p0.attack == 1
    assert p0.influence == 2


def test_scholar_caps_at_two_spells() -> None:
    state = _game(_build("Hermione", "hermione.scholar"), NEUTRAL)
    p0 = state.players[0]
    a = _cid(state, "Alohomora")
    p0.hand = [a, a, a]
    for _ in range(3):
        play_card(state, "p0", a)
    assert p0.influence == 3 + 2
    assert p0.turn_counters["Scholar"] == 2


def test_brilliant_first_spell_only() -> None:
    state = _game(_build("Hermione", "hermione.brilliant"), NEUTRAL)
    p0 = state.players[0]
    ally = _cid(state, "Ally")
    stupefy = _cid(state, "Stupefy")
    p0.hand = [ally, stupefy, stupefy]
    play_card(state, "p0", ally)
    assert p0.attack == 1  # Ally is not a Spell
    play_card(state, "p0", stupefy)
    play_card(state, "p0", stupefy)
    assert p0.attack == 1 + 2 + 1


def test_herbology_amplifies_heals() -> None:
    state = _game(_build("Neville", "neville.herbology"), NEUTRAL)
    p0 = state.players[0]
    kit = _cid(state, "Potion Kit")
    p0.health = 2
    p0.hand = [kit]
    play_card(state, "p0", kit)
    assert p0.health == 5


def test_leader_heals_most_wounded_other_hero() -> None:
    state = _game(_build("Neville", "neville.leader"), NEUTRAL, NEUTRAL)
    p0, p1, p2 = state.players
    p1.health = 6
    p2.health = 4
    ally = _cid(state, "Ally")
    p0.hand = [ally]
    play_card(state, "p0", ally)
    assert p2.health == 5
    assert p1.health == 6


def test_loyalty_rewards_other_heroes_for_allies() -> None:
    state = _game(NEUTRAL, NEUTRAL)
    p0, p1 = state.players
    ally = _cid(state, "Ally")
    p0.hand = [ally]
    play_card(state, "p0", ally)
    assert p1.influence == 1
    assert p0.influence == 1  # from the card, not from Loyalty


def test_collector_discount_once_per_turn() -> None:
    state = _game(_build("Ron", "ron.collector"), NEUTRAL)
    p0 = state.players[0]
    polish = _cid(state, "Wand Polish")
    state.supply.append(polish)
    p0.influence = 3
    assert buy_card(state, "p0", polish).ok
    assert p0.influence == 2
    assert buy_card(state, "p0", polish).ok
    assert p0.influence == 0


def test_collector_ignores_non_items() -> None:
    state = _game(_build("Ron", "ron.collector"), NEUTRAL)
    p0 = state.players[0]
    p0.influence = 2
    assert not buy_card(state, "p0", _cid(state, "Potion Kit")).ok
    assert "collector_discount" not in p0.turn_flags


def test_tactician_first_purchase_only() -> None:
    state = _game(_build("Ron", "ron.tactician"), NEUTRAL)
    p0 = state.players[0]
    p0.influence = 10
    a = _cid(state, "Alohomora")
    state.supply.append(a)
    buy_card(state, "p0", a)
    buy_card(state, "p0", a)
    assert p0.attack == 1


def test_bold_for_expensive_purchases() -> None:
    state = _game(_build("Ginny", "ginny.bold"), NEUTRAL)
    p0 = state.players[0]
    p0.influence = 10
    buy_card(state, "p0", _cid(state, "Expelliarmus"))
    buy_card(state, "p0", _cid(state, "Ally"))
    assert p0.attack == 1
    buy_card(state, "p0", _cid(state, "Charmed Focus"))
    assert p0.attack == 2


def test_inspiring_gives_everyone_influence_on_defeat() -> None:
    state = _game(_build("Ginny", "ginny.inspiring"), NEUTRAL)
    p0, p1 = state.players
    v = state.active_villains[0]
    v.health = 1
    p0.attack = 1
    attack_villain(state, "p0", v.card_id, 1)
    assert p0.influence == 1
    assert p1.influence == 1


def test_protector_and_stubborn_on_dark_arts() -> None:
    state = _game(_build("Harry", "harry.protector"), _build("Neville", "neville.stubborn"))
    p0, p1 = state.players
    # Protector: -1 Dark Arts, +1 heal, then 2 from villains
    assert p0.health == 8
    assert p1.health == 9
    assert p1.attack == 1


def test_prepared_draws_at_turn_start() -> None:
    state = _game(_build("Hermione", "hermione.prepared"), NEUTRAL)
    assert len(state.players[0].hand) == 6
    assert len(state.players[1].hand) == 5


def test_hopeful_influence_logged_before_discard() -> None:
    state = _game(_build("Luna", "luna.hopeful"), NEUTRAL)
    p0 = state.players[0]
    assert p0.attack == 0
    end_turn(state)
    hopeful = state.log.index("Hopeful: Hero 0 gains 1 influence.")
    ended = state.log.index("Hero 0 ends their turn.")
    assert hopeful < ended
    assert sum(1 for line in state.log if line.startswith("Hopeful")) == 1
    assert p0.influence == 0


def test_hopeful_needs_zero_attack() -> None:
    state = _game(_build("Luna", "luna.hopeful"), NEUTRAL)
    state.players[0].attack = 1
    end_turn(state)
    assert not any(line.startswith("Hopeful") for line in state.log)


def test_mentor_once_per_turn() -> None:
    state = _game(_build("Harry", "harry.mentor"), NEUTRAL)
    p1 = state.players[1]
    before = len(p1.hand)
    assert not use_mentor(state, "p0", "p0").ok
    assert use_mentor(state, "p0", "p1").ok
    assert len(p1.hand) == before + 1
    assert not use_mentor(state, "p0", "p1").ok
    assert len(p1.hand) == before + 1


def test_mentor_requires_trait() -> None:
    state = _game(NEUTRAL, NEUTRAL)
    assert not use_mentor(state, "p0", "p1").ok


def test_swift_discard_draws_once_per_turn() -> None:
    state = _game(_build("Ginny", "ginny.swift"), NEUTRAL)
    p0 = state.players[0]
    card = p0.hand[0]
    hand_size = len(p0.hand)
    discard_size = len(p0.discard)
    assert use_swift_discard(state, "p0", card).ok
    assert len(p0.hand) == hand_size
    assert len(p0.discard) == discard_size + 1
    assert not use_swift_discard(state, "p0", p0.hand[0]).ok


def test_swift_flag_clears_next_turn() -> None:
    state = _game(_build("Ginny", "ginny.swift"), NEUTRAL)
    use_swift_discard(state, "p0", state.players[0].hand[0])
    end_turn(state)
    end_turn(state)
    assert state.active_index == 0
    assert use_swift_discard(state, "p0", state.players[0].hand[0]).ok


def test_swift_discard_triggers_quirky_draw() -> None:
    cards, traits = _load_content()
    # a tree that offers both discard traits to one hero
    ginny = traits.tree("Ginny") + (Trait("ginny.quirky", "Quirky", "First discard each turn draws 1.", 1),)
    registry = TraitRegistry({**traits.trees, "Ginny": ginny})
    state = create_new_game(cards, registry, "TRAIT", rng_factory=lambda: random.Random(11))
    add_player(state, "p0", "Hero 0")
    add_player(state, "p1", "Hero 1")
    start_game(state)
    assert confirm_character(state, "p0", _build("Ginny", "ginny.swift", "ginny.quirky")).ok
    confirm_character(state, "p1", NEUTRAL)

    p0 = state.players[0]
    a = _cid(state, "Alohomora")
    s = _cid(state, "Stupefy")
    p0.library = [a, a, s, a]
    p0.hand = [s]
    assert use_swift_discard(state, "p0", s).ok
    assert p0.discard[-1] == s
    assert p0.hand == [a, s]  # Swift, then Quirky
    assert p0.library == [a, a]
    quirky = [e for e in state.event_log if e.get("trait") == "Quirky"]
    assert len(quirky) == 1

    end_turn(state)
    end_turn(state)
    assert use_swift_discard(state, "p0", p0.hand[0]).ok
    quirky = [e for e in state.event_log if e.get("trait") == "Quirky"]
    assert len(quirky) == 2


def test_insight_discard_triggers_quirky_draw() -> None:
    state = _game(_build("Luna", "luna.quirky", "luna.insightful"), NEUTRAL)
    p0 = state.players[0]
    a = _cid(state, "Alohomora")
    s = _cid(state, "Stupefy")
    p0.library = [a, s]
    p0.hand = []
    assert use_insight(state, "p0", discard=True).ok
    assert p0.discard[-1] == s
    assert p0.hand == [a]  # Quirky
    assert not use_insight(state, "p0", discard=False).ok


def test_insight_can_leave_card_on_top() -> None:
    state = _game(_build("Luna", "luna.insightful"), NEUTRAL)
    p0 = state.players[0]
    top = p0.library[-1]
    assert use_insight(state, "p0", discard=False).ok
    assert p0.library[-1] == top
