from __future__ import annotations

import random
from dataclasses import dataclass, field, replace
from threading import Lock
from typing import Callable, Sequence

from spellbattle.engine.actions import Action, EndTurnAction
from spellbattle.engine.game import add_player, create_new_game, create_solo_game, step
from spellbattle.engine.serialize import action_to_dict, snapshot
from spellbattle.engine.state import GameConfig, GameState, StepResult
from spellbattle.engine.types import CardDatabase, TraitRegistry
from spellbattle.services.assets import ImageAssetService
from spellbattle.services.telemetry import TelemetryService

ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH = 5

Broadcast = Callable[[str, dict[str, object]], None]


class RoomError(RuntimeError):
    pass


class RoomNotFoundError(RoomError):
    def __init__(self, code: str) -> None:
        super().__init__("Room not found")
        self.code = code


class RoomFullError(RoomError):
    def __init__(self, code: str, limit: int) -> None:
        super().__init__(f"Room is full (max {limit} players).")
        self.code = code
        self.limit = limit


class NotInRoomError(RoomError):
    def __init__(self, connection_id: str) -> None:
        super().__init__("Not in a room")
        self.connection_id = connection_id


@dataclass
class Room:
    """One game plus the lock that serializes every command against it."""

    state: GameState
    lock: Lock = field(default_factory=Lock)


class RoomService:
    """Transport-side registry of live rooms.

    The engine assumes a single writer per room; every mutation here runs
    under that room's lock. The full snapshot is handed to ``broadcast``
    after each accepted command. A connection may only act for the seat it
    owns (or, in a solo room, for the seats its controller owns).
    """

    def __init__(
        self,
        cards: CardDatabase,
        traits: TraitRegistry,
        config: GameConfig | None = None,
        telemetry: TelemetryService | None = None,
        broadcast: Broadcast | None = None,
        assets: ImageAssetService | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._cards = cards
        self._traits = traits
        self._config = config or GameConfig()
        self._telemetry = telemetry
        self._broadcast = broadcast
        self._assets = assets or ImageAssetService()
        self._rng = rng or random.Random()
        self._rooms: dict[str, Room] = {}
        self._connection_to_room: dict[str, str] = {}
        self._registry_lock = Lock()

    # -- registry ---------------------------------------------------------

    def _generate_code(self) -> str:
        while True:
            code = "".join(self._rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
            if code not in self._rooms:
                return code

    def _register(self, state: GameState, connection_id: str) -> Room:
        room = Room(state=state)
        self._rooms[state.room_code] = room
        self._connection_to_room[connection_id] = state.room_code
        return room

    def _get(self, code: str) -> Room:
        room = self._rooms.get(code)
        if room is None:
            raise RoomNotFoundError(code)
        return room

    def room_codes(self) -> list[str]:
        with self._registry_lock:
            return sorted(self._rooms)

    def state_of(self, code: str) -> GameState:
        with self._registry_lock:
            return self._get(code).state

    # -- lifecycle --------------------------------------------------------

    def create_room(self, connection_id: str, player_name: str) -> str:
        with self._registry_lock:
            code = self._generate_code()
            state = create_new_game(self._cards, self._traits, code, config=self._config)
            # seated before the room becomes visible to other connections
            add_player(state, connection_id, player_name)
            room = self._register(state, connection_id)
        with room.lock:
            self._record("room_created", {"connection": connection_id, "solo": False}, code)
            self._publish(room)
        return code

    def create_solo_room(self, connection_id: str, names: Sequence[str]) -> str:
        with self._registry_lock:
            code = self._generate_code()
            state = create_solo_game(
                self._cards, self._traits, code, connection_id, names, config=self._config
            )
            room = self._register(state, connection_id)
        with room.lock:
            self._record("room_created", {"connection": connection_id, "solo": True, "seats": len(state.players)}, code)
            self._publish(room)
        return code

    def join_room(self, code: str, connection_id: str, player_name: str) -> None:
        with self._registry_lock:
            room = self._get(code)
        with room.lock:
            if len(room.state.players) >= self._config.max_players:
                raise RoomFullError(code, self._config.max_players)
            with self._registry_lock:
                self._connection_to_room[connection_id] = code
            player = add_player(room.state, connection_id, player_name)
            self._record("room_joined", {"connection": connection_id, "seated": player is not None}, code)
            self._publish(room)

    def attach(self, code: str, connection_id: str) -> dict[str, object]:
        with self._registry_lock:
            room = self._get(code)
            self._connection_to_room[connection_id] = code
        with room.lock:
            return self._payload(room.state)

    def disconnect(self, connection_id: str) -> None:
        with self._registry_lock:
            self._connection_to_room.pop(connection_id, None)

    # -- commands ---------------------------------------------------------

    def dispatch(self, connection_id: str, action: Action) -> StepResult:
        with self._registry_lock:
            code = self._connection_to_room.get(connection_id)
            if code is None:
                raise NotInRoomError(connection_id)
            room = self._get(code)
        with room.lock:
            was_completed = room.state.phase == "Completed"
            bound = _bind_actor(room.state, connection_id, action)
            if bound is None:
                result = StepResult(ok=False, events=[], error="Not your seat.")
            else:
                action = bound
                result = step(room.state, action)
            self._record(
                "command",
                {"connection": connection_id, "action": action_to_dict(action), "ok": result.ok, "error": result.error},
                code,
            )
            if result.ok:
                if not was_completed and room.state.phase == "Completed":
                    outcome = next(
                        (e.get("result") for e in reversed(result.events) if e.get("type") == "GAME_ENDED"),
                        None,
                    )
                    self._record("game_completed", {"result": outcome}, code)
                self._publish(room)
        return result

    # -- output -----------------------------------------------------------

    def _payload(self, state: GameState) -> dict[str, object]:
        payload = snapshot(state)
        payload["images"] = {
            str(cid): self._assets.url_for(card.image_key) for cid, card in state.cards.cards.items()
        }
        return payload

    def _publish(self, room: Room) -> None:
        if self._broadcast is not None:
            self._broadcast(room.state.room_code, self._payload(room.state))

    def _record(self, event_type: str, payload: dict[str, object], code: str) -> None:
        if self._telemetry is not None:
            self._telemetry.log(event_type, payload, room=code)


def _bind_actor(state: GameState, connection_id: str, action: Action) -> Action | None:
    """Tie the acting seat to the sending connection.

    A turn end with no seat named speaks for the connection itself. Returns
    None when the connection does not own the seat named in the action.
    """
    if isinstance(action, EndTurnAction) and action.player_id is None:
        action = replace(action, player_id=connection_id)
    if not state.controls(connection_id, action.player_id):  # type: ignore[arg-type]
        return None
    return action
