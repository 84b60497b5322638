import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from zonk.services.games.errors import GameError, RoomNotFound, ValidationError
from zonk.services.games.registry import RoomRegistry
from zonk.services.games.session import Event, GameRules, GameSession

MAX_CHAT_LENGTH = 500


def _normalize_room_id(data) -> str:
    room_id = (data or {}).get('room_id') if isinstance(data, dict) else data
    if not isinstance(room_id, str) or not room_id.strip():
        raise ValidationError('room_id is required')
    return room_id.strip().upper()


def _player_name(data):
    if isinstance(data, dict):
        return data.get('name')
    if isinstance(data, str):
        return data
    return None


def _die_index(data) -> int:
    index = data.get('index') if isinstance(data, dict) else None
    if isinstance(index, bool) or not isinstance(index, int):
        raise ValidationError('index must be an integer')
    return index


class ActionDispatcher:
    """Applies inbound client actions to rooms and publishes the results.

    ``channel`` delivers outbound messages and must provide
    ``send(sid, event, payload)``, ``broadcast(room_id, event, payload)``,
    ``join(sid, room_id)`` and ``leave(sid, room_id)``. Broadcasts always
    happen after the room lock has been released.
    """

    def __init__(self, rooms: RoomRegistry, channel, rules: GameRules = None, rng=None, logger=None):
        self.rooms = rooms
        self.channel = channel
        self.rules = rules or GameRules()
        # None lets each session use its own SystemRandom
        self.rng = rng
        self._logger = logger or logging.getLogger(__name__)
        self._memberships: Dict[str, str] = {}
        self._memberships_lock = threading.Lock()

    # ---- membership bookkeeping ----

    def room_of(self, sid) -> Optional[str]:
        with self._memberships_lock:
            return self._memberships.get(sid)

    def _set_room(self, sid, room_id) -> None:
        with self._memberships_lock:
            self._memberships[sid] = room_id

    def _clear_room(self, sid, room_id=None) -> Optional[str]:
        with self._memberships_lock:
            current = self._memberships.get(sid)
            if current is None or (room_id is not None and current != room_id):
                return None
            return self._memberships.pop(sid)

    # ---- plumbing ----

    def new_session(self, room_id) -> GameSession:
        return GameSession(room_id, rules=self.rules, rng=self.rng)

    def _apply(self, room_id, action) -> Tuple[List[Event], Dict[str, Any]]:
        """Run ``action(session)`` under the room lock; snapshot before releasing it."""
        def _run(session):
            events = action(session)
            return events, session.to_dict()
        return self.rooms.with_room(room_id, _run)

    def _publish(self, room_id, events: List[Event], state: Dict[str, Any]) -> None:
        for name, payload in events:
            self.channel.broadcast(room_id, name, payload)
        self.channel.broadcast(room_id, 'game_state', state)

    def _reject(self, sid, action_name, err: GameError) -> None:
        self._logger.info(f"[action-error] action={action_name} sid={sid} code={err.code} message={err.message}")
        self.channel.send(sid, 'error', err.to_dict())

    def dispatch(self, action_name, sid, data=None) -> bool:
        """Run one named action for ``sid``. Returns False when it was rejected."""
        handler = getattr(self, action_name, None)
        if action_name.startswith('_') or action_name not in self.ACTIONS or handler is None:
            self._reject(sid, action_name, ValidationError(f'Unknown action {action_name}'))
            return False
        try:
            handler(sid, data)
        except GameError as err:
            self._reject(sid, action_name, err)
            return False
        return True

    # ---- actions ----

    ACTIONS = (
        'create_room',
        'join_room',
        'start_game',
        'roll_dice',
        'toggle_hold',
        'bank_points',
        'leave_room',
        'send_chat',
    )

    def create_room(self, sid, data=None) -> str:
        name = _player_name(data)
        self._leave_current(sid)
        room_id = self.rooms.create(self.new_session)
        events, state = self._apply(room_id, lambda s: s.add_player(sid, name))
        self._set_room(sid, room_id)
        self.channel.join(sid, room_id)
        self.channel.send(sid, 'room_created', {'room_id': room_id})
        self._publish(room_id, events, state)
        return room_id

    def join_room(self, sid, data=None) -> str:
        room_id = _normalize_room_id(data)
        name = data.get('name') if isinstance(data, dict) else None
        previous = self.room_of(sid)

        def _join(session):
            events = session.add_player(sid, name)
            self.rooms.cancel_removal(room_id)
            return events

        # Seat first so a rejected join keeps the current seat
        events, state = self._apply(room_id, _join)
        if previous not in (None, room_id):
            self._leave_current(sid)
        self._set_room(sid, room_id)
        self.channel.join(sid, room_id)
        self.channel.send(sid, 'room_joined', {'room_id': room_id})
        self._logger.info(f"[room-join] room={room_id} sid={sid}")
        self._publish(room_id, events, state)
        return room_id

    def start_game(self, sid, data=None) -> None:
        room_id = _normalize_room_id(data)
        events, state = self._apply(room_id, lambda s: s.start(sid))
        self._logger.info(f"[game-start] room={room_id} players={len(state['players'])}")
        self._publish(room_id, events, state)

    def roll_dice(self, sid, data=None) -> None:
        room_id = _normalize_room_id(data)
        events, state = self._apply(room_id, lambda s: s.roll(sid))
        for name, payload in events:
            if name == 'zonk':
                self._logger.info(f"[zonk] room={room_id} player={sid} lost={payload['lost']} penalty={payload['penalty']}")
        self._publish(room_id, events, state)

    def toggle_hold(self, sid, data=None) -> None:
        room_id = _normalize_room_id(data)
        index = _die_index(data)
        events, state = self._apply(room_id, lambda s: s.toggle_hold(sid, index))
        self._publish(room_id, events, state)

    def bank_points(self, sid, data=None) -> None:
        room_id = _normalize_room_id(data)
        events, state = self._apply(room_id, lambda s: s.bank(sid))
        if state['status'] == 'finished':
            self._logger.info(f"[finish] room={room_id} winner={sid}")
        self._publish(room_id, events, state)

    def leave_room(self, sid, data=None) -> None:
        room_id = _normalize_room_id(data)
        self._remove(sid, room_id)
        self.channel.send(sid, 'room_left', {'room_id': room_id})

    def send_chat(self, sid, data=None) -> None:
        room_id = _normalize_room_id(data)
        message = data.get('message') if isinstance(data, dict) else None
        if not isinstance(message, str) or not message.strip():
            raise ValidationError('message is required')
        player = self.rooms.with_room(room_id, lambda s: s.find_player(sid))
        if player is None:
            raise ValidationError('You are not in this room')
        self.channel.broadcast(room_id, 'chat_message', {
            'player': player.name,
            'message': message.strip()[:MAX_CHAT_LENGTH],
        })

    def disconnect(self, sid) -> None:
        """Connection dropped: treated as leaving whatever room it sat in."""
        room_id = self.room_of(sid)
        if room_id is None:
            return
        try:
            self._remove(sid, room_id)
        except RoomNotFound:
            self._clear_room(sid, room_id)
            self._logger.info(f"[disconnect] sid={sid} room={room_id} already gone")

    def _leave_current(self, sid) -> None:
        room_id = self.room_of(sid)
        if room_id is None:
            return
        try:
            self._remove(sid, room_id)
        except RoomNotFound:
            self._clear_room(sid, room_id)

    def _remove(self, sid, room_id) -> None:
        def _leave(session):
            events = session.remove_player(sid)
            if session.is_empty:
                self.rooms.schedule_removal(room_id)
            return events

        events, state = self._apply(room_id, _leave)
        self._clear_room(sid, room_id)
        self.channel.leave(sid, room_id)
        self._logger.info(f"[room-leave] room={room_id} sid={sid} remaining={len(state['players'])}")
        self._publish(room_id, events, state)
