import logging
import threading
import time
from typing import Callable, Dict, Optional

from zonk.models import generate_room_code
from zonk.services.games.errors import RoomNotFound


def _start_thread(target, *args):
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread


class _RoomEntry:
    __slots__ = ('session', 'lock', 'removal_deadline')

    def __init__(self, session):
        self.session = session
        # Reentrant so a room action can arm/cancel the removal timer itself
        self.lock = threading.RLock()
        self.removal_deadline: Optional[float] = None


class RoomRegistry:
    """Directory of live game sessions keyed by room code.

    - ``with_room`` is the only way to touch a session: it holds that
      room's lock for the duration of the call, so actions on one room
      never interleave while other rooms proceed independently.
    - The registry lock guards the code -> entry map only and is never
      held while waiting for a room lock.
    - Empty rooms are removed after a grace period unless someone joins
      before it elapses.
    """

    def __init__(
        self,
        grace_sec: float = 30.0,
        id_factory: Callable[[], str] = None,
        start_background_task: Callable = None,
        sleep: Callable[[float], None] = None,
        logger: logging.Logger = None,
    ):
        self.grace_sec = grace_sec
        self._id_factory = id_factory or generate_room_code
        self._start_background_task = start_background_task or _start_thread
        self._sleep = sleep or time.sleep
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._rooms: Dict[str, _RoomEntry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def __contains__(self, room_id) -> bool:
        with self._lock:
            return room_id in self._rooms

    def create(self, session_factory: Callable[[str], object]) -> str:
        """Register a new session and return its room code."""
        with self._lock:
            room_id = self._id_factory()
            while room_id in self._rooms:
                room_id = self._id_factory()
            self._rooms[room_id] = _RoomEntry(session_factory(room_id))
        self._logger.info(f"[room-create] room={room_id}")
        return room_id

    def _entry(self, room_id) -> _RoomEntry:
        with self._lock:
            entry = self._rooms.get(room_id)
        if entry is None:
            raise RoomNotFound(f'Room {room_id} not found')
        return entry

    def get(self, room_id):
        return self._entry(room_id).session

    def with_room(self, room_id, fn):
        """Run ``fn(session)`` with exclusive access to that room."""
        entry = self._entry(room_id)
        with entry.lock:
            # The room may have been removed while we waited for its lock
            with self._lock:
                current = self._rooms.get(room_id)
            if current is not entry:
                raise RoomNotFound(f'Room {room_id} not found')
            return fn(entry.session)

    def remove(self, room_id) -> bool:
        with self._lock:
            entry = self._rooms.pop(room_id, None)
        if entry is not None:
            self._logger.info(f"[room-remove] room={room_id}")
        return entry is not None

    def _discard(self, room_id, entry: _RoomEntry) -> None:
        with self._lock:
            if self._rooms.get(room_id) is entry:
                del self._rooms[room_id]
        self._logger.info(f"[room-remove] room={room_id}")

    def schedule_removal(self, room_id, after: float = None) -> None:
        """Remove the room once ``after`` seconds pass with nobody rejoining."""
        delay = self.grace_sec if after is None else after
        entry = self._entry(room_id)
        with entry.lock:
            if delay <= 0:
                self._discard(room_id, entry)
                return
            deadline = time.monotonic() + delay
            entry.removal_deadline = deadline
            self._logger.info(f"[removal-set] room={room_id} delay={delay}s")
        self._start_background_task(self._removal_worker, room_id, deadline, delay)

    def cancel_removal(self, room_id) -> bool:
        entry = self._entry(room_id)
        with entry.lock:
            if entry.removal_deadline is None:
                return False
            entry.removal_deadline = None
            self._logger.info(f"[removal-cancel] room={room_id}")
            return True

    def is_removal_pending(self, room_id) -> bool:
        entry = self._entry(room_id)
        with entry.lock:
            return entry.removal_deadline is not None

    def _removal_worker(self, room_id, deadline: float, delay: float) -> None:
        self._sleep(delay)
        try:
            entry = self._entry(room_id)
        except RoomNotFound:
            return
        with entry.lock:
            if entry.removal_deadline != deadline:
                self._logger.info(f"[removal-abort] room={room_id} timer superseded or cancelled")
                return
            if not entry.session.is_empty:
                entry.removal_deadline = None
                self._logger.info(f"[removal-abort] room={room_id} room no longer empty")
                return
            self._logger.info(f"[removal-fire] room={room_id}")
            self._discard(room_id, entry)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            sessions = [e.session for e in self._rooms.values()]
        return {
            'rooms': len(sessions),
            'players': sum(len(s.players) for s in sessions),
        }
