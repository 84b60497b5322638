import threading
import time

import pytest

from zonk.services.games.errors import RoomNotFound
from zonk.services.games.registry import RoomRegistry
from zonk.services.games.session import GameSession


def _registry(tasks, codes=None, grace_sec=30):
    id_factory = None
    if codes is not None:
        it = iter(codes)
        id_factory = lambda: next(it)
    return RoomRegistry(
        grace_sec=grace_sec,
        id_factory=id_factory,
        start_background_task=tasks.start_background_task,
        sleep=tasks.sleep,
    )


def test_create_and_get(tasks):
    rooms = _registry(tasks, codes=['AAAAAA'])
    room_id = rooms.create(GameSession)
    assert room_id == 'AAAAAA'
    assert room_id in rooms
    assert len(rooms) == 1
    assert rooms.get(room_id).room_id == 'AAAAAA'


def test_create_skips_codes_in_use(tasks):
    rooms = _registry(tasks, codes=['AAAAAA', 'AAAAAA', 'BBBBBB'])
    assert rooms.create(GameSession) == 'AAAAAA'
    assert rooms.create(GameSession) == 'BBBBBB'


def test_default_codes_are_six_characters(tasks):
    rooms = _registry(tasks)
    room_id = rooms.create(GameSession)
    assert len(room_id) == 6
    assert room_id.isalnum() and room_id.upper() == room_id


def test_unknown_room(tasks):
    rooms = _registry(tasks)
    with pytest.raises(RoomNotFound):
        rooms.get('NOPE')
    with pytest.raises(RoomNotFound):
        rooms.with_room('NOPE', lambda s: None)


def test_with_room_returns_result(tasks):
    rooms = _registry(tasks)
    room_id = rooms.create(GameSession)
    assert rooms.with_room(room_id, lambda s: s.add_player('a', 'Alice'))
    assert rooms.with_room(room_id, lambda s: len(s.players)) == 1


def test_with_room_serialises_same_room(tasks):
    rooms = _registry(tasks)
    room_id = rooms.create(GameSession)
    inside = []
    overlaps = []

    def slow(session):
        inside.append(1)
        if len(inside) > 1:
            overlaps.append(True)
        time.sleep(0.01)
        inside.pop()

    threads = [threading.Thread(target=rooms.with_room, args=(room_id, slow)) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert overlaps == []


def test_different_rooms_do_not_block_each_other(tasks):
    rooms = _registry(tasks)
    first = rooms.create(GameSession)
    second = rooms.create(GameSession)
    entered = threading.Event()
    release = threading.Event()

    def hold(session):
        entered.set()
        release.wait(2)

    t = threading.Thread(target=rooms.with_room, args=(first, hold))
    t.start()
    assert entered.wait(2)
    # the first room is locked; the second one must still be usable
    assert rooms.with_room(second, lambda s: s.room_id) == second
    release.set()
    t.join()


def test_removal_after_grace(tasks):
    rooms = _registry(tasks)
    room_id = rooms.create(GameSession)
    rooms.schedule_removal(room_id)
    assert rooms.is_removal_pending(room_id)
    assert room_id in rooms
    assert tasks.run_all() == 1
    assert room_id not in rooms


def test_cancel_removal_keeps_room(tasks):
    rooms = _registry(tasks)
    room_id = rooms.create(GameSession)
    rooms.schedule_removal(room_id)
    assert rooms.cancel_removal(room_id)
    assert not rooms.cancel_removal(room_id)
    tasks.run_all()
    assert room_id in rooms


def test_removal_skipped_when_room_refilled(tasks):
    rooms = _registry(tasks)
    room_id = rooms.create(GameSession)
    rooms.schedule_removal(room_id)
    rooms.with_room(room_id, lambda s: s.add_player('a', 'Alice'))
    tasks.run_all()
    assert room_id in rooms
    assert not rooms.is_removal_pending(room_id)


def test_rescheduling_supersedes_older_timer(tasks):
    rooms = _registry(tasks)
    room_id = rooms.create(GameSession)
    rooms.schedule_removal(room_id)
    first = tasks.pending.pop(0)
    rooms.schedule_removal(room_id)
    target, args = first
    target(*args)
    assert room_id in rooms
    tasks.run_all()
    assert room_id not in rooms


def test_zero_grace_removes_immediately(tasks):
    rooms = _registry(tasks, grace_sec=0)
    room_id = rooms.create(GameSession)
    rooms.schedule_removal(room_id)
    assert room_id not in rooms
    assert tasks.pending == []


def test_removal_from_inside_room_action(tasks):
    rooms = _registry(tasks)
    room_id = rooms.create(GameSession)
    rooms.with_room(room_id, lambda s: s.add_player('a', 'Alice'))

    def leave(session):
        session.remove_player('a')
        rooms.schedule_removal(room_id)

    rooms.with_room(room_id, leave)
    assert rooms.is_removal_pending(room_id)
    tasks.run_all()
    assert room_id not in rooms


def test_with_room_after_removal_reports_not_found(tasks):
    rooms = _registry(tasks)
    room_id = rooms.create(GameSession)
    assert rooms.remove(room_id)
    assert not rooms.remove(room_id)
    with pytest.raises(RoomNotFound):
        rooms.with_room(room_id, lambda s: s)


def test_stats(tasks):
    rooms = _registry(tasks)
    first = rooms.create(GameSession)
    rooms.create(GameSession)
    rooms.with_room(first, lambda s: (s.add_player('a', 'a'), s.add_player('b', 'b')))
    assert rooms.stats() == {'rooms': 2, 'players': 2}


def test_default_background_runner_fires():
    rooms = RoomRegistry(grace_sec=0.01)
    room_id = rooms.create(GameSession)
    rooms.schedule_removal(room_id)
    deadline = time.time() + 2.0
    while room_id in rooms and time.time() < deadline:
        time.sleep(0.01)
    assert room_id not in rooms


def test_removal_pending_reads_under_room_lock(tasks):
    rooms = _registry(tasks)
    room_id = rooms.create(GameSession)
    holding = threading.Event()
    release = threading.Event()
    seen = []

    def hold(session):
        holding.set()
        release.wait(2)

    owner = threading.Thread(target=rooms.with_room, args=(room_id, hold))
    owner.start()
    assert holding.wait(2)
    reader = threading.Thread(target=lambda: seen.append(rooms.is_removal_pending(room_id)))
    reader.start()
    reader.join(0.1)
    assert reader.is_alive()
    assert seen == []

    release.set()
    owner.join(2)
    reader.join(2)
    assert seen == [False]
    # the owning thread can still ask
    assert rooms.with_room(room_id, lambda s: rooms.is_removal_pending(room_id)) is False
