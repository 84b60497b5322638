import os
import sys
import pytest

# Ensure the backend root (containing the `zonk` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from zonk import create_app, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = ['*']
    WIN_SCORE = 1000
    MAX_PLAYERS = 4
    MIN_PLAYERS = 2
    OPENING_MIN_SCORE = 300
    ZONK_STREAK_LIMIT = 3
    ZONK_STREAK_PENALTY = 0
    ROOM_GRACE_SEC = 5
    ROOM_CODE_LENGTH = 6


class ScriptedRng:
    """Stands in for random.Random: hands out queued die faces in order."""

    def __init__(self, faces=()):
        self.faces = list(faces)

    def queue(self, *faces):
        self.faces.extend(faces)

    def randint(self, a, b):
        if not self.faces:
            raise AssertionError('ScriptedRng ran out of faces')
        face = self.faces.pop(0)
        assert a <= face <= b
        return face


class ManualTasks:
    """Collects background tasks instead of running them; tests fire them explicitly."""

    def __init__(self):
        self.pending = []

    def start_background_task(self, target, *args):
        self.pending.append((target, args))

    def sleep(self, seconds):
        pass

    def run_all(self):
        tasks, self.pending = self.pending, []
        for target, args in tasks:
            target(*args)
        return len(tasks)


class RecordingChannel:
    """Fake outbound channel that records everything the dispatcher sends."""

    def __init__(self):
        self.sent = []        # (sid, event, payload)
        self.broadcasts = []  # (room_id, event, payload)
        self.members = {}     # room_id -> set of sids

    def send(self, sid, event, payload):
        self.sent.append((sid, event, payload))

    def broadcast(self, room_id, event, payload):
        self.broadcasts.append((room_id, event, payload))

    def join(self, sid, room_id):
        self.members.setdefault(room_id, set()).add(sid)

    def leave(self, sid, room_id):
        self.members.get(room_id, set()).discard(sid)

    def events_to(self, sid):
        return [e for s, e, _ in self.sent if s == sid]

    def broadcast_names(self):
        return [e for _, e, _ in self.broadcasts]

    def clear(self):
        self.sent.clear()
        self.broadcasts.clear()


@pytest.fixture()
def rng():
    return ScriptedRng()


@pytest.fixture()
def tasks():
    return ManualTasks()


@pytest.fixture()
def channel():
    return RecordingChannel()


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
