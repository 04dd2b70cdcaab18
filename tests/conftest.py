import pytest

from dotoracle.config import Settings
from dotoracle.engine import OracleEngine
from dotoracle.errors import InterpretationError
from dotoracle.models import CharacterState
from dotoracle.storage import CHARACTER_KEY, KeyValueStore


class FakeInterpreter:
    """Stands in for OpenAIInterpreter; records requests and optionally fails."""

    def __init__(self, text="The cards lean toward patience.", fail=False):
        self.text = text
        self.fail = fail
        self.requests = []

    def interpret(self, request):
        self.requests.append(request)
        if self.fail:
            raise InterpretationError("AI interpretation failed: upstream timeout")
        return self.text

    def interpret_follow_up(self, request):
        return self.interpret(request)


class Clock:
    """Settable local day for the engine; starts on 2024-01-01."""

    def __init__(self, day="2024-01-01"):
        self.day = day

    def __call__(self):
        return self.day


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "dotoracle.db")


@pytest.fixture
def store(db_path):
    return KeyValueStore(db_path)


@pytest.fixture
def settings(db_path):
    return Settings(db_path=db_path, openai_api_key="")


@pytest.fixture
def interpreter():
    return FakeInterpreter()


@pytest.fixture
def engine(store, settings, interpreter, clock):
    return OracleEngine(store, settings, interpreter=interpreter, clock=clock)


@pytest.fixture
def set_level(store):
    """Put the character at a given level with no XP."""
    def _set(level):
        store.set(CHARACTER_KEY, CharacterState(level=level, created_at=1).model_dump())
    return _set
