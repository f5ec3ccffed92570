"""
Shared fixtures: dummy-mode config, in-memory document store and wired services.
"""

import asyncio
import copy

import pytest
from fastapi.testclient import TestClient

from upsc_prep.core.ai_services import AIService, get_ai_service
from upsc_prep.core.config import Config
from upsc_prep.core.database import generate_push_key, get_store, normalize_path
from upsc_prep.core.exceptions import PersistenceError
from upsc_prep.core.models import Question
from upsc_prep.core.utils import MemoryManager
from upsc_prep.main import app
from upsc_prep.services.current_affairs_service import get_current_affairs_service
from upsc_prep.services.flashcard_service import FlashCardService, get_flashcard_service
from upsc_prep.services.study_service import StudyService, get_study_service
from upsc_prep.services.test_service import TestService, get_test_service


class InMemoryStore:
    """Dict-tree stand-in for DocumentStore with the same async surface"""

    def __init__(self):
        self.root = {}
        self.fail_writes = False
        self.writes = []

    def _walk(self, path, create=False):
        keys = normalize_path(path).split("/")
        node = self.root
        for key in keys[:-1]:
            if not isinstance(node.get(key), dict):
                if not create:
                    return None, keys[-1]
                node[key] = {}
            node = node[key]
        return node, keys[-1]

    async def read(self, path):
        parent, key = self._walk(path)
        if parent is None:
            return None
        return copy.deepcopy(parent.get(key))

    async def write(self, path, value):
        if self.fail_writes:
            raise PersistenceError(f"Write failed at {path}: store offline")
        parent, key = self._walk(path, create=True)
        parent[key] = copy.deepcopy(value)
        self.writes.append(normalize_path(path))

    def write_nowait(self, path, value):
        """Applies the write immediately and returns an already-finished future"""
        future = asyncio.get_running_loop().create_future()
        if self.fail_writes:
            future.set_exception(PersistenceError(f"Write failed at {path}: store offline"))
            future.exception()  # retrieved, as DocumentStore's done-callback does
            return future

        parent, key = self._walk(path, create=True)
        parent[key] = copy.deepcopy(value)
        self.writes.append(normalize_path(path))
        future.set_result(None)
        return future

    async def push(self, path, value):
        key = generate_push_key()
        await self.write(f"{path}/{key}", value)
        return key

    async def remove(self, path):
        parent, key = self._walk(path)
        if parent is not None:
            parent.pop(key, None)

    async def flush(self):
        return None

    async def subscribe(self, path):
        yield await self.read(path)


@pytest.fixture
def config():
    cfg = Config()
    cfg.USE_DUMMY_DATA = True
    return cfg


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def ai_service(config):
    return AIService(config=config)


@pytest.fixture
def memory(config):
    manager = MemoryManager(config=config, auto_cleanup=False)
    yield manager
    manager.clear()


@pytest.fixture
def test_service(config, store, ai_service, memory):
    return TestService(config=config, store=store, ai_service=ai_service,
                       memory=memory, run_countdown=False)


@pytest.fixture
def study_service(config, store, ai_service):
    return StudyService(config=config, store=store, ai_service=ai_service)


@pytest.fixture
def flashcard_service(config, store, ai_service):
    return FlashCardService(config=config, store=store, ai_service=ai_service)


@pytest.fixture
def make_question():
    def _make(answer="1 and 2", topic="Polity", **overrides):
        data = {
            "question": "Consider the following statements:",
            "statements": ["Statement one.", "Statement two."],
            "options": ["1 only", "1 and 2", "2 and 3", "1, 2 and 3"],
            "answer": answer,
            "explanation": "Because.",
            "topic": topic,
        }
        data.update(overrides)
        return Question.model_validate(data)
    return _make


@pytest.fixture
def client(config, store, ai_service, test_service, study_service, flashcard_service):
    app.dependency_overrides[get_test_service] = lambda: test_service
    app.dependency_overrides[get_study_service] = lambda: study_service
    app.dependency_overrides[get_flashcard_service] = lambda: flashcard_service
    app.dependency_overrides[get_ai_service] = lambda: ai_service
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def override_current_affairs():
    def _override(service):
        app.dependency_overrides[get_current_affairs_service] = lambda: service
    yield _override
    app.dependency_overrides.pop(get_current_affairs_service, None)
