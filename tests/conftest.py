"""Shared pytest fixtures for protoflow tests."""

import asyncio
import shutil
from pathlib import Path
from typing import Optional

import pytest

from protoflow.storage import InMemoryMedium, SessionStore
from protoflow.utils.config import reset_settings
from protoflow.workflow.engine import WorkflowEngine

VALID_CREDENTIAL = "AIzaSyTestKey1234567890abcdef"
VALID_PROMPT = "A todo app with tags and due dates"


@pytest.fixture(scope="session", autouse=True)
def backup_env_file():
    """Backup .env file during test session to prevent pollution."""
    env_file = Path(".env")
    backup_file = Path(".env.test_backup")

    # Backup if exists
    if env_file.exists():
        shutil.copy(env_file, backup_file)
        env_file.unlink()

    yield

    # Restore
    if backup_file.exists():
        shutil.move(backup_file, env_file)


@pytest.fixture(autouse=True)
def reset_config():
    """Reset configuration before and after each test."""
    reset_settings()
    yield
    reset_settings()


class FakeGateway:
    """Scripted generation gateway.

    Each call pops the next scripted result; a result that is an exception
    instance is raised instead of returned. When the script is exhausted the
    gateway answers ``"<label> content"``. Setting ``gate`` to an
    asyncio.Event makes every call wait on it before answering.
    """

    def __init__(self, *results):
        self.results = list(results)
        self.calls: list[tuple[str, str, str]] = []
        self.gate: Optional[asyncio.Event] = None

    async def generate(self, rendered_prompt: str, phase_label: str, credential: str) -> str:
        self.calls.append((rendered_prompt, phase_label, credential))
        if self.gate is not None:
            await self.gate.wait()
        if self.results:
            result = self.results.pop(0)
            if isinstance(result, BaseException):
                raise result
            return result
        return f"{phase_label} content"


@pytest.fixture
def gateway():
    """Fake gateway answering with '<label> content'."""
    return FakeGateway()


@pytest.fixture
def medium():
    """Fresh in-memory storage medium."""
    return InMemoryMedium()


@pytest.fixture
def store(medium):
    """Session store over the in-memory medium."""
    return SessionStore(medium)


@pytest.fixture
def engine(gateway, store):
    """Workflow engine at the entry step."""
    return WorkflowEngine(gateway, store)


@pytest.fixture
def started_engine(engine):
    """Workflow engine with a valid project started."""
    engine.start(VALID_CREDENTIAL, VALID_PROMPT)
    return engine
