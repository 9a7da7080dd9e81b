"""Shared test fixtures for the taskindex test suite."""

import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pytest

if TYPE_CHECKING:
    from taskindex.tasks import TaskStore
    from tests.fakes import FakeRemote, ImmediateScheduler


@pytest.fixture
def test_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory for testing."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def mock_toml_files(test_config_dir: Path) -> Callable[[dict[str, str]], None]:
    """Factory fixture to create TOML files in the test config directory.

    Usage:
        def test_something(mock_toml_files):
            mock_toml_files({
                "default.toml": "app_name = 'test'",
                "development.toml": "debug = true",
            })
    """

    def _create_toml_files(files: dict[str, str]) -> None:
        for filename, content in files.items():
            (test_config_dir / filename).write_text(content)

    return _create_toml_files


class EnvOverrideContext:
    """Context manager for temporarily setting environment variables."""

    def __init__(self, overrides: dict[str, str]) -> None:
        self.overrides = overrides
        self.original_env: dict[str, str | None] = {}

    def __enter__(self) -> None:
        for key, value in self.overrides.items():
            self.original_env[key] = os.environ.get(key)
            os.environ[key] = value

    def __exit__(self, *args: Any) -> None:
        for key in self.overrides:
            original = self.original_env[key]
            if original is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = original


@pytest.fixture
def env_override() -> Generator[Callable[[dict[str, str]], EnvOverrideContext], None, None]:
    """Context manager for temporarily setting environment variables.

    Usage:
        def test_something(env_override):
            with env_override({"TASKINDEX_DEBUG": "true"}):
                ...
    """

    def _env_override(overrides: dict[str, str]) -> EnvOverrideContext:
        return EnvOverrideContext(overrides)

    yield _env_override


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    """Clear the settings cache before and after each test."""
    from taskindex.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Task store fixtures
# =============================================================================


@pytest.fixture
def fake_remote() -> "FakeRemote":
    """Scripted remote store with failure injection."""
    from tests.fakes import FakeRemote

    return FakeRemote()


@pytest.fixture
def scheduler() -> "ImmediateScheduler":
    """Scheduler whose pending callback runs only on flush."""
    from tests.fakes import ImmediateScheduler

    return ImmediateScheduler()


@pytest.fixture
def store(fake_remote: "FakeRemote", scheduler: "ImmediateScheduler") -> "TaskStore":
    """TaskStore wired to the fake remote and immediate scheduler."""
    from taskindex.config.models import StoreConfig
    from taskindex.tasks import EventBus, TaskStore

    return TaskStore(
        fake_remote,
        config=StoreConfig(page_size=2),
        events=EventBus(),
        scheduler=scheduler,
    )
