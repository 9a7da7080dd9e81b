"""Test factories for creating domain objects."""

from tests.factories.tasks import TaskFactory

__all__ = ["TaskFactory"]
