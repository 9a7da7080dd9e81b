"""Remote store implementations."""

from taskindex.tasks.remote import TaskRemote
from taskindex.tasks.remotes.inmemory import InMemoryTaskRemote

__all__ = [
    "TaskRemote",
    "InMemoryTaskRemote",
]
