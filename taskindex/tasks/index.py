"""Secondary and inverted indexes over the loaded task set.

TaskIndex is the sole owner of Task records held by the store. It keeps a
primary id lookup, one bucket index per filter axis (section, priority,
completion) and a token inverted index, and guarantees that every id in
the primary lookup sits in exactly the buckets matching its current
values and tokens.

Records are never patched in place: an update is always ``remove`` of the
old record followed by ``insert`` of the new one.
"""

from bisect import bisect_left, insort
from collections.abc import Iterable, Iterator, KeysView

from taskindex.observability.logging import get_logger
from taskindex.observability.metrics import INDEXED_TASKS
from taskindex.tasks.models import BucketKey, FilterAxis, Priority, Section, Task
from taskindex.tasks.tokenizer import MIN_TOKEN_LENGTH, tokenize

logger = get_logger(__name__)


class DuplicateTaskError(ValueError):
    """Raised when inserting an id that is already indexed."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task already indexed: {task_id}")
        self.task_id = task_id


class TaskIndex:
    """Primary lookup plus bucket and token indexes.

    Pure data structure: no I/O, no awaiting. All operations are
    synchronous, so callers running on a single event loop need no locking.
    """

    def __init__(self, min_token_length: int = MIN_TOKEN_LENGTH) -> None:
        self._min_token_length = min_token_length

        self._by_id: dict[str, Task] = {}
        self._by_section: dict[Section, set[str]] = {}
        self._by_priority: dict[Priority, set[str]] = {}
        self._by_completion: dict[bool, set[str]] = {}

        # Stored token list per task, so removal never re-tokenizes
        self._tokens_by_id: dict[str, tuple[str, ...]] = {}
        self._ids_by_token: dict[str, set[str]] = {}
        # Sorted vocabulary for prefix lookups
        self._vocabulary: list[str] = []

    # =========================================================================
    # MUTATION
    # =========================================================================

    def rebuild_all(self, tasks: Iterable[Task]) -> None:
        """Discard every index and rebuild from ``tasks``.

        Later records win when the same id appears more than once.
        """
        self.clear()
        latest: dict[str, Task] = {}
        for task in tasks:
            latest[task.id] = task
        for task in latest.values():
            self._add(task)
        self._vocabulary = sorted(self._ids_by_token)
        INDEXED_TASKS.set(len(self._by_id))
        logger.info("index_rebuilt", tasks=len(self._by_id), vocabulary=len(self._vocabulary))

    def clear(self) -> None:
        """Remove every record and bucket."""
        self._by_id.clear()
        self._by_section.clear()
        self._by_priority.clear()
        self._by_completion.clear()
        self._tokens_by_id.clear()
        self._ids_by_token.clear()
        self._vocabulary.clear()
        INDEXED_TASKS.set(0)

    def insert(self, task: Task) -> None:
        """Index a task whose id is not yet present.

        Raises:
            DuplicateTaskError: If the id is already indexed
        """
        if task.id in self._by_id:
            raise DuplicateTaskError(task.id)
        for token in self._add(task):
            insort(self._vocabulary, token)
        INDEXED_TASKS.set(len(self._by_id))
        logger.debug("task_indexed", task_id=task.id, section=task.section.value)

    def remove(self, task: Task | str) -> Task | None:
        """Remove a task from every index.

        Buckets are resolved from the stored record, not from the argument,
        so a stale copy still removes the current entry. Removing an absent
        id is a no-op.

        Returns:
            The removed record, or None if the id was not indexed
        """
        task_id = task if isinstance(task, str) else task.id
        stored = self._by_id.pop(task_id, None)
        if stored is None:
            return None

        _discard(self._by_section, stored.section, task_id)
        _discard(self._by_priority, stored.priority, task_id)
        _discard(self._by_completion, stored.completed, task_id)

        for token in self._tokens_by_id.pop(task_id, ()):
            if _discard(self._ids_by_token, token, task_id):
                position = bisect_left(self._vocabulary, token)
                del self._vocabulary[position]

        INDEXED_TASKS.set(len(self._by_id))
        logger.debug("task_unindexed", task_id=task_id)
        return stored

    def _add(self, task: Task) -> list[str]:
        """Add to all indexes; returns tokens that are new to the vocabulary."""
        task_id = task.id
        self._by_id[task_id] = task
        self._by_section.setdefault(task.section, set()).add(task_id)
        self._by_priority.setdefault(task.priority, set()).add(task_id)
        self._by_completion.setdefault(task.completed, set()).add(task_id)

        tokens = tuple(dict.fromkeys(tokenize(task.text, self._min_token_length)))
        self._tokens_by_id[task_id] = tokens

        new_tokens: list[str] = []
        for token in tokens:
            bucket = self._ids_by_token.get(token)
            if bucket is None:
                bucket = self._ids_by_token[token] = set()
                new_tokens.append(token)
            bucket.add(task_id)
        return new_tokens

    # =========================================================================
    # READS
    # =========================================================================

    def lookup(self, task_id: str) -> Task | None:
        """O(1) access to a record by id."""
        return self._by_id.get(task_id)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[Task]:
        return iter(self._by_id.values())

    def ids(self) -> KeysView[str]:
        """Live view of every indexed id."""
        return self._by_id.keys()

    def bucket(self, axis: FilterAxis, key: BucketKey) -> set[str] | None:
        """Ids filed under ``key`` on ``axis``, or None if the bucket is absent.

        The returned set is the index's own; callers must not mutate it.
        """
        match axis:
            case FilterAxis.SECTION:
                return self._by_section.get(Section(key))
            case FilterAxis.PRIORITY:
                return self._by_priority.get(Priority(key))
            case FilterAxis.COMPLETED:
                return self._by_completion.get(bool(key))
        raise ValueError(f"Unknown filter axis: {axis}")

    def bucket_keys(self, axis: FilterAxis) -> list[BucketKey]:
        """Keys of the non-empty buckets on ``axis``."""
        match axis:
            case FilterAxis.SECTION:
                return list(self._by_section)
            case FilterAxis.PRIORITY:
                return list(self._by_priority)
            case FilterAxis.COMPLETED:
                return list(self._by_completion)
        raise ValueError(f"Unknown filter axis: {axis}")

    def token_bucket(self, token: str) -> set[str] | None:
        """Ids whose text contains exactly ``token``."""
        return self._ids_by_token.get(token)

    def tokens_for(self, task_id: str) -> tuple[str, ...]:
        """Stored token list of a task (empty if not indexed)."""
        return self._tokens_by_id.get(task_id, ())

    def vocabulary(self) -> list[str]:
        """Every indexed token, sorted."""
        return list(self._vocabulary)

    def tokens_with_prefix(self, prefix: str) -> Iterator[str]:
        """Indexed tokens starting with ``prefix``.

        Binary search over the sorted vocabulary, then a contiguous scan of
        the matching run.
        """
        vocabulary = self._vocabulary
        position = bisect_left(vocabulary, prefix)
        while position < len(vocabulary) and vocabulary[position].startswith(prefix):
            yield vocabulary[position]
            position += 1

    @property
    def min_token_length(self) -> int:
        return self._min_token_length


def _discard(buckets: dict, key: object, task_id: str) -> bool:
    """Drop ``task_id`` from ``buckets[key]``, pruning the bucket if emptied.

    Returns True when the bucket was pruned.
    """
    bucket = buckets.get(key)
    if bucket is None:
        return False
    bucket.discard(task_id)
    if not bucket:
        del buckets[key]
        return True
    return False
