"""Filter/search evaluation over the task indexes.

Translates a (FilterSpec, query) pair into the set of matching task ids by
intersecting axis buckets, then AND-ing the prefix matches of every query
token. Evaluation is synchronous and side-effect free.
"""

import time
from collections.abc import Set

from taskindex.observability.metrics import FILTER_LATENCY, FILTER_RESULT_SIZE
from taskindex.tasks.index import TaskIndex
from taskindex.tasks.models import FilterSpec, Task
from taskindex.tasks.tokenizer import tokenize


def intersect(left: Set[str], right: Set[str]) -> set[str]:
    """Intersection that iterates the smaller operand."""
    smaller, larger = (left, right) if len(left) <= len(right) else (right, left)
    return {item for item in smaller if item in larger}


class FilterSearchEngine:
    """Computes filter/search results from a TaskIndex."""

    def __init__(self, index: TaskIndex) -> None:
        self._index = index

    def candidate_ids(self, spec: FilterSpec) -> set[str]:
        """Ids satisfying every pinned axis of ``spec``."""
        candidates: set[str] | None = None
        for axis, key in spec.constraints():
            bucket = self._index.bucket(axis, key)
            if not bucket:
                return set()
            candidates = set(bucket) if candidates is None else intersect(candidates, bucket)
            if not candidates:
                return candidates
        if candidates is None:
            return set(self._index.ids())
        return candidates

    def search_ids(self, query: str) -> set[str] | None:
        """Ids whose tokens prefix-match every query token.

        Returns None when the query has no usable tokens, meaning "no
        search constraint".
        """
        query_tokens = tokenize(query, self._index.min_token_length)
        if not query_tokens:
            return None

        matches: set[str] | None = None
        for query_token in dict.fromkeys(query_tokens):
            token_matches: set[str] = set()
            for token in self._index.tokens_with_prefix(query_token):
                token_matches |= self._index.token_bucket(token) or set()
            matches = token_matches if matches is None else intersect(matches, token_matches)
            if not matches:
                return set()
        return matches

    def evaluate_ids(self, spec: FilterSpec, query: str = "") -> set[str]:
        """Ids matching both the filter spec and the search query."""
        candidates = self.candidate_ids(spec)
        if not candidates or not query:
            return candidates
        matches = self.search_ids(query)
        if matches is None:
            return candidates
        return intersect(matches, candidates)

    def evaluate(self, spec: FilterSpec, query: str = "") -> list[Task]:
        """Materialize matching records.

        No ordering beyond stability for a fixed index state; display order
        is the caller's concern.
        """
        started = time.perf_counter()
        ids = self.evaluate_ids(spec, query)
        tasks = [task for task_id in ids if (task := self._index.lookup(task_id)) is not None]
        FILTER_LATENCY.labels(searched=str(bool(query))).observe(time.perf_counter() - started)
        FILTER_RESULT_SIZE.observe(len(tasks))
        return tasks
