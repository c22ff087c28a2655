"""Collapse repeated user questions in the selected context.

When a user asks the same thing several times, only the latest occurrence
(and the answer to it) is worth spending context on. Near-duplicate questions
are grouped transitively: if A~B and B~C pass the threshold, A, B and C form
one group even when A~C alone would not. Histories are conversation-sized,
so all pairs are compared directly.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.context.models import ASSISTANT, USER
from src.context.scoring import cosine_similarity
from src.context.selection import sort_chronologically

if TYPE_CHECKING:
    from collections.abc import Sequence

    from src.context.models import ConversationMessage

logger = logging.getLogger(__name__)


class _DisjointSet:
    """Union-find over indices 0..n-1 with path halving."""

    def __init__(self, size: int) -> None:
        self._parent = list(range(size))

    def find(self, i: int) -> int:
        while self._parent[i] != i:
            self._parent[i] = self._parent[self._parent[i]]
            i = self._parent[i]
        return i

    def union(self, a: int, b: int) -> None:
        root_a, root_b = self.find(a), self.find(b)
        if root_a != root_b:
            self._parent[root_b] = root_a

    def groups(self) -> list[list[int]]:
        by_root: dict[int, list[int]] = {}
        for i in range(len(self._parent)):
            by_root.setdefault(self.find(i), []).append(i)
        return list(by_root.values())


def duplicate_groups(
    questions: Sequence[ConversationMessage], threshold: float
) -> list[list[ConversationMessage]]:
    """Connected components of questions linked by similarity >= threshold.

    Only components with more than one member are returned.
    """
    dsu = _DisjointSet(len(questions))
    for i in range(len(questions)):
        for j in range(i + 1, len(questions)):
            similarity = cosine_similarity(questions[i].embedding, questions[j].embedding)
            if similarity >= threshold:
                logger.debug(
                    "Duplicate query (similarity: %.3f): '%s' vs '%s'",
                    similarity,
                    questions[i].preview(),
                    questions[j].preview(),
                )
                dsu.union(i, j)
    return [[questions[i] for i in group] for group in dsu.groups() if len(group) > 1]


def collapse_duplicate_queries(
    candidates: Sequence[ConversationMessage],
    history: Sequence[ConversationMessage],
    threshold: float,
) -> list[ConversationMessage]:
    """Drop older duplicate questions and the answers that directly follow them.

    ``history`` is the full conversation the candidates were selected from.
    An answer is "directly following" when it is the next message in the
    chronological history; it is only dropped if it is among the candidates.

    If any candidate question has no embedding the comparison would be made
    on partial information, so the candidates are returned unchanged.
    """
    questions = [m for m in candidates if m.role == USER]
    if len(questions) < 2:
        return sort_chronologically(candidates)

    if any(q.embedding is None for q in questions):
        logger.debug("Skipping query deduplication: not every candidate query has an embedding")
        return sort_chronologically(candidates)

    ordered = sort_chronologically(history)
    position = {id(m): i for i, m in enumerate(ordered)}

    discarded: set[int] = set()
    for group in duplicate_groups(questions, threshold):
        latest = max(group, key=lambda m: (m.timestamp, position.get(id(m), -1)))
        for question in group:
            if question is not latest:
                discarded.add(id(question))

    if not discarded:
        return sort_chronologically(candidates)

    candidate_ids = {id(m) for m in candidates}
    dropped_queries = len(discarded)
    for question_id in list(discarded):
        index = position.get(question_id)
        if index is None or index + 1 >= len(ordered):
            continue
        answer = ordered[index + 1]
        if answer.role == ASSISTANT and id(answer) in candidate_ids:
            discarded.add(id(answer))

    logger.info(
        "Query deduplication removed %d messages (%d duplicate queries + responses)",
        len(discarded),
        dropped_queries,
    )
    return sort_chronologically(m for m in candidates if id(m) not in discarded)
