"""Adversarial tests: concurrent writers racing for the data ref.

The ref update is the only shared mutation.  These tests force a competing
projection to land between a projector reading the head and swapping it,
and check that:
1. The loser retries from scratch and re-parents onto the winner
2. Racing on the same source commit still yields exactly one data commit
3. Exhausted retries surface ConcurrentProjectionConflict
4. Many threads projecting at once leave a single linear line
"""

from __future__ import annotations

import threading
from collections.abc import Callable

import pytest

from dataline.backends.memory import MemoryBackend
from dataline.core.data_line import iter_data_line, read_metadata
from dataline.core.projector import ConcurrentProjectionConflict, Projector
from dataline.models.config import ProjectionConfig


class RacingBackend(MemoryBackend):
    """Runs a one-shot hook right before the next compare-and-swap."""

    def __init__(self) -> None:
        super().__init__()
        self.interleave: Callable[[], object] | None = None
        self.cas_calls = 0

    def compare_and_swap_ref(self, name, expected_old, new):
        self.cas_calls += 1
        hook, self.interleave = self.interleave, None
        if hook is not None:
            hook()
        return super().compare_and_swap_ref(name, expected_old, new)


@pytest.fixture
def racing() -> RacingBackend:
    return RacingBackend()


class TestLostRace:
    def test_loser_retries_onto_winner(self, racing, make_builder, config):
        builder = make_builder(racing)
        c1 = builder.commit({"a": "1"})
        c2 = builder.commit({"b": "2"})
        winner = Projector(racing, config)
        loser = Projector(racing, config)

        racing.interleave = lambda: winner.project(c1)
        outcome = loser.project_outcome(c2)

        d1 = read_metadata(racing, outcome.data_commit, config).parent_data_commit_oid
        assert outcome.created is True
        assert outcome.attempts == 2
        assert racing.resolve_ref(config.data_ref) == outcome.data_commit
        assert read_metadata(racing, d1, config).original_commit_sha == c1
        assert racing.read_commit(outcome.data_commit).parents == [d1]

    def test_same_source_race_projects_once(self, racing, make_builder, config):
        c1 = make_builder(racing).commit({"a": "1"})
        winner = Projector(racing, config)
        loser = Projector(racing, config)

        racing.interleave = lambda: winner.project(c1)
        outcome = loser.project_outcome(c1)

        assert outcome.created is False
        assert outcome.attempts == 2
        line = list(iter_data_line(racing, racing.resolve_ref(config.data_ref), config))
        assert [d.metadata.original_commit_sha for d in line] == [c1]
        assert outcome.data_commit == line[0].id

    def test_no_retries_raises_conflict(self, racing, make_builder):
        config = ProjectionConfig(max_retries=0)
        builder = make_builder(racing)
        c1 = builder.commit({"a": "1"})
        c2 = builder.commit({"b": "2"})
        winner = Projector(racing, config)

        racing.interleave = lambda: winner.project(c1)
        with pytest.raises(ConcurrentProjectionConflict) as exc_info:
            Projector(racing, config).project(c2)

        head = racing.resolve_ref(config.data_ref)
        assert exc_info.value.expected_head is None
        assert exc_info.value.actual_head == head
        assert read_metadata(racing, head, config).original_commit_sha == c1

    def test_retries_exhausted_after_repeated_losses(self, racing, make_builder):
        config = ProjectionConfig(max_retries=2)
        builder = make_builder(racing)
        competitors = [builder.commit({"n": str(i)}) for i in range(3)]
        target = builder.commit({"target": "t"})
        winner = Projector(racing, config)
        loser = Projector(racing, config)

        pending = list(competitors)

        def _next_competitor() -> None:
            winner.project(pending.pop(0))
            if pending:
                racing.interleave = _next_competitor

        racing.interleave = _next_competitor
        with pytest.raises(ConcurrentProjectionConflict):
            loser.project(target)
        assert pending == []


class TestThreadedProjection:
    def test_parallel_distinct_commits_form_one_line(self, make_builder):
        backend = MemoryBackend()
        builder = make_builder(backend)
        sources = [builder.commit({"n": str(i)}) for i in range(6)]
        config = ProjectionConfig(max_retries=len(sources) * 2)
        barrier = threading.Barrier(len(sources))
        errors: list[BaseException] = []

        def _run(commit_id: str) -> None:
            barrier.wait()
            try:
                Projector(backend, config).project(commit_id)
            except BaseException as exc:  # surfaced through the assertion below
                errors.append(exc)

        threads = [threading.Thread(target=_run, args=(c,)) for c in sources]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        line = list(iter_data_line(backend, backend.resolve_ref(config.data_ref), config))
        projected = [d.metadata.original_commit_sha for d in line]
        assert sorted(projected) == sorted(sources)
        assert len(set(projected)) == len(projected)

    def test_parallel_same_commit_projects_once(self, make_builder):
        backend = MemoryBackend()
        c1 = make_builder(backend).commit({"a": "1"})
        config = ProjectionConfig(max_retries=10)
        results: list[str] = []
        barrier = threading.Barrier(4)

        def _run() -> None:
            barrier.wait()
            results.append(Projector(backend, config).project(c1))

        threads = [threading.Thread(target=_run) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(set(results)) == 1
        line = list(iter_data_line(backend, backend.resolve_ref(config.data_ref), config))
        assert len(line) == 1
