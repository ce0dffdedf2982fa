"""Tests for pako/arguments/collector.py"""
from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from pako.arguments.collector import NO_SESSION_MESSAGE, ArgumentCollector
from pako.arguments.spec import ArgumentKind, ArgumentSpec


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def collector(clock):
    return ArgumentCollector(default_timeout=120, clock=clock)


DEPLOY_SPECS = [
    ArgumentSpec("env", required=True, kind=ArgumentKind.CHOICE, choices=("staging", "prod")),
    ArgumentSpec("replicas", kind=ArgumentKind.INT),
    ArgumentSpec("region", default="eu-west-1"),
]


class TestSessionLifecycle:
    def test_full_dialog(self, collector):
        session = collector.start_session(7, DEPLOY_SPECS, command="deploy")

        # Defaulted optional argument is never prompted
        assert session.collected == {"region": "eu-west-1"}
        assert [s.name for s in session.specs] == ["env", "replicas"]
        assert collector.current_spec(7).name == "env"

        assert collector.submit(7, "qa") == "please select one of: staging, prod"
        assert collector.current_spec(7).name == "env"

        assert collector.submit(7, "prod") == ""
        assert collector.current_spec(7).name == "replicas"

        assert collector.submit(7, "three") == "please enter a valid integer"
        assert collector.submit(7, "3") == ""
        assert collector.get_session(7).is_complete
        assert collector.current_spec(7) is None

        collected, command = collector.complete_session(7)
        assert collected == {"region": "eu-west-1", "env": "prod", "replicas": "3"}
        assert command == "deploy"
        assert collector.complete_session(7) == (None, None)
        assert not collector.has_session(7)

    def test_all_defaults_is_immediately_complete(self, collector):
        session = collector.start_session(1, [ArgumentSpec("n", default="5")])
        assert session.is_complete
        assert collector.complete_session(1)[0] == {"n": "5"}

    def test_required_with_default_is_still_prompted(self, collector):
        collector.start_session(1, [ArgumentSpec("n", required=True, default="5")])
        assert collector.current_spec(1).name == "n"

    def test_new_session_replaces_old(self, collector):
        collector.start_session(1, [ArgumentSpec("a")], command="first")
        collector.submit(1, "x")
        collector.start_session(1, [ArgumentSpec("b")], command="second")

        assert collector.current_spec(1).name == "b"
        assert len(collector) == 1
        collected, command = collector.complete_session(1)
        assert command == "second"
        assert collected == {}

    def test_sessions_are_per_chat(self, collector):
        collector.start_session(1, [ArgumentSpec("a")])
        collector.start_session(2, [ArgumentSpec("b")])
        collector.submit(1, "one")
        assert collector.current_spec(2).name == "b"
        assert collector.get_session(1).collected == {"a": "one"}

    def test_rejected_value_leaves_state_unchanged(self, collector):
        collector.start_session(1, [ArgumentSpec("flag", kind=ArgumentKind.BOOL)])
        before = dict(collector.get_session(1).collected)
        assert collector.submit(1, "maybe") == "please enter true/false, yes/no, or 1/0"
        session = collector.get_session(1)
        assert session.cursor == 0
        assert session.collected == before

    def test_submit_without_session(self, collector):
        assert collector.submit(99, "x") == NO_SESSION_MESSAGE

    def test_cancel_is_silent(self, collector):
        collector.cancel_session(5)
        collector.start_session(5, [ArgumentSpec("a")])
        collector.cancel_session(5)
        assert not collector.has_session(5)

    def test_last_prompt(self, collector):
        collector.start_session(1, [ArgumentSpec("a")])
        assert collector.last_prompt(1) is None
        collector.set_last_prompt(1, 555)
        assert collector.last_prompt(1) == 555
        collector.set_last_prompt(2, 1)  # no session, ignored
        assert collector.last_prompt(2) is None


class TestExpiry:
    def test_expired_session_reads_as_absent(self, collector, clock):
        collector.start_session(1, [ArgumentSpec("a")])
        clock.advance(120)
        assert collector.has_session(1)  # exactly at the limit is still alive
        clock.advance(1)
        assert collector.get_session(1) is None
        assert collector.current_spec(1) is None
        assert collector.submit(1, "x") == NO_SESSION_MESSAGE

    def test_per_session_timeout(self, collector, clock):
        collector.start_session(1, [ArgumentSpec("a")], timeout=10)
        collector.start_session(2, [ArgumentSpec("a")], timeout=0)  # falls back to default
        clock.advance(11)
        assert not collector.has_session(1)
        assert collector.has_session(2)

    def test_cleanup_expired(self, collector, clock):
        collector.start_session(1, [ArgumentSpec("a")], timeout=10)
        collector.start_session(2, [ArgumentSpec("a")], timeout=60)
        clock.advance(30)
        assert collector.cleanup_expired() == 1
        assert len(collector) == 1
        assert collector.cleanup_expired() == 0


class TestConcurrency:
    """Handlers for many chats call into one collector from several threads."""

    def test_independent_chats_in_parallel(self):
        collector = ArgumentCollector(default_timeout=600)
        specs = [ArgumentSpec(f"a{i}", required=True) for i in range(3)]
        rounds = 200
        stop = threading.Event()

        def chat(key: int) -> list:
            results = []
            for n in range(rounds):
                collector.start_session(key, specs, command=("cmd", key))
                for i in range(3):
                    assert collector.submit(key, f"{key}-{n}-{i}") == ""
                results.append(collector.complete_session(key))
            return results

        def sweeper() -> list[int]:
            removed = []
            while not stop.is_set():
                removed.append(collector.cleanup_expired())
            return removed

        with ThreadPoolExecutor(max_workers=9) as pool:
            sweep = pool.submit(sweeper)
            futures = {key: pool.submit(chat, key) for key in range(1, 9)}
            try:
                results = {key: f.result() for key, f in futures.items()}
            finally:
                stop.set()
            assert set(sweep.result()) <= {0}

        for key, outcomes in results.items():
            assert len(outcomes) == rounds
            for n, (collected, command) in enumerate(outcomes):
                assert collected == {f"a{i}": f"{key}-{n}-{i}" for i in range(3)}
                assert command == ("cmd", key)
        assert len(collector) == 0

    def test_same_chat_collects_each_value_exactly_once(self):
        collector = ArgumentCollector(default_timeout=600)
        workers, per_worker = 8, 50
        specs = [ArgumentSpec(f"v{i}") for i in range(workers * per_worker)]
        collector.start_session(1, specs, command="bulk")
        barrier = threading.Barrier(workers)

        def submitter(w: int) -> list[str]:
            barrier.wait()
            values = [f"w{w}-{i}" for i in range(per_worker)]
            for value in values:
                assert collector.submit(1, value) == ""
            return values

        with ThreadPoolExecutor(max_workers=workers) as pool:
            submitted = [v for f in [pool.submit(submitter, w) for w in range(workers)] for v in f.result()]

        assert collector.get_session(1).is_complete
        collected, command = collector.complete_session(1)
        assert command == "bulk"
        assert len(collected) == len(specs)
        assert sorted(collected.values()) == sorted(submitted)
        assert collector.complete_session(1) == (None, None)

    def test_same_chat_start_and_complete_race(self):
        collector = ArgumentCollector(default_timeout=600)
        specs = [ArgumentSpec("env", default="prod"), ArgumentSpec("region", default="eu")]
        full = {"env": "prod", "region": "eu"}
        starts = 500
        barrier = threading.Barrier(5)

        def starter() -> int:
            barrier.wait()
            for _ in range(starts):
                collector.start_session(1, specs, command="deploy")
            return starts

        def completer() -> list:
            barrier.wait()
            return [collector.complete_session(1) for _ in range(starts)]

        def sweeper() -> int:
            barrier.wait()
            return sum(collector.cleanup_expired() for _ in range(starts))

        with ThreadPoolExecutor(max_workers=5) as pool:
            started = [pool.submit(starter) for _ in range(2)]
            completed = [pool.submit(completer) for _ in range(2)]
            swept = pool.submit(sweeper)
            total_starts = sum(f.result() for f in started)
            outcomes = [o for f in completed for o in f.result()]
            assert swept.result() == 0

        successes = 0
        for collected, command in outcomes:
            if collected is None:
                assert command is None
            else:
                assert collected == full
                assert command == "deploy"
                successes += 1
        leftover = 1 if collector.has_session(1) else 0
        assert successes + leftover <= total_starts
