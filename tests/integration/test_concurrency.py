"""
Integration tests for concurrent use of one shared enforcer.

Tests cover:
- Many threads deciding against the same Authorizer
- Batch policy changes never observed half-applied
- Decisions tracking policy changes between requests
"""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from warden.authorizer import Authorizer
from warden.enforcer import CasbinEnforcer
from warden.schema import AuthAction, PermissionRequirement

READ_USER = PermissionRequirement(action=AuthAction.READ, resource="USER")
READ_ROLES = PermissionRequirement(action=AuthAction.READ, resource="USER_ROLES")


class TestConcurrentDecisions:
    """One authorizer, many requests."""

    def test_parallel_decisions_are_independent(self, enforcer: CasbinEnforcer) -> None:
        authorizer = Authorizer(enforcer)
        cases = [
            ("alice", [READ_USER], True),
            ("alice", [READ_USER, READ_ROLES], False),
            ("carol", [READ_ROLES], True),
            ("", [READ_USER], False),
            ("dave", [], True),
        ] * 50

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda c: authorizer.decide(c[0], c[1]), cases))

        assert results == [expected for _, _, expected in cases]

    def test_readers_only_never_fail(self, enforcer: CasbinEnforcer) -> None:
        """Concurrent decisions with no writer never surface engine errors."""
        authorizer = Authorizer(enforcer)
        errors: list[Exception] = []
        wrong: list[bool] = []

        def decide() -> None:
            try:
                for _ in range(200):
                    if authorizer.decide("carol", [READ_ROLES]) is not True:
                        wrong.append(True)
                    if authorizer.decide("alice", [READ_USER, READ_ROLES]) is not False:
                        wrong.append(False)
            except Exception as e:
                errors.append(e)

        for _ in range(3):
            threads = [threading.Thread(target=decide) for _ in range(8)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join(timeout=60)

        assert errors == []
        assert wrong == []

    @pytest.mark.asyncio
    async def test_async_decisions_under_load(self, enforcer: CasbinEnforcer) -> None:
        authorizer = Authorizer(enforcer)
        results = await asyncio.gather(
            *(authorizer.adecide("carol", [READ_ROLES]) for _ in range(50)),
            *(authorizer.adecide("alice", [READ_ROLES]) for _ in range(50)),
        )
        assert results == [True] * 50 + [False] * 50


class TestPolicyMutation:
    """Readers racing a writer."""

    def test_batch_mutation_is_atomic(self, enforcer: CasbinEnforcer) -> None:
        """A reader sees both rules of a batch or neither."""
        rules = [["erin", "A", "read"], ["erin", "B", "read"]]
        stop = threading.Event()
        seen: set[int] = set()

        def writer() -> None:
            for _ in range(200):
                enforcer.add_policies(rules)
                enforcer.remove_policies(rules)
            stop.set()

        def reader() -> None:
            while not stop.is_set():
                seen.add(len(enforcer.get_filtered_policy(0, "erin")))

        threads = [threading.Thread(target=reader) for _ in range(4)]
        threads.append(threading.Thread(target=writer))
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert seen <= {0, 2}

    def test_decisions_follow_role_changes(self, enforcer: CasbinEnforcer) -> None:
        """Never cached: each decision sees the policy of its own moment."""
        authorizer = Authorizer(enforcer)
        stop = threading.Event()
        errors: list[Exception] = []

        def toggle() -> None:
            for _ in range(100):
                enforcer.add_role_for_user("dave", "admin")
                enforcer.delete_role_for_user("dave", "admin")
            stop.set()

        def decide() -> None:
            try:
                while not stop.is_set():
                    authorizer.decide("dave", [READ_ROLES])
                    assert authorizer.decide("carol", [READ_ROLES]) is True
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=decide) for _ in range(4)]
        threads.append(threading.Thread(target=toggle))
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert errors == []
        assert authorizer.decide("dave", [READ_ROLES]) is False
