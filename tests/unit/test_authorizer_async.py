"""
Unit tests for the async Authorizer API.

Tests cover:
- adecide/aexplain agree with the sync path
- Sequential engine calls in declared order
- Error propagation
- Cancellation never yields an allow
"""

import asyncio
import threading
from unittest.mock import MagicMock

import pytest

from warden.authorizer import Authorizer
from warden.enforcer import CasbinEnforcer
from warden.errors import EngineError
from warden.schema import (
    AuthAction,
    AuthPossession,
    PermissionRequirement,
    RequestContext,
)


def read(resource: str) -> PermissionRequirement:
    return PermissionRequirement(action=AuthAction.READ, resource=resource)


class TestAsyncDecide:
    """adecide mirrors decide."""

    @pytest.mark.asyncio
    async def test_empty_requirements(self, mock_enforcer: MagicMock) -> None:
        assert await Authorizer(mock_enforcer).adecide(None, []) is True

    @pytest.mark.asyncio
    async def test_unresolved_subject(self, mock_enforcer: MagicMock) -> None:
        assert await Authorizer(mock_enforcer).adecide("", [read("USER")]) is False
        mock_enforcer.enforce.assert_not_called()

    @pytest.mark.asyncio
    async def test_scenarios_match_sync(self, enforcer: CasbinEnforcer) -> None:
        authorizer = Authorizer(enforcer)
        cases = [
            ("alice", [read("USER")]),
            ("alice", [read("USER"), read("USER_ROLES")]),
            ("carol", [read("USER_ROLES")]),
        ]
        for subject, requirements in cases:
            expected = authorizer.decide(subject, requirements)
            assert await authorizer.adecide(subject, requirements) is expected

    @pytest.mark.asyncio
    async def test_own_requirement(self, enforcer: CasbinEnforcer) -> None:
        requirement = PermissionRequirement(
            action=AuthAction.UPDATE,
            resource="DOC",
            possession=AuthPossession.OWN,
            is_own=lambda ctx: ctx.params.get("owner_id") == ctx.subject,
        )
        authorizer = Authorizer(enforcer)
        owner = RequestContext(subject="bob", params={"owner_id": "bob"})
        stranger = RequestContext(subject="bob", params={"owner_id": "carol"})

        assert await authorizer.adecide("bob", [requirement], owner) is True
        assert await authorizer.adecide("bob", [requirement], stranger) is False

    @pytest.mark.asyncio
    async def test_calls_in_declared_order(self, mock_enforcer: MagicMock) -> None:
        await Authorizer(mock_enforcer).adecide("alice", [read("A"), read("B"), read("C")])
        assert [c.args[1] for c in mock_enforcer.enforce.call_args_list] == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_engine_error_propagates(self, mock_enforcer: MagicMock) -> None:
        mock_enforcer.enforce.side_effect = EngineError(operation="enforce")
        with pytest.raises(EngineError):
            await Authorizer(mock_enforcer).adecide("alice", [read("USER")])

    @pytest.mark.asyncio
    async def test_concurrent_requests_are_independent(self, enforcer: CasbinEnforcer) -> None:
        authorizer = Authorizer(enforcer)
        results = await asyncio.gather(
            authorizer.adecide("alice", [read("USER")]),
            authorizer.adecide("alice", [read("USER_ROLES")]),
            authorizer.adecide("carol", [read("USER_ROLES")]),
            authorizer.adecide("", [read("USER")]),
        )
        assert results == [True, False, True, False]


class TestAsyncCancellation:
    """A cancelled decision raises instead of allowing."""

    @pytest.mark.asyncio
    async def test_cancelled_decision_raises(self) -> None:
        release = threading.Event()
        started = threading.Event()

        def slow_enforce(subject: str, resource: str, action: str) -> bool:
            started.set()
            release.wait(timeout=5)
            return True

        enforcer = MagicMock()
        enforcer.enforce.side_effect = slow_enforce
        task = asyncio.create_task(Authorizer(enforcer).adecide("alice", [read("USER")]))

        await asyncio.to_thread(started.wait, 5)
        task.cancel()
        try:
            with pytest.raises(asyncio.CancelledError):
                await task
        finally:
            release.set()

    @pytest.mark.asyncio
    async def test_timeout_raises(self) -> None:
        release = threading.Event()

        def slow_enforce(subject: str, resource: str, action: str) -> bool:
            release.wait(timeout=5)
            return True

        enforcer = MagicMock()
        enforcer.enforce.side_effect = slow_enforce
        try:
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(
                    Authorizer(enforcer).adecide("alice", [read("USER")]),
                    timeout=0.05,
                )
        finally:
            release.set()
