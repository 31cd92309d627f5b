"""
Authorization decision evaluator.

The Authorizer turns (subject, requirements, request context) into a single
allow/deny verdict, asking a PolicyEnforcer about each requirement.

How it works:
    1. No requirements: allow (the operation is unguarded)
    2. Missing or blank subject: deny without calling the engine
    3. For each requirement, in declared order:
        - any:     enforce(subject, resource, action)
        - own:     run the ownership predicate; if it says no, the
                   requirement fails and the engine is not called;
                   otherwise enforce(subject, resource + ":own", action)
        - own_any: the any check, then the own path if that denied
    4. AND of all requirement outcomes

After the first failed requirement the remaining ones are recorded as
skipped and never reach the engine. The verdict is the same either way.

Failure semantics:
    - EngineError from the enforcer propagates unchanged
    - An exception from an ownership predicate becomes OwnershipCheckError
    - Nothing is ever downgraded to a silent deny
    - A cancelled adecide() raises CancelledError; it never allows
"""

import asyncio
import logging
from collections.abc import Iterable

from warden.enforcer.base import PolicyEnforcer
from warden.errors import OwnershipCheckError, WardenError
from warden.schema import (
    AuthorizationQuery,
    AuthPossession,
    Decision,
    PermissionRequirement,
    RequestContext,
    RequirementOutcome,
)

logger = logging.getLogger(__name__)


class Authorizer:
    """
    Combines permission requirements into one decision.

    The authorizer holds no per-request state; one instance serves all
    concurrent requests. Only the enforcer's engine is shared.

    Usage:
        authorizer = Authorizer(CasbinEnforcer.from_files(model, policy))
        if not authorizer.decide("alice", requirements, context):
            # reject the request

    Attributes:
        enforcer: The policy engine facade consulted for every requirement
    """

    def __init__(self, enforcer: PolicyEnforcer) -> None:
        self.enforcer = enforcer

    # =========================================================================
    # Public API
    # =========================================================================

    def decide(
        self,
        subject: str | None,
        requirements: Iterable[PermissionRequirement],
        context: RequestContext | None = None,
    ) -> bool:
        """
        Decide whether subject may proceed.

        Args:
            subject: Acting subject identifier (None/empty fails closed)
            requirements: Requirements declared on the operation
            context: The request, as seen by ownership predicates

        Returns:
            True only if every requirement is satisfied

        Raises:
            EngineError: If the policy engine failed
            OwnershipCheckError: If an ownership predicate raised
        """
        return self.explain(subject, requirements, context).allowed

    def explain(
        self,
        subject: str | None,
        requirements: Iterable[PermissionRequirement],
        context: RequestContext | None = None,
    ) -> Decision:
        """Same as decide(), returning the full Decision."""
        query = self._build_query(subject, requirements, context)
        early = self._precheck(query)
        if early is not None:
            return early

        outcomes: list[RequirementOutcome] = []
        for requirement in query.requirements:
            if outcomes and not outcomes[-1].allowed:
                outcomes.append(self._skipped(requirement))
                continue
            outcomes.append(self._evaluate_requirement(query, requirement))

        return self._combine(query, outcomes)

    async def adecide(
        self,
        subject: str | None,
        requirements: Iterable[PermissionRequirement],
        context: RequestContext | None = None,
    ) -> bool:
        """Async form of decide()."""
        decision = await self.aexplain(subject, requirements, context)
        return decision.allowed

    async def aexplain(
        self,
        subject: str | None,
        requirements: Iterable[PermissionRequirement],
        context: RequestContext | None = None,
    ) -> Decision:
        """
        Async form of explain().

        Each requirement is evaluated in a worker thread, one after the
        other, so a slow policy store never blocks the event loop and the
        order of engine calls matches the synchronous path.
        """
        query = self._build_query(subject, requirements, context)
        early = self._precheck(query)
        if early is not None:
            return early

        outcomes: list[RequirementOutcome] = []
        for requirement in query.requirements:
            if outcomes and not outcomes[-1].allowed:
                outcomes.append(self._skipped(requirement))
                continue
            outcome = await asyncio.to_thread(self._evaluate_requirement, query, requirement)
            outcomes.append(outcome)

        return self._combine(query, outcomes)

    # =========================================================================
    # Evaluation
    # =========================================================================

    def _build_query(
        self,
        subject: str | None,
        requirements: Iterable[PermissionRequirement],
        context: RequestContext | None,
    ) -> AuthorizationQuery:
        return AuthorizationQuery(
            subject=subject,
            requirements=tuple(requirements),
            context=context if context is not None else RequestContext(),
        )

    def _precheck(self, query: AuthorizationQuery) -> Decision | None:
        """Decide the cases that need no engine call, or return None."""
        if not query.requirements:
            return Decision(
                allowed=True,
                subject=query.subject,
                reason="No permissions required",
            )

        if not query.subject_resolved:
            logger.info(
                "Denied unresolved subject for %d requirement(s)",
                len(query.requirements),
            )
            return Decision(
                allowed=False,
                subject=query.subject,
                reason="Subject unresolved",
                outcomes=tuple(self._skipped(r) for r in query.requirements),
            )

        return None

    def _evaluate_requirement(
        self,
        query: AuthorizationQuery,
        requirement: PermissionRequirement,
    ) -> RequirementOutcome:
        """Evaluate one requirement for a resolved subject."""
        subject = query.subject
        action = requirement.action.value
        any_resource: str | None = None

        if requirement.possession in (AuthPossession.ANY, AuthPossession.OWN_ANY):
            any_resource = requirement.effective_resource()
            if self._enforce(subject, any_resource, action):
                return self._outcome(
                    requirement,
                    allowed=True,
                    effective_resource=any_resource,
                    engine_consulted=True,
                    reason=f"Granted {action} on {any_resource}",
                )
            if requirement.possession == AuthPossession.ANY:
                return self._outcome(
                    requirement,
                    allowed=False,
                    effective_resource=any_resource,
                    engine_consulted=True,
                    reason=f"Policy does not grant {action} on {any_resource}",
                )

        if not self._owns(requirement, query.context):
            return self._outcome(
                requirement,
                allowed=False,
                effective_resource=any_resource,
                engine_consulted=any_resource is not None,
                reason=f"{subject} does not own the targeted {requirement.resource}",
            )

        own_resource = requirement.effective_resource(owned=True)
        allowed = self._enforce(subject, own_resource, action)
        if allowed:
            reason = f"Granted {action} on {own_resource}"
        else:
            reason = f"Policy does not grant {action} on {own_resource}"
        return self._outcome(
            requirement,
            allowed=allowed,
            effective_resource=own_resource,
            engine_consulted=True,
            reason=reason,
        )

    def _enforce(self, subject: str, resource: str, action: str) -> bool:
        allowed = bool(self.enforcer.enforce(subject, resource, action))
        logger.debug("enforce(%s, %s, %s) -> %s", subject, resource, action, allowed)
        return allowed

    def _owns(self, requirement: PermissionRequirement, context: RequestContext) -> bool:
        """Run the ownership predicate, wrapping foreign exceptions."""
        try:
            return requirement.check_ownership(context)
        except WardenError:
            raise
        except Exception as e:
            raise OwnershipCheckError(
                resource=requirement.resource,
                action=requirement.action.value,
                underlying_error=str(e) or e.__class__.__name__,
            ) from e

    def _combine(
        self,
        query: AuthorizationQuery,
        outcomes: list[RequirementOutcome],
    ) -> Decision:
        allowed = all(o.allowed for o in outcomes)
        if allowed:
            reason = f"All {len(outcomes)} requirement(s) satisfied"
        else:
            failed = next(o for o in outcomes if not o.allowed and not o.skipped)
            reason = failed.reason
            logger.info("Denied %s: %s", query.subject, reason)

        return Decision(
            allowed=allowed,
            subject=query.subject,
            reason=reason,
            outcomes=tuple(outcomes),
        )

    @staticmethod
    def _outcome(requirement: PermissionRequirement, **fields) -> RequirementOutcome:
        return RequirementOutcome(
            action=requirement.action,
            resource=requirement.resource,
            possession=requirement.possession,
            **fields,
        )

    @classmethod
    def _skipped(cls, requirement: PermissionRequirement) -> RequirementOutcome:
        return cls._outcome(
            requirement,
            allowed=False,
            skipped=True,
            reason="Not evaluated",
        )
