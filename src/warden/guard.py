"""
Request guard for Warden.

The guard is what a host integration calls for every incoming request:
it resolves the subject, looks up the requirements of the operation and
asks the Authorizer. require() turns a negative decision into an
AccessDeniedError; everything else (engine or ownership failures, unknown
operations) propagates untouched, so hosts can answer "denied" and
"broken" differently.

Usage:
    guard = Guard(Authorizer(enforcer), registry)

    try:
        guard.require("docs.update", RequestContext(subject=user_id, params=path_params))
    except SubjectUnresolvedError:
        return 401
    except AccessDeniedError:
        return 403
"""

import asyncio

from warden.authorizer import Authorizer
from warden.enforcer import CasbinEnforcer
from warden.errors import AccessDeniedError, SubjectUnresolvedError
from warden.registry import OwnershipChecks, PermissionRegistry
from warden.schema import (
    Decision,
    RequestContext,
    SubjectResolver,
    WardenConfig,
    subject_from_context,
)


class Guard:
    """
    Per-request entry point combining subject resolution, the permission
    registry and the authorizer.

    Attributes:
        authorizer: Decision evaluator
        registry: Operation -> requirements lookup
        subject_resolver: Reads the subject out of a RequestContext
    """

    def __init__(
        self,
        authorizer: Authorizer,
        registry: PermissionRegistry,
        subject_resolver: SubjectResolver = subject_from_context,
    ) -> None:
        self.authorizer = authorizer
        self.registry = registry
        self.subject_resolver = subject_resolver

    @classmethod
    def from_config(
        cls,
        config: WardenConfig,
        ownership_checks: OwnershipChecks | None = None,
        subject_resolver: SubjectResolver = subject_from_context,
    ) -> "Guard":
        """
        Build a guard with a Casbin enforcer and a registry from config.

        Raises:
            EngineLoadError: If the model or policy cannot be loaded
            ConfigError: If an ownership check is unknown
        """
        registry = PermissionRegistry.from_config(config, ownership_checks)
        enforcer = CasbinEnforcer.from_config(config)
        return cls(Authorizer(enforcer), registry, subject_resolver)

    def check(self, operation: str, context: RequestContext) -> Decision:
        """
        Decide a request without raising on denial.

        Raises:
            OperationNotFoundError: If the operation is not registered
            EngineError: If the policy engine failed
            OwnershipCheckError: If an ownership predicate raised
        """
        requirements = self.registry.get(operation)
        context = self._with_operation(context, operation)
        subject = self.subject_resolver(context)
        return self.authorizer.explain(subject, requirements, context)

    async def acheck(self, operation: str, context: RequestContext) -> Decision:
        """Async form of check()."""
        requirements = self.registry.get(operation)
        context = self._with_operation(context, operation)
        subject = await asyncio.to_thread(self.subject_resolver, context)
        return await self.authorizer.aexplain(subject, requirements, context)

    def require(self, operation: str, context: RequestContext) -> Decision:
        """
        Decide a request, raising if it may not proceed.

        Raises:
            SubjectUnresolvedError: If no subject could be resolved
            AccessDeniedError: If the decision is negative
        """
        decision = self.check(operation, context)
        self._raise_on_denial(operation, decision)
        return decision

    async def arequire(self, operation: str, context: RequestContext) -> Decision:
        """Async form of require()."""
        decision = await self.acheck(operation, context)
        self._raise_on_denial(operation, decision)
        return decision

    @staticmethod
    def _with_operation(context: RequestContext, operation: str) -> RequestContext:
        if context.operation == operation:
            return context
        return context.model_copy(update={"operation": operation})

    @staticmethod
    def _raise_on_denial(operation: str, decision: Decision) -> None:
        if decision.allowed:
            return
        subject = decision.subject
        if not (subject and subject.strip()):
            raise SubjectUnresolvedError(subject=subject, operation=operation)
        raise AccessDeniedError(
            subject=subject,
            operation=operation,
            reason=decision.reason,
        )
