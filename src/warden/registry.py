"""
Permission registry for Warden.

The registry maps operation identifiers to the permission requirements
declared for them. It is populated once at startup, either in code or from
a config file, and read by the guard at dispatch time.

Design:
    - Single global registry (default_registry) for convenience
    - Support for multiple registries for testing/isolation
    - Requirements are stored as immutable tuples
    - An operation registered with no requirements is explicitly public;
      an unregistered operation is an error, not an open door

Usage:
    from warden.registry import default_registry, use_permissions

    @use_permissions(
        PermissionRequirement(action=AuthAction.READ, resource="USER"),
    )
    def list_users(request): ...

    default_registry.get("myapp.views.list_users")
"""

from collections.abc import Callable, Iterator
from typing import TypeVar

from warden.errors import ConfigError, OperationNotFoundError
from warden.schema import (
    OwnershipPredicate,
    PermissionRequirement,
    RequestContext,
    RequirementSpec,
    WardenConfig,
)

F = TypeVar("F", bound=Callable[..., object])


class OwnershipChecks:
    """
    Named ownership predicates.

    Config files cannot hold code, so ownership-qualified requirements in
    YAML name a predicate registered here.
    """

    def __init__(self) -> None:
        self._checks: dict[str, OwnershipPredicate] = {}

    def register(self, name: str, predicate: OwnershipPredicate) -> None:
        """
        Register a predicate under name (replacing any previous one).

        Raises:
            ValueError: If name is empty or predicate is not callable
        """
        if not name:
            msg = "Ownership check must have a non-empty name"
            raise ValueError(msg)
        if not callable(predicate):
            msg = f"Ownership check {name!r} is not callable"
            raise ValueError(msg)
        self._checks[name] = predicate

    def check(self, name: str) -> Callable[[F], F]:
        """Decorator form of register()."""

        def decorator(func: F) -> F:
            self.register(name, func)
            return func

        return decorator

    def get(self, name: str) -> OwnershipPredicate | None:
        return self._checks.get(name)

    def names(self) -> list[str]:
        return sorted(self._checks)

    def __contains__(self, name: str) -> bool:
        return name in self._checks

    def __len__(self) -> int:
        return len(self._checks)


def param_owner_check(param: str) -> OwnershipPredicate:
    """
    Ownership predicate comparing a request parameter with the subject.

    The subject owns the target when context.params[param], as a string,
    equals the subject. A missing parameter or subject means not the owner.
    """

    def predicate(context: RequestContext) -> bool:
        value = context.params.get(param)
        if value is None or not context.subject:
            return False
        return str(value) == context.subject

    predicate.__name__ = f"param_owner_check[{param}]"
    return predicate


def builtin_ownership_checks() -> OwnershipChecks:
    """OwnershipChecks preloaded with "owner_id" (see param_owner_check)."""
    checks = OwnershipChecks()
    checks.register("owner_id", param_owner_check("owner_id"))
    return checks


class PermissionRegistry:
    """
    Registry of permission requirements per operation.

    Attributes:
        _operations: Operation identifier -> declared requirements
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._operations: dict[str, tuple[PermissionRequirement, ...]] = {}

    @classmethod
    def from_config(
        cls,
        config: WardenConfig,
        ownership_checks: OwnershipChecks | None = None,
    ) -> "PermissionRegistry":
        """
        Build a registry from a loaded config.

        Raises:
            ConfigError: If a requirement names an unknown ownership check,
                or names one on a requirement that is not ownership-qualified
        """
        checks = ownership_checks if ownership_checks is not None else OwnershipChecks()
        registry = cls()
        for operation, specs in config.operations.items():
            requirements = [
                _requirement_from_spec(operation, spec, checks) for spec in specs
            ]
            registry.register(operation, *requirements)
        return registry

    def register(self, operation: str, *requirements: PermissionRequirement) -> None:
        """
        Register the requirements of an operation.

        Registering the same operation again replaces its requirements.

        Raises:
            ValueError: If operation is empty or a requirement has the wrong type
        """
        if not operation:
            msg = "Operation must have a non-empty identifier"
            raise ValueError(msg)

        for requirement in requirements:
            if not isinstance(requirement, PermissionRequirement):
                msg = f"Expected PermissionRequirement for {operation}, got {type(requirement).__name__}"
                raise ValueError(msg)

        self._operations[operation] = tuple(requirements)

    def get(self, operation: str) -> tuple[PermissionRequirement, ...]:
        """
        Look up the requirements of an operation.

        Raises:
            OperationNotFoundError: If the operation was never registered
        """
        requirements = self._operations.get(operation)
        if requirements is None:
            raise OperationNotFoundError(operation=operation)
        return requirements

    def get_optional(self, operation: str) -> tuple[PermissionRequirement, ...] | None:
        return self._operations.get(operation)

    def has(self, operation: str) -> bool:
        return operation in self._operations

    def unregister(self, operation: str) -> bool:
        """Remove an operation. False if it wasn't registered."""
        if operation in self._operations:
            del self._operations[operation]
            return True
        return False

    def clear(self) -> None:
        self._operations.clear()

    def list_operations(self) -> list[str]:
        """Registered operation identifiers in sorted order."""
        return sorted(self._operations.keys())

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[str]:
        return iter(self.list_operations())

    def __contains__(self, operation: str) -> bool:
        return operation in self._operations

    def __repr__(self) -> str:
        operations = ", ".join(self.list_operations())
        return f"<PermissionRegistry: [{operations}]>"


def _requirement_from_spec(
    operation: str,
    spec: RequirementSpec,
    checks: OwnershipChecks,
) -> PermissionRequirement:
    predicate = None
    if spec.owner_check is not None:
        predicate = checks.get(spec.owner_check)
        if predicate is None:
            raise ConfigError(
                message=f"Unknown ownership check {spec.owner_check!r} in {operation}",
                suggestion=f"Register it first; known checks: {checks.names() or 'none'}",
            )

    requirement = PermissionRequirement(
        action=spec.action,
        resource=spec.resource,
        possession=spec.possession,
        is_own=predicate,
    )
    if predicate is not None and not requirement.ownership_qualified:
        raise ConfigError(
            message=f"owner_check set on a possession=any requirement in {operation}",
            suggestion="Use possession: own or own_any, or drop owner_check",
        )
    return requirement


# Global default registry instance
default_registry = PermissionRegistry()


def use_permissions(
    *requirements: PermissionRequirement,
    operation: str | None = None,
    registry: PermissionRegistry | None = None,
) -> Callable[[F], F]:
    """
    Declare the permissions of a function at definition time.

    The requirements are registered under operation, or the function's
    "module.qualname" by default. The function itself is returned as is.
    """

    def decorator(func: F) -> F:
        name = operation or f"{func.__module__}.{func.__qualname__}"
        target = default_registry if registry is None else registry
        target.register(name, *requirements)
        return func

    return decorator


def register_permissions(operation: str, *requirements: PermissionRequirement) -> None:
    """Register requirements in the default registry."""
    default_registry.register(operation, *requirements)


def get_permissions(operation: str) -> tuple[PermissionRequirement, ...]:
    """
    Get requirements from the default registry.

    Raises:
        OperationNotFoundError: If the operation was never registered
    """
    return default_registry.get(operation)
