"""
Warden - per-request authorization decisions over a Casbin policy.

Warden sits between an incoming request and the business handler. It takes
the permission requirements declared on an operation, asks the policy
engine about each one and combines the answers into a single verdict:
- Every requirement must hold (logical AND)
- Ownership-qualified permissions need a positive ownership check first
- A request without a subject fails closed
- Engine failures surface as errors, never as a silent deny

Example usage:
    enforcer = CasbinEnforcer.from_files("model.conf", "policy.csv")
    authorizer = Authorizer(enforcer)
    authorizer.decide(
        "alice",
        [PermissionRequirement(action=AuthAction.READ, resource="USER")],
    )
"""

__version__ = "0.1.0"
__author__ = "Warden Contributors"

from warden.authorizer import Authorizer
from warden.enforcer import CasbinEnforcer, PolicyEnforcer
from warden.errors import (
    AccessDeniedError,
    ConfigError,
    EngineError,
    OperationNotFoundError,
    OwnershipCheckError,
    SubjectUnresolvedError,
    WardenError,
)
from warden.guard import Guard
from warden.registry import (
    OwnershipChecks,
    PermissionRegistry,
    default_registry,
    use_permissions,
)
from warden.schema import (
    AuthAction,
    AuthPossession,
    Decision,
    PermissionRequirement,
    RequestContext,
)

__all__ = [
    "__version__",
    "__author__",
    "Authorizer",
    "CasbinEnforcer",
    "PolicyEnforcer",
    "Guard",
    "OwnershipChecks",
    "PermissionRegistry",
    "default_registry",
    "use_permissions",
    "AuthAction",
    "AuthPossession",
    "Decision",
    "PermissionRequirement",
    "RequestContext",
    "WardenError",
    "AccessDeniedError",
    "SubjectUnresolvedError",
    "EngineError",
    "OwnershipCheckError",
    "OperationNotFoundError",
    "ConfigError",
]
