"""
Exception hierarchy for Warden.

All Warden exceptions inherit from WardenError, allowing callers to catch
all Warden-specific exceptions with a single except clause.

Exception Categories:
    - AccessDeniedError: Request rejected by the authorization decision
    - EngineError: The policy engine itself failed
    - OwnershipCheckError: An ownership predicate raised
    - OperationNotFoundError / ConfigError: Registry and config problems

Hosts should answer an AccessDeniedError with a rejection (401/403) and
anything else with a server error.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Authorization errors: 1xxx
ERROR_ACCESS_DENIED = 1001
ERROR_SUBJECT_UNRESOLVED = 1002

# Engine errors: 2xxx
ERROR_ENGINE_FAILURE = 2001
ERROR_ENGINE_LOAD = 2002

# Ownership errors: 3xxx
ERROR_OWNERSHIP_CHECK = 3001

# Registry/config errors: 4xxx
ERROR_OPERATION_NOT_FOUND = 4001
ERROR_CONFIG_INVALID = 4002


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class WardenError(Exception):
    """
    Base exception for all Warden errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Authorization Errors
# =============================================================================


@dataclass
class AccessDeniedError(WardenError):
    """
    Raised by the guard when a request is not authorized.

    Attributes:
        subject: The acting subject (None when it could not be resolved)
        operation: The guarded operation identifier
        reason: Why the decision was negative
    """

    subject: str | None = None
    operation: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Access denied to {self.operation}: {self.reason}"
        if self.code == 0:
            self.code = ERROR_ACCESS_DENIED
        self.context.update({
            "subject": self.subject,
            "operation": self.operation,
            "reason": self.reason,
        })


@dataclass
class SubjectUnresolvedError(AccessDeniedError):
    """Raised by the guard when no subject could be read from the request."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.reason:
            self.reason = "no subject in request"
        if not self.message:
            self.message = f"Unauthenticated request to {self.operation}"
        if self.code == 0:
            self.code = ERROR_SUBJECT_UNRESOLVED
        if not self.suggestion:
            self.suggestion = "Authenticate the request before it reaches the guard"
        super().__post_init__()


# =============================================================================
# Engine Errors
# =============================================================================


@dataclass
class EngineError(WardenError):
    """
    Raised when the policy engine fails.

    This is never a denial: the engine could not answer at all
    (malformed policy, unavailable adapter, ...).

    Attributes:
        operation: The engine primitive that failed (e.g., "enforce")
        arguments: Arguments passed to the primitive
        underlying_error: String form of the original exception
    """

    operation: str = ""
    arguments: tuple[Any, ...] = ()
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Policy engine {self.operation} failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_ENGINE_FAILURE
        self.context.update({
            "operation": self.operation,
            "arguments": list(self.arguments),
            "underlying_error": self.underlying_error,
        })


@dataclass
class EngineLoadError(EngineError):
    """Raised when the model or policy cannot be loaded into the engine."""

    model_path: str = ""
    policy_path: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.operation:
            self.operation = "load"
        if not self.message:
            self.message = f"Failed to load policy engine from {self.model_path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_ENGINE_LOAD
        if not self.suggestion:
            self.suggestion = "Check that the model and policy files exist and are valid Casbin files"
        super().__post_init__()
        self.context.update({
            "model_path": self.model_path,
            "policy_path": self.policy_path,
        })


# =============================================================================
# Ownership Errors
# =============================================================================


@dataclass
class OwnershipCheckError(WardenError):
    """
    Raised when an ownership predicate itself raises.

    Attributes:
        resource: Resource of the requirement being checked
        action: Action of the requirement being checked
        underlying_error: String form of the original exception
    """

    resource: str = ""
    action: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Ownership check for {self.action} on {self.resource} failed: "
                f"{self.underlying_error}"
            )
        if self.code == 0:
            self.code = ERROR_OWNERSHIP_CHECK
        self.context.update({
            "resource": self.resource,
            "action": self.action,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Registry / Config Errors
# =============================================================================


@dataclass
class OperationNotFoundError(WardenError):
    """Raised when an operation has no registered permission requirements."""

    operation: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"No permissions registered for operation: {self.operation}"
        if self.code == 0:
            self.code = ERROR_OPERATION_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Register the operation, with an empty requirement list if it is public"
        self.context["operation"] = self.operation


@dataclass
class ConfigError(WardenError):
    """Raised when a Warden config file is invalid."""

    path: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = "Invalid configuration"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        self.context["path"] = self.path
