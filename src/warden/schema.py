"""
Schema definitions for Warden.

This module defines the Pydantic models used throughout Warden:
- PermissionRequirement: One declared (action, resource, possession) tuple
- RequestContext: The narrow request value predicates and resolvers read
- AuthorizationQuery: Per-request input of a decision
- Decision/RequirementOutcome: The explained result of a decision
- WardenConfig/RequirementSpec: YAML configuration

Design Decisions:
    - Requirements are frozen: declared once at startup, never mutated
    - Ownership predicates are plain functions over RequestContext
    - An ownership-qualified requirement without a predicate is never
      satisfied (deny_ownership)
"""

from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from warden.errors import ConfigError


# Marker appended to a resource for ownership-qualified engine checks.
OWN_MARKER = "own"


# =============================================================================
# Enums
# =============================================================================


class AuthAction(str, Enum):
    """The operation a request performs on a resource."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


class AuthPossession(str, Enum):
    """
    Which resource instances a permission applies to.

    ANY applies regardless of ownership. OWN applies only when the subject
    is verified as the owner of the targeted instance. OWN_ANY is satisfied
    through either path, the ANY path being tried first.
    """

    ANY = "any"
    OWN = "own"
    OWN_ANY = "own_any"


# =============================================================================
# Request Models
# =============================================================================


class RequestContext(BaseModel):
    """
    What Warden sees of an incoming request.

    Hosts translate their framework request into this value before calling
    the guard, so ownership predicates and subject resolvers never depend on
    a specific transport.

    Attributes:
        subject: Authenticated subject identifier, if any
        operation: Identifier of the operation being invoked
        params: Request parameters (path/query/body values)
        attributes: Anything else the host wants predicates to see
    """

    model_config = ConfigDict(extra="forbid")

    subject: str | None = Field(
        default=None,
        description="Authenticated subject identifier",
    )
    operation: str | None = Field(
        default=None,
        description="Identifier of the operation being invoked",
    )
    params: dict[str, Any] = Field(
        default_factory=dict,
        description="Request parameters",
    )
    attributes: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional host-provided attributes",
    )


OwnershipPredicate = Callable[[RequestContext], bool]
SubjectResolver = Callable[[RequestContext], str | None]


def deny_ownership(context: RequestContext) -> bool:
    """Ownership predicate used when none was declared: never the owner."""
    return False


def subject_from_context(context: RequestContext) -> str | None:
    """Default subject resolver: the subject field of the context."""
    return context.subject


class PermissionRequirement(BaseModel):
    """
    A single declared permission an operation needs.

    Attributes:
        action: The action being performed
        resource: Resource type/collection name, opaque to Warden
        possession: Whether the permission is ownership-qualified
        is_own: Ownership predicate, only meaningful for own/own_any
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    action: AuthAction = Field(..., description="Action being performed")
    resource: str = Field(
        ...,
        description="Resource type or collection name",
        min_length=1,
    )
    possession: AuthPossession = Field(
        default=AuthPossession.ANY,
        description="Ownership qualifier",
    )
    is_own: OwnershipPredicate | None = Field(
        default=None,
        description="Ownership predicate for own/own_any requirements",
        exclude=True,
    )

    @field_validator("resource")
    @classmethod
    def validate_resource(cls, v: str) -> str:
        """Reject blank resource names."""
        if not v.strip():
            msg = "resource must not be blank"
            raise ValueError(msg)
        return v

    @property
    def ownership_qualified(self) -> bool:
        """Whether this requirement can be satisfied through ownership."""
        return self.possession in (AuthPossession.OWN, AuthPossession.OWN_ANY)

    def effective_resource(self, owned: bool = False) -> str:
        """
        Resource string sent to the engine.

        Args:
            owned: True for the ownership path of an own/own_any requirement

        Returns:
            resource for the ANY path, resource + ":own" for the OWN path
        """
        if owned:
            return f"{self.resource}:{OWN_MARKER}"
        return self.resource

    def check_ownership(self, context: RequestContext) -> bool:
        """Run the ownership predicate (constant False if none was declared)."""
        predicate = self.is_own or deny_ownership
        return bool(predicate(context))

    def describe(self) -> str:
        """Short human-readable form, e.g. 'update DOC (own)'."""
        return f"{self.action.value} {self.resource} ({self.possession.value})"


class AuthorizationQuery(BaseModel):
    """
    Input of one decision.

    Built fresh for every request and discarded afterwards; decisions are
    never cached because policy state can change between requests.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    subject: str | None = None
    requirements: tuple[PermissionRequirement, ...] = ()
    context: RequestContext = Field(default_factory=RequestContext)

    @property
    def subject_resolved(self) -> bool:
        """False for a missing, empty or blank subject."""
        return bool(self.subject and self.subject.strip())


# =============================================================================
# Decision Models
# =============================================================================


class RequirementOutcome(BaseModel):
    """
    How one requirement was evaluated.

    Attributes:
        action: Requirement action
        resource: Declared resource
        possession: Declared possession
        effective_resource: Resource sent to the engine (None if not consulted)
        engine_consulted: Whether the engine was called for this requirement
        allowed: Whether the requirement was satisfied
        skipped: Not evaluated because an earlier requirement already failed
        reason: Human-readable explanation
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    action: AuthAction
    resource: str
    possession: AuthPossession
    effective_resource: str | None = None
    engine_consulted: bool = False
    allowed: bool = False
    skipped: bool = False
    reason: str = ""


class Decision(BaseModel):
    """
    Result of evaluating an AuthorizationQuery.

    Attributes:
        allowed: The verdict the caller acts on
        subject: The subject the decision was made for
        reason: Human-readable explanation of the verdict
        outcomes: Per-requirement outcomes in declared order
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed: bool = Field(..., description="Whether the request may proceed")
    subject: str | None = Field(default=None, description="Acting subject")
    reason: str = Field(..., description="Explanation of the verdict")
    outcomes: tuple[RequirementOutcome, ...] = Field(
        default=(),
        description="Per-requirement outcomes",
    )

    @property
    def failed(self) -> tuple[RequirementOutcome, ...]:
        """Outcomes that were evaluated and not satisfied."""
        return tuple(o for o in self.outcomes if not o.allowed and not o.skipped)

    @property
    def engine_calls(self) -> int:
        """Number of requirements the engine was consulted for."""
        return sum(1 for o in self.outcomes if o.engine_consulted)


# =============================================================================
# Configuration Models
# =============================================================================


class RequirementSpec(BaseModel):
    """
    A permission requirement as written in a config file.

    Ownership predicates cannot live in YAML, so own/own_any requirements
    reference one by name (owner_check) from an OwnershipChecks registry.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    action: AuthAction
    resource: str = Field(..., min_length=1)
    possession: AuthPossession = AuthPossession.ANY
    owner_check: str | None = Field(
        default=None,
        description="Name of a registered ownership predicate",
    )


class WardenConfig(BaseModel):
    """
    Complete Warden configuration.

    Attributes:
        model: Casbin model file (None uses the bundled RBAC model)
        policy: Casbin policy CSV file (None starts with an empty policy)
        operations: Operation identifier -> requirement list
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    model: Path | None = Field(default=None, description="Casbin model file")
    policy: Path | None = Field(default=None, description="Casbin policy file")
    operations: dict[str, list[RequirementSpec]] = Field(
        default_factory=dict,
        description="Permission requirements per operation",
    )


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def _resolve_paths(config: WardenConfig, base_dir: Path) -> WardenConfig:
    """Resolve relative model/policy paths against the config directory."""
    updates: dict[str, Path] = {}
    for name in ("model", "policy"):
        value = getattr(config, name)
        if value is not None and not value.is_absolute():
            updates[name] = base_dir / value
    if not updates:
        return config
    return config.model_copy(update=updates)


def _parse_config(content: Any, source: str | None) -> WardenConfig:
    """Parse and validate YAML content, raising ConfigError on bad input."""
    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ConfigError(message=f"Invalid YAML: {e}", path=source) from e

    try:
        return WardenConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(
            message=f"Invalid configuration: {e.error_count()} validation error(s)",
            suggestion=str(e),
            path=source,
        ) from e


def load_config(path: Path | str) -> WardenConfig:
    """
    Load a Warden config from a YAML file.

    Relative model/policy paths are resolved against the file's directory.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigError: If the file is not valid YAML or doesn't match the schema
    """
    path = Path(path)
    with path.open() as f:
        config = _parse_config(f, str(path))
    return _resolve_paths(config, path.parent)


def load_config_from_string(content: str, base_dir: Path | str | None = None) -> WardenConfig:
    """Load a Warden config from a YAML string."""
    config = _parse_config(content, None)
    if base_dir is None:
        return config
    return _resolve_paths(config, Path(base_dir))
