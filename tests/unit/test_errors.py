"""
Unit tests for error hierarchy.

Tests cover:
- Base WardenError behavior
- Authorization errors (denied, unresolved subject)
- Engine and ownership errors with context
- Registry/config errors
- Error serialization
"""

import pytest

from warden.errors import (
    ERROR_ACCESS_DENIED,
    ERROR_CONFIG_INVALID,
    ERROR_ENGINE_FAILURE,
    ERROR_ENGINE_LOAD,
    ERROR_OPERATION_NOT_FOUND,
    ERROR_OWNERSHIP_CHECK,
    ERROR_SUBJECT_UNRESOLVED,
    AccessDeniedError,
    ConfigError,
    EngineError,
    EngineLoadError,
    OperationNotFoundError,
    OwnershipCheckError,
    SubjectUnresolvedError,
    WardenError,
)


class TestWardenError:
    """Tests for base WardenError."""

    def test_basic_error(self) -> None:
        """Create a basic error with message."""
        err = WardenError(message="Something went wrong", code=9999)
        assert err.message == "Something went wrong"
        assert err.code == 9999
        assert err.suggestion is None
        assert err.context == {}

    def test_str_format(self) -> None:
        """String format includes code and message."""
        err = WardenError(message="Test error", code=1234)
        assert str(err) == "[E1234] Test error"

    def test_str_with_suggestion(self) -> None:
        err = WardenError(message="Failed", code=1, suggestion="Try again")
        assert "Suggestion: Try again" in str(err)

    def test_repr_format(self) -> None:
        """Repr includes class name and details."""
        err = WardenError(message="Test", code=1)
        assert "WardenError" in repr(err)
        assert "code=1" in repr(err)

    def test_can_be_raised(self) -> None:
        with pytest.raises(WardenError) as exc_info:
            raise WardenError(message="Test", code=1)
        assert exc_info.value.message == "Test"

    def test_to_dict(self) -> None:
        """Serialization keeps every field."""
        err = WardenError(message="Test", code=42, suggestion="Fix", context={"k": "v"})
        assert err.to_dict() == {
            "error_type": "WardenError",
            "message": "Test",
            "code": 42,
            "suggestion": "Fix",
            "context": {"k": "v"},
        }


# =============================================================================
# Authorization Errors
# =============================================================================


class TestAccessDeniedError:
    """Tests for denial errors raised by the guard."""

    def test_defaults(self) -> None:
        err = AccessDeniedError(subject="alice", operation="users.roles", reason="no grant")
        assert err.code == ERROR_ACCESS_DENIED
        assert err.message == "Access denied to users.roles: no grant"
        assert err.context == {
            "subject": "alice",
            "operation": "users.roles",
            "reason": "no grant",
        }

    def test_is_warden_error(self) -> None:
        assert isinstance(AccessDeniedError(), WardenError)

    def test_custom_message_kept(self) -> None:
        err = AccessDeniedError(message="Forbidden", operation="x")
        assert err.message == "Forbidden"


class TestSubjectUnresolvedError:
    """Tests for the unauthenticated variant."""

    def test_defaults(self) -> None:
        err = SubjectUnresolvedError(operation="users.list")
        assert err.code == ERROR_SUBJECT_UNRESOLVED
        assert err.reason == "no subject in request"
        assert err.subject is None
        assert "Unauthenticated request to users.list" in str(err)
        assert err.suggestion is not None

    def test_caught_as_access_denied(self) -> None:
        """Hosts that only catch AccessDeniedError still reject the request."""
        with pytest.raises(AccessDeniedError):
            raise SubjectUnresolvedError(operation="users.list")


# =============================================================================
# Engine Errors
# =============================================================================


class TestEngineError:
    """Tests for policy engine failures."""

    def test_defaults(self) -> None:
        err = EngineError(
            operation="enforce",
            arguments=("alice", "USER", "read"),
            underlying_error="adapter down",
        )
        assert err.code == ERROR_ENGINE_FAILURE
        assert err.message == "Policy engine enforce failed: adapter down"
        assert err.context["arguments"] == ["alice", "USER", "read"]

    def test_not_an_access_denial(self) -> None:
        assert not isinstance(EngineError(), AccessDeniedError)


class TestEngineLoadError:
    """Tests for model/policy load failures."""

    def test_defaults(self) -> None:
        err = EngineLoadError(
            model_path="model.conf",
            policy_path="policy.csv",
            underlying_error="missing section",
        )
        assert err.code == ERROR_ENGINE_LOAD
        assert err.operation == "load"
        assert "model.conf" in err.message
        assert err.context["policy_path"] == "policy.csv"
        assert err.context["underlying_error"] == "missing section"
        assert err.suggestion is not None

    def test_is_engine_error(self) -> None:
        assert isinstance(EngineLoadError(), EngineError)


# =============================================================================
# Ownership / Registry / Config Errors
# =============================================================================


class TestOwnershipCheckError:
    def test_defaults(self) -> None:
        err = OwnershipCheckError(resource="DOC", action="update", underlying_error="boom")
        assert err.code == ERROR_OWNERSHIP_CHECK
        assert err.message == "Ownership check for update on DOC failed: boom"
        assert err.context["resource"] == "DOC"


class TestOperationNotFoundError:
    def test_defaults(self) -> None:
        err = OperationNotFoundError(operation="users.purge")
        assert err.code == ERROR_OPERATION_NOT_FOUND
        assert "users.purge" in err.message
        assert err.context == {"operation": "users.purge"}


class TestConfigError:
    def test_defaults(self) -> None:
        err = ConfigError(path="warden.yaml")
        assert err.code == ERROR_CONFIG_INVALID
        assert err.message == "Invalid configuration"
        assert err.to_dict()["context"] == {"path": "warden.yaml"}


class TestErrorCodes:
    """Error codes are distinct."""

    def test_codes_unique(self) -> None:
        codes = [
            ERROR_ACCESS_DENIED,
            ERROR_SUBJECT_UNRESOLVED,
            ERROR_ENGINE_FAILURE,
            ERROR_ENGINE_LOAD,
            ERROR_OWNERSHIP_CHECK,
            ERROR_OPERATION_NOT_FOUND,
            ERROR_CONFIG_INVALID,
        ]
        assert len(codes) == len(set(codes))
