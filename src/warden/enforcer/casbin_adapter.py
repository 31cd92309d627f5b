"""
Casbin-backed policy enforcer.

CasbinEnforcer wraps one casbin.SyncedEnforcer shared by every request.
SyncedEnforcer guards the model with a read/write lock: the query
primitives take the read lock, mutations take the write lock, so a batch
mutation (add_policies/remove_policies) is never seen half-applied.
Matcher evaluation inside enforce() is not safe to run from several threads
at once, so enforce() calls are additionally serialized per engine.

Usage:
    enforcer = CasbinEnforcer.from_files("model.conf", "policy.csv")
    enforcer.enforce("alice", "USER", "read")

    # Bundled RBAC model, empty policy (handy for tests)
    enforcer = CasbinEnforcer.default()
    enforcer.add_policy("alice", "USER", "read")
"""

import logging
import threading
from importlib import resources
from pathlib import Path
from typing import Any

import casbin
from casbin.model import Model
from casbin.persist.adapters import FileAdapter

from warden.enforcer.base import PolicyEnforcer
from warden.errors import EngineError, EngineLoadError
from warden.schema import WardenConfig

logger = logging.getLogger(__name__)


def default_model_text() -> str:
    """Text of the RBAC model bundled with Warden."""
    return resources.files("warden").joinpath("data").joinpath("rbac_model.conf").read_text()


class CasbinEnforcer(PolicyEnforcer):
    """
    PolicyEnforcer adapter over casbin.SyncedEnforcer.

    Every method delegates to the Casbin method of the same name. Any
    exception Casbin raises is re-raised as EngineError with the original
    chained as __cause__.

    Attributes:
        engine: The shared casbin.SyncedEnforcer instance
    """

    def __init__(self, engine: casbin.SyncedEnforcer) -> None:
        """
        Initialize the adapter.

        Args:
            engine: An initialized SyncedEnforcer, shared across requests
        """
        self.engine = engine
        self._enforce_lock = threading.Lock()

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def from_files(
        cls,
        model_path: Path | str,
        policy_path: Path | str | None = None,
    ) -> "CasbinEnforcer":
        """
        Build an enforcer from a model file and an optional policy CSV.

        Raises:
            EngineLoadError: If a file is missing or Casbin rejects it
        """
        model_path = Path(model_path)
        policy_str = str(policy_path) if policy_path is not None else None

        if not model_path.is_file():
            raise EngineLoadError(
                model_path=str(model_path),
                policy_path=policy_str,
                underlying_error="model file not found",
            )
        if policy_path is not None and not Path(policy_path).is_file():
            raise EngineLoadError(
                model_path=str(model_path),
                policy_path=policy_str,
                underlying_error="policy file not found",
            )

        try:
            if policy_str is None:
                engine = casbin.SyncedEnforcer(str(model_path))
            else:
                engine = casbin.SyncedEnforcer(str(model_path), policy_str)
        except Exception as e:
            raise EngineLoadError(
                model_path=str(model_path),
                policy_path=policy_str,
                underlying_error=str(e),
            ) from e

        logger.info("Loaded policy engine (model=%s, policy=%s)", model_path, policy_str)
        return cls(engine)

    @classmethod
    def from_text(
        cls,
        model_text: str,
        policy_path: Path | str | None = None,
    ) -> "CasbinEnforcer":
        """
        Build an enforcer from model text.

        Without policy_path the policy starts empty and lives in memory.

        Raises:
            EngineLoadError: If the policy file is missing or Casbin rejects
                the model or policy
        """
        policy_str = str(policy_path) if policy_path is not None else None
        if policy_path is not None and not Path(policy_path).is_file():
            raise EngineLoadError(
                model_path="<text>",
                policy_path=policy_str,
                underlying_error="policy file not found",
            )

        try:
            model = Model()
            model.load_model_from_text(model_text)
            if policy_str is None:
                engine = casbin.SyncedEnforcer(model)
            else:
                engine = casbin.SyncedEnforcer(model, FileAdapter(policy_str))
        except Exception as e:
            raise EngineLoadError(
                model_path="<text>",
                policy_path=policy_str,
                underlying_error=str(e),
            ) from e
        return cls(engine)

    @classmethod
    def default(cls, policy_path: Path | str | None = None) -> "CasbinEnforcer":
        """Build an enforcer with the bundled RBAC model."""
        return cls.from_text(default_model_text(), policy_path)

    @classmethod
    def from_config(cls, config: WardenConfig) -> "CasbinEnforcer":
        """Build an enforcer from the model/policy paths of a config."""
        if config.model is None:
            return cls.default(config.policy)
        return cls.from_files(config.model, config.policy)

    # =========================================================================
    # Delegation
    # =========================================================================

    def _call(self, operation: str, *args: Any) -> Any:
        """Invoke a Casbin primitive, translating failures into EngineError."""
        try:
            return getattr(self.engine, operation)(*args)
        except Exception as e:
            raise EngineError(
                operation=operation,
                arguments=args,
                underlying_error=str(e) or e.__class__.__name__,
            ) from e

    def enforce(self, subject: str, resource: str, action: str) -> bool:
        with self._enforce_lock:
            return bool(self._call("enforce", subject, resource, action))

    # RBAC

    def get_roles_for_user(self, user: str) -> list[str]:
        return self._call("get_roles_for_user", user)

    def get_users_for_role(self, role: str) -> list[str]:
        return self._call("get_users_for_role", role)

    def has_role_for_user(self, user: str, role: str) -> bool:
        return self._call("has_role_for_user", user, role)

    def add_role_for_user(self, user: str, role: str) -> bool:
        return self._call("add_role_for_user", user, role)

    def delete_role_for_user(self, user: str, role: str) -> bool:
        return self._call("delete_role_for_user", user, role)

    def delete_roles_for_user(self, user: str) -> bool:
        return self._call("delete_roles_for_user", user)

    def delete_user(self, user: str) -> bool:
        return self._call("delete_user", user)

    def delete_role(self, role: str) -> bool:
        return self._call("delete_role", role)

    def delete_permission(self, *permission: str) -> bool:
        return self._call("delete_permission", *permission)

    def add_permission_for_user(self, user: str, *permission: str) -> bool:
        return self._call("add_permission_for_user", user, *permission)

    def delete_permission_for_user(self, user: str, *permission: str) -> bool:
        return self._call("delete_permission_for_user", user, *permission)

    def delete_permissions_for_user(self, user: str) -> bool:
        return self._call("delete_permissions_for_user", user)

    def get_permissions_for_user(self, user: str) -> list[list[str]]:
        return self._call("get_permissions_for_user", user)

    def has_permission_for_user(self, user: str, *permission: str) -> bool:
        return self._call("has_permission_for_user", user, *permission)

    def get_implicit_roles_for_user(self, user: str) -> list[str]:
        return self._call("get_implicit_roles_for_user", user)

    def get_implicit_permissions_for_user(self, user: str) -> list[list[str]]:
        return self._call("get_implicit_permissions_for_user", user)

    # Policy management

    def get_all_subjects(self) -> list[str]:
        return self._call("get_all_subjects")

    def get_all_objects(self) -> list[str]:
        return self._call("get_all_objects")

    def get_all_actions(self) -> list[str]:
        return self._call("get_all_actions")

    def get_all_roles(self) -> list[str]:
        return self._call("get_all_roles")

    def get_policy(self) -> list[list[str]]:
        return self._call("get_policy")

    def get_filtered_policy(self, field_index: int, *field_values: str) -> list[list[str]]:
        return self._call("get_filtered_policy", field_index, *field_values)

    def has_policy(self, *params: str) -> bool:
        return self._call("has_policy", *params)

    def add_policy(self, *params: str) -> bool:
        return self._call("add_policy", *params)

    def add_policies(self, rules: list[list[str]]) -> bool:
        return self._call("add_policies", rules)

    def remove_policy(self, *params: str) -> bool:
        return self._call("remove_policy", *params)

    def remove_policies(self, rules: list[list[str]]) -> bool:
        return self._call("remove_policies", rules)

    def get_grouping_policy(self) -> list[list[str]]:
        return self._call("get_grouping_policy")

    def add_grouping_policy(self, *params: str) -> bool:
        return self._call("add_grouping_policy", *params)

    def remove_grouping_policy(self, *params: str) -> bool:
        return self._call("remove_grouping_policy", *params)

    def load_policy(self) -> None:
        self._call("load_policy")

    def save_policy(self) -> None:
        self._call("save_policy")

    def __repr__(self) -> str:
        return f"<CasbinEnforcer: {self.engine!r}>"
