"""
Policy enforcer interface.

PolicyEnforcer is the narrow surface the authorizer (and any other
caller) uses to talk to the policy engine. It owns no state: every method
delegates 1:1 to the engine primitive of the same name, with the same
argument shapes and the same success/failure semantics.

Implementations:
    - CasbinEnforcer: adapter over a shared casbin.SyncedEnforcer

Contract:
    - enforce() answers (subject, resource, action) with a bool
    - Any failure of the engine surfaces as EngineError, never as False
    - Mutations are visible to every later enforce() call, including calls
      from concurrent requests; implementations must never let a reader
      observe a half-applied mutation
"""

from abc import ABC, abstractmethod


class PolicyEnforcer(ABC):
    """
    Abstract policy engine facade.

    Subclass this to plug a different engine in, or mock it in tests:

        enforcer = MagicMock(spec=PolicyEnforcer)
        enforcer.enforce.return_value = True
    """

    # =========================================================================
    # Enforcement
    # =========================================================================

    @abstractmethod
    def enforce(self, subject: str, resource: str, action: str) -> bool:
        """
        Decide whether subject may perform action on resource.

        Raises:
            EngineError: If the engine could not evaluate the request
        """
        ...

    # =========================================================================
    # RBAC
    # =========================================================================

    @abstractmethod
    def get_roles_for_user(self, user: str) -> list[str]:
        """Roles directly assigned to user."""
        ...

    @abstractmethod
    def get_users_for_role(self, role: str) -> list[str]:
        """Users directly assigned to role."""
        ...

    @abstractmethod
    def has_role_for_user(self, user: str, role: str) -> bool:
        """Whether user has role."""
        ...

    @abstractmethod
    def add_role_for_user(self, user: str, role: str) -> bool:
        """Assign role to user. False if already assigned."""
        ...

    @abstractmethod
    def delete_role_for_user(self, user: str, role: str) -> bool:
        """Remove role from user. False if not assigned."""
        ...

    @abstractmethod
    def delete_roles_for_user(self, user: str) -> bool:
        """Remove all roles from user."""
        ...

    @abstractmethod
    def delete_user(self, user: str) -> bool:
        """Remove user and every rule mentioning it."""
        ...

    @abstractmethod
    def delete_role(self, role: str) -> bool:
        """Remove role and every rule mentioning it."""
        ...

    @abstractmethod
    def delete_permission(self, *permission: str) -> bool:
        """Remove a permission from every subject."""
        ...

    @abstractmethod
    def add_permission_for_user(self, user: str, *permission: str) -> bool:
        """Grant a permission (resource, action) to a user or role."""
        ...

    @abstractmethod
    def delete_permission_for_user(self, user: str, *permission: str) -> bool:
        """Revoke a permission from a user or role."""
        ...

    @abstractmethod
    def delete_permissions_for_user(self, user: str) -> bool:
        """Revoke every permission of a user or role."""
        ...

    @abstractmethod
    def get_permissions_for_user(self, user: str) -> list[list[str]]:
        """Permissions granted directly to a user or role."""
        ...

    @abstractmethod
    def has_permission_for_user(self, user: str, *permission: str) -> bool:
        """Whether a permission is granted directly to a user or role."""
        ...

    @abstractmethod
    def get_implicit_roles_for_user(self, user: str) -> list[str]:
        """Roles of user, including roles inherited through the hierarchy."""
        ...

    @abstractmethod
    def get_implicit_permissions_for_user(self, user: str) -> list[list[str]]:
        """Permissions of user, including those granted through roles."""
        ...

    # =========================================================================
    # Policy management
    # =========================================================================

    @abstractmethod
    def get_all_subjects(self) -> list[str]:
        """Subjects appearing in policy rules."""
        ...

    @abstractmethod
    def get_all_objects(self) -> list[str]:
        """Resources appearing in policy rules."""
        ...

    @abstractmethod
    def get_all_actions(self) -> list[str]:
        """Actions appearing in policy rules."""
        ...

    @abstractmethod
    def get_all_roles(self) -> list[str]:
        """Roles appearing in grouping rules."""
        ...

    @abstractmethod
    def get_policy(self) -> list[list[str]]:
        """All policy rules."""
        ...

    @abstractmethod
    def get_filtered_policy(self, field_index: int, *field_values: str) -> list[list[str]]:
        """Policy rules matching field values starting at field_index."""
        ...

    @abstractmethod
    def has_policy(self, *params: str) -> bool:
        """Whether a policy rule exists."""
        ...

    @abstractmethod
    def add_policy(self, *params: str) -> bool:
        """Add a policy rule. False if it already exists."""
        ...

    @abstractmethod
    def add_policies(self, rules: list[list[str]]) -> bool:
        """Add several policy rules as one mutation."""
        ...

    @abstractmethod
    def remove_policy(self, *params: str) -> bool:
        """Remove a policy rule. False if it does not exist."""
        ...

    @abstractmethod
    def remove_policies(self, rules: list[list[str]]) -> bool:
        """Remove several policy rules as one mutation."""
        ...

    @abstractmethod
    def get_grouping_policy(self) -> list[list[str]]:
        """All role assignment rules."""
        ...

    @abstractmethod
    def add_grouping_policy(self, *params: str) -> bool:
        """Add a role assignment rule."""
        ...

    @abstractmethod
    def remove_grouping_policy(self, *params: str) -> bool:
        """Remove a role assignment rule."""
        ...

    @abstractmethod
    def load_policy(self) -> None:
        """Reload the policy from the engine's storage adapter."""
        ...

    @abstractmethod
    def save_policy(self) -> None:
        """Persist the in-memory policy through the storage adapter."""
        ...
