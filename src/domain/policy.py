from typing import Any

from src.domain.entities import Identity
from src.domain.errors import AuthorizationError
from src.rules.models import RbacRules


def _owner_of(resource: Any) -> str | None:
    for attr in ("author_id", "user_id"):
        owner = getattr(resource, attr, None)
        if owner is not None:
            return str(owner)
    return None


class PolicyEngine:
    def __init__(self, rules: RbacRules):
        self.rules = rules

    def check_permission(
        self,
        identity: Identity | None,
        action: str,
        resource: Any = None,
    ) -> bool:
        """
        Check if the caller may perform the action on the resource.

        Order of precedence:
        1. Role-based permissions (admin holds "*")
        2. Permissions every authenticated caller holds
        3. Ownership of the resource (author_id / user_id)
        """
        if identity is None:
            return False

        if identity.role is not None:
            allowed_actions = self.rules.roles.get(identity.role, [])
            if "*" in allowed_actions or action in allowed_actions:
                return True
            if ":" in action and f"{action.split(':')[0]}:*" in allowed_actions:
                return True

        if action in self.rules.authenticated_permissions:
            return True

        if resource is not None and action in self.rules.owner_permissions:
            return _owner_of(resource) == identity.user_id

        return False

    def require(
        self,
        identity: Identity | None,
        action: str,
        resource: Any = None,
    ) -> None:
        """Raise AuthorizationError unless the permission check passes."""
        if not self.check_permission(identity, action, resource):
            raise AuthorizationError(f"Not allowed to {action.replace(':', ' ')}")

    def can_view_unpublished(self, identity: Identity | None, resource: Any) -> bool:
        if identity is None:
            return False
        return identity.is_admin or _owner_of(resource) == identity.user_id
