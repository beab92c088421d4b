"""Identity resolution backed by the users registry."""

from __future__ import annotations

from paint_orders.orders.models import Role, UserView
from paint_orders.orders.repository import OrderRepository


class IdentityResolver:
    """Maps pre-validated caller identifiers to roles and display names."""

    def __init__(self, repository: OrderRepository) -> None:
        self.repository = repository

    def register(self, *, user_id: str, role: Role, display_name: str = "") -> UserView:
        """Pick or switch a role for ``user_id``."""

        user_id = user_id.strip()
        if not user_id:
            raise ValueError("user_id must not be empty.")
        return self.repository.upsert_user(
            user_id=user_id,
            role=role,
            display_name=display_name.strip(),
        )

    def role_of(self, user_id: str) -> Role:
        user = self.repository.get_user(user_id=user_id)
        return user.role if user is not None else Role.UNKNOWN

    def display_name_of(self, user_id: str) -> str:
        user = self.repository.get_user(user_id=user_id)
        if user is None or not user.display_name:
            return user_id
        return user.display_name

    def list_ids(self, role: Role) -> list[str]:
        return [user.user_id for user in self.repository.list_users(role=role)]
