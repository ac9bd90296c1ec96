"""User directory used by the payment orchestrators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from .models import CustomUser


@dataclass(frozen=True)
class Account:
    id: UUID
    email: str
    role: str
    stripe_customer_id: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == CustomUser.RoleChoices.ADMIN


class UserDirectory(ABC):
    @abstractmethod
    def resolve(self, identifier: str) -> Optional[Account]:
        """Find an account by email, ignoring case and surrounding spaces."""

    @abstractmethod
    def get(self, user_id: UUID) -> Optional[Account]:
        ...

    @abstractmethod
    def is_admin(self, user_id: UUID) -> bool:
        ...

    @abstractmethod
    def attach_customer(self, user_id: UUID, customer_id: str) -> str:
        """
        Store a gateway customer id unless one is already set.

        Returns the id that ends up stored, so two concurrent callers
        converge on the same customer.
        """


def _to_account(user: CustomUser) -> Account:
    role = CustomUser.RoleChoices.ADMIN if user.is_admin() else user.role
    return Account(
        id=user.pk,
        email=user.email,
        role=role,
        stripe_customer_id=user.stripe_customer_id,
    )


class DjangoUserDirectory(UserDirectory):
    def resolve(self, identifier: str) -> Optional[Account]:
        email = (identifier or "").strip()
        if not email:
            return None
        user = CustomUser.objects.filter(email__iexact=email, is_active=True).first()
        return _to_account(user) if user else None

    def get(self, user_id: UUID) -> Optional[Account]:
        user = CustomUser.objects.filter(pk=user_id).first()
        return _to_account(user) if user else None

    def is_admin(self, user_id: UUID) -> bool:
        account = self.get(user_id)
        return bool(account and account.is_admin)

    def attach_customer(self, user_id: UUID, customer_id: str) -> str:
        updated = CustomUser.objects.filter(pk=user_id, stripe_customer_id="").update(
            stripe_customer_id=customer_id
        )
        if updated:
            return customer_id
        return CustomUser.objects.values_list("stripe_customer_id", flat=True).get(pk=user_id)
