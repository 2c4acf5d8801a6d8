"""User profile and bill credit persistence operations."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from receipt_split.db.models.bill_credit_purchase import BillCreditPurchase
from receipt_split.db.models.user import User


class UserRepository:
    """Repository for account profiles and redeemed purchases."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_token_identifier(self, token_identifier: str) -> User | None:
        statement = select(User).where(User.token_identifier == token_identifier)
        return self._session.scalar(statement)

    def get_by_token_identifier_for_update(self, token_identifier: str) -> User | None:
        statement = (
            select(User)
            .where(User.token_identifier == token_identifier)
            .with_for_update()
        )
        return self._session.scalar(statement)

    def map_by_token_identifiers(
        self, token_identifiers: Iterable[str]
    ) -> dict[str, User]:
        unique = sorted(set(token_identifiers))
        if not unique:
            return {}
        statement = select(User).where(User.token_identifier.in_(unique))
        users = self._session.scalars(statement)
        return {user.token_identifier: user for user in users}

    def add(self, user: User) -> User:
        self._session.add(user)
        self._session.flush()
        return user

    def get_credit_purchase(self, transaction_id: str) -> BillCreditPurchase | None:
        statement = select(BillCreditPurchase).where(
            BillCreditPurchase.transaction_id == transaction_id
        )
        return self._session.scalar(statement)

    def add_credit_purchase(self, purchase: BillCreditPurchase) -> BillCreditPurchase:
        self._session.add(purchase)
        self._session.flush()
        return purchase
