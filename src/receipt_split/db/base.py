"""SQLAlchemy base metadata and model registration utilities."""

from importlib import import_module

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


def import_orm_models() -> None:
    """Import ORM models so metadata is fully populated."""

    modules = (
        "receipt_split.db.models.receipt",
        "receipt_split.db.models.receipt_item",
        "receipt_split.db.models.receipt_claim",
        "receipt_split.db.models.receipt_participant",
        "receipt_split.db.models.user",
        "receipt_split.db.models.bill_credit_purchase",
    )
    for module_name in modules:
        import_module(module_name)
