from __future__ import annotations

from collections.abc import Callable, Generator
from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import Connection, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from receipt_split.api.app import create_app
from receipt_split.api.dependencies import get_session_factory
from receipt_split.db.base import Base, import_orm_models
from receipt_split.db.session import get_db_session
from receipt_split.domain.identity import RequestContext, VerifiedIdentity
from receipt_split.domain.items import ItemInput
from receipt_split.services.receipt_service import CreateReceiptInput

HOST_DEVICE = "11111111-1111-4111-8111-111111111111"
GUEST_A_DEVICE = "aaaaaaaa-aaaa-4aaa-8aaa-aaaaaaaaaaaa"
GUEST_B_DEVICE = "bbbbbbbb-bbbb-4bbb-8bbb-bbbbbbbbbbbb"

ALICE = VerifiedIdentity(
    token_identifier="https://issuer.example|alice",
    subject="alice",
    issuer="https://issuer.example",
    name="Alice",
    email="alice@example.com",
)
BOB = VerifiedIdentity(
    token_identifier="https://issuer.example|bob",
    subject="bob",
    issuer="https://issuer.example",
    name="Bob",
)


def guest_context(device_id: str) -> RequestContext:
    return RequestContext(guest_device_id=device_id)


def auth_context(identity: VerifiedIdentity) -> RequestContext:
    return RequestContext(identity=identity)


def guest_headers(device_id: str) -> dict[str, str]:
    return {"X-Guest-Device-Id": device_id}


def auth_headers(identity: VerifiedIdentity) -> dict[str, str]:
    headers = {
        "X-Auth-Token-Identifier": identity.token_identifier,
        "X-Auth-Subject": identity.subject,
        "X-Auth-Issuer": identity.issuer,
    }
    if identity.name:
        headers["X-Auth-Name"] = identity.name
    return headers


def receipt_input(
    client_receipt_id: str = "receipt-1",
    *,
    items: list[ItemInput] | None = None,
    receipt_total: str | None = None,
    tax: str | None = None,
    gratuity: str | None = None,
) -> CreateReceiptInput:
    return CreateReceiptInput(
        client_receipt_id=client_receipt_id,
        items=(
            items
            if items is not None
            else [
                ItemInput(name="Tacos", quantity=3, price=30, client_item_id="tacos"),
                ItemInput(name="Soda", quantity=1, price=4, client_item_id="soda"),
            ]
        ),
        receipt_total=Decimal(receipt_total) if receipt_total else None,
        tax=Decimal(tax) if tax else None,
        gratuity=Decimal(gratuity) if gratuity else None,
    )


@pytest.fixture
def sqlite_session_factory() -> Generator[sessionmaker[Session], None, None]:
    import_orm_models()
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite only nests SAVEPOINTs inside an explicit BEGIN.
    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection: Any, _: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(connection: Connection) -> None:
        connection.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    factory = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    try:
        yield factory
    finally:
        Base.metadata.drop_all(engine)


@pytest.fixture
def session(
    sqlite_session_factory: sessionmaker[Session],
) -> Generator[Session, None, None]:
    with sqlite_session_factory() as db_session:
        yield db_session


@pytest.fixture
def client(
    sqlite_session_factory: sessionmaker[Session],
) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_get_db_session() -> Generator[Session, None, None]:
        with sqlite_session_factory() as db_session:
            yield db_session

    def override_get_session_factory() -> Callable[[], Session]:
        return sqlite_session_factory

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.dependency_overrides[get_session_factory] = override_get_session_factory
    with TestClient(app) as test_client:
        yield test_client
