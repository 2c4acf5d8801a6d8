"""FastAPI app bootstrap for the receipt split ledger."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from receipt_split.api.error_handlers import register_error_handlers
from receipt_split.api.routes import v1_router
from receipt_split.db.models.receipt import Receipt
from receipt_split.db.models.receipt_claim import ReceiptClaim
from receipt_split.db.session import get_db_session

OPENAPI_TAGS = [
    {"name": "Receipts", "description": "Share codes, items and owner lifecycle."},
    {"name": "Claims", "description": "Claimed quantities and the live view."},
    {"name": "Participants", "description": "Roster, submission and names."},
    {"name": "Settlement", "description": "Finalize, pay and confirm."},
    {"name": "Users", "description": "Profile, allowance and guest migration."},
]


def create_app() -> FastAPI:
    """Create the receipt split API with its ledger health probes."""

    app = FastAPI(
        title="Receipt Split API",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
    )

    @app.get("/health/live", include_in_schema=False)
    def health_live() -> dict[str, str]:
        return {"status": "alive"}

    @app.get("/health/ready", include_in_schema=False)
    def health_ready(
        db_session: Annotated[Session, Depends(get_db_session)],
    ) -> dict[str, str]:
        """Ready once the receipt and claim tables answer a query."""

        try:
            db_session.execute(select(Receipt.id).limit(1))
            db_session.execute(select(ReceiptClaim.id).limit(1))
        except SQLAlchemyError as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Receipt ledger storage is unavailable",
            ) from exc
        return {"status": "ready", "ledger": "receipts"}

    register_error_handlers(app)
    app.include_router(v1_router)
    return app


app = create_app()
