"""API v1 router registration."""

from fastapi import APIRouter

from receipt_split.api.routes import (
    claims,
    participants,
    receipts,
    settlement,
    users,
)

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(users.router)
v1_router.include_router(receipts.router)
v1_router.include_router(claims.router)
v1_router.include_router(participants.router)
v1_router.include_router(settlement.router)
