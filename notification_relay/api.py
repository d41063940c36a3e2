"""Read API: liveness probe and the caller's notifications."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel

from .adapters.record_store import SqlRecordStore
from .service import NotificationService


class NotificationOut(BaseModel):
    id: int
    user_id: str
    message: str
    service: str | None = None
    created_at: datetime


class AliveOut(BaseModel):
    message: str


def current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity, resolved upstream by the gateway and forwarded as a header."""
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id.strip()


def create_app(store: SqlRecordStore, service: NotificationService | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if service is not None:
            await service.start()
        try:
            yield
        finally:
            if service is not None:
                await service.stop()

    app = FastAPI(title="Notification Relay", lifespan=lifespan)

    @app.get("/alive", response_model=AliveOut)
    def alive() -> AliveOut:
        return AliveOut(message="Notifications service is alive")

    @app.get("/notifications", response_model=list[NotificationOut])
    def list_notifications(user_id: str = Depends(current_user_id)) -> list[NotificationOut]:
        return [
            NotificationOut(
                id=record.id,
                user_id=record.user_id,
                message=record.message,
                service=record.service,
                created_at=record.created_at,
            )
            for record in store.list_notifications(user_id)
        ]

    return app
