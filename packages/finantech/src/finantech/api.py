"""HTTP surface.

``POST /api/gemini`` proxies model calls. When the application is built
around an :class:`~finantech.store.AppState`, the state routes below are
mounted too; every change they make is persisted and pushed to the
dashboard event feed by the state's listeners.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any

import structlog
from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from finantech import __version__
from finantech.ai.proxy import GeminiProxy
from finantech.config import get_settings
from finantech.errors import NotFoundError, ProxyError
from finantech.events.publisher import EventPublisher
from finantech.models import FinantechModel, to_wire_list
from finantech.store import AppState

logger = structlog.get_logger(__name__)


class SaveIndexRequest(FinantechModel):
    name: str
    value: Decimal
    description: str = ""
    id: str | None = None


class ManualMatchRequest(FinantechModel):
    bank_tx_id: str
    system_tx_id: str
    company: str | None = None


def state_router(state: AppState, publisher: EventPublisher | None = None) -> APIRouter:
    """Routes reading and changing the application state."""
    router = APIRouter(prefix="/api")

    @router.get("/cash-flow")
    async def get_cash_flow(company: str | None = None) -> list[dict[str, Any]]:
        return to_wire_list(state.cash_flow(company))

    @router.post("/notifications/refresh")
    async def refresh_notifications() -> dict[str, Any]:
        created = state.refresh_notifications()
        return {"created": to_wire_list(created)}

    @router.post("/notifications/{notification_id}/read")
    async def read_notification(notification_id: str) -> dict[str, Any]:
        if not any(n.id == notification_id for n in state.notifications):
            raise HTTPException(status_code=404, detail="notification not found")
        state.mark_notification_read(notification_id)
        return {"id": notification_id, "isRead": True}

    @router.post("/indexes")
    async def save_index(payload: SaveIndexRequest) -> dict[str, Any]:
        try:
            saved, result = state.save_adjustment_index(
                name=payload.name,
                value=payload.value,
                description=payload.description,
                index_id=payload.id,
            )
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return {
            "index": saved.to_wire(),
            "regenerated": result.regenerated,
            "properties": result.properties,
        }

    @router.post("/reconciliation/match")
    async def match(payload: ManualMatchRequest) -> dict[str, Any]:
        session = state.reconciliation_session(payload.company)
        try:
            session.match_manually(payload.bank_tx_id, payload.system_tx_id)
        except NotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        return {"matched": state.apply_reconciliation(session)}

    @router.get("/events/status")
    async def events_status() -> dict[str, Any]:
        if publisher is None:
            return {"is_running": False, "client_count": 0}
        return publisher.get_status()

    return router


def create_app(
    proxy: GeminiProxy | None = None,
    state: AppState | None = None,
    publisher: EventPublisher | None = None,
) -> FastAPI:
    """Build the application; ``proxy`` is created on first use when omitted."""
    app = FastAPI(title="Finantech AI Proxy", version=__version__)
    holder: dict[str, GeminiProxy | None] = {"proxy": proxy}

    def get_proxy() -> GeminiProxy:
        if holder["proxy"] is None:
            holder["proxy"] = GeminiProxy()
        return holder["proxy"]

    @app.post("/api/gemini")
    async def gemini(request: Request) -> Any:
        if not get_settings().has_api_key:
            logger.error("api_key_missing", variable="API_KEY")
            return JSONResponse({"error": "Server configuration error."}, status_code=500)

        try:
            payload = await request.json()
            return await get_proxy().handle(payload)
        except ProxyError as e:
            return JSONResponse(e.to_dict(), status_code=e.status_code)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("invalid_request_body", error=str(e))
            return JSONResponse(
                {"error": "Internal Server Error", "details": str(e)}, status_code=500
            )

    if state is not None:
        app.include_router(state_router(state, publisher))

    return app


app = create_app()
