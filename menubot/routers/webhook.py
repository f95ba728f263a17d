from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from menubot.database import get_db
from menubot.logging_config import get_logger
from menubot.schemas.webhook import WebhookResponse, parse_evolution_payload
from menubot.services.config_cache import ConfigCache
from menubot.services.dispatcher import Dispatcher
from menubot.services.inbound_service import handle_inbound

logger = get_logger("webhook")

router = APIRouter()

VERSION = "3.1.0"
FEATURES = ["list_message", "navigation_stack", "anti_repeat"]


def get_config_cache(request: Request) -> ConfigCache:
    return request.app.state.config_cache


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


async def _process(
    request: Request,
    db: Session,
    cache: ConfigCache,
    dispatcher: Dispatcher,
    instance: Optional[str] = None,
):
    try:
        payload = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"status": "error", "reason": "Invalid JSON"})
    if not isinstance(payload, dict):
        return JSONResponse(status_code=400, content={"status": "error", "reason": "Invalid payload format"})

    event = parse_evolution_payload(payload, instance=instance)
    try:
        result = await handle_inbound(db, event, cache, dispatcher)
    except Exception as exc:
        db.rollback()
        logger.error(
            "Webhook processing failed",
            extra={"context": {"instance": event.instance_identifier, "error": str(exc)}},
            exc_info=True,
        )
        return JSONResponse(status_code=500, content=WebhookResponse.error(str(exc)).model_dump(exclude_none=True))
    return result.model_dump(exclude_none=True)


@router.get("/webhook")
async def webhook_probe(ping: bool = False):
    """Probe used by the gateway panel; real events must use POST."""
    if ping:
        return {"status": "ok", "version": VERSION, "features": FEATURES}
    return {"status": "ok", "version": VERSION, "usage": "POST webhook payload"}


@router.post("/webhook")
async def handle_webhook(
    request: Request,
    db: Session = Depends(get_db),
    cache: ConfigCache = Depends(get_config_cache),
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    """Handle an Evolution API event."""
    return await _process(request, db, cache, dispatcher)


@router.post("/webhook/{instance}")
async def handle_instance_webhook(
    instance: str,
    request: Request,
    db: Session = Depends(get_db),
    cache: ConfigCache = Depends(get_config_cache),
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    """Same as /webhook with the instance name taken from the path."""
    return await _process(request, db, cache, dispatcher, instance=instance)
