"""Admin API endpoints for operating seller chatbots."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from menubot.config import settings
from menubot.database import get_db
from menubot.logging_config import get_logger
from menubot.routers.webhook import get_config_cache
from menubot.services.config_cache import ConfigCache
from menubot.services.config_validation import validate_config
from menubot.services.default_data import seed_defaults
from menubot.services.inbound_service import simulate_message
from menubot.services.result import CHATBOT_NOT_CONFIGURED, MISSING_MAIN_MENU

logger = get_logger("admin")

router = APIRouter(prefix="/admin", tags=["admin"])


# === SCHEMAS ===


class CacheInvalidateRequest(BaseModel):
    seller_id: Optional[UUID] = None


class CacheInvalidateResponse(BaseModel):
    dropped: int


class IssueResponse(BaseModel):
    code: str
    message: str
    ref: Optional[str] = None


class ValidationResponse(BaseModel):
    seller_id: UUID
    ok: bool
    issues: list[IssueResponse]


class SimulateRequest(BaseModel):
    seller_id: UUID
    text: str = Field(min_length=1)
    phone: Optional[str] = None

    @field_validator("text")
    @classmethod
    def strip_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be blank")
        return value


class SimulateRow(BaseModel):
    row_id: str
    title: str
    description: Optional[str] = None


class SimulateResponse(BaseModel):
    outcome: str
    menu_key: str
    previous_menu_key: Optional[str] = None
    navigation_stack: list[str]
    awaiting_human: bool
    response_text: Optional[str] = None
    rows: list[SimulateRow] = []
    trigger_matched: Optional[str] = None
    option_matched: Optional[str] = None
    is_fallback: bool
    is_human: bool


class SeedResponse(BaseModel):
    seller_id: UUID
    created: dict[str, int]


# === HELPERS ===


def _require_admin_token(provided: Optional[str]) -> None:
    expected = settings.admin_token
    if not expected:
        raise HTTPException(status_code=500, detail="ADMIN_TOKEN not configured")
    if not provided or provided != expected:
        raise HTTPException(status_code=401, detail="Invalid admin token")


# === ENDPOINTS ===


@router.post("/cache/invalidate", response_model=CacheInvalidateResponse)
def invalidate_cache(
    payload: Optional[CacheInvalidateRequest] = None,
    cache: ConfigCache = Depends(get_config_cache),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token)
    seller_id = payload.seller_id if payload else None
    return CacheInvalidateResponse(dropped=cache.invalidate(seller_id))


@router.get("/config/{seller_id}/validate", response_model=ValidationResponse)
def validate_seller_config(
    seller_id: UUID,
    db: Session = Depends(get_db),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token)
    report = validate_config(db, seller_id)
    return ValidationResponse(
        seller_id=seller_id,
        ok=report.ok,
        issues=[IssueResponse(code=i.code, message=i.message, ref=i.ref) for i in report.issues],
    )


@router.post("/simulate", response_model=SimulateResponse)
def simulate(
    payload: SimulateRequest,
    db: Session = Depends(get_db),
    cache: ConfigCache = Depends(get_config_cache),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token)
    result = simulate_message(db, cache, payload.seller_id, payload.text, phone=payload.phone)
    if not result.ok:
        status_code = 404 if result.error_code in (CHATBOT_NOT_CONFIGURED, MISSING_MAIN_MENU) else 500
        raise HTTPException(status_code=status_code, detail=result.error)

    decision = result.value
    response = decision.response
    return SimulateResponse(
        outcome=decision.outcome.value,
        menu_key=decision.menu_key,
        previous_menu_key=decision.previous_menu_key,
        navigation_stack=list(decision.navigation_stack),
        awaiting_human=decision.awaiting_human,
        response_text=response.text if response else None,
        rows=[SimulateRow(row_id=r.row_id, title=r.title, description=r.description) for r in response.rows]
        if response
        else [],
        trigger_matched=decision.trigger_matched,
        option_matched=decision.option_matched,
        is_fallback=decision.is_fallback,
        is_human=decision.is_human,
    )


@router.post("/config/{seller_id}/defaults", response_model=SeedResponse)
def seed_seller_defaults(
    seller_id: UUID,
    db: Session = Depends(get_db),
    cache: ConfigCache = Depends(get_config_cache),
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
):
    _require_admin_token(x_admin_token)
    created = seed_defaults(db, seller_id)
    cache.invalidate(seller_id)
    return SeedResponse(seller_id=seller_id, created=created)
