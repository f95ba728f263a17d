"""Inbound webhook orchestration: one Evolution event in, at most one reply out."""

import asyncio
from dataclasses import dataclass
from typing import Any, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from menubot.config import settings
from menubot.logging_config import get_logger
from menubot.models import SellerInstance
from menubot.schemas.webhook import InboundEvent, WebhookResponse
from menubot.services.alert_service import alert_warning
from menubot.services.bot_config import BotSettings
from menubot.services.config_cache import ConfigCache
from menubot.services.contact_service import (
    append_log,
    apply_decision,
    contact_state,
    find_contact,
    lock_contact,
    record_delivery,
)
from menubot.services.conversation_engine import EngineDecision, Outcome, process_message
from menubot.services.dispatcher import Dispatcher, pick_delay_ms
from menubot.services.input_classifier import classify_input
from menubot.services.phone_service import is_group_jid, mask_phone, normalize_phone
from menubot.services.result import INSTANCE_NOT_FOUND, MISSING_MAIN_MENU, Result

logger = get_logger("inbound_service")


def resolve_seller(db: Session, instance_name: str) -> Result[str]:
    """Seller owning a gateway instance (case-insensitive name match)."""
    row = (
        db.query(SellerInstance)
        .filter(
            func.lower(SellerInstance.instance_name) == instance_name.lower(),
            SellerInstance.is_active.is_(True),
        )
        .first()
    )
    if row is not None:
        return Result.success(row.seller_id)

    if (
        settings.global_instance_name
        and settings.global_seller_id
        and settings.global_instance_name.lower() == instance_name.lower()
    ):
        return Result.success(settings.global_seller_id)

    return Result.failure("Instance not found", INSTANCE_NOT_FOUND)


def _response_for(decision: EngineDecision, status: str, reason: Optional[str] = None) -> WebhookResponse:
    return WebhookResponse(
        status=status,
        reason=reason,
        menu_key=decision.menu_key,
        previous_menu_key=decision.previous_menu_key,
        stack_size=len(decision.navigation_stack),
        use_list_message=decision.use_list_message,
        trigger_matched=decision.trigger_matched,
        is_fallback=decision.is_fallback,
        is_human=decision.is_human,
    )


def _precheck(event: InboundEvent) -> Optional[WebhookResponse]:
    if not event.is_message_event:
        return WebhookResponse.ignored("Not a message event")
    if not event.remote_party_id or not event.instance_identifier:
        return WebhookResponse.ignored("No remoteJid or instance")
    if event.from_self:
        return WebhookResponse.ignored("Own message")
    if not event.text_or_selection.strip():
        return WebhookResponse.ignored("No text content")
    return None


@dataclass
class PendingDelivery:
    """A committed decision whose response still has to go out."""

    seller_id: Any
    phone: str
    contact_id: Any
    log_id: Any
    decision: EngineDecision
    settings: BotSettings


def _decide_and_persist(
    db: Session, event: InboundEvent, cache: ConfigCache
) -> Union[WebhookResponse, PendingDelivery]:
    """Locked read, decision and persistence in one short transaction."""
    instance = event.instance_identifier
    seller_result = resolve_seller(db, instance)
    if not seller_result.ok:
        logger.warning(f"Unknown instance: {instance}", extra={"context": {"instance": instance}})
        return WebhookResponse.error(seller_result.error)
    seller_id = seller_result.value

    snapshot_result = cache.get(db, seller_id)
    if not snapshot_result.ok:
        logger.warning(
            f"Chatbot config unavailable: {snapshot_result.error}",
            extra={"context": {"seller_id": str(seller_id), "error_code": snapshot_result.error_code}},
        )
        return WebhookResponse.error(snapshot_result.error)
    snapshot = snapshot_result.value

    if not snapshot.settings.is_enabled:
        return WebhookResponse.ignored("Chatbot disabled")
    if snapshot.settings.ignore_groups and is_group_jid(event.remote_party_id):
        return WebhookResponse.ignored("Group message")

    phone = normalize_phone(event.remote_party_id).canonical
    classified = classify_input(
        event.text_or_selection,
        selection_id=event.text_or_selection if event.is_selection else None,
    )

    contact = lock_contact(db, seller_id, phone, event.sender_display_name)
    facts = {"phone": phone, "name": event.sender_display_name or contact.name or ""}
    decision_result = process_message(snapshot, contact_state(contact), classified, facts)

    if not decision_result.ok:
        db.rollback()
        if decision_result.error_code == MISSING_MAIN_MENU:
            alert_warning("Seller without main menu", {"seller_id": str(seller_id), "instance": instance})
        return WebhookResponse.error(decision_result.error)
    decision = decision_result.value

    if decision.outcome == Outcome.IGNORED:
        db.commit()
        logger.info(
            "Awaiting human, message ignored",
            extra={"context": {"seller_id": str(seller_id), "phone": mask_phone(phone)}},
        )
        return _response_for(decision, "ignored", reason="Awaiting human")

    if decision.outcome == Outcome.SKIPPED:
        apply_decision(db, contact, decision, name=event.sender_display_name, responded=False)
        append_log(db, seller_id, phone, event.text_or_selection, decision, status="skipped")
        db.commit()
        return _response_for(decision, "skipped", reason="Anti-repeat")

    apply_decision(db, contact, decision, name=event.sender_display_name, responded=False)
    entry = append_log(db, seller_id, phone, event.text_or_selection, decision, status="sending")
    pending = PendingDelivery(
        seller_id=seller_id,
        phone=phone,
        contact_id=contact.id,
        log_id=entry.id,
        decision=decision,
        settings=snapshot.settings,
    )
    db.commit()
    return pending


async def handle_inbound(
    db: Session,
    event: InboundEvent,
    cache: ConfigCache,
    dispatcher: Dispatcher,
) -> WebhookResponse:
    """Decide and persist under the contact lock, then deliver after commit.

    The session is only touched from worker threads, one call at a time, so
    the row lock never spans an await on the event loop.
    """
    skipped = _precheck(event)
    if skipped is not None:
        return skipped

    outcome = await asyncio.to_thread(_decide_and_persist, db, event, cache)
    if isinstance(outcome, WebhookResponse):
        return outcome
    pending = outcome
    decision = pending.decision
    bot_settings = pending.settings

    instance = event.instance_identifier
    delay_ms = pick_delay_ms(bot_settings.response_delay_min_ms, bot_settings.response_delay_max_ms)
    await dispatcher.simulate_typing(instance, pending.phone, delay_ms, bot_settings.typing_enabled)
    report = await dispatcher.deliver(
        instance,
        pending.phone,
        decision.response,
        prefer_interactive=decision.use_list_message,
        button_label=bot_settings.list_button_text,
    )
    status = "sent" if report.sent else "failed"
    await asyncio.to_thread(record_delivery, db, pending.contact_id, pending.log_id, report.sent)

    logger.info(
        f"Inbound processed: {status}",
        extra={
            "context": {
                "seller_id": str(pending.seller_id),
                "phone": mask_phone(pending.phone),
                "menu_key": decision.menu_key,
                "trigger": decision.trigger_matched,
                "fallback": decision.is_fallback,
                "shape": report.shape.value,
            }
        },
    )
    return _response_for(decision, status)


def simulate_message(
    db: Session,
    cache: ConfigCache,
    seller_id,
    text: str,
    phone: Optional[str] = None,
) -> Result[EngineDecision]:
    """Dry run against the stored contact state. Nothing is sent or written."""
    snapshot_result = cache.get(db, seller_id)
    if not snapshot_result.ok:
        return Result.failure(snapshot_result.error, snapshot_result.error_code)

    canonical = normalize_phone(phone).canonical if phone else ""
    contact = find_contact(db, seller_id, canonical) if canonical else None
    facts = {"phone": canonical, "name": (contact.name if contact else None) or ""}
    return process_message(snapshot_result.value, contact_state(contact), classify_input(text), facts)
