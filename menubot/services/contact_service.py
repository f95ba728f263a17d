import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import text
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from menubot.config import settings
from menubot.models import Contact, InteractionLog
from menubot.services import navigation
from menubot.services.bot_config import MAIN_MENU_KEY
from menubot.services.conversation_engine import ContactState, EngineDecision

LOG_RESPONSE_LIMIT = 1000


def lock_contact(db: Session, seller_id, phone: str, name: Optional[str] = None) -> Contact:
    """Create the contact if missing and lock its row until the transaction ends.

    Two webhooks for the same contact serialize here, so each one reads the
    navigation state written by the previous one. Waiting for the lock is
    bounded by `contact_lock_timeout_ms`; past it the statement fails.
    """
    db.execute(text(f"SET LOCAL lock_timeout = {int(settings.contact_lock_timeout_ms)}"))
    now = datetime.now(timezone.utc)
    stmt = (
        insert(Contact)
        .values(
            id=uuid.uuid4(),
            seller_id=seller_id,
            phone=phone,
            name=name,
            current_menu_key=MAIN_MENU_KEY,
            navigation_stack=[],
            awaiting_human=False,
            interaction_count=0,
            created_at=now,
        )
        .on_conflict_do_nothing(index_elements=["seller_id", "phone"])
    )
    db.execute(stmt)

    return (
        db.query(Contact)
        .filter(Contact.seller_id == seller_id, Contact.phone == phone)
        .with_for_update()
        .one()
    )


def find_contact(db: Session, seller_id, phone: str) -> Optional[Contact]:
    return db.query(Contact).filter(Contact.seller_id == seller_id, Contact.phone == phone).first()


def contact_state(contact: Optional[Contact]) -> ContactState:
    if contact is None:
        return ContactState.fresh()
    return ContactState(
        current_menu_key=contact.current_menu_key or MAIN_MENU_KEY,
        previous_menu_key=contact.previous_menu_key,
        last_sent_menu_key=contact.last_sent_menu_key,
        navigation_stack=tuple(navigation.as_stack(contact.navigation_stack)),
        awaiting_human=bool(contact.awaiting_human),
    )


def apply_decision(
    db: Session,
    contact: Contact,
    decision: EngineDecision,
    name: Optional[str] = None,
    responded: bool = True,
) -> Contact:
    """Write the decision's navigation state onto the contact in one flush."""
    now = datetime.now(timezone.utc)
    contact.current_menu_key = decision.menu_key
    contact.previous_menu_key = decision.previous_menu_key
    contact.last_sent_menu_key = decision.last_sent_menu_key
    contact.navigation_stack = list(decision.navigation_stack)
    contact.awaiting_human = decision.awaiting_human
    contact.interaction_count = (contact.interaction_count or 0) + 1
    contact.last_message_at = now
    if responded:
        contact.last_response_at = now
    if name:
        contact.name = name
    db.flush()
    return contact


def append_log(
    db: Session,
    seller_id,
    phone: str,
    incoming: Optional[str],
    decision: EngineDecision,
    status: str,
) -> InteractionLog:
    response_text = decision.response.text if decision.response else ""
    entry = InteractionLog(
        id=uuid.uuid4(),
        seller_id=seller_id,
        contact_phone=phone,
        incoming_message=incoming,
        response_sent=response_text[:LOG_RESPONSE_LIMIT],
        menu_key=decision.menu_key,
        trigger_matched=decision.trigger_matched,
        was_fallback=decision.is_fallback,
        status=status,
        created_at=datetime.now(timezone.utc),
    )
    db.add(entry)
    db.flush()
    return entry


def record_delivery(db: Session, contact_id, log_id, sent: bool) -> None:
    """Write the send outcome after the locked transaction has committed."""
    db.query(InteractionLog).filter(InteractionLog.id == log_id).update(
        {InteractionLog.status: "sent" if sent else "failed"}, synchronize_session=False
    )
    if sent:
        db.query(Contact).filter(Contact.id == contact_id).update(
            {Contact.last_response_at: datetime.now(timezone.utc)}, synchronize_session=False
        )
    db.commit()
