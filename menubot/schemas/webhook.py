from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field

MESSAGE_EVENTS = ("messages.upsert", "message", "message.received")


class MessageKey(BaseModel):
    remoteJid: Optional[str] = Field(default=None, validation_alias=AliasChoices("remoteJid", "remote_jid"))
    fromMe: Optional[bool] = Field(default=False, validation_alias=AliasChoices("fromMe", "from_me"))
    id: Optional[str] = None


class EvolutionMessage(BaseModel):
    key: MessageKey = Field(default_factory=MessageKey)
    pushName: Optional[str] = Field(default=None, validation_alias=AliasChoices("pushName", "push_name"))
    message: Optional[dict[str, Any]] = None


class InboundEvent(BaseModel):
    """Gateway-agnostic view of one inbound webhook."""

    event_type: str = ""
    instance_identifier: str = ""
    remote_party_id: str = ""
    from_self: bool = False
    sender_display_name: Optional[str] = None
    text_or_selection: str = ""
    is_selection: bool = False

    @property
    def is_message_event(self) -> bool:
        event = self.event_type.lower()
        return any(name in event for name in MESSAGE_EVENTS)


class WebhookResponse(BaseModel):
    status: str
    reason: Optional[str] = None
    menu_key: Optional[str] = None
    previous_menu_key: Optional[str] = None
    stack_size: Optional[int] = None
    use_list_message: Optional[bool] = None
    trigger_matched: Optional[str] = None
    is_fallback: Optional[bool] = None
    is_human: Optional[bool] = None

    @classmethod
    def ignored(cls, reason: str) -> "WebhookResponse":
        return cls(status="ignored", reason=reason)

    @classmethod
    def error(cls, reason: str) -> "WebhookResponse":
        return cls(status="error", reason=reason)


def _dig(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _first_text(*values: Any) -> Optional[str]:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value
    return None


def extract_text(content: Optional[dict[str, Any]]) -> tuple[str, bool]:
    """Message text and whether it is a list/button selection id."""
    if not content:
        return "", False

    selection = _first_text(
        _dig(content, "listResponseMessage", "singleSelectReply", "selectedRowId"),
        _dig(content, "listResponseMessage", "selectedRowId"),
        _dig(content, "buttonsResponseMessage", "selectedButtonId"),
    )
    if selection:
        return selection, True

    text = _first_text(
        content.get("conversation"),
        _dig(content, "extendedTextMessage", "text"),
    )
    return text or "", False


def parse_evolution_payload(payload: dict[str, Any], instance: Optional[str] = None) -> InboundEvent:
    """Normalize an Evolution API webhook body. Missing fields come back empty."""
    event_type = payload.get("event") or payload.get("type") or ""
    instance_name = (
        instance
        or payload.get("instance")
        or payload.get("instanceName")
        or _dig(payload, "data", "instance", "instanceName")
        or ""
    )

    raw_message = payload.get("data") or payload.get("message")
    if not isinstance(raw_message, dict):
        messages = payload.get("messages")
        raw_message = messages[0] if isinstance(messages, list) and messages else {}
    if not isinstance(raw_message, dict):
        raw_message = {}

    message = EvolutionMessage.model_validate(
        {
            "key": raw_message.get("key") if isinstance(raw_message.get("key"), dict) else {},
            "pushName": raw_message.get("pushName"),
            "message": raw_message.get("message") if isinstance(raw_message.get("message"), dict) else None,
        }
    )
    text, is_selection = extract_text(message.message)

    return InboundEvent(
        event_type=str(event_type),
        instance_identifier=str(instance_name) if isinstance(instance_name, str) else "",
        remote_party_id=message.key.remoteJid or "",
        from_self=bool(message.key.fromMe),
        sender_display_name=message.pushName or None,
        text_or_selection=text,
        is_selection=is_selection,
    )
