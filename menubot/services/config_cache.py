"""Seller configuration snapshots: built from ORM rows, cached with a TTL."""

import threading
import time
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from menubot.logging_config import get_logger
from menubot.models import ChatbotConfig, GlobalTrigger, Menu, MenuOption, Variable
from menubot.services.bot_config import (
    DEFAULT_FALLBACK_MESSAGE,
    DEFAULT_LIST_BUTTON_TEXT,
    DEFAULT_WELCOME_MESSAGE,
    BotSettings,
    BotSnapshot,
    Condition,
    ConditionType,
    MenuConfig,
    MenuOptionConfig,
    OptionAction,
    TriggerAction,
    TriggerConfig,
    normalize_keywords,
)
from menubot.services.resolver_service import dedupe_by_key
from menubot.services.result import CHATBOT_NOT_CONFIGURED, Result

logger = get_logger("config_cache")


def _parse_condition(row, label: str) -> Optional[Condition]:
    raw_type = (row.condition_type or ConditionType.ALWAYS.value).strip().lower()
    try:
        condition_type = ConditionType(raw_type)
    except ValueError:
        logger.warning(
            f"Unknown condition type on {label}, record skipped",
            extra={"context": {"id": str(row.id), "condition_type": row.condition_type}},
        )
        return None
    return Condition(type=condition_type, value=row.condition_value)


def _build_settings(config: ChatbotConfig) -> BotSettings:
    return BotSettings(
        is_enabled=bool(config.is_enabled),
        fallback_message=config.fallback_message or DEFAULT_FALLBACK_MESSAGE,
        welcome_message=config.welcome_message or DEFAULT_WELCOME_MESSAGE,
        human_handoff_message=config.human_handoff_message,
        typing_enabled=bool(config.typing_enabled),
        response_delay_min_ms=config.response_delay_min_ms or 0,
        response_delay_max_ms=config.response_delay_max_ms or 0,
        ignore_groups=bool(config.ignore_groups),
        use_list_message=bool(config.use_list_message),
        list_button_text=config.list_button_text or DEFAULT_LIST_BUTTON_TEXT,
    )


def _build_option(row: MenuOption, menu_key: str) -> Optional[MenuOptionConfig]:
    try:
        action = OptionAction((row.action_type or "").strip().lower())
    except ValueError:
        logger.warning(
            "Unknown option action type, record skipped",
            extra={"context": {"id": str(row.id), "action_type": row.action_type}},
        )
        return None
    condition = _parse_condition(row, "option")
    if condition is None:
        return None
    list_id = (row.list_id or f"lm_{menu_key}_{row.option_number}").strip().lower()
    return MenuOptionConfig(
        id=str(row.id),
        menu_key=menu_key,
        option_number=row.option_number,
        option_text=row.option_text or "",
        list_id=list_id,
        action=action,
        keywords=normalize_keywords(row.keywords),
        target_menu_key=row.target_menu_key,
        action_response=row.action_response,
        sort_order=row.sort_order or 0,
        condition=condition,
    )


def _build_trigger(row: GlobalTrigger) -> Optional[TriggerConfig]:
    try:
        action = TriggerAction((row.action_type or "").strip().lower())
    except ValueError:
        logger.warning(
            "Unknown trigger action type, record skipped",
            extra={"context": {"id": str(row.id), "action_type": row.action_type}},
        )
        return None
    condition = _parse_condition(row, "trigger")
    if condition is None:
        return None
    return TriggerConfig(
        id=str(row.id),
        trigger_name=(row.trigger_name or "").strip(),
        action=action,
        keywords=normalize_keywords(row.keywords),
        target_menu_key=row.target_menu_key,
        response_text=row.response_text,
        priority=row.priority or 0,
        sort_order=row.sort_order or 0,
        condition=condition,
    )


def _preference(row) -> tuple:
    return (row.sort_order or 0, str(row.id))


def build_snapshot(
    seller_id: str,
    config: ChatbotConfig,
    menus: Iterable[Menu],
    options: Iterable[MenuOption],
    triggers: Iterable[GlobalTrigger],
    variables: Iterable[Variable],
) -> BotSnapshot:
    """Deduplicated, validated view of the active configuration rows."""
    menu_rows = dedupe_by_key(
        [m for m in menus if m.is_active], lambda m: m.menu_key, _preference, label="menu_key"
    )
    option_rows = dedupe_by_key(
        [o for o in options if o.is_active],
        lambda o: o.list_id or f"{o.menu_id}:{o.option_number}",
        _preference,
        label="option list_id",
    )
    trigger_rows = dedupe_by_key(
        [t for t in triggers if t.is_active], lambda t: t.trigger_name, _preference, label="trigger_name"
    )

    menu_key_by_id = {m.id: m.menu_key.strip() for m in menu_rows}
    options_by_menu: dict[str, list[MenuOptionConfig]] = {}
    for row in option_rows:
        menu_key = menu_key_by_id.get(row.menu_id)
        if menu_key is None:
            continue
        option = _build_option(row, menu_key)
        if option is not None:
            options_by_menu.setdefault(menu_key, []).append(option)

    built_menus: dict[str, MenuConfig] = {}
    for row in menu_rows:
        menu_key = row.menu_key.strip()
        built_menus[menu_key] = MenuConfig(
            id=str(row.id),
            menu_key=menu_key,
            title=row.title or "",
            message_text=row.message_text or "",
            list_id=row.list_id,
            image_url=row.image_url,
            parent_menu_key=row.parent_menu_key,
            sort_order=row.sort_order or 0,
            options=tuple(
                sorted(options_by_menu.get(menu_key, []), key=lambda o: (o.sort_order, o.option_number, o.list_id))
            ),
        )

    built_triggers = tuple(t for t in (_build_trigger(row) for row in trigger_rows) if t is not None)

    return BotSnapshot(
        seller_id=str(seller_id),
        settings=_build_settings(config),
        menus=built_menus,
        triggers=built_triggers,
        variables={v.variable_key: v.variable_value or "" for v in variables if v.variable_key},
    )


def load_snapshot(db: Session, seller_id) -> Result[BotSnapshot]:
    config = db.query(ChatbotConfig).filter(ChatbotConfig.seller_id == seller_id).first()
    if config is None:
        return Result.failure("Chatbot not configured", CHATBOT_NOT_CONFIGURED)

    menus = db.query(Menu).filter(Menu.seller_id == seller_id, Menu.is_active.is_(True)).all()
    options = db.query(MenuOption).filter(MenuOption.seller_id == seller_id, MenuOption.is_active.is_(True)).all()
    triggers = (
        db.query(GlobalTrigger).filter(GlobalTrigger.seller_id == seller_id, GlobalTrigger.is_active.is_(True)).all()
    )
    variables = db.query(Variable).filter(Variable.seller_id == seller_id).all()

    return Result.success(build_snapshot(seller_id, config, menus, options, triggers, variables))


class ConfigCache:
    """Per-seller snapshot cache with a time-to-live.

    Failed loads are not cached so a seller that finishes setup is picked up on
    the next message.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, BotSnapshot]] = {}
        self._lock = threading.Lock()

    def get(self, db: Session, seller_id, loader=load_snapshot) -> Result[BotSnapshot]:
        key = str(seller_id)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and now - entry[0] < self.ttl_seconds:
                return Result.success(entry[1])

        result = loader(db, seller_id)
        if result.ok:
            with self._lock:
                self._entries[key] = (now, result.value)
        return result

    def invalidate(self, seller_id=None) -> int:
        """Drop one seller's snapshot, or all of them. Returns how many were dropped."""
        with self._lock:
            if seller_id is None:
                dropped = len(self._entries)
                self._entries.clear()
            else:
                dropped = 1 if self._entries.pop(str(seller_id), None) is not None else 0
        logger.info(
            "Config cache invalidated",
            extra={"context": {"seller_id": str(seller_id) if seller_id else "all", "dropped": dropped}},
        )
        return dropped
