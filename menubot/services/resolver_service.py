"""Pick at most one trigger or menu option for an inbound message.

Ordering is total (every comparison ends on a unique field), so the same input
against the same configuration always yields the same winner.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Mapping, Optional, TypeVar

from menubot.logging_config import get_logger
from menubot.services.bot_config import (
    BACK_LIST_ID,
    HOME_LIST_ID,
    MenuConfig,
    MenuOptionConfig,
    TriggerConfig,
)
from menubot.services.condition_service import evaluate_condition
from menubot.services.input_classifier import ClassifiedInput, InputKind

logger = get_logger("resolver_service")

T = TypeVar("T")

BACK_TOKEN = "0"
HOME_TOKEN = "00"


class MatchSource(str, Enum):
    SELECTION = "selection"
    KEYWORD = "keyword"
    CONDITION = "condition"


class ReservedCommand(str, Enum):
    BACK = "back"
    HOME = "home"


@dataclass(frozen=True)
class TriggerMatch:
    trigger: TriggerConfig
    matched_by: MatchSource
    keyword_length: int = 0


def dedupe_by_key(
    items: Iterable[T],
    key_fn: Callable[[T], str],
    preference_fn: Callable[[T], tuple],
    label: str = "record",
) -> list[T]:
    """Keep one item per normalized key, the lowest preference wins.

    Duplicates are a configuration problem, not a runtime error: they are
    logged and resolved, never raised.
    """
    kept: dict[str, T] = {}
    duplicates: dict[str, int] = {}

    for item in items:
        key = (key_fn(item) or "").strip().lower()
        existing = kept.get(key)
        if existing is None:
            kept[key] = item
            continue
        duplicates[key] = duplicates.get(key, 1) + 1
        if preference_fn(item) < preference_fn(existing):
            kept[key] = item

    if duplicates:
        logger.warning(
            f"Duplicate {label} keys detected, using lowest sort_order",
            extra={"context": {"label": label, "duplicates": duplicates}},
        )
    return list(kept.values())


def keyword_matches(normalized: str, keyword: str) -> bool:
    return bool(keyword) and keyword in normalized


def keyword_match_length(classified: ClassifiedInput, keywords: Iterable[str]) -> int:
    if classified.kind == InputKind.SELECTION:
        return 0
    best = 0
    for keyword in keywords:
        if keyword_matches(classified.normalized, keyword):
            best = max(best, len(keyword))
    return best


def reserved_command(classified: ClassifiedInput) -> Optional[ReservedCommand]:
    """The synthesized back/home rows and their numeric shortcuts."""
    if classified.kind == InputKind.SELECTION:
        if classified.id == BACK_LIST_ID:
            return ReservedCommand.BACK
        if classified.id == HOME_LIST_ID:
            return ReservedCommand.HOME
        return None
    if classified.kind == InputKind.NUMBER:
        if classified.digits == HOME_TOKEN:
            return ReservedCommand.HOME
        if classified.digits == BACK_TOKEN:
            return ReservedCommand.BACK
    return None


def _match_trigger(
    trigger: TriggerConfig,
    classified: ClassifiedInput,
    variables: Mapping[str, str],
) -> Optional[TriggerMatch]:
    if classified.kind == InputKind.SELECTION and classified.id == trigger.list_id:
        source = MatchSource.SELECTION
        length = 0
    else:
        length = keyword_match_length(classified, trigger.keywords)
        if length > 0:
            source = MatchSource.KEYWORD
        elif not trigger.keywords and not trigger.condition.is_always:
            source = MatchSource.CONDITION
        else:
            return None

    if not evaluate_condition(trigger.condition, classified, variables):
        return None
    return TriggerMatch(trigger=trigger, matched_by=source, keyword_length=length)


def pick_best_trigger(
    triggers: Iterable[TriggerConfig],
    classified: ClassifiedInput,
    variables: Mapping[str, str],
) -> tuple[Optional[TriggerMatch], list[TriggerMatch]]:
    """Winner plus every contender in rank order."""
    contenders = [m for m in (_match_trigger(t, classified, variables) for t in triggers) if m]
    if not contenders:
        return None, []

    contenders.sort(
        key=lambda m: (
            m.matched_by != MatchSource.SELECTION,
            -m.trigger.priority,
            -m.keyword_length,
            m.trigger.trigger_name,
            m.trigger.id,
        )
    )

    if len(contenders) > 1:
        logger.info(
            f"Multiple triggers matched, winner={contenders[0].trigger.trigger_name}",
            extra={
                "context": {
                    "matched_by": contenders[0].matched_by.value,
                    "contenders": [
                        {"name": m.trigger.trigger_name, "priority": m.trigger.priority} for m in contenders
                    ],
                }
            },
        )
    return contenders[0], contenders


def _passes(option: MenuOptionConfig, classified: ClassifiedInput, variables: Mapping[str, str]) -> bool:
    return evaluate_condition(option.condition, classified, variables)


def pick_option_by_selection(
    menu: Optional[MenuConfig],
    all_options: Iterable[MenuOptionConfig],
    classified: ClassifiedInput,
    variables: Mapping[str, str],
) -> Optional[MenuOptionConfig]:
    """Current menu first, then any menu of the seller."""
    if classified.kind != InputKind.SELECTION:
        return None

    if menu is not None:
        for option in menu.options:
            if option.list_id == classified.id and _passes(option, classified, variables):
                return option

    for option in all_options:
        if option.list_id == classified.id and _passes(option, classified, variables):
            return option
    return None


def pick_option_by_number(
    menu: MenuConfig,
    classified: ClassifiedInput,
    variables: Mapping[str, str],
) -> Optional[MenuOptionConfig]:
    if classified.kind != InputKind.NUMBER:
        return None
    candidates = [
        o for o in menu.options if o.option_number == classified.value and _passes(o, classified, variables)
    ]
    if not candidates:
        return None
    candidates.sort(key=lambda o: (o.sort_order, o.list_id))
    return candidates[0]


def pick_best_option_by_keyword(
    options: Iterable[MenuOptionConfig],
    classified: ClassifiedInput,
    variables: Mapping[str, str],
) -> Optional[MenuOptionConfig]:
    if classified.kind == InputKind.SELECTION:
        return None

    matches: list[tuple[int, MenuOptionConfig]] = []
    for option in options:
        length = keyword_match_length(classified, option.keywords)
        if length == 0 and (option.keywords or option.condition.is_always):
            continue
        if not _passes(option, classified, variables):
            continue
        matches.append((length, option))

    if not matches:
        return None

    matches.sort(key=lambda m: (-m[0], m[1].sort_order, m[1].option_number, m[1].list_id))
    return matches[0][1]
