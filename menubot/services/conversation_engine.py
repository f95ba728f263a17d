"""Per-message conversation controller.

`process_message` is pure: it takes the configuration snapshot, the contact's
stored navigation state and the classified input, and returns one decision.
Sending and persistence happen elsewhere (inbound_service).
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

from menubot.logging_config import get_logger
from menubot.services import navigation
from menubot.services.bot_config import (
    BACK_LIST_ID,
    DEFAULT_END_RESPONSE,
    DEFAULT_HUMAN_RESPONSE,
    DEFAULT_LIST_BUTTON_TEXT,
    DEFAULT_MESSAGE_RESPONSE,
    HOME_LIST_ID,
    MAIN_MENU_KEY,
    BotSnapshot,
    MenuConfig,
    MenuOptionConfig,
    OptionAction,
    TriggerAction,
    TriggerConfig,
)
from menubot.services.condition_service import session_variables
from menubot.services.input_classifier import ClassifiedInput, InputKind
from menubot.services.resolver_service import (
    ReservedCommand,
    keyword_matches,
    pick_best_option_by_keyword,
    pick_best_trigger,
    pick_option_by_number,
    pick_option_by_selection,
    reserved_command,
)
from menubot.services.result import MISSING_MAIN_MENU, Result
from menubot.services.state_machine import ConversationState, hand_off, resume, state_of

logger = get_logger("conversation_engine")

SECTION_TITLE = "Opções"
HUMAN_ROW_DESCRIPTION = "Falar com atendente"

# "0" and "00" arrive as reserved numbers, not keywords
HUMAN_HOME_KEYWORDS = ("inicio", "início", "menu", "##")
HUMAN_BACK_KEYWORDS = ("voltar", "sair", "*", "#")


class Outcome(str, Enum):
    SEND = "send"
    SKIPPED = "skipped"
    IGNORED = "ignored"


@dataclass(frozen=True)
class ChoiceRow:
    row_id: str
    title: str
    description: Optional[str] = None


@dataclass(frozen=True)
class OutboundResponse:
    text: str
    title: Optional[str] = None
    rows: tuple[ChoiceRow, ...] = ()
    section_title: str = SECTION_TITLE
    button_text: Optional[str] = None
    image_url: Optional[str] = None
    use_list_message: bool = False


@dataclass(frozen=True)
class ContactState:
    current_menu_key: str = MAIN_MENU_KEY
    previous_menu_key: Optional[str] = None
    last_sent_menu_key: Optional[str] = None
    navigation_stack: tuple[str, ...] = ()
    awaiting_human: bool = False

    @classmethod
    def fresh(cls) -> "ContactState":
        return cls()


@dataclass(frozen=True)
class EngineDecision:
    outcome: Outcome
    menu_key: str
    previous_menu_key: Optional[str]
    navigation_stack: tuple[str, ...]
    awaiting_human: bool
    last_sent_menu_key: Optional[str]
    response: Optional[OutboundResponse] = None
    is_menu_response: bool = False
    trigger_matched: Optional[str] = None
    option_matched: Optional[str] = None
    is_fallback: bool = False
    is_human: bool = False

    @property
    def should_send(self) -> bool:
        return self.outcome == Outcome.SEND

    @property
    def should_persist(self) -> bool:
        return self.outcome != Outcome.IGNORED

    @property
    def use_list_message(self) -> bool:
        return bool(self.response and self.response.use_list_message)


def render_text(text: Optional[str], variables: Mapping[str, str]) -> str:
    """Replace {key} placeholders, keys matched case-insensitively."""
    if not text:
        return ""
    result = text
    for key, value in variables.items():
        result = re.sub(r"\{" + re.escape(key) + r"\}", lambda _m, v=value: v or "", result, flags=re.IGNORECASE)
    return result


def build_menu_rows(menu: MenuConfig, stack: tuple[str, ...]) -> tuple[ChoiceRow, ...]:
    rows = [
        ChoiceRow(
            row_id=option.list_id,
            title=f"{option.option_number}. {option.option_text}",
            description=HUMAN_ROW_DESCRIPTION if option.action == OptionAction.HUMAN else None,
        )
        for option in sorted(menu.options, key=lambda o: (o.option_number, o.list_id))
    ]
    if stack:
        rows.append(ChoiceRow(row_id=BACK_LIST_ID, title="0. Voltar", description="Retornar ao menu anterior"))
    if menu.menu_key != MAIN_MENU_KEY:
        rows.append(ChoiceRow(row_id=HOME_LIST_ID, title="00. Menu Principal", description="Voltar ao início"))
    return tuple(rows)


class _Engine:
    """Single-use helper holding the inputs of one message."""

    def __init__(
        self,
        snapshot: BotSnapshot,
        state: ContactState,
        classified: ClassifiedInput,
        contact_facts: Mapping[str, str],
    ):
        self.snapshot = snapshot
        self.state = state
        self.classified = classified
        self.current_menu = snapshot.menu(state.current_menu_key) or snapshot.main_menu
        self.current_key = self.current_menu.menu_key
        self.stack = tuple(state.navigation_stack)
        self.variables = session_variables(
            snapshot.variables,
            phone=contact_facts.get("phone"),
            name=contact_facts.get("name"),
            current_menu=self.current_key,
        )

    # responses

    def menu_decision(
        self,
        menu: MenuConfig,
        stack: list[str] | tuple[str, ...],
        previous_menu_key: Optional[str],
        trigger: Optional[TriggerConfig] = None,
        option: Optional[MenuOptionConfig] = None,
        awaiting_human: bool = False,
    ) -> EngineDecision:
        stack = tuple(stack)
        rows = build_menu_rows(menu, stack)
        settings = self.snapshot.settings
        response = OutboundResponse(
            text=render_text(menu.message_text, self.snapshot.variables),
            title=render_text(menu.title, self.snapshot.variables),
            rows=rows,
            button_text=settings.list_button_text or DEFAULT_LIST_BUTTON_TEXT,
            image_url=menu.image_url or None,
            use_list_message=settings.use_list_message and len(rows) > 0,
        )

        outcome = Outcome.SEND
        if self.state.last_sent_menu_key == menu.menu_key:
            outcome = Outcome.SKIPPED
            logger.info(
                f"Anti-repeat: skipping duplicate menu {menu.menu_key}",
                extra={"context": {"seller_id": self.snapshot.seller_id, "menu_key": menu.menu_key}},
            )

        return EngineDecision(
            outcome=outcome,
            menu_key=menu.menu_key,
            previous_menu_key=previous_menu_key,
            navigation_stack=stack,
            awaiting_human=awaiting_human,
            last_sent_menu_key=menu.menu_key,
            response=response,
            is_menu_response=True,
            trigger_matched=trigger.trigger_name if trigger else None,
            option_matched=option.list_id if option else None,
        )

    def text_decision(
        self,
        text: str,
        menu_key: Optional[str] = None,
        stack: Optional[tuple[str, ...]] = None,
        previous_menu_key: Optional[str] = None,
        keep_previous: bool = True,
        awaiting_human: bool = False,
        trigger: Optional[TriggerConfig] = None,
        option: Optional[MenuOptionConfig] = None,
        is_fallback: bool = False,
    ) -> EngineDecision:
        return EngineDecision(
            outcome=Outcome.SEND,
            menu_key=menu_key or self.current_key,
            previous_menu_key=self.state.previous_menu_key if keep_previous else previous_menu_key,
            navigation_stack=self.stack if stack is None else tuple(stack),
            awaiting_human=awaiting_human,
            last_sent_menu_key=None,
            response=OutboundResponse(text=render_text(text, self.snapshot.variables)),
            trigger_matched=trigger.trigger_name if trigger else None,
            option_matched=option.list_id if option else None,
            is_fallback=is_fallback,
            is_human=awaiting_human,
        )

    def fallback(self) -> EngineDecision:
        logger.info(
            "No match found, sending fallback",
            extra={"context": {"seller_id": self.snapshot.seller_id, "menu_key": self.current_key}},
        )
        return self.text_decision(self.snapshot.settings.fallback_message, is_fallback=True)

    # navigation

    def go_home(self, trigger: Optional[TriggerConfig] = None, awaiting_human: bool = False) -> EngineDecision:
        return self.menu_decision(
            self.snapshot.main_menu, navigation.reset(), None, trigger=trigger, awaiting_human=awaiting_human
        )

    def go_back(self, trigger: Optional[TriggerConfig] = None, awaiting_human: bool = False) -> EngineDecision:
        stack, target_key = navigation.pop(list(self.stack))
        target = self.snapshot.menu(target_key)
        if target is None:
            logger.warning(
                f"Back target {target_key} not found, returning to main",
                extra={"context": {"seller_id": self.snapshot.seller_id, "target": target_key}},
            )
            return self.go_home(trigger=trigger, awaiting_human=awaiting_human)
        return self.menu_decision(target, stack, self.current_key, trigger=trigger, awaiting_human=awaiting_human)

    def go_to(
        self,
        target: MenuConfig,
        trigger: Optional[TriggerConfig] = None,
        option: Optional[MenuOptionConfig] = None,
    ) -> EngineDecision:
        stack = navigation.forward(list(self.stack), self.current_key, target.menu_key)
        previous = None if target.menu_key == MAIN_MENU_KEY else self.current_key
        return self.menu_decision(target, stack, previous, trigger=trigger, option=option)

    def run_reserved(self, command: ReservedCommand) -> EngineDecision:
        if command == ReservedCommand.HOME:
            return self.go_home()
        return self.go_back()

    # actions

    def run_trigger(self, trigger: TriggerConfig) -> Optional[EngineDecision]:
        action = trigger.action
        if action == TriggerAction.GOTO_HOME:
            return self.go_home(trigger)
        if action == TriggerAction.GOTO_PREVIOUS:
            return self.go_back(trigger)
        if action == TriggerAction.GOTO_MENU:
            target = self.snapshot.menu(trigger.target_menu_key)
            if target is None:
                logger.warning(
                    f"Trigger {trigger.trigger_name} targets missing menu, skipped",
                    extra={"context": {"seller_id": self.snapshot.seller_id, "target": trigger.target_menu_key}},
                )
                return None
            return self.go_to(target, trigger=trigger)
        if action == TriggerAction.MESSAGE:
            return self.text_decision(trigger.response_text or DEFAULT_MESSAGE_RESPONSE, trigger=trigger)
        if action == TriggerAction.HUMAN:
            return self.hand_off(trigger.response_text, trigger=trigger)
        return None

    def run_option(self, option: MenuOptionConfig) -> EngineDecision:
        logger.info(
            f"Option matched: {option.option_number} - {option.option_text}",
            extra={"context": {"seller_id": self.snapshot.seller_id, "list_id": option.list_id}},
        )
        action = option.action
        if action == OptionAction.MENU:
            target = self.snapshot.menu(option.target_menu_key)
            if target is None:
                logger.warning(
                    f"Option {option.list_id} targets missing menu",
                    extra={"context": {"seller_id": self.snapshot.seller_id, "target": option.target_menu_key}},
                )
                return self.fallback()
            return self.go_to(target, option=option)
        if action == OptionAction.MESSAGE:
            return self.text_decision(option.action_response or DEFAULT_MESSAGE_RESPONSE, option=option)
        if action == OptionAction.HUMAN:
            return self.hand_off(option.action_response, option=option)
        if action == OptionAction.END:
            return self.text_decision(
                option.action_response or DEFAULT_END_RESPONSE,
                menu_key=MAIN_MENU_KEY,
                stack=(),
                previous_menu_key=None,
                keep_previous=False,
                option=option,
            )
        return self.fallback()

    def hand_off(
        self,
        configured: Optional[str],
        trigger: Optional[TriggerConfig] = None,
        option: Optional[MenuOptionConfig] = None,
    ) -> EngineDecision:
        new_state = hand_off(state_of(self.state.awaiting_human))
        text = configured or self.snapshot.settings.human_handoff_message or DEFAULT_HUMAN_RESPONSE
        return self.text_decision(
            text,
            awaiting_human=new_state == ConversationState.AWAITING_HUMAN,
            trigger=trigger,
            option=option,
        )

    # entry points

    def while_awaiting_human(self) -> EngineDecision:
        command = self._resume_command()
        if command is not None:
            state = resume(ConversationState.AWAITING_HUMAN)
            waiting = state == ConversationState.AWAITING_HUMAN
            if command == ReservedCommand.HOME:
                return self.go_home(awaiting_human=waiting)
            return self.go_back(awaiting_human=waiting)

        return EngineDecision(
            outcome=Outcome.IGNORED,
            menu_key=self.state.current_menu_key,
            previous_menu_key=self.state.previous_menu_key,
            navigation_stack=self.stack,
            awaiting_human=True,
            last_sent_menu_key=self.state.last_sent_menu_key,
            is_human=True,
        )

    def _resume_command(self) -> Optional[ReservedCommand]:
        """Only home and back leave the human wait; home is checked first."""
        command = reserved_command(self.classified)
        if command is not None or self.classified.kind != InputKind.TEXT:
            return command
        normalized = self.classified.normalized
        if any(keyword_matches(normalized, keyword) for keyword in HUMAN_HOME_KEYWORDS):
            return ReservedCommand.HOME
        if any(keyword_matches(normalized, keyword) for keyword in HUMAN_BACK_KEYWORDS):
            return ReservedCommand.BACK
        return None

    def automated(self) -> EngineDecision:
        winner, _ = pick_best_trigger(self.snapshot.triggers, self.classified, self.variables)
        if winner is not None:
            logger.info(
                f"Trigger matched: {winner.trigger.trigger_name}",
                extra={"context": {"seller_id": self.snapshot.seller_id, "matched_by": winner.matched_by.value}},
            )
            decision = self.run_trigger(winner.trigger)
            if decision is not None:
                return decision

        command = reserved_command(self.classified)
        if command is not None:
            return self.run_reserved(command)

        all_options = [
            o
            for menu in sorted(self.snapshot.menus.values(), key=lambda m: (m.sort_order, m.menu_key))
            for o in sorted(menu.options, key=lambda o: (o.sort_order, o.option_number))
        ]
        option = (
            pick_option_by_selection(self.current_menu, all_options, self.classified, self.variables)
            or pick_option_by_number(self.current_menu, self.classified, self.variables)
            or pick_best_option_by_keyword(
                sorted(self.current_menu.options, key=lambda o: o.sort_order), self.classified, self.variables
            )
        )
        if option is not None:
            return self.run_option(option)

        return self.fallback()


def process_message(
    snapshot: BotSnapshot,
    contact_state: Optional[ContactState],
    classified: ClassifiedInput,
    contact_facts: Optional[Mapping[str, str]] = None,
) -> Result[EngineDecision]:
    """Decide the single next action for one inbound message."""
    if snapshot.main_menu is None:
        logger.error(
            "Seller has no main menu",
            extra={"context": {"seller_id": snapshot.seller_id}},
        )
        return Result.failure("Main menu not configured", MISSING_MAIN_MENU)

    engine = _Engine(snapshot, contact_state or ContactState.fresh(), classified, contact_facts or {})
    if engine.state.awaiting_human:
        return Result.success(engine.while_awaiting_human())
    return Result.success(engine.automated())
