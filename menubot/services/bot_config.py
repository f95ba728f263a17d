"""Immutable per-seller chatbot configuration.

Rows read from the database are converted once into these records. Action and
condition tags become closed enums here, so everything downstream can branch on
them without guarding against unknown strings.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

MAIN_MENU_KEY = "main"
BACK_LIST_ID = "lm_voltar"
HOME_LIST_ID = "lm_inicio"

DEFAULT_FALLBACK_MESSAGE = "Não entendi 😕 Digite *MENU* para ver as opções disponíveis."
DEFAULT_WELCOME_MESSAGE = "Olá! Seja bem-vindo! Como posso ajudar?"
DEFAULT_MESSAGE_RESPONSE = "Mensagem recebida!"
DEFAULT_HUMAN_RESPONSE = "Aguarde, você será atendido por um de nossos atendentes. 👤"
DEFAULT_END_RESPONSE = "Obrigado pelo contato! Até a próxima. 👋"
DEFAULT_LIST_BUTTON_TEXT = "📋 Ver opções"


class TriggerAction(str, Enum):
    GOTO_HOME = "goto_home"
    GOTO_PREVIOUS = "goto_previous"
    GOTO_MENU = "goto_menu"
    MESSAGE = "message"
    HUMAN = "human"


class OptionAction(str, Enum):
    MENU = "menu"
    MESSAGE = "message"
    HUMAN = "human"
    END = "end"


class ConditionType(str, Enum):
    ALWAYS = "always"
    EQUALS = "equals"
    CONTAINS = "contains"
    REGEX = "regex"
    VARIABLE = "variable"


@dataclass(frozen=True)
class Condition:
    type: ConditionType = ConditionType.ALWAYS
    value: Optional[str] = None

    @property
    def is_always(self) -> bool:
        return self.type == ConditionType.ALWAYS


ALWAYS = Condition()


def normalize_key(value: Optional[str]) -> str:
    """Lower-case, trimmed, inner whitespace collapsed to underscores."""
    return re.sub(r"\s+", "_", (value or "").strip().lower())


def normalize_keywords(keywords) -> tuple[str, ...]:
    result: list[str] = []
    for keyword in keywords or []:
        if not isinstance(keyword, str):
            continue
        cleaned = re.sub(r"\s+", " ", keyword.strip().lower())
        if cleaned and cleaned not in result:
            result.append(cleaned)
    return tuple(result)


@dataclass(frozen=True)
class MenuOptionConfig:
    id: str
    menu_key: str
    option_number: int
    option_text: str
    list_id: str
    action: OptionAction
    keywords: tuple[str, ...] = ()
    target_menu_key: Optional[str] = None
    action_response: Optional[str] = None
    sort_order: int = 0
    condition: Condition = ALWAYS


@dataclass(frozen=True)
class MenuConfig:
    id: str
    menu_key: str
    title: str
    message_text: str
    list_id: Optional[str] = None
    image_url: Optional[str] = None
    parent_menu_key: Optional[str] = None
    sort_order: int = 0
    options: tuple[MenuOptionConfig, ...] = ()


@dataclass(frozen=True)
class TriggerConfig:
    id: str
    trigger_name: str
    action: TriggerAction
    keywords: tuple[str, ...] = ()
    target_menu_key: Optional[str] = None
    response_text: Optional[str] = None
    priority: int = 0
    sort_order: int = 0
    condition: Condition = ALWAYS

    @property
    def list_id(self) -> str:
        return f"lm_{normalize_key(self.trigger_name)}"


@dataclass(frozen=True)
class BotSettings:
    is_enabled: bool = True
    fallback_message: str = DEFAULT_FALLBACK_MESSAGE
    welcome_message: str = DEFAULT_WELCOME_MESSAGE
    human_handoff_message: Optional[str] = None
    typing_enabled: bool = True
    response_delay_min_ms: int = 1000
    response_delay_max_ms: int = 3000
    ignore_groups: bool = True
    use_list_message: bool = True
    list_button_text: str = DEFAULT_LIST_BUTTON_TEXT


@dataclass(frozen=True)
class BotSnapshot:
    seller_id: str
    settings: BotSettings
    menus: dict[str, MenuConfig] = field(default_factory=dict)
    triggers: tuple[TriggerConfig, ...] = ()
    variables: dict[str, str] = field(default_factory=dict)

    def menu(self, menu_key: Optional[str]) -> Optional[MenuConfig]:
        if not menu_key:
            return None
        return self.menus.get(menu_key)

    @property
    def main_menu(self) -> Optional[MenuConfig]:
        return self.menus.get(MAIN_MENU_KEY)
