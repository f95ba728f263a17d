from unittest.mock import Mock

import pytest

from menubot.services.bot_config import (
    ALWAYS,
    BotSettings,
    BotSnapshot,
    MenuConfig,
    MenuOptionConfig,
    OptionAction,
    TriggerAction,
    TriggerConfig,
)

SELLER_ID = "6f1c2a8e-4b7d-4c35-9a0e-2d5f1b3c7e90"


@pytest.fixture
def db_session():
    """Mock database session."""
    return Mock()


def _option(menu_key, number, text, action=OptionAction.MENU, **kwargs):
    return MenuOptionConfig(
        id=kwargs.pop("id", f"{menu_key}-{number}"),
        menu_key=menu_key,
        option_number=number,
        option_text=text,
        list_id=kwargs.pop("list_id", f"lm_{menu_key}_{number}"),
        action=action,
        keywords=tuple(kwargs.pop("keywords", ())),
        target_menu_key=kwargs.pop("target", None),
        action_response=kwargs.pop("response", None),
        sort_order=kwargs.pop("sort_order", number),
        condition=kwargs.pop("condition", ALWAYS),
    )


def _menu(key, options=(), text=None, title=None, image_url=None, sort_order=0):
    return MenuConfig(
        id=f"menu-{key}",
        menu_key=key,
        title=title or key.title(),
        message_text=text if text is not None else f"Menu {key}",
        image_url=image_url,
        sort_order=sort_order,
        options=tuple(options),
    )


def _trigger(name, keywords, action, target=None, priority=0, response=None, condition=ALWAYS):
    return TriggerConfig(
        id=f"trigger-{name}",
        trigger_name=name,
        action=action,
        keywords=tuple(keywords),
        target_menu_key=target,
        response_text=response,
        priority=priority,
        condition=condition,
    )


def _snapshot(menus, triggers=(), variables=None, **settings):
    return BotSnapshot(
        seller_id=SELLER_ID,
        settings=BotSettings(**settings),
        menus={m.menu_key: m for m in menus},
        triggers=tuple(triggers),
        variables=variables or {},
    )


@pytest.fixture
def make_option():
    return _option


@pytest.fixture
def make_menu():
    return _menu


@pytest.fixture
def make_trigger():
    return _trigger


@pytest.fixture
def make_snapshot():
    return _snapshot


@pytest.fixture
def default_triggers():
    return [
        _trigger(
            "menu",
            ["menu", "oi", "olá", "ola", "bom dia", "boa tarde", "boa noite"],
            TriggerAction.GOTO_MENU,
            target="main",
            priority=90,
        ),
        _trigger("voltar", ["voltar", "retornar", "anterior", "*", "#"], TriggerAction.GOTO_PREVIOUS, priority=80),
        _trigger(
            "inicio",
            ["inicio", "início", "começo", "menu principal", "##"],
            TriggerAction.GOTO_HOME,
            target="main",
            priority=100,
        ),
        _trigger(
            "humano",
            ["atendente", "humano", "pessoa", "falar com alguém", "ajuda humana"],
            TriggerAction.HUMAN,
            priority=70,
        ),
    ]


@pytest.fixture
def iptv_snapshot(default_triggers):
    """Reseller bot: main -> plans -> monthly, with a test request and human option."""
    main = _menu(
        "main",
        [
            _option("main", 1, "Ver Planos", target="plans", keywords=["planos", "plano"]),
            _option(
                "main",
                2,
                "Solicitar Teste",
                action=OptionAction.MESSAGE,
                keywords=["teste"],
                response="Teste liberado na {empresa}!",
            ),
            _option("main", 3, "Suporte", action=OptionAction.HUMAN, keywords=["suporte"]),
        ],
        text="Bem-vindo à {empresa}",
        title="Menu Principal",
    )
    plans = _menu(
        "plans",
        [
            _option("plans", 1, "Plano Mensal", target="monthly", keywords=["mensal"]),
            _option(
                "plans",
                2,
                "Plano Anual",
                action=OptionAction.MESSAGE,
                keywords=["anual"],
                response="Plano anual: R$ 300",
            ),
        ],
        text="Nossos planos",
        title="Planos",
    )
    monthly = _menu(
        "monthly",
        [
            _option("monthly", 1, "Pagar", action=OptionAction.MESSAGE, response="PIX: {pix}"),
            _option("monthly", 2, "Encerrar", action=OptionAction.END),
        ],
        text="Plano mensal R$ 30",
        title="Mensal",
    )
    return _snapshot(
        [main, plans, monthly],
        default_triggers,
        variables={"empresa": "IPTV Max", "pix": "pix@iptvmax.com"},
    )
