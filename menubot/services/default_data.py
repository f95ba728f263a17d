"""Starter configuration for a seller that has none yet."""

import uuid
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from menubot.logging_config import get_logger
from menubot.models import ChatbotConfig, GlobalTrigger, Menu, MenuOption, Variable
from menubot.services.bot_config import (
    DEFAULT_FALLBACK_MESSAGE,
    DEFAULT_LIST_BUTTON_TEXT,
    DEFAULT_WELCOME_MESSAGE,
    MAIN_MENU_KEY,
)

logger = get_logger("default_data")

MAIN_MENU_TEXT = (
    "👋 *Olá!* Seja bem-vindo!\n\n"
    "Escolha uma opção:\n\n"
    "*1* - 📋 Ver Planos\n"
    "*2* - 🆓 Solicitar Teste\n"
    "*3* - 👤 Falar com Atendente\n\n"
    "*0* - Voltar | *00* - Menu Principal"
)

PLANS_MENU_TEXT = (
    "📋 *Nossos Planos*\n\n"
    "*1* - Plano Mensal\n"
    "*2* - Plano Trimestral\n\n"
    "*0* - Voltar | *00* - Menu Principal"
)

DEFAULT_MENUS = [
    {
        "menu_key": MAIN_MENU_KEY,
        "list_id": "lm_main",
        "title": "Menu Principal",
        "message_text": MAIN_MENU_TEXT,
        "parent_menu_key": None,
        "sort_order": 0,
        "options": [
            (1, "📋 Ver Planos", "menu", "plans", None, ["plano", "planos", "preço", "valor"]),
            (
                2,
                "🆓 Solicitar Teste",
                "message",
                None,
                "🆓 Pedido de teste recebido! A equipe da {empresa} libera seu acesso em instantes.",
                ["teste"],
            ),
            (3, "👤 Falar com Atendente", "human", None, None, []),
        ],
    },
    {
        "menu_key": "plans",
        "list_id": "lm_plans",
        "title": "Planos",
        "message_text": PLANS_MENU_TEXT,
        "parent_menu_key": MAIN_MENU_KEY,
        "sort_order": 1,
        "options": [
            (
                1,
                "Plano Mensal",
                "message",
                None,
                "✅ Plano Mensal escolhido. Faça o PIX para {pix} e envie o comprovante aqui.",
                ["mensal"],
            ),
            (
                2,
                "Plano Trimestral",
                "message",
                None,
                "✅ Plano Trimestral escolhido. Faça o PIX para {pix} e envie o comprovante aqui.",
                ["trimestral"],
            ),
        ],
    },
]

DEFAULT_TRIGGERS = [
    {
        "trigger_name": "menu",
        "keywords": ["menu", "oi", "olá", "ola", "bom dia", "boa tarde", "boa noite"],
        "action_type": "goto_menu",
        "target_menu_key": MAIN_MENU_KEY,
        "priority": 90,
    },
    {
        "trigger_name": "voltar",
        "keywords": ["voltar", "retornar", "anterior", "*", "#"],
        "action_type": "goto_previous",
        "target_menu_key": None,
        "priority": 80,
    },
    {
        "trigger_name": "inicio",
        "keywords": ["inicio", "início", "começo", "menu principal", "##"],
        "action_type": "goto_home",
        "target_menu_key": MAIN_MENU_KEY,
        "priority": 100,
    },
    {
        "trigger_name": "humano",
        "keywords": ["atendente", "humano", "pessoa", "falar com alguém", "ajuda humana"],
        "action_type": "human",
        "target_menu_key": None,
        "priority": 70,
    },
]

DEFAULT_VARIABLES = [
    ("empresa", "Minha Empresa", "Nome da empresa"),
    ("pix", "pix@exemplo.com", "Chave PIX"),
    ("whatsapp", "(00) 00000-0000", "WhatsApp de contato"),
    ("horario", "Seg-Sex 9h às 18h", "Horário de atendimento"),
]


def seed_defaults(db: Session, seller_id) -> dict[str, int]:
    """Create whatever starter records are missing. Existing records are left alone."""
    now = datetime.now(timezone.utc)
    created = {"config": 0, "menus": 0, "options": 0, "triggers": 0, "variables": 0}

    if db.query(ChatbotConfig).filter(ChatbotConfig.seller_id == seller_id).first() is None:
        db.add(
            ChatbotConfig(
                seller_id=seller_id,
                is_enabled=True,
                fallback_message=DEFAULT_FALLBACK_MESSAGE,
                welcome_message=DEFAULT_WELCOME_MESSAGE,
                typing_enabled=True,
                response_delay_min_ms=1000,
                response_delay_max_ms=3000,
                ignore_groups=True,
                use_list_message=True,
                list_button_text=DEFAULT_LIST_BUTTON_TEXT,
                created_at=now,
                updated_at=now,
            )
        )
        created["config"] = 1

    existing_menus = {key for (key,) in db.query(Menu.menu_key).filter(Menu.seller_id == seller_id).all()}
    for menu_defaults in DEFAULT_MENUS:
        if menu_defaults["menu_key"] in existing_menus:
            continue
        menu_id = uuid.uuid4()
        db.add(
            Menu(
                id=menu_id,
                seller_id=seller_id,
                menu_key=menu_defaults["menu_key"],
                list_id=menu_defaults["list_id"],
                title=menu_defaults["title"],
                message_text=menu_defaults["message_text"],
                parent_menu_key=menu_defaults["parent_menu_key"],
                sort_order=menu_defaults["sort_order"],
                is_active=True,
                created_at=now,
            )
        )
        created["menus"] += 1

        # options are only seeded together with a new menu
        for number, text, action, target, response, keywords in menu_defaults["options"]:
            db.add(
                MenuOption(
                    id=uuid.uuid4(),
                    seller_id=seller_id,
                    menu_id=menu_id,
                    option_number=number,
                    option_text=text,
                    list_id=f"lm_{menu_defaults['menu_key']}_{number}",
                    keywords=keywords,
                    action_type=action,
                    target_menu_key=target,
                    action_response=response,
                    sort_order=number,
                    is_active=True,
                    created_at=now,
                )
            )
            created["options"] += 1

    existing_triggers = {
        name
        for (name,) in db.query(GlobalTrigger.trigger_name).filter(GlobalTrigger.seller_id == seller_id).all()
    }
    for sort_order, defaults in enumerate(DEFAULT_TRIGGERS):
        if defaults["trigger_name"] in existing_triggers:
            continue
        db.add(GlobalTrigger(seller_id=seller_id, sort_order=sort_order, is_active=True, created_at=now, **defaults))
        created["triggers"] += 1

    existing_variables = {
        key for (key,) in db.query(Variable.variable_key).filter(Variable.seller_id == seller_id).all()
    }
    for key, value, description in DEFAULT_VARIABLES:
        if key in existing_variables:
            continue
        db.add(
            Variable(
                seller_id=seller_id,
                variable_key=key,
                variable_value=value,
                description=description,
                is_system=True,
            )
        )
        created["variables"] += 1

    db.commit()
    logger.info("Default chatbot data seeded", extra={"context": {"seller_id": str(seller_id), "created": created}})
    return created
