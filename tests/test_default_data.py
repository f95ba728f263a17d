from unittest.mock import Mock

from menubot.models import ChatbotConfig, GlobalTrigger, Menu, MenuOption, Variable
from menubot.services.config_cache import build_snapshot
from menubot.services.conversation_engine import ContactState, Outcome, process_message
from menubot.services.default_data import (
    DEFAULT_MENUS,
    DEFAULT_TRIGGERS,
    DEFAULT_VARIABLES,
    seed_defaults,
)
from menubot.services.input_classifier import classify_input

SELLER_ID = "6f1c2a8e-4b7d-4c35-9a0e-2d5f1b3c7e90"


def make_db(config=None, menu_keys=(), trigger_names=(), variable_keys=()):
    db = Mock()

    def query(*entities):
        q = Mock()
        entity = entities[0]
        if entity is ChatbotConfig:
            q.filter.return_value.first.return_value = config
        elif entity is Menu.menu_key:
            q.filter.return_value.all.return_value = [(key,) for key in menu_keys]
        elif entity is GlobalTrigger.trigger_name:
            q.filter.return_value.all.return_value = [(name,) for name in trigger_names]
        elif entity is Variable.variable_key:
            q.filter.return_value.all.return_value = [(key,) for key in variable_keys]
        return q

    db.query.side_effect = query
    return db


def added(db, model):
    return [call.args[0] for call in db.add.call_args_list if isinstance(call.args[0], model)]


def seeded_snapshot(db):
    return build_snapshot(
        SELLER_ID,
        added(db, ChatbotConfig)[0],
        added(db, Menu),
        added(db, MenuOption),
        added(db, GlobalTrigger),
        added(db, Variable),
    )


def reply(snapshot, text, state=None):
    result = process_message(snapshot, state or ContactState(), classify_input(text))
    assert result.ok, result.error
    return result.value


class TestSeedDefaults:
    def test_empty_seller_gets_everything(self):
        db = make_db()
        created = seed_defaults(db, SELLER_ID)

        assert created == {
            "config": 1,
            "menus": len(DEFAULT_MENUS),
            "options": sum(len(menu["options"]) for menu in DEFAULT_MENUS),
            "triggers": len(DEFAULT_TRIGGERS),
            "variables": len(DEFAULT_VARIABLES),
        }
        assert [m.menu_key for m in added(db, Menu)] == ["main", "plans"]
        names = {t.trigger_name: t for t in added(db, GlobalTrigger)}
        assert names["inicio"].priority == 100
        assert names["inicio"].action_type == "goto_home"
        assert "00" not in names["inicio"].keywords
        db.commit.assert_called_once()

    def test_options_point_at_their_menu(self):
        db = make_db()
        seed_defaults(db, SELLER_ID)

        menu_ids = {m.menu_key: m.id for m in added(db, Menu)}
        main_options = [o for o in added(db, MenuOption) if o.menu_id == menu_ids["main"]]
        assert [(o.option_number, o.action_type, o.target_menu_key) for o in main_options] == [
            (1, "menu", "plans"),
            (2, "message", None),
            (3, "human", None),
        ]

    def test_existing_records_are_kept(self):
        db = make_db(
            config=Mock(),
            menu_keys=["main", "plans"],
            trigger_names=["menu", "voltar", "inicio", "humano"],
            variable_keys=["empresa"],
        )
        created = seed_defaults(db, SELLER_ID)

        assert created == {
            "config": 0,
            "menus": 0,
            "options": 0,
            "triggers": 0,
            "variables": len(DEFAULT_VARIABLES) - 1,
        }
        assert added(db, ChatbotConfig) == []
        assert added(db, MenuOption) == []
        assert {v.variable_key for v in added(db, Variable)} == {"pix", "whatsapp", "horario"}

    def test_missing_submenu_is_added_alone(self):
        db = make_db(menu_keys=["main"])
        created = seed_defaults(db, SELLER_ID)

        assert [m.menu_key for m in added(db, Menu)] == ["plans"]
        assert created["options"] == 2


class TestSeededConversation:
    def test_advertised_numbers_resolve(self):
        db = make_db()
        seed_defaults(db, SELLER_ID)
        snapshot = seeded_snapshot(db)

        plans = reply(snapshot, "1")
        assert plans.menu_key == "plans"
        assert plans.outcome == Outcome.SEND
        assert [row.row_id for row in plans.response.rows] == ["lm_plans_1", "lm_plans_2", "lm_voltar", "lm_inicio"]

        trial = reply(snapshot, "2")
        assert "Minha Empresa" in trial.response.text

        human = reply(snapshot, "3")
        assert human.awaiting_human is True

    def test_main_menu_lists_its_options(self):
        db = make_db()
        seed_defaults(db, SELLER_ID)
        snapshot = seeded_snapshot(db)

        greeting = reply(snapshot, "oi", ContactState(current_menu_key="plans", navigation_stack=("main",)))
        assert greeting.menu_key == "main"
        assert [row.row_id for row in greeting.response.rows] == ["lm_main_1", "lm_main_2", "lm_main_3"]

    def test_plan_choice_renders_pix_key(self):
        db = make_db()
        seed_defaults(db, SELLER_ID)
        snapshot = seeded_snapshot(db)

        state = ContactState(current_menu_key="plans", navigation_stack=("main",), last_sent_menu_key="plans")
        decision = reply(snapshot, "1", state)
        assert "pix@exemplo.com" in decision.response.text
