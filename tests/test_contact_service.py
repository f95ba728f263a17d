from types import SimpleNamespace
from unittest.mock import Mock, patch

from menubot.models import Contact, InteractionLog
from menubot.services.contact_service import append_log, apply_decision, lock_contact, record_delivery
from menubot.services.conversation_engine import EngineDecision, OutboundResponse, Outcome

SELLER_ID = "6f1c2a8e-4b7d-4c35-9a0e-2d5f1b3c7e90"
PHONE = "5511987654321"


def make_decision(**overrides):
    values = dict(
        outcome=Outcome.SEND,
        response=OutboundResponse(text="Nossos planos"),
        menu_key="plans",
        previous_menu_key="main",
        last_sent_menu_key="plans",
        navigation_stack=("main",),
        awaiting_human=False,
    )
    values.update(overrides)
    return EngineDecision(**values)


class TestLockContact:
    def test_lock_wait_is_bounded_before_locking(self):
        db = Mock()
        with patch("menubot.services.contact_service.settings", Mock(contact_lock_timeout_ms=2500)):
            lock_contact(db, SELLER_ID, PHONE, "Maria")

        first_statement = db.execute.call_args_list[0].args[0]
        assert str(first_statement) == "SET LOCAL lock_timeout = 2500"
        assert db.execute.call_count == 2
        db.query.return_value.filter.return_value.with_for_update.assert_called_once()


class TestApplyDecision:
    def test_navigation_state_is_written(self):
        contact = SimpleNamespace(name=None, interaction_count=2, last_response_at=None)
        apply_decision(Mock(), contact, make_decision(), name="Maria", responded=False)

        assert contact.current_menu_key == "plans"
        assert contact.navigation_stack == ["main"]
        assert contact.interaction_count == 3
        assert contact.name == "Maria"
        assert contact.last_response_at is None


class TestAppendLog:
    def test_entry_has_id_before_flush(self):
        db = Mock()
        entry = append_log(db, SELLER_ID, PHONE, "1", make_decision(), status="sending")

        assert entry.id is not None
        assert entry.status == "sending"
        assert entry.response_sent == "Nossos planos"
        db.add.assert_called_once_with(entry)


class TestRecordDelivery:
    def test_sent_updates_log_and_contact(self):
        db = Mock()
        record_delivery(db, "contact-1", "log-1", sent=True)

        queried = [call.args[0] for call in db.query.call_args_list]
        assert queried == [InteractionLog, Contact]
        first_update = db.query.return_value.filter.return_value.update.call_args_list[0]
        assert first_update.args[0] == {InteractionLog.status: "sent"}
        db.commit.assert_called_once()

    def test_failed_leaves_contact_untouched(self):
        db = Mock()
        record_delivery(db, "contact-1", "log-1", sent=False)

        queried = [call.args[0] for call in db.query.call_args_list]
        assert queried == [InteractionLog]
        update = db.query.return_value.filter.return_value.update.call_args
        assert update.args[0] == {InteractionLog.status: "failed"}
        db.commit.assert_called_once()
