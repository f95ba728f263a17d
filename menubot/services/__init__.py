from menubot.services.conversation_engine import (
    ContactState,
    EngineDecision,
    Outcome,
    process_message,
)
from menubot.services.input_classifier import classify_input
from menubot.services.state_machine import (
    ConversationState,
    InvalidTransitionError,
    can_transition,
    hand_off,
    resume,
    transition,
)
