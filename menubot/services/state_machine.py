from enum import Enum


class ConversationState(str, Enum):
    AUTOMATED = "automated"
    AWAITING_HUMAN = "awaiting_human"


VALID_TRANSITIONS = {
    ConversationState.AUTOMATED: [ConversationState.AWAITING_HUMAN],
    ConversationState.AWAITING_HUMAN: [ConversationState.AUTOMATED],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_state: ConversationState, to_state: ConversationState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {from_state.value} -> {to_state.value}")


def state_of(awaiting_human: bool) -> ConversationState:
    return ConversationState.AWAITING_HUMAN if awaiting_human else ConversationState.AUTOMATED


def can_transition(from_state: ConversationState, to_state: ConversationState) -> bool:
    """Check if transition is valid."""
    allowed = VALID_TRANSITIONS.get(from_state, [])
    return to_state in allowed


def transition(from_state: ConversationState, to_state: ConversationState) -> ConversationState:
    """Perform state transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_state, to_state):
        raise InvalidTransitionError(from_state, to_state)
    return to_state


def hand_off(current_state: ConversationState) -> ConversationState:
    """Freeze automated routing until the contact asks to navigate again."""
    return transition(current_state, ConversationState.AWAITING_HUMAN)


def resume(current_state: ConversationState) -> ConversationState:
    """Contact used a navigation command while waiting, bot takes over again."""
    return transition(current_state, ConversationState.AUTOMATED)
