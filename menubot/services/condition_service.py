import re
from typing import Mapping, Optional

from menubot.logging_config import get_logger
from menubot.services.bot_config import Condition, ConditionType
from menubot.services.input_classifier import ClassifiedInput

logger = get_logger("condition_service")


def session_variables(
    variables: Mapping[str, str],
    phone: Optional[str] = None,
    name: Optional[str] = None,
    current_menu: Optional[str] = None,
) -> dict[str, str]:
    """Seller variables plus facts about the contact, keys lower-cased."""
    merged = {key.lower(): value for key, value in variables.items()}
    if phone:
        merged["phone"] = phone
    if name:
        merged["name"] = name
    if current_menu:
        merged["current_menu"] = current_menu
    return merged


def _check_variable(payload: str, variables: Mapping[str, str]) -> bool:
    name, sep, expected = payload.partition(":")
    name = name.strip().lower()
    if not name:
        return False
    actual = variables.get(name)
    if not sep:
        return actual is not None and str(actual) != ""
    if actual is None:
        return False
    return str(actual).strip().lower() == expected.strip().lower()


def evaluate_condition(
    condition: Optional[Condition],
    classified: ClassifiedInput,
    variables: Mapping[str, str],
) -> bool:
    """Gate a trigger or option on the input and session variables. Never raises."""
    if condition is None or condition.type == ConditionType.ALWAYS:
        return True

    payload = condition.value
    if payload is None:
        return False

    text = classified.raw.strip().lower()

    if condition.type == ConditionType.EQUALS:
        expected = " ".join(payload.lower().split())
        return " ".join(text.split()) == expected

    if condition.type == ConditionType.CONTAINS:
        return payload.lower() in text

    if condition.type == ConditionType.REGEX:
        try:
            return re.search(payload, classified.raw, re.IGNORECASE) is not None
        except re.error as e:
            logger.warning(f"Invalid condition regex: {e}", extra={"context": {"pattern": payload}})
            return False

    if condition.type == ConditionType.VARIABLE:
        return _check_variable(payload, variables)

    return False
