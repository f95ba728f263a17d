"""Back-history of visited menus, most recent last.

All functions return new lists; the stack passed in is never modified.
"""

from typing import Iterable, Optional

from menubot.services.bot_config import MAIN_MENU_KEY


def as_stack(raw: Optional[Iterable]) -> list[str]:
    """Stored JSON value to a clean stack (non-string entries dropped)."""
    if not raw:
        return []
    return [item for item in raw if isinstance(item, str) and item]


def push(stack: list[str], menu_key: str) -> list[str]:
    return [*stack, menu_key]


def pop(stack: list[str]) -> tuple[list[str], str]:
    """Remove the most recent entry and return it as the back target."""
    if not stack:
        return [], MAIN_MENU_KEY
    return list(stack[:-1]), stack[-1]


def reset() -> list[str]:
    return []


def forward(stack: list[str], current_menu_key: str, target_menu_key: str) -> list[str]:
    """Stack after moving from the current menu to a target menu."""
    if target_menu_key == MAIN_MENU_KEY:
        return reset()
    if target_menu_key == current_menu_key:
        return list(stack)
    if target_menu_key in stack:
        # revisiting an ancestor unwinds to it
        return list(stack[: stack.index(target_menu_key)])
    return push(stack, current_menu_key)
