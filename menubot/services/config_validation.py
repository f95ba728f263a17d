"""Configuration report for operators.

The engine tolerates every problem found here (it dedupes and skips), but the
seller still gets odd behaviour, so the admin API surfaces them.
"""

import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from menubot.models import GlobalTrigger, Menu, MenuOption
from menubot.services.bot_config import MAIN_MENU_KEY, ConditionType, OptionAction, TriggerAction


@dataclass(frozen=True)
class ConfigIssue:
    code: str
    message: str
    ref: Optional[str] = None


@dataclass
class ValidationReport:
    issues: list[ConfigIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    def add(self, code: str, message: str, ref: Optional[str] = None) -> None:
        self.issues.append(ConfigIssue(code=code, message=message, ref=ref))


def _norm(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def _check_condition(report: ValidationReport, row, label: str) -> None:
    raw = _norm(row.condition_type) or ConditionType.ALWAYS.value
    if raw not in {c.value for c in ConditionType}:
        report.add("unknown_condition_type", f"{label} has unknown condition type '{row.condition_type}'", label)
        return
    if raw == ConditionType.REGEX.value:
        try:
            re.compile(row.condition_value or "")
        except re.error as e:
            report.add("invalid_regex", f"{label} has invalid regex: {e}", label)


def validate_rows(
    menus: Iterable[Menu],
    options: Iterable[MenuOption],
    triggers: Iterable[GlobalTrigger],
) -> ValidationReport:
    report = ValidationReport()
    menus = [m for m in menus if m.is_active]
    options = [o for o in options if o.is_active]
    triggers = [t for t in triggers if t.is_active]

    menus_by_key: dict[str, list[Menu]] = defaultdict(list)
    for menu in menus:
        menus_by_key[_norm(menu.menu_key)].append(menu)
    menu_key_by_id = {m.id: _norm(m.menu_key) for m in menus}

    if MAIN_MENU_KEY not in menus_by_key:
        report.add("missing_main_menu", "No active menu with key 'main'")
    for key, rows in sorted(menus_by_key.items()):
        if len(rows) > 1:
            report.add("duplicate_menu_key", f"Menu key '{key}' is used by {len(rows)} active menus", key)

    options_by_list_id: dict[str, list[MenuOption]] = defaultdict(list)
    for option in options:
        options_by_list_id[_norm(option.list_id)].append(option)
        label = f"option {option.list_id}"

        action = _norm(option.action_type)
        if action not in {a.value for a in OptionAction}:
            report.add("unknown_action_type", f"{label} has unknown action '{option.action_type}'", option.list_id)
        elif action == OptionAction.MENU.value:
            target = _norm(option.target_menu_key)
            if not target:
                report.add("option_missing_target", f"{label} opens a menu but has no target", option.list_id)
            elif target not in menus_by_key:
                report.add(
                    "option_unknown_target",
                    f"{label} targets unknown menu '{option.target_menu_key}'",
                    option.list_id,
                )
        _check_condition(report, option, label)

    for list_id, rows in sorted(options_by_list_id.items()):
        if len(rows) < 2:
            continue
        owning_menus = {menu_key_by_id.get(row.menu_id) for row in rows}
        code = "cross_menu_list_id" if len(owning_menus) > 1 else "duplicate_list_id"
        report.add(code, f"List id '{list_id}' is used by {len(rows)} active options", list_id)

    trigger_names: dict[str, int] = defaultdict(int)
    for trigger in triggers:
        trigger_names[_norm(trigger.trigger_name)] += 1
        label = f"trigger {trigger.trigger_name}"
        action = _norm(trigger.action_type)
        if action not in {a.value for a in TriggerAction}:
            report.add("unknown_action_type", f"{label} has unknown action '{trigger.action_type}'", trigger.trigger_name)
        elif action == TriggerAction.GOTO_MENU.value and _norm(trigger.target_menu_key) not in menus_by_key:
            report.add(
                "trigger_unknown_target",
                f"{label} targets unknown menu '{trigger.target_menu_key}'",
                trigger.trigger_name,
            )
        _check_condition(report, trigger, label)

    for name, count in sorted(trigger_names.items()):
        if count > 1:
            report.add("duplicate_trigger_name", f"Trigger name '{name}' is used by {count} active triggers", name)

    return report


def validate_config(db: Session, seller_id) -> ValidationReport:
    menus = db.query(Menu).filter(Menu.seller_id == seller_id).all()
    options = db.query(MenuOption).filter(MenuOption.seller_id == seller_id).all()
    triggers = db.query(GlobalTrigger).filter(GlobalTrigger.seller_id == seller_id).all()
    return validate_rows(menus, options, triggers)
