"""Per-role permission merging."""
from typing import Any, Dict, List

from doctype_ui.generators.contract.types import PERMISSION_FLAGS, PermissionFlags


def to_flag(value: Any) -> bool:
    """Interpret desk-style 0/1, '0'/'1', bool and yes/no values."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y", "on")
    return bool(value)


def _level(rule: Dict[str, Any]) -> int:
    try:
        return int(rule.get("permlevel") or 0)
    except (TypeError, ValueError):
        return 0


def merge_role_rules(rules: List[Dict[str, Any]]) -> PermissionFlags:
    """Fold one role's rules into effective capability flags.

    Rules at the same permlevel apply in order, a later value replacing an
    earlier one flag by flag. Across levels a flag is granted when some
    level grants it and no higher level explicitly denies it (flag present
    and false). Absent flags are neither grants nor denies.
    """
    per_level: Dict[int, Dict[str, bool]] = {}
    for rule in rules:
        state = per_level.setdefault(_level(rule), {})
        for flag in PERMISSION_FLAGS:
            if flag in rule and rule[flag] is not None:
                state[flag] = to_flag(rule[flag])

    effective = {}
    for flag in PERMISSION_FLAGS:
        grants = [level for level, state in per_level.items() if state.get(flag) is True]
        denies = [level for level, state in per_level.items() if state.get(flag) is False]
        if not grants:
            effective[flag] = False
        elif not denies:
            effective[flag] = True
        else:
            effective[flag] = max(grants) > max(denies)
    return PermissionFlags(**effective)


def merge_permissions(rules_by_role: Dict[str, List[Dict[str, Any]]]) -> Dict[str, PermissionFlags]:
    """Effective flags per role, keyed in sorted role order."""
    merged = {}
    for role in sorted(r for r in rules_by_role if r):
        merged[role] = merge_role_rules(rules_by_role[role] or [])
    return merged
