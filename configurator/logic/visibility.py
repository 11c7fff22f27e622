"""Visibility Resolver.

Decides which options, and which values within an option, are currently
visible for a selection map. visible_options and visible_values return
subsequences of their input in authored order.

A value's visibility is independent of its owning option's visibility;
callers that need both must check both.
"""

from typing import Optional

from configurator.logic.rule_engine import evaluate_rule_set
from configurator.models import Option, OptionValue


def find_option(all_options: list[Option], option_id: Optional[str]) -> Optional[Option]:
    if not option_id:
        return None
    for option in all_options:
        if option.id == option_id:
            return option
    return None


def should_show_option(
    option: Option,
    selections: dict[str, str],
    errors: Optional[list[str]] = None,
) -> bool:
    return evaluate_rule_set(option.conditional_logic, selections, errors)


def should_show_value(
    value: OptionValue,
    selections: dict[str, str],
    errors: Optional[list[str]] = None,
) -> bool:
    return evaluate_rule_set(value.conditional_logic, selections, errors)


def child_options(group_id: str, all_options: list[Option]) -> list[Option]:
    """Options that belong to the given group, in authored order."""
    return [opt for opt in all_options if opt.parent_id == group_id]


def visible_options(
    all_options: list[Option],
    selections: dict[str, str],
    errors: Optional[list[str]] = None,
) -> list[Option]:
    """Options whose conditional logic passes, in authored order.

    A group is only visible while at least one of its children is.
    """
    visible = [opt for opt in all_options if should_show_option(opt, selections, errors)]

    result = []
    for option in visible:
        if not option.is_group:
            result.append(option)
            continue
        children = child_options(option.id, all_options)
        if any(should_show_option(child, selections) for child in children):
            result.append(option)
    return result


def visible_values(
    option: Option,
    selections: dict[str, str],
    all_options: Optional[list[Option]] = None,
    errors: Optional[list[str]] = None,
) -> list[OptionValue]:
    """Values of ``option`` whose conditional logic passes, in authored order.

    ``all_options`` is accepted for call-site symmetry with visible_options;
    rules only need the selection map.
    """
    return [value for value in option.values if should_show_value(value, selections, errors)]


def first_available_value(
    option: Option,
    selections: dict[str, str],
    all_options: Optional[list[Option]] = None,
) -> Optional[str]:
    values = visible_values(option, selections, all_options)
    return values[0].id if values else None


def is_value_available(
    option_id: str,
    value_id: str,
    all_options: list[Option],
    selections: dict[str, str],
) -> bool:
    option = find_option(all_options, option_id)
    if option is None:
        return False
    return any(value.id == value_id for value in visible_values(option, selections, all_options))


def available_values(
    option_id: str,
    all_options: list[Option],
    selections: dict[str, str],
) -> list[dict[str, str]]:
    """Currently selectable values of an option as ``{"id", "name"}`` dicts."""
    option = find_option(all_options, option_id)
    if option is None:
        return []
    return [
        {"id": value.id, "name": value.name}
        for value in visible_values(option, selections, all_options)
    ]


def options_for_conditions(current_option_id: str, all_options: list[Option]) -> list[Option]:
    """Options a rule on ``current_option_id`` may reference (no self, no groups)."""
    return [opt for opt in all_options if opt.id != current_option_id and not opt.is_group]


def grouped_options(all_options: list[Option]) -> list[Option]:
    """Root options (no parent) with groups first; stable within each kind."""
    roots = [opt for opt in all_options if not opt.parent_id]
    return sorted(roots, key=lambda opt: 0 if opt.is_group else 1)


def options_in_visual_order(all_options: list[Option]) -> list[dict]:
    """Flatten options into display order: each root in authored order, a group
    immediately followed by its children.

    Each entry is ``{"option", "visual_index", "is_in_group", "group_id",
    "index_in_group"}``.
    """
    result = []
    visual_index = 0
    for root in (opt for opt in all_options if not opt.parent_id):
        result.append({
            "option": root,
            "visual_index": visual_index,
            "is_in_group": False,
            "group_id": None,
            "index_in_group": None,
        })
        visual_index += 1

        if not root.is_group:
            continue
        for index_in_group, child in enumerate(child_options(root.id, all_options)):
            result.append({
                "option": child,
                "visual_index": visual_index,
                "is_in_group": True,
                "group_id": root.id,
                "index_in_group": index_in_group,
            })
            visual_index += 1
    return result
