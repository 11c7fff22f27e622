"""Authoring-time validation of option definitions.

Advisory only: every check returns descriptive strings and never blocks
evaluation. The evaluator treats whatever is flagged here as "no effect".

Rule-graph cycles are reported here instead of being resolved at runtime;
at runtime they are only survived through the bounded stabilize loop.
"""

from typing import Optional

from configurator.logic.component_mapper import normalize_color
from configurator.logic.visibility import find_option
from configurator.models import (
    DefaultBehavior,
    ManipulationType,
    Option,
    RuleOperator,
    RuleSet,
    normalize_logical_operator,
    normalize_rule_operator,
)


def validate_rule_set(
    rule_set: RuleSet,
    all_options: list[Option],
    owner_id: Optional[str] = None,
) -> list[str]:
    """Check one rule-set's references and value shapes.

    Args:
        rule_set: The conditional logic to check.
        all_options: Every option in the configurator.
        owner_id: Id of the option owning the rule-set (directly or via a value).

    Returns:
        List of error strings; empty when the rule-set is well formed.
    """
    errors = []

    if not rule_set.rules:
        if rule_set.enabled:
            errors.append("At least one rule is required")
        return errors

    if normalize_logical_operator(rule_set.operator) is None:
        errors.append(f"Unknown logical operator '{rule_set.operator}' (expected AND or OR)")

    for index, rule in enumerate(rule_set.rules, start=1):
        if owner_id is not None and rule.option_id == owner_id:
            errors.append(f"Rule {index}: Option cannot reference itself")
            continue

        referenced = find_option(all_options, rule.option_id)
        if referenced is None:
            errors.append(f"Rule {index}: Referenced option not found")
            continue
        if referenced.is_group:
            errors.append(f"Rule {index}: Cannot reference group \"{referenced.name or referenced.id}\"")
            continue

        operator = normalize_rule_operator(rule.operator)
        if operator is None:
            errors.append(f"Rule {index}: Unknown operator '{rule.operator}'")
            continue

        known_ids = {value.id for value in referenced.values}

        if operator in (RuleOperator.EQUALS, RuleOperator.NOT_EQUALS):
            if not isinstance(rule.value, str):
                errors.append(f"Rule {index}: Value must be a single value for '{operator.value}' operator")
            elif rule.value not in known_ids:
                errors.append(
                    f"Rule {index}: Referenced value not found in option \"{referenced.name or referenced.id}\""
                )
        else:
            if not isinstance(rule.value, list):
                errors.append(f"Rule {index}: Value must be an array for 'in' and 'not_in' operators")
            else:
                invalid = [value for value in rule.value if value not in known_ids]
                if invalid:
                    errors.append(f"Rule {index}: Invalid values: {', '.join(invalid)}")

    return errors


def _referenced_option_ids(rule_set: Optional[RuleSet]) -> list[str]:
    if rule_set is None or not rule_set.is_active():
        return []
    return [rule.option_id for rule in rule_set.rules]


def has_circular_dependency(
    option_id: str,
    rule_set: RuleSet,
    all_options: list[Option],
    visited: Optional[set[str]] = None,
) -> bool:
    """True if following option-level rules from ``option_id`` revisits an option."""
    visited = set() if visited is None else visited
    if option_id in visited:
        return True
    visited.add(option_id)

    for rule in rule_set.rules:
        referenced = find_option(all_options, rule.option_id)
        if referenced is None or referenced.conditional_logic is None:
            continue
        if not referenced.conditional_logic.enabled:
            continue
        if has_circular_dependency(rule.option_id, referenced.conditional_logic, all_options, set(visited)):
            return True
    return False


def dependency_graph(all_options: list[Option]) -> dict[str, list[str]]:
    """Option id -> ids of options its visibility (or its values') depends on.

    Self references are left out; validate_rule_set reports them.
    """
    known = {option.id for option in all_options}
    graph: dict[str, list[str]] = {}
    for option in all_options:
        targets = _referenced_option_ids(option.conditional_logic)
        for value in option.values:
            targets.extend(_referenced_option_ids(value.conditional_logic))
        edges = []
        for target in targets:
            if target == option.id or target not in known or target in edges:
                continue
            edges.append(target)
        graph[option.id] = edges
    return graph


def find_dependency_cycles(all_options: list[Option]) -> list[list[str]]:
    """All distinct dependency cycles, each as ``[a, b, ..., a]``.

    Cycles are reported once regardless of the option they were reached from,
    in the order their first member appears in ``all_options``.
    """
    graph = dependency_graph(all_options)
    cycles: list[list[str]] = []
    seen: set[frozenset] = set()

    def walk(node: str, path: list[str]) -> None:
        for target in graph.get(node, []):
            if target in path:
                cycle = path[path.index(target):] + [target]
                key = frozenset(cycle)
                if key not in seen:
                    seen.add(key)
                    cycles.append(cycle)
                continue
            walk(target, path + [target])

    for option in all_options:
        walk(option.id, [option.id])
    return cycles


def validate_options(all_options: list[Option]) -> list[str]:
    """Validate a full set of option definitions. Empty list means valid."""
    errors = []

    seen_options: set[str] = set()
    for option in all_options:
        label = option.name or option.id
        if option.id in seen_options:
            errors.append(f"Duplicate option id '{option.id}'")
        seen_options.add(option.id)

        if option.parent_id is not None:
            parent = find_option(all_options, option.parent_id)
            if parent is None or not parent.is_group:
                errors.append(f"Option \"{label}\": parent group '{option.parent_id}' not found")

        if option.conditional_logic is not None:
            for error in validate_rule_set(option.conditional_logic, all_options, owner_id=option.id):
                errors.append(f"Option \"{label}\": {error}")

        if option.is_group:
            continue

        if not option.values:
            errors.append(f"Option \"{label}\": at least one value is required")

        manipulation = (option.manipulation_type or "").lower()
        if manipulation not in {m.value for m in ManipulationType}:
            errors.append(f"Option \"{label}\": unknown manipulation type '{option.manipulation_type}'")
        if (option.default_behavior or "").lower() not in {b.value for b in DefaultBehavior}:
            errors.append(f"Option \"{label}\": unknown default behavior '{option.default_behavior}'")

        seen_values: set[str] = set()
        for value in option.values:
            if value.id in seen_values:
                errors.append(f"Option \"{label}\": duplicate value id '{value.id}'")
            seen_values.add(value.id)

            if manipulation == ManipulationType.MATERIAL.value and value.color and normalize_color(value.color) is None:
                errors.append(f"Option \"{label}\", value \"{value.name or value.id}\": invalid color '{value.color}'")

            if value.conditional_logic is not None:
                for error in validate_rule_set(value.conditional_logic, all_options, owner_id=option.id):
                    errors.append(f"Option \"{label}\", value \"{value.name or value.id}\": {error}")

    for cycle in find_dependency_cycles(all_options):
        errors.append(f"Circular dependency: {' -> '.join(cycle)}")

    return errors
