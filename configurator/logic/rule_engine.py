"""Conditional Rule Evaluator.

Evaluates a RuleSet against the current selection map (option id -> value id).

Evaluation is pure and never raises for malformed definitions:
- an unset prerequisite never satisfies a rule, whatever the operator
- an unknown operator or a value of the wrong shape makes the rule False
  and is reported as a definition error

Definition errors are appended to the optional ``errors`` collector passed
by the caller and logged at WARNING. Nothing is stored between calls.
"""

import logging
from typing import Optional

from configurator.models import (
    LogicalOperator,
    Rule,
    RuleOperator,
    RuleSet,
    normalize_logical_operator,
    normalize_rule_operator,
)

logger = logging.getLogger(__name__)


def _report(errors: Optional[list[str]], message: str) -> None:
    logger.warning(f"[RULES] {message}")
    if errors is not None:
        errors.append(message)


def _is_scalar(value) -> bool:
    return isinstance(value, str)


def _is_collection(value) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def evaluate_rule(
    rule: Rule,
    selections: dict[str, str],
    errors: Optional[list[str]] = None,
) -> bool:
    """Evaluate one rule against ``selections[rule.option_id]``."""
    selected = selections.get(rule.option_id)

    # Unset prerequisite: never satisfied
    if not selected:
        return False

    operator = normalize_rule_operator(rule.operator)
    if operator is None:
        _report(errors, f"Unknown conditional operator '{rule.operator}' in rule '{rule.id or rule.option_id}'")
        return False

    if operator in (RuleOperator.EQUALS, RuleOperator.NOT_EQUALS):
        if not _is_scalar(rule.value):
            _report(errors, f"Rule '{rule.id or rule.option_id}': operator '{operator.value}' requires a single value")
            return False
        if operator == RuleOperator.EQUALS:
            return selected == rule.value
        return selected != rule.value

    if not _is_collection(rule.value):
        _report(errors, f"Rule '{rule.id or rule.option_id}': value must be a list for '{operator.value}' operator")
        return False
    if operator == RuleOperator.IN:
        return selected in rule.value
    return selected not in rule.value


def evaluate_rule_set(
    rule_set: Optional[RuleSet],
    selections: dict[str, str],
    errors: Optional[list[str]] = None,
) -> bool:
    """Evaluate a RuleSet; absent, disabled or empty rule-sets impose no restriction."""
    if rule_set is None or not rule_set.is_active():
        return True

    # Every rule is evaluated (no short-circuit) so all definition errors surface
    results = [evaluate_rule(rule, selections, errors) for rule in rule_set.rules]

    operator = normalize_logical_operator(rule_set.operator)
    if operator is None:
        _report(errors, f"Unknown logical operator '{rule_set.operator}' in rule set '{rule_set.id}', treating as OR")
        return any(results)
    if operator == LogicalOperator.AND:
        return all(results)
    return any(results)
