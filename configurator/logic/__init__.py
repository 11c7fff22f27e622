"""Logic module for configuration resolution."""

from .rule_engine import evaluate_rule, evaluate_rule_set
from .visibility import visible_options, visible_values
from .reconciler import (
    ConfigurationUnstableError,
    SelectionChange,
    reconcile,
    stabilize,
)
from .component_mapper import (
    Component,
    ComponentIndex,
    ComponentState,
    apply_configuration,
    build_instructions,
)
from .validation import validate_options, validate_rule_set

__all__ = [
    'evaluate_rule',
    'evaluate_rule_set',
    'visible_options',
    'visible_values',
    'ConfigurationUnstableError',
    'SelectionChange',
    'reconcile',
    'stabilize',
    'Component',
    'ComponentIndex',
    'ComponentState',
    'apply_configuration',
    'build_instructions',
    'validate_options',
    'validate_rule_set',
]
