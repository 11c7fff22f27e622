"""Pydantic schemas for the Product Configurator Resolution Engine.

Definitions arrive from the authoring surface in camelCase
(``optionId``, ``targetComponents`` ...); every model also accepts the
snake_case field names so YAML tenant files can use either spelling.

Operators and manipulation types are kept as plain strings. An unknown
operator must survive parsing so that the evaluator can treat it as a
definition error (rule evaluates False) instead of rejecting the whole
configurator.
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ManipulationType(str, Enum):
    VISIBILITY = "visibility"
    MATERIAL = "material"


class DefaultBehavior(str, Enum):
    SHOW = "show"
    HIDE = "hide"


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class RuleOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    IN = "in"
    NOT_IN = "not_in"


# Spellings accepted from authoring tools and older exports
_OPERATOR_ALIASES = {
    "equals": RuleOperator.EQUALS,
    "eq": RuleOperator.EQUALS,
    "notequals": RuleOperator.NOT_EQUALS,
    "not_equals": RuleOperator.NOT_EQUALS,
    "ne": RuleOperator.NOT_EQUALS,
    "in": RuleOperator.IN,
    "notin": RuleOperator.NOT_IN,
    "not_in": RuleOperator.NOT_IN,
}


def normalize_rule_operator(raw) -> Optional[RuleOperator]:
    """Map a raw operator string to a RuleOperator, or None if unknown."""
    if isinstance(raw, RuleOperator):
        return raw
    if not isinstance(raw, str):
        return None
    return _OPERATOR_ALIASES.get(raw.strip().lower().replace("-", "_"))


def normalize_logical_operator(raw) -> Optional[LogicalOperator]:
    """Map a raw AND/OR string to a LogicalOperator, or None if unknown."""
    if isinstance(raw, LogicalOperator):
        return raw
    if not isinstance(raw, str):
        return None
    try:
        return LogicalOperator(raw.strip().upper())
    except ValueError:
        return None


class _Definition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# CONDITIONAL LOGIC
# =============================================================================

class Rule(_Definition):
    """A single condition on another option's current selection."""
    id: str = ""
    option_id: str = Field(..., alias="optionId")
    operator: str = RuleOperator.EQUALS.value
    value: Union[str, list[str], None] = None


class RuleSet(_Definition):
    """Conditional visibility expression. Disabled or empty means always visible."""
    id: str = ""
    enabled: bool = False
    operator: str = LogicalOperator.AND.value
    rules: list[Rule] = Field(default_factory=list)

    def is_active(self) -> bool:
        return self.enabled and bool(self.rules)


# =============================================================================
# OPTIONS AND VALUES
# =============================================================================

class OptionValue(_Definition):
    """One concrete choice within an Option."""
    id: str
    name: str = ""
    color: Optional[str] = None
    image: Optional[str] = None
    visible_components: list[str] = Field(default_factory=list, alias="visibleComponents")
    hidden_components: list[str] = Field(default_factory=list, alias="hiddenComponents")
    conditional_logic: Optional[RuleSet] = Field(None, alias="conditionalLogic")


class Option(_Definition):
    """A user-configurable choice with an ordered list of values.

    ``is_group``/``parent_id`` carry the authoring surface's grouping: a group
    is a container option whose children point at it through ``parent_id``.
    """
    id: str
    name: str = ""
    description: str = ""
    display_type: str = Field("list", alias="displayType")
    manipulation_type: str = Field(ManipulationType.VISIBILITY.value, alias="manipulationType")
    target_components: list[str] = Field(default_factory=list, alias="targetComponents")
    default_behavior: str = Field(DefaultBehavior.SHOW.value, alias="defaultBehavior")
    conditional_logic: Optional[RuleSet] = Field(None, alias="conditionalLogic")
    values: list[OptionValue] = Field(default_factory=list)
    is_group: bool = Field(False, alias="isGroup")
    parent_id: Optional[str] = Field(None, alias="parentId")

    def find_value(self, value_id: Optional[str]) -> Optional[OptionValue]:
        if not value_id:
            return None
        for value in self.values:
            if value.id == value_id:
                return value
        return None


class ConfiguratorData(_Definition):
    """A complete product configurator: metadata plus its option definitions."""
    id: str = ""
    name: str = ""
    description: str = ""
    model: str = ""
    options: list[Option] = Field(default_factory=list)


# =============================================================================
# API SCHEMAS
# =============================================================================

class ComponentPayload(_Definition):
    """A named scene component as reported by the renderer."""
    name: str
    original_visible: bool = Field(True, alias="originalVisible")
    current_visible: Optional[bool] = Field(None, alias="currentVisible")
    original_color: Optional[str] = Field(None, alias="originalColor")
    current_color: Optional[str] = Field(None, alias="currentColor")
    supports_color: bool = Field(True, alias="supportsColor")


class SelectionRequest(BaseModel):
    selections: dict[str, str] = Field(default_factory=dict)


class SelectValueRequest(BaseModel):
    selections: dict[str, str] = Field(default_factory=dict)
    option_id: str
    value_id: str


class ReconcileRequest(BaseModel):
    selections: dict[str, str] = Field(default_factory=dict)
    stabilize: bool = True


class ApplyRequest(BaseModel):
    selections: dict[str, str] = Field(default_factory=dict)
    components: list[ComponentPayload] = Field(default_factory=list)


class VisibleValue(BaseModel):
    id: str
    name: str
    color: Optional[str] = None


class VisibleOption(BaseModel):
    id: str
    name: str
    is_group: bool = False
    parent_id: Optional[str] = None
    selected_value_id: Optional[str] = None
    values: list[VisibleValue] = Field(default_factory=list)


class VisibilityResponse(BaseModel):
    options: list[VisibleOption] = Field(default_factory=list)


class SelectionChangeModel(BaseModel):
    option_id: str
    old_value_id: Optional[str] = None
    new_value_id: str
    reason: str


class ReconcileResponse(BaseModel):
    selections: dict[str, str]
    changes: list[SelectionChangeModel] = Field(default_factory=list)
    iterations: int = 1
    converged: bool = True


class ComponentStateModel(BaseModel):
    name: str
    visible: bool
    color: Optional[str] = None


class ComponentInstructionModel(BaseModel):
    component: str
    action: str
    value: Union[bool, str, None] = None


class ApplyResponse(BaseModel):
    selections: dict[str, str]
    changes: list[SelectionChangeModel] = Field(default_factory=list)
    converged: bool = True
    states: list[ComponentStateModel] = Field(default_factory=list)
    instructions: list[ComponentInstructionModel] = Field(default_factory=list)


class ValidationResponse(BaseModel):
    tenant_id: str
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
