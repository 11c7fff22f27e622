"""Component Mapper.

Turns a resolved configuration (visible options + their selected values) into
per-component visibility/color state for the renderer.

Rules:
1. Every pass starts from each component's original visibility and color,
   so nothing from a previous pass leaks into the next one.
2. Visible options are applied in authored order; when two options touch the
   same component the later option wins.
3. Targeting is exact, case-insensitive name equality. "wheel" never touches
   "Wheel_Front".

Components are looked up through a flat ComponentIndex built once after the
asset loads, never by walking a scene tree.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from configurator.logic.visibility import visible_options, visible_values
from configurator.models import DefaultBehavior, ManipulationType, Option, OptionValue

logger = logging.getLogger(__name__)

_COLOR_PATTERN = re.compile(r"^(?:#|0x)?([0-9a-f]{3}|[0-9a-f]{6})$", re.IGNORECASE)


def normalize_color(raw: Optional[str]) -> Optional[str]:
    """Normalize '#RGB', '#RRGGBB' or '0xRRGGBB' to '#rrggbb'; None if unparseable."""
    if not raw or not isinstance(raw, str):
        return None
    match = _COLOR_PATTERN.match(raw.strip())
    if not match:
        return None
    digits = match.group(1).lower()
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits}"


@dataclass
class Component:
    """A named render target owned by the caller's scene.

    ``current_*`` default to the original state when not reported.
    ``supports_color`` is False for materials without a flat base/diffuse color.
    """
    name: str
    original_visible: bool = True
    current_visible: Optional[bool] = None
    original_color: Optional[str] = None
    current_color: Optional[str] = None
    supports_color: bool = True

    @property
    def visible_now(self) -> bool:
        return self.original_visible if self.current_visible is None else self.current_visible

    @property
    def color_now(self) -> Optional[str]:
        return self.original_color if self.current_color is None else self.current_color


@dataclass
class ComponentState:
    """Resolved state of one component after a mapping pass."""
    name: str
    visible: bool
    color: Optional[str] = None

    def to_dict(self) -> dict:
        return {"name": self.name, "visible": self.visible, "color": self.color}


@dataclass
class ComponentInstruction:
    """A single mutation the renderer should apply.

    action: "set_visible" (value: bool), "set_color" (value: '#rrggbb') or
    "reset_material" (value: None, restore the original material).
    """
    component: str
    action: str
    value: Union[bool, str, None] = None

    def to_dict(self) -> dict:
        return {"component": self.component, "action": self.action, "value": self.value}


class ComponentIndex:
    """Flat case-insensitive name -> positions table over an ordered component list."""

    def __init__(self, components: Iterable[Component]):
        self.components: list[Component] = list(components)
        self._positions: dict[str, list[int]] = {}
        for position, component in enumerate(self.components):
            self._positions.setdefault(component.name.lower(), []).append(position)

    def __len__(self) -> int:
        return len(self.components)

    def __iter__(self):
        return iter(self.components)

    def positions(self, names: Optional[Iterable[str]]) -> list[int]:
        """Positions of components whose name exactly matches any entry, ignoring case."""
        found: list[int] = []
        seen: set[int] = set()
        for name in names or []:
            if not isinstance(name, str):
                continue
            for position in self._positions.get(name.lower(), []):
                if position not in seen:
                    seen.add(position)
                    found.append(position)
        return found

    def matching(self, names: Optional[Iterable[str]]) -> list[Component]:
        return [self.components[p] for p in self.positions(names)]


def _apply_visibility(
    index: ComponentIndex,
    states: list[ComponentState],
    option: Option,
    value: OptionValue,
) -> None:
    hide_by_default = (option.default_behavior or "").lower() == DefaultBehavior.HIDE.value
    targets = index.positions(option.target_components)

    for position in targets:
        states[position].visible = not hide_by_default
        logger.debug(f"[MAPPER] {option.id}: baseline {'hide' if hide_by_default else 'show'} {states[position].name}")

    overrides = value.visible_components if hide_by_default else value.hidden_components
    target_set = set(targets)
    for position in index.positions(overrides):
        # Overrides only reach components the option is allowed to affect
        if position not in target_set:
            continue
        states[position].visible = hide_by_default
        logger.debug(f"[MAPPER] {option.id}: override {'show' if hide_by_default else 'hide'} {states[position].name}")


def _apply_material(
    index: ComponentIndex,
    states: list[ComponentState],
    option: Option,
    value: OptionValue,
) -> None:
    color = normalize_color(value.color)
    if color is None:
        logger.warning(f"[MAPPER] {option.id}: value '{value.id}' has unparseable color {value.color!r}, skipped")
        return

    for position in index.positions(option.target_components):
        if not index.components[position].supports_color:
            continue
        states[position].color = color
        logger.debug(f"[MAPPER] {option.id}: color {states[position].name} -> {color}")


def apply_configuration(
    components: Union[ComponentIndex, Iterable[Component]],
    all_options: list[Option],
    selections: dict[str, str],
) -> list[ComponentState]:
    """Resolve the final per-component state for a selection map.

    Output order matches the component order. Options whose selection is
    unset, unknown or currently invisible contribute nothing. Calling this
    twice with the same inputs yields the same result.
    """
    index = components if isinstance(components, ComponentIndex) else ComponentIndex(components)
    states = [
        ComponentState(name=c.name, visible=c.original_visible, color=c.original_color)
        for c in index.components
    ]

    for option in visible_options(all_options, selections):
        if option.is_group:
            continue

        selected_id = selections.get(option.id)
        if not selected_id:
            continue
        value = option.find_value(selected_id)
        if value is None:
            logger.info(f"[MAPPER] {option.id}: selected value '{selected_id}' not found, skipped")
            continue
        if not any(v.id == value.id for v in visible_values(option, selections, all_options)):
            logger.info(f"[MAPPER] {option.id}: selected value '{selected_id}' not visible, skipped")
            continue

        manipulation = (option.manipulation_type or "").lower()
        if manipulation == ManipulationType.VISIBILITY.value:
            _apply_visibility(index, states, option, value)
        elif manipulation == ManipulationType.MATERIAL.value:
            if value.color:
                _apply_material(index, states, option, value)
        else:
            logger.warning(f"[MAPPER] {option.id}: unknown manipulation type '{option.manipulation_type}', skipped")

    return states


def build_instructions(
    components: Union[ComponentIndex, Iterable[Component]],
    states: list[ComponentState],
) -> list[ComponentInstruction]:
    """Mutations needed to bring each component from its current state to ``states``.

    Components and states are paired by position. Components already in the
    resolved state produce no instruction.
    """
    component_list = components.components if isinstance(components, ComponentIndex) else list(components)
    instructions = []

    for component, state in zip(component_list, states):
        if state.visible != component.visible_now:
            instructions.append(ComponentInstruction(component.name, "set_visible", state.visible))

        if state.color == component.color_now:
            continue
        if state.color == component.original_color:
            instructions.append(ComponentInstruction(component.name, "reset_material"))
        else:
            instructions.append(ComponentInstruction(component.name, "set_color", state.color))

    return instructions
