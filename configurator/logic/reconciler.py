"""Selection Consistency Corrector.

When a rule change elsewhere hides the value an option currently has
selected, the option falls back to its first visible value in authored order.

``reconcile`` is a single pass over a snapshot of the selections: a
correction made for one option is not seen by the options that depend on it
until the next pass. ``stabilize`` is the explicit repeat-until-stable loop
with an iteration cap, so a rule cycle that keeps flipping selections ends
as a "could not stabilize" result instead of spinning.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from configurator.logic.visibility import visible_options, visible_values
from configurator.models import Option

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10

REASON_NO_SELECTION = "no value selected"
REASON_NOT_VISIBLE = "selected value no longer visible"


class ConfigurationUnstableError(RuntimeError):
    """Raised by strict stabilization when corrections never settle."""

    def __init__(self, iterations: int, changes: list["SelectionChange"]):
        self.iterations = iterations
        self.changes = changes
        options = sorted({c.option_id for c in changes})
        super().__init__(
            f"Configuration could not stabilize after {iterations} iterations "
            f"(still changing: {', '.join(options)})"
        )


@dataclass
class SelectionChange:
    """One automatic correction of an option's selection."""
    option_id: str
    old_value_id: Optional[str]
    new_value_id: str
    reason: str

    def to_dict(self) -> dict:
        return {
            "option_id": self.option_id,
            "old_value_id": self.old_value_id,
            "new_value_id": self.new_value_id,
            "reason": self.reason,
        }


@dataclass
class ReconcileResult:
    selections: dict[str, str]
    changes: list[SelectionChange] = field(default_factory=list)


@dataclass
class StabilizationResult:
    selections: dict[str, str]
    changes: list[SelectionChange] = field(default_factory=list)
    iterations: int = 0
    converged: bool = True


def reconcile(all_options: list[Option], selections: dict[str, str]) -> ReconcileResult:
    """Replace selections that point at invisible values with the first visible value.

    Options without any visible value are left alone, including a stale
    selection they may still carry. The input dict is never modified.
    """
    snapshot = dict(selections)
    corrected = dict(selections)
    changes = []

    for option in visible_options(all_options, snapshot):
        if option.is_group:
            continue

        current = snapshot.get(option.id) or None
        values = visible_values(option, snapshot, all_options)
        if current and any(value.id == current for value in values):
            continue
        if not values:
            continue

        fallback = values[0]
        corrected[option.id] = fallback.id
        changes.append(SelectionChange(
            option_id=option.id,
            old_value_id=current,
            new_value_id=fallback.id,
            reason=REASON_NOT_VISIBLE if current else REASON_NO_SELECTION,
        ))
        logger.info(f"[RECONCILE] Fallback for '{option.name or option.id}': {current or 'none'} -> {fallback.id}")

    return ReconcileResult(selections=corrected, changes=changes)


def stabilize(
    all_options: list[Option],
    selections: dict[str, str],
    max_iterations: Optional[int] = None,
    strict: bool = False,
) -> StabilizationResult:
    """Run ``reconcile`` until it proposes no changes or the cap is reached.

    Returns ``converged=False`` when the cap is hit; with ``strict=True``
    raises ConfigurationUnstableError instead.
    """
    cap = max_iterations if max_iterations is not None else DEFAULT_MAX_ITERATIONS
    if cap < 1:
        raise ValueError(f"max_iterations must be at least 1, got {cap}")

    current = dict(selections)
    all_changes: list[SelectionChange] = []
    last_changes: list[SelectionChange] = []

    for iteration in range(1, cap + 1):
        result = reconcile(all_options, current)
        current = result.selections
        if not result.changes:
            return StabilizationResult(current, all_changes, iteration, True)
        all_changes.extend(result.changes)
        last_changes = result.changes

    logger.warning(
        f"[RECONCILE] Configuration could not stabilize after {cap} iterations; "
        f"last pass changed {[c.option_id for c in last_changes]}"
    )
    if strict:
        raise ConfigurationUnstableError(cap, last_changes)
    return StabilizationResult(current, all_changes, cap, False)


def select_value(
    all_options: list[Option],
    selections: dict[str, str],
    option_id: str,
    value_id: str,
    max_iterations: Optional[int] = None,
    strict: bool = False,
) -> StabilizationResult:
    """Apply a user's choice and stabilize the resulting selection map."""
    updated = dict(selections)
    updated[option_id] = value_id
    return stabilize(all_options, updated, max_iterations, strict)
