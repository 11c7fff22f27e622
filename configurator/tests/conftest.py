"""Shared fixtures for the configurator test suite.

Loads the REAL demo tenant config (tenants/demo_car/config.yaml) and provides
small builders for hand-written option graphs.
"""

import sys
from pathlib import Path

import pytest

# Ensure the package is importable without installation
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from configurator.config_loader import load_tenant_config
from configurator.logic.component_mapper import Component
from configurator.models import Option, OptionValue, Rule, RuleSet


# =============================================================================
# BUILDERS
# =============================================================================

def _rule(option_id, value, operator="equals"):
    return Rule(option_id=option_id, operator=operator, value=value)


def _rule_set(*rules, operator="AND", enabled=True):
    return RuleSet(enabled=enabled, operator=operator, rules=list(rules))


def _value(value_id, **kwargs):
    kwargs.setdefault("name", value_id.title())
    return OptionValue(id=value_id, **kwargs)


def _option(option_id, values, **kwargs):
    kwargs.setdefault("name", option_id.title())
    values = [_value(v) if isinstance(v, str) else v for v in values]
    return Option(id=option_id, values=values, **kwargs)


@pytest.fixture
def rule():
    return _rule


@pytest.fixture
def rule_set():
    return _rule_set


@pytest.fixture
def value():
    return _value


@pytest.fixture
def option():
    return _option


# =============================================================================
# CONFIG FIXTURES
# =============================================================================

@pytest.fixture
def config():
    """Load real TenantConfig for the demo car (not mocked)."""
    return load_tenant_config(tenant_id="demo_car")


@pytest.fixture
def demo_options(config):
    return config.options


# =============================================================================
# SCENARIO FIXTURES
# =============================================================================

@pytest.fixture
def trim_color_options():
    """Trim [standard, sport]; Color (material) where Blue needs sport trim."""
    trim = _option("trim", ["standard", "sport"])
    color = _option(
        "color",
        [
            _value("red", color="#ff0000"),
            _value("blue", color="#0000ff", conditional_logic=_rule_set(_rule("trim", "sport"))),
        ],
        manipulation_type="material",
        target_components=["Body"],
    )
    return [trim, color]


@pytest.fixture
def spoiler_options():
    """Trim [standard, sport]; Spoiler (hide by default) only visible on sport trim."""
    trim = _option("trim", ["standard", "sport"])
    spoiler = _option(
        "spoiler",
        [
            _value("no_spoiler"),
            _value("lip", visible_components=["Spoiler_Mesh"]),
        ],
        manipulation_type="visibility",
        default_behavior="hide",
        target_components=["Spoiler_Mesh"],
        conditional_logic=_rule_set(_rule("trim", "sport")),
    )
    return [trim, spoiler]


@pytest.fixture
def demo_components():
    """Components of the demo car model as the scene loader reports them."""
    return [
        Component(name="Body", original_color="#cccccc"),
        Component(name="Mirror_Left", original_color="#cccccc"),
        Component(name="Mirror_Right", original_color="#cccccc", supports_color=False),
        Component(name="Badge_Sport", original_visible=True),
        Component(name="Spoiler_Mesh", original_visible=True),
        Component(name="Wheel_Steel"),
        Component(name="Wheel_Alloy"),
        Component(name="Wheel_Forged"),
    ]
