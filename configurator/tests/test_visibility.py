"""Pin option/value visibility, ordering and group handling."""

from configurator.logic.visibility import (
    available_values,
    child_options,
    first_available_value,
    grouped_options,
    is_value_available,
    options_for_conditions,
    options_in_visual_order,
    visible_options,
    visible_values,
)


class TestVisibleValues:
    def test_color_trim_scenario_standard(self, trim_color_options):
        trim, color = trim_color_options
        values = visible_values(color, {"trim": "standard"}, trim_color_options)
        assert [v.id for v in values] == ["red"]

    def test_color_trim_scenario_sport(self, trim_color_options):
        _, color = trim_color_options
        values = visible_values(color, {"trim": "sport"}, trim_color_options)
        assert [v.id for v in values] == ["red", "blue"]

    def test_blue_unavailable_until_sport(self, trim_color_options):
        assert is_value_available("color", "blue", trim_color_options, {"trim": "standard"}) is False
        assert is_value_available("color", "blue", trim_color_options, {"trim": "sport"}) is True

    def test_values_keep_authored_order(self, option):
        opt = option("size", ["xl", "s", "m", "l"])
        assert [v.id for v in visible_values(opt, {})] == ["xl", "s", "m", "l"]

    def test_value_visibility_independent_of_option(self, spoiler_options):
        _, spoiler = spoiler_options
        # Spoiler itself is hidden on standard trim, its values are still evaluated
        assert spoiler not in visible_options(spoiler_options, {"trim": "standard"})
        assert [v.id for v in visible_values(spoiler, {"trim": "standard"})] == ["no_spoiler", "lip"]


class TestVisibleOptions:
    def test_spoiler_scenario(self, spoiler_options):
        assert [o.id for o in visible_options(spoiler_options, {"trim": "standard"})] == ["trim"]
        assert [o.id for o in visible_options(spoiler_options, {"trim": "sport"})] == ["trim", "spoiler"]

    def test_order_preserved(self, option):
        options = [option(name, ["a"]) for name in ["zeta", "alpha", "mid"]]
        assert [o.id for o in visible_options(options, {})] == ["zeta", "alpha", "mid"]

    def test_group_visible_while_a_child_is_visible(self, demo_options):
        ids = [o.id for o in visible_options(demo_options, {})]
        # wheels has no rules, so the exterior group stays visible
        assert "exterior" in ids
        assert "spoiler" not in ids

    def test_group_hidden_when_all_children_hidden(self, option, rule, rule_set):
        group = option("extras", [], is_group=True)
        child = option("roof_box", ["none", "box"], parent_id="extras",
                       conditional_logic=rule_set(rule("trim", "sport")))
        trim = option("trim", ["standard", "sport"])
        options = [trim, group, child]
        assert "extras" not in [o.id for o in visible_options(options, {"trim": "standard"})]
        assert "extras" in [o.id for o in visible_options(options, {"trim": "sport"})]


class TestHelpers:
    def test_first_available_value(self, trim_color_options):
        _, color = trim_color_options
        assert first_available_value(color, {}) == "red"

    def test_first_available_value_none_when_all_hidden(self, option, value, rule, rule_set):
        opt = option("x", [value("only", conditional_logic=rule_set(rule("y", "z")))])
        assert first_available_value(opt, {}) is None

    def test_available_values_shape(self, trim_color_options):
        assert available_values("color", trim_color_options, {"trim": "sport"}) == [
            {"id": "red", "name": "Red"},
            {"id": "blue", "name": "Blue"},
        ]

    def test_available_values_unknown_option(self, trim_color_options):
        assert available_values("nope", trim_color_options, {}) == []

    def test_options_for_conditions_excludes_self_and_groups(self, demo_options):
        ids = [o.id for o in options_for_conditions("color", demo_options)]
        assert "color" not in ids
        assert "exterior" not in ids
        assert ids == ["trim", "spoiler", "wheels"]

    def test_child_options(self, demo_options):
        assert [o.id for o in child_options("exterior", demo_options)] == ["spoiler", "wheels"]

    def test_grouped_options_groups_first(self, demo_options):
        assert [o.id for o in grouped_options(demo_options)] == ["exterior", "trim", "color"]

    def test_visual_order_places_children_after_group(self, demo_options):
        order = options_in_visual_order(demo_options)
        assert [entry["option"].id for entry in order] == ["trim", "color", "exterior", "spoiler", "wheels"]
        assert [entry["visual_index"] for entry in order] == [0, 1, 2, 3, 4]
        wheels = order[-1]
        assert wheels["is_in_group"] is True
        assert wheels["group_id"] == "exterior"
        assert wheels["index_in_group"] == 1
