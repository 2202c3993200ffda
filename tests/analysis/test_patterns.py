"""Tests for step, config expression and resource mention scanners."""

from __future__ import annotations

import pytest

from blastradius.analysis.patterns import (
    ConfigStrategy,
    classify_direct_references,
    closure_return,
    find_template_calls,
    find_test_steps,
    match_config_expression,
)
from blastradius.store import ReferenceType

TEST_BODY = """
	data := acceptance.BuildTestData(t, "widget", "test")
	r := WidgetResource{}
	config := r.update(data)

	data.ResourceTest(t, r, []acceptance.TestStep{
		{
			Config: r.basic(data),
		},
		data.ImportStep(),
		{
			Config: WidgetResource{}.complete(data),
			Check: acceptance.ComposeTestCheckFunc(),
		},
		{
			Config: config,
		},
		data.DisappearsStep(acceptance.DisappearsStepData{
			Config: func(data acceptance.TestData) string {
				return r.basic(data)
			},
			TestResource: r,
		}),
		{
			Config:             testAccWidget_shared(data, "a,b"),
			ConfigPlanChecks:   resource.ConfigPlanChecks{},
		},
		{
			Config: notAssigned,
		},
	})
"""


class TestMatchConfigExpression:
    """Ordered strategies: first match wins."""

    @pytest.mark.parametrize(
        ("expr", "strategy", "method", "variable", "struct_name"),
        [
            ("r.basic(data)", ConfigStrategy.RECEIVER_METHOD, "basic", "r", ""),
            ("r.basic", ConfigStrategy.RECEIVER_METHOD, "basic", "r", ""),
            ("WidgetResource{}.complete(data)", ConfigStrategy.STRUCT_LITERAL, "complete", "", "WidgetResource"),
            ("&WidgetResource{}.complete(data)", ConfigStrategy.STRUCT_LITERAL, "complete", "", "WidgetResource"),
            ("testAccWidget_shared(data)", ConfigStrategy.HELPER_CALL, "testAccWidget_shared", "", ""),
        ],
    )
    def test_direct_forms(
        self,
        expr: str,
        strategy: ConfigStrategy,
        method: str,
        variable: str,
        struct_name: str,
    ) -> None:
        call = match_config_expression(expr, "")

        assert call is not None
        assert (call.strategy, call.method, call.variable, call.struct_name) == (
            strategy,
            method,
            variable,
            struct_name,
        )
        assert call.is_anonymous is False

    def test_named_variable_follows_assignment(self) -> None:
        call = match_config_expression("config", TEST_BODY)

        assert call is not None
        assert call.strategy is ConfigStrategy.NAMED_VARIABLE
        assert (call.variable, call.method, call.via_variable) == ("r", "update", "config")

    def test_closure_is_anonymous(self) -> None:
        expr = "func(data acceptance.TestData) string {\n\treturn r.basic(data)\n}"

        call = match_config_expression(expr, "")

        assert call is not None
        assert call.strategy is ConfigStrategy.ANONYMOUS_CLOSURE
        assert call.is_anonymous is True
        assert (call.variable, call.method) == ("r", "basic")

    def test_unassigned_variable_is_unmatched(self) -> None:
        assert match_config_expression("notAssigned", TEST_BODY) is None

    def test_keywords_are_not_helpers(self) -> None:
        assert match_config_expression("func()", "") is None


class TestClosureReturn:
    def test_returned_expression(self) -> None:
        expr = 'func(d acceptance.TestData) string { return fmt.Sprintf("%s", r.basic(d)) }'

        assert closure_return(expr) == 'fmt.Sprintf("%s", r.basic(d))'

    def test_not_a_closure(self) -> None:
        assert closure_return("r.basic(data)") is None

    def test_closure_without_return(self) -> None:
        assert closure_return("func() {}") is None


class TestFindTestSteps:
    """Only Config-bearing elements count, 1-based."""

    def test_steps_and_indexes(self) -> None:
        steps = find_test_steps(TEST_BODY, body_line=10)

        assert [s.step_index for s in steps] == [1, 2, 3, 4, 5, 6]
        assert [s.expr for s in steps] == [
            "r.basic(data)",
            "WidgetResource{}.complete(data)",
            "config",
            "func(data acceptance.TestData) string {\n\t\t\t\treturn r.basic(data)\n\t\t\t}",
            'testAccWidget_shared(data, "a,b")',
            "notAssigned",
        ]

    def test_strategies_per_step(self) -> None:
        steps = find_test_steps(TEST_BODY)

        strategies = [s.call.strategy if s.call else None for s in steps]
        assert strategies == [
            ConfigStrategy.RECEIVER_METHOD,
            ConfigStrategy.STRUCT_LITERAL,
            ConfigStrategy.NAMED_VARIABLE,
            ConfigStrategy.ANONYMOUS_CLOSURE,
            ConfigStrategy.HELPER_CALL,
            None,
        ]

    def test_step_line_is_element_start(self) -> None:
        steps = find_test_steps(TEST_BODY, body_line=10)

        assert steps[0].line == 16

    def test_unknown_package_is_ignored(self) -> None:
        body = "steps := []other.TestStep{{Config: r.basic(data)}}"

        assert find_test_steps(body) == []
        assert len(find_test_steps(body, step_packages=("other",))) == 1


TEMPLATE_BODY = """
	// widget_alpha in a Go comment does not count
	return fmt.Sprintf(`
%s

resource "widget_alpha" "test" {
  name = "acctest"
}

data "widget_alpha" "lookup" {
  name = widget_alpha.test.name
}

resource "widget_alpha_extra" "other" {}
`, r.template(data), WidgetResource{}.network(data), sharedNetwork(data), data.RandomInteger)
"""


class TestClassifyDirectReferences:
    def test_kinds_and_lines(self) -> None:
        mentions = classify_direct_references(TEMPLATE_BODY, 100, "widget_alpha")

        assert [(m.kind, m.line) for m in mentions] == [
            (ReferenceType.RESOURCE_BLOCK, 105),
            (ReferenceType.DATA_SOURCE_BLOCK, 109),
            (ReferenceType.ATTRIBUTE_REFERENCE, 110),
        ]
        assert mentions[0].context == 'resource "widget_alpha" "test" {'

    def test_exclusions_skip_assertion_lines(self) -> None:
        body = 'check.That("widget_alpha.test").ExistsInAzure(r)\nresource "widget_alpha" "x" {}'

        mentions = classify_direct_references(body, 1, "widget_alpha", ["check.That("])

        assert [m.kind for m in mentions] == [ReferenceType.RESOURCE_BLOCK]

    def test_context_is_truncated(self) -> None:
        body = "name = widget_alpha.test.name " + "x" * 500

        mentions = classify_direct_references(body, 1, "widget_alpha")

        assert len(mentions[0].context) == 200

    def test_block_opening_after_backtick(self) -> None:
        body = 'return `resource "widget_alpha" "test" {\n  name = "x"\n}`\n'

        mentions = classify_direct_references(body, 100, "widget_alpha")

        assert [(m.kind, m.line) for m in mentions] == [(ReferenceType.RESOURCE_BLOCK, 100)]

    def test_data_block_inside_sprintf_call(self) -> None:
        body = 'return fmt.Sprintf(`data "widget_alpha" "x" {}`, data.RandomInteger)'

        mentions = classify_direct_references(body, 1, "widget_alpha")

        assert [m.kind for m in mentions] == [ReferenceType.DATA_SOURCE_BLOCK]


class TestFindTemplateCalls:
    def test_sprintf_arguments(self) -> None:
        calls = find_template_calls(TEMPLATE_BODY, body_line=1)

        assert [(c.method, c.variable, c.struct_name, c.is_helper) for c in calls] == [
            ("template", "r", "", False),
            ("network", "", "WidgetResource", False),
            ("sharedNetwork", "", "", True),
        ]
        assert {c.line for c in calls} == {15}

    def test_format_string_is_skipped(self) -> None:
        body = 'return fmt.Sprintf(r.format(), data.RandomInteger)'

        assert find_template_calls(body) == []
