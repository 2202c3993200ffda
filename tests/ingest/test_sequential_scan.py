"""Tests for the sequential orchestration scanner."""

from blastradius.ingest.sequential_scan import scan_sequential_references

INLINE_MAP = """
	acceptance.RunTestsInSequence(t, map[string]map[string]func(t *testing.T){
		"widget": {
			"basic":   testAccWidgetAlpha_basic,
			"missing": testAccWidgetAlpha_missing,
		},
		"other": {"update": testAccWidgetAlpha_update},
	})
"""

ASSIGNED_MAP = """
	testCases := map[string]map[string]func(t *testing.T){
		"basic": {
			"create": testAccThing_create, // {not a brace}
			"skip":   nil,
		},
	}

	for group, m := range testCases {
		_ = group
	}
"""

T_RUN = """
	t.Run("basic", testAccThing_basic)
	t.Run("inline", func(t *testing.T) {})
	t.Run("qualified", helpers.testAccThing_other)
"""


class TestScanSequentialReferences:
    """Group/key extraction for both orchestration forms."""

    def test_inline_map(self) -> None:
        facts = scan_sequential_references("TestAccWidgetAlpha_sequential", INLINE_MAP, 10)

        assert [(f.group, f.key, f.referenced) for f in facts] == [
            ("widget", "basic", "testAccWidgetAlpha_basic"),
            ("widget", "missing", "testAccWidgetAlpha_missing"),
            ("other", "update", "testAccWidgetAlpha_update"),
        ]
        assert all(f.entry_point == "TestAccWidgetAlpha_sequential" for f in facts)
        assert facts[0].line == 13

    def test_assigned_map_ignores_comments_and_nil(self) -> None:
        facts = scan_sequential_references("TestAccThing", ASSIGNED_MAP)

        assert [(f.group, f.key, f.referenced) for f in facts] == [
            ("basic", "create", "testAccThing_create"),
        ]

    def test_t_run_form(self) -> None:
        facts = scan_sequential_references("TestAccThing", T_RUN)

        assert [(f.group, f.key, f.referenced) for f in facts] == [
            ("basic", "", "testAccThing_basic"),
            ("qualified", "", "testAccThing_other"),
        ]

    def test_plain_body_has_no_references(self) -> None:
        body = "\n\tr := ThingResource{}\n\tdata.ResourceTest(t, r, nil)\n"

        assert scan_sequential_references("TestAccThing_basic", body) == []
