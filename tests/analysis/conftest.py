"""Fixtures: a small provider tree covering every reference shape.

Layout (resource under analysis: ``widget_alpha``, owned by svc1)::

    internal/services/svc1/registration.go            registers widget_alpha
    internal/services/svc1/widget_alpha_resource_test.go
        TestAccWidgetAlpha_basic        receiver call, struct in same file
        TestAccWidgetAlpha_disappears   closure returning r.Basic(data)
        Basic -> template               Sprintf composition (embedded call)
    internal/services/svc1/widget_alpha_sequential_test.go
        TestAccWidgetAlpha_sequential   runs sequentialBasic and a missing test
        testAccWidgetAlpha_sequentialBasic  struct from another file
    internal/services/svc2/widget_beta_resource_test.go
        TestAccWidgetBeta_withAlpha     svc1.WidgetAlphaResource{} from another service
    internal/services/svc3/gadget_test.go
        TestAccGadget_helper            helper in another file, unknown helper, bare variable
    internal/services/svc3/gadget_config.go
        gadgetConfig                    free helper mentioning widget_alpha
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from blastradius.analysis import BlastRadiusEngine, RunSummary
from blastradius.config.models import BlastRadiusConfig, IngestionConfig

REGISTRATION = """package svc1

func (r Registration) SupportedResources() map[string]*pluginsdk.Resource {
	return map[string]*pluginsdk.Resource{
		"widget_alpha": resourceWidgetAlpha(),
	}
}
"""

WIDGET_ALPHA_TEST = """package svc1_test

type WidgetAlphaResource struct{}

func TestAccWidgetAlpha_basic(t *testing.T) {
	data := acceptance.BuildTestData(t, "widget_alpha", "test")
	r := WidgetAlphaResource{}

	data.ResourceTest(t, r, []acceptance.TestStep{
		{
			Config: r.Basic(data),
			Check: acceptance.ComposeTestCheckFunc(
				check.That(data.ResourceName).ExistsInAzure(r),
			),
		},
		data.ImportStep(),
	})
}

func TestAccWidgetAlpha_disappears(t *testing.T) {
	data := acceptance.BuildTestData(t, "widget_alpha", "test")
	r := WidgetAlphaResource{}

	data.ResourceTest(t, r, []acceptance.TestStep{
		data.DisappearsStep(acceptance.DisappearsStepData{
			Config: func(data acceptance.TestData) string {
				return r.Basic(data)
			},
			TestResource: r,
		}),
	})
}

func (r WidgetAlphaResource) Basic(data acceptance.TestData) string {
	return fmt.Sprintf(`
%s

resource "widget_alpha" "test" {
  name = "acctest-%d"
}
`, r.template(data), data.RandomInteger)
}

func (WidgetAlphaResource) template(data acceptance.TestData) string {
	return fmt.Sprintf(`
resource "example_group" "test" {
  name = "acctest-%d"
}
`, data.RandomInteger)
}
"""

WIDGET_ALPHA_SEQUENTIAL_TEST = """package svc1_test

func TestAccWidgetAlpha_sequential(t *testing.T) {
	acceptance.RunTestsInSequence(t, map[string]map[string]func(t *testing.T){
		"widget": {
			"basic":   testAccWidgetAlpha_sequentialBasic,
			"missing": testAccWidgetAlpha_missing,
		},
	})
}

func testAccWidgetAlpha_sequentialBasic(t *testing.T) {
	data := acceptance.BuildTestData(t, "widget_alpha", "test")
	r := WidgetAlphaResource{}

	data.ResourceSequentialTest(t, r, []acceptance.TestStep{
		{
			Config: r.Basic(data),
		},
	})
}
"""

WIDGET_BETA_TEST = """package svc2_test

type WidgetBetaResource struct{}

func TestAccWidgetBeta_withAlpha(t *testing.T) {
	data := acceptance.BuildTestData(t, "widget_beta", "test")
	r := WidgetBetaResource{}
	alpha := svc1.WidgetAlphaResource{}

	data.ResourceTest(t, r, []acceptance.TestStep{
		{
			Config: alpha.Basic(data),
		},
		{
			Config: r.complete(data),
		},
	})
}

func (r WidgetBetaResource) complete(data acceptance.TestData) string {
	return fmt.Sprintf(`
resource "widget_beta" "test" {
  name = "acctest-%d"
}
`, data.RandomInteger)
}
"""

GADGET_TEST = """package svc3_test

func TestAccGadget_helper(t *testing.T) {
	resource.ParallelTest(t, resource.TestCase{
		Steps: []resource.TestStep{
			{
				Config: gadgetConfig(),
			},
			{
				Config: unknownHelper(),
			},
			{
				Config: someConfig,
			},
		},
	})
}
"""

GADGET_CONFIG = """package svc3

func gadgetConfig() string {
	return `
resource "widget_alpha" "from_helper" {
  name = "gadget"
}
`
}
"""

PROVIDER_TREE = {
    "internal/services/svc1/registration.go": REGISTRATION,
    "internal/services/svc1/widget_alpha_resource_test.go": WIDGET_ALPHA_TEST,
    "internal/services/svc1/widget_alpha_sequential_test.go": WIDGET_ALPHA_SEQUENTIAL_TEST,
    "internal/services/svc2/widget_beta_resource_test.go": WIDGET_BETA_TEST,
    "internal/services/svc3/gadget_test.go": GADGET_TEST,
    "internal/services/svc3/gadget_config.go": GADGET_CONFIG,
}


@pytest.fixture
def provider_repo(write_tree: Callable[[dict[str, str]], Path]) -> Path:
    return write_tree(PROVIDER_TREE)


@pytest.fixture
def engine() -> BlastRadiusEngine:
    return BlastRadiusEngine(BlastRadiusConfig(ingestion=IngestionConfig(max_workers=3)))


@pytest.fixture
def summary(engine: BlastRadiusEngine, provider_repo: Path) -> RunSummary:
    return engine.run(provider_repo, "widget_alpha")
