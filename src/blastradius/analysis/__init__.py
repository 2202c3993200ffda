"""Analysis - discovery, classification and the blast radius query.

Public API:
- BlastRadiusEngine: runs every phase for one resource
- ReferenceDiscovery: writes steps, template references, chains and direct references
- ReferenceClassifier: the three classification stages and indirect derivation
- SequentialResolver: sequential orchestration references
- compute_blast_radius: the query over a classified store
"""

from blastradius.analysis.blast_radius import (
    BlastRadius,
    DirectMention,
    ImpactedTest,
    compute_blast_radius,
)
from blastradius.analysis.classifier import (
    LOCALITY_TRANSITIONS,
    SERVICE_IMPACT_TRANSITIONS,
    ClassificationStats,
    ReferenceClassifier,
    check_transition,
    templates_reaching,
)
from blastradius.analysis.discovery import DiscoveryStats, ReferenceDiscovery, chain_locality
from blastradius.analysis.engine import BlastRadiusEngine, RunSummary
from blastradius.analysis.patterns import (
    ConfigCall,
    ConfigStrategy,
    StepConfig,
    classify_direct_references,
    find_template_calls,
    find_test_steps,
    match_config_expression,
)
from blastradius.analysis.resolution import (
    ConventionalConstructorInference,
    StructNameInference,
    StructResolution,
    StructResolver,
    locate_template,
)
from blastradius.analysis.sequential import SequentialResolver, SequentialStats

__all__ = [
    "LOCALITY_TRANSITIONS",
    "SERVICE_IMPACT_TRANSITIONS",
    "BlastRadius",
    "BlastRadiusEngine",
    "ClassificationStats",
    "ConfigCall",
    "ConfigStrategy",
    "ConventionalConstructorInference",
    "DirectMention",
    "DiscoveryStats",
    "ImpactedTest",
    "ReferenceClassifier",
    "ReferenceDiscovery",
    "RunSummary",
    "SequentialResolver",
    "SequentialStats",
    "StepConfig",
    "StructNameInference",
    "StructResolution",
    "StructResolver",
    "chain_locality",
    "check_transition",
    "classify_direct_references",
    "compute_blast_radius",
    "find_template_calls",
    "find_test_steps",
    "locate_template",
    "match_config_expression",
    "templates_reaching",
]
