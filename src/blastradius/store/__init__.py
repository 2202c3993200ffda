"""Fact store - normalized in-memory tables for one analysis run.

Public API:
- FactStore: typed accessors over every table
- ReferenceType: the static classification vocabulary
- IntegrityChecker / IntegrityReport: consistency verification

Table internals are in ``blastradius.store._internal``.
"""

from blastradius.store.facts import FOREIGN_KEYS, TABLE_ORDER, FactStore
from blastradius.store.integrity import IntegrityChecker, IntegrityIssue, IntegrityReport
from blastradius.store.models import (
    DirectResourceReference,
    File,
    IndirectConfigReference,
    ReferenceType,
    Resource,
    ResourceRegistration,
    SequentialReference,
    Service,
    Struct,
    TemplateCallChain,
    TemplateFunction,
    TemplateReference,
    TestFunction,
    TestStep,
)

__all__ = [
    "FOREIGN_KEYS",
    "TABLE_ORDER",
    "FactStore",
    "IntegrityChecker",
    "IntegrityIssue",
    "IntegrityReport",
    "ReferenceType",
    # Records
    "DirectResourceReference",
    "File",
    "IndirectConfigReference",
    "Resource",
    "ResourceRegistration",
    "SequentialReference",
    "Service",
    "Struct",
    "TemplateCallChain",
    "TemplateFunction",
    "TemplateReference",
    "TestFunction",
    "TestStep",
]
