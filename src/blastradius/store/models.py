"""Fact store record types.

One frozen dataclass per entity. Records are never mutated in place; the
store swaps in a replacement (``dataclasses.replace``) and re-keys its
indexes in the same step.

``ReferenceType`` is the closed classification vocabulary. Its integer
values are part of the interchange format and must not be renumbered.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ReferenceType(IntEnum):
    """Static classification vocabulary (15 values)."""

    SELF_CONTAINED = 1
    CROSS_FILE = 2
    EMBEDDED_SELF = 3
    ANONYMOUS_FUNCTION_REFERENCE = 4
    EXTERNAL_REFERENCE = 5
    RESOURCE_BLOCK = 6
    DATA_SOURCE_BLOCK = 7
    ATTRIBUTE_REFERENCE = 8
    SEQUENTIAL_ENTRYPOINT = 9
    SEQUENTIAL_REFERENCE = 10
    PRIVATE_REFERENCE = 11
    PUBLIC_REFERENCE = 12
    SAME_SERVICE = 13
    CROSS_SERVICE = 14
    UNRESOLVED = 15

    @property
    def label(self) -> str:
        """Human-facing name, e.g. ``resource-block``."""
        return _LABELS.get(self, self.name.lower().replace("_", "-"))

    @classmethod
    def for_visibility(cls, name: str) -> ReferenceType:
        """Exported (capitalized) identifiers are public, everything else private."""
        if name[:1].isupper():
            return cls.PUBLIC_REFERENCE
        return cls.PRIVATE_REFERENCE


_LABELS = {
    ReferenceType.RESOURCE_BLOCK: "resource-block",
    ReferenceType.DATA_SOURCE_BLOCK: "data-source-block",
    ReferenceType.ATTRIBUTE_REFERENCE: "attribute-mention",
}

LOCALITY_TAGS = frozenset(
    {
        ReferenceType.SELF_CONTAINED,
        ReferenceType.CROSS_FILE,
        ReferenceType.EMBEDDED_SELF,
        ReferenceType.ANONYMOUS_FUNCTION_REFERENCE,
        ReferenceType.EXTERNAL_REFERENCE,
        ReferenceType.UNRESOLVED,
    }
)
DIRECT_REFERENCE_TAGS = frozenset(
    {
        ReferenceType.RESOURCE_BLOCK,
        ReferenceType.DATA_SOURCE_BLOCK,
        ReferenceType.ATTRIBUTE_REFERENCE,
    }
)
SERVICE_IMPACT_TAGS = frozenset(
    {
        ReferenceType.SAME_SERVICE,
        ReferenceType.CROSS_SERVICE,
        ReferenceType.EXTERNAL_REFERENCE,
        ReferenceType.UNRESOLVED,
    }
)


@dataclass(frozen=True, slots=True)
class Service:
    id: int
    name: str


@dataclass(frozen=True, slots=True)
class ResourceRegistration:
    """Maps a resource type name to the service that implements it."""

    id: int
    name: str
    service_id: int


@dataclass(frozen=True, slots=True)
class Resource:
    """The resource type under analysis."""

    id: int
    name: str
    registration_id: int | None = None


@dataclass(frozen=True, slots=True)
class File:
    id: int
    path: str
    service_id: int | None = None


@dataclass(frozen=True, slots=True)
class Struct:
    """A named type that can own template methods.

    ``file_id`` stays empty while the struct is only known by reference.
    """

    id: int
    name: str
    file_id: int | None = None
    line: int = 0


@dataclass(frozen=True, slots=True)
class TestFunction:
    """A test entry point, or a placeholder synthesized for an unknown name.

    Placeholders have no file and are tagged ``EXTERNAL_REFERENCE``.
    """

    __test__ = False

    id: int
    name: str
    file_id: int | None
    struct_id: int | None = None
    prefix: str = ""
    visibility: ReferenceType = ReferenceType.PUBLIC_REFERENCE
    sequential_entry_point: bool = False
    reference_type: ReferenceType | None = None
    line: int = 0


@dataclass(frozen=True, slots=True)
class TemplateFunction:
    """A method or helper that builds a configuration string."""

    id: int
    name: str
    file_id: int
    struct_id: int | None = None
    visibility: ReferenceType = ReferenceType.PUBLIC_REFERENCE
    line: int = 0


@dataclass(frozen=True, slots=True)
class TestStep:
    """One ``Config``-bearing step of a test function.

    ``reference_type`` carries the locality tag; it starts ``UNRESOLVED``
    and is moved forward by the classifier.
    """

    __test__ = False

    id: int
    test_function_id: int
    step_index: int
    reference_type: ReferenceType = ReferenceType.UNRESOLVED
    visibility: ReferenceType = ReferenceType.PUBLIC_REFERENCE
    template_function_id: int | None = None
    struct_id: int | None = None
    service_id: int | None = None
    struct_name: str = ""
    config_variable: str = ""
    config_method: str = ""
    config_expr: str = ""
    strategy: str = ""
    is_anonymous: bool = False
    line: int = 0


@dataclass(frozen=True, slots=True)
class TemplateCallChain:
    id: int
    source_template_id: int
    target_template_id: int
    reference_type: ReferenceType
    call_text: str = ""
    line: int = 0


@dataclass(frozen=True, slots=True)
class DirectResourceReference:
    """A literal mention of the target resource inside a template body."""

    id: int
    template_function_id: int
    resource_id: int
    reference_type: ReferenceType
    context: str = ""
    context_line: int = 0


@dataclass(frozen=True, slots=True)
class TemplateReference:
    """A "test step calls template X" edge. One per step."""

    id: int
    test_function_id: int
    test_step_id: int
    struct_id: int | None = None
    template_function_id: int | None = None
    call_text: str = ""


@dataclass(frozen=True, slots=True)
class IndirectConfigReference:
    """Derived fact: a test step is impacted by the resource via a template."""

    id: int
    test_step_id: int
    template_reference_id: int
    template_function_id: int
    reference_type: ReferenceType
    service_impact: ReferenceType = ReferenceType.UNRESOLVED


@dataclass(frozen=True, slots=True)
class SequentialReference:
    """An entry-point test running another test as ``group``/``key``."""

    id: int
    entry_test_function_id: int
    referenced_test_function_id: int
    group: str
    key: str = ""
    line: int = 0
