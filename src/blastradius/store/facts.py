"""The fact store: every table of one analysis run behind typed accessors.

Components above the store never touch a ``Table`` directly. Writes go
through ``add_*`` (insert, idempotent where the entity has a natural key)
and ``set_*``/``mark_*`` (update) methods; reads go through ``get_*``,
``find_*`` and ``*_by_reference_type``.

Soft-failure contract:
- ``add_*`` with a foreign key that does not resolve logs
  ``dangling_foreign_key`` and returns None. No row is written.
- ``set_*`` on an id that does not exist logs ``update_missing_row`` and
  returns False.

Nothing here raises during normal operation; bulk import is the only path
that treats bad data as fatal (see ``blastradius.interchange``).
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import structlog

from blastradius.store._internal.table import IndexSpec, Table
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

logger = structlog.get_logger()

# Tables in foreign-key order: every table only references tables before it.
TABLE_ORDER: tuple[str, ...] = (
    "services",
    "resource_registrations",
    "resources",
    "files",
    "structs",
    "test_functions",
    "template_functions",
    "test_steps",
    "template_call_chains",
    "direct_resource_references",
    "template_references",
    "indirect_config_references",
    "sequential_references",
)

# table -> {field: referenced table}
FOREIGN_KEYS: dict[str, dict[str, str]] = {
    "services": {},
    "resource_registrations": {"service_id": "services"},
    "resources": {"registration_id": "resource_registrations"},
    "files": {"service_id": "services"},
    "structs": {"file_id": "files"},
    "test_functions": {"file_id": "files", "struct_id": "structs"},
    "template_functions": {"file_id": "files", "struct_id": "structs"},
    "test_steps": {
        "test_function_id": "test_functions",
        "template_function_id": "template_functions",
        "struct_id": "structs",
        "service_id": "services",
    },
    "template_call_chains": {
        "source_template_id": "template_functions",
        "target_template_id": "template_functions",
    },
    "direct_resource_references": {
        "template_function_id": "template_functions",
        "resource_id": "resources",
    },
    "template_references": {
        "test_function_id": "test_functions",
        "test_step_id": "test_steps",
        "struct_id": "structs",
        "template_function_id": "template_functions",
    },
    "indirect_config_references": {
        "test_step_id": "test_steps",
        "template_reference_id": "template_references",
        "template_function_id": "template_functions",
    },
    "sequential_references": {
        "entry_test_function_id": "test_functions",
        "referenced_test_function_id": "test_functions",
    },
}


def _template_owner_key(t: TemplateFunction) -> tuple[Any, ...]:
    if t.struct_id is not None:
        return ("struct", t.struct_id, t.name)
    return ("file", t.file_id, t.name)


class FactStore:
    """In-memory, normalized fact tables for a single run.

    Usage::

        store = FactStore()
        svc = store.add_service("network")
        file_id = store.add_file("internal/services/network/vnet_test.go", svc)
        store.statistics()
    """

    def __init__(self) -> None:
        self.services: Table[Service] = Table(
            "services", Service, [IndexSpec("by_name", lambda s: s.name, unique=True)]
        )
        self.resource_registrations: Table[ResourceRegistration] = Table(
            "resource_registrations",
            ResourceRegistration,
            [
                IndexSpec("by_name", lambda r: r.name, unique=True),
                IndexSpec("by_service", lambda r: r.service_id),
            ],
        )
        self.resources: Table[Resource] = Table(
            "resources", Resource, [IndexSpec("by_name", lambda r: r.name, unique=True)]
        )
        self.files: Table[File] = Table(
            "files",
            File,
            [
                IndexSpec("by_path", lambda f: f.path, unique=True),
                IndexSpec("by_service", lambda f: f.service_id),
            ],
        )
        self.structs: Table[Struct] = Table(
            "structs",
            Struct,
            [
                IndexSpec("by_name", lambda s: s.name, unique=True),
                IndexSpec("by_file", lambda s: s.file_id),
            ],
        )
        self.test_functions: Table[TestFunction] = Table(
            "test_functions",
            TestFunction,
            [
                IndexSpec(
                    "by_file_name",
                    lambda t: None if t.file_id is None else (t.file_id, t.name),
                    unique=True,
                ),
                IndexSpec("by_name", lambda t: t.name),
                IndexSpec("by_file", lambda t: t.file_id),
                IndexSpec("by_reference_type", lambda t: t.reference_type),
            ],
        )
        self.template_functions: Table[TemplateFunction] = Table(
            "template_functions",
            TemplateFunction,
            [
                IndexSpec("by_owner", _template_owner_key, unique=True),
                IndexSpec("by_name", lambda t: t.name),
                IndexSpec("by_file", lambda t: t.file_id),
                IndexSpec("by_struct", lambda t: t.struct_id),
            ],
        )
        self.test_steps: Table[TestStep] = Table(
            "test_steps",
            TestStep,
            [
                IndexSpec(
                    "by_test_index", lambda s: (s.test_function_id, s.step_index), unique=True
                ),
                IndexSpec("by_test", lambda s: s.test_function_id),
                IndexSpec("by_reference_type", lambda s: s.reference_type),
                IndexSpec("by_template", lambda s: s.template_function_id),
            ],
        )
        self.template_call_chains: Table[TemplateCallChain] = Table(
            "template_call_chains",
            TemplateCallChain,
            [
                IndexSpec(
                    "by_edge", lambda c: (c.source_template_id, c.target_template_id), unique=True
                ),
                IndexSpec("by_source", lambda c: c.source_template_id),
                IndexSpec("by_target", lambda c: c.target_template_id),
                IndexSpec("by_reference_type", lambda c: c.reference_type),
            ],
        )
        self.direct_resource_references: Table[DirectResourceReference] = Table(
            "direct_resource_references",
            DirectResourceReference,
            [
                IndexSpec(
                    "by_occurrence",
                    lambda d: (d.template_function_id, d.resource_id, d.reference_type, d.context_line),
                    unique=True,
                ),
                IndexSpec("by_template", lambda d: d.template_function_id),
                IndexSpec("by_resource", lambda d: d.resource_id),
                IndexSpec("by_reference_type", lambda d: d.reference_type),
            ],
        )
        self.template_references: Table[TemplateReference] = Table(
            "template_references",
            TemplateReference,
            [
                IndexSpec("by_step", lambda r: r.test_step_id, unique=True),
                IndexSpec("by_test", lambda r: r.test_function_id),
            ],
        )
        self.indirect_config_references: Table[IndirectConfigReference] = Table(
            "indirect_config_references",
            IndirectConfigReference,
            [
                IndexSpec(
                    "by_step_template",
                    lambda i: (i.test_step_id, i.template_function_id),
                    unique=True,
                ),
                IndexSpec("by_step", lambda i: i.test_step_id),
                IndexSpec("by_reference_type", lambda i: i.reference_type),
                IndexSpec("by_service_impact", lambda i: i.service_impact),
            ],
        )
        self.sequential_references: Table[SequentialReference] = Table(
            "sequential_references",
            SequentialReference,
            [
                IndexSpec(
                    "by_edge",
                    lambda s: (
                        s.entry_test_function_id,
                        s.referenced_test_function_id,
                        s.group,
                        s.key,
                    ),
                    unique=True,
                ),
                IndexSpec("by_entry", lambda s: s.entry_test_function_id),
                IndexSpec("by_referenced", lambda s: s.referenced_test_function_id),
            ],
        )
        # Last test step id already turned into indirect references.
        self.indirect_watermark = 0

    # ------------------------------------------------------------------
    # Lifecycle and introspection
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Clear every table and reset counters to 1."""
        for table in self.tables():
            table.reset()
        self.indirect_watermark = 0

    def tables(self) -> Iterator[Table[Any]]:
        """Tables in foreign-key order."""
        for name in TABLE_ORDER:
            yield getattr(self, name)

    def table(self, name: str) -> Table[Any]:
        if name not in FOREIGN_KEYS:
            raise KeyError(name)
        return getattr(self, name)  # type: ignore[no-any-return]

    def statistics(self) -> dict[str, int]:
        """Row count per table."""
        return {table.name: len(table) for table in self.tables()}

    def load_record(self, table: str, record: Any) -> None:
        """Bulk-load a row with its existing id (interchange import).

        No foreign key checks run here; verify the store afterwards.
        """
        self.table(table).load(record)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _refs_resolve(self, table: str, **refs: int | None) -> bool:
        """True when every non-null foreign key given resolves."""
        targets = FOREIGN_KEYS[table]
        for field_name, value in refs.items():
            if value is None:
                continue
            if value not in self.table(targets[field_name]):
                logger.warning(
                    "dangling_foreign_key",
                    table=table,
                    field=field_name,
                    value=value,
                    target=targets[field_name],
                )
                return False
        return True

    def _update(self, table: str, row_id: int, **changes: Any) -> bool:
        target = self.table(table)
        if row_id not in target:
            logger.warning("update_missing_row", table=table, id=row_id, fields=sorted(changes))
            return False
        refs = {k: v for k, v in changes.items() if k in FOREIGN_KEYS[table]}
        if not self._refs_resolve(table, **refs):
            return False
        target.replace(row_id, **changes)
        return True

    # ------------------------------------------------------------------
    # Services, resources, registrations
    # ------------------------------------------------------------------

    def add_service(self, name: str) -> int:
        existing = self.services.lookup("by_name", name)
        if existing is not None:
            return existing.id
        return self.services.insert(lambda new_id: Service(id=new_id, name=name)).id

    def get_service(self, service_id: int | None) -> Service | None:
        return self.services.get(service_id)

    def find_service(self, name: str) -> Service | None:
        return self.services.lookup("by_name", name)

    def add_resource_registration(self, name: str, service_id: int) -> int | None:
        existing = self.resource_registrations.lookup("by_name", name)
        if existing is not None:
            return existing.id
        if service_id is None or not self._refs_resolve(
            "resource_registrations", service_id=service_id
        ):
            return None
        return self.resource_registrations.insert(
            lambda new_id: ResourceRegistration(id=new_id, name=name, service_id=service_id)
        ).id

    def get_resource_registration(self, registration_id: int | None) -> ResourceRegistration | None:
        return self.resource_registrations.get(registration_id)

    def find_resource_registration(self, name: str) -> ResourceRegistration | None:
        return self.resource_registrations.lookup("by_name", name)

    def add_resource(self, name: str, registration_id: int | None = None) -> int | None:
        existing = self.resources.lookup("by_name", name)
        if existing is not None:
            if registration_id is not None and existing.registration_id is None:
                self.set_resource_registration(existing.id, registration_id)
            return existing.id
        if not self._refs_resolve("resources", registration_id=registration_id):
            return None
        return self.resources.insert(
            lambda new_id: Resource(id=new_id, name=name, registration_id=registration_id)
        ).id

    def get_resource(self, resource_id: int | None) -> Resource | None:
        return self.resources.get(resource_id)

    def find_resource(self, name: str) -> Resource | None:
        return self.resources.lookup("by_name", name)

    def set_resource_registration(self, resource_id: int, registration_id: int) -> bool:
        return self._update("resources", resource_id, registration_id=registration_id)

    def resource_service_id(self, resource_id: int) -> int | None:
        """Owning service of a resource via its registration, if known."""
        resource = self.resources.get(resource_id)
        if resource is None:
            return None
        registration = self.resource_registrations.get(resource.registration_id)
        return None if registration is None else registration.service_id

    # ------------------------------------------------------------------
    # Files and structs
    # ------------------------------------------------------------------

    def add_file(self, path: str, service_id: int | None = None) -> int | None:
        existing = self.files.lookup("by_path", path)
        if existing is not None:
            return existing.id
        if not self._refs_resolve("files", service_id=service_id):
            return None
        return self.files.insert(
            lambda new_id: File(id=new_id, path=path, service_id=service_id)
        ).id

    def get_file(self, file_id: int | None) -> File | None:
        return self.files.get(file_id)

    def find_file(self, path: str) -> File | None:
        return self.files.lookup("by_path", path)

    def files_in_service(self, service_id: int) -> list[File]:
        return self.files.lookup_all("by_service", service_id)

    def file_service_id(self, file_id: int | None) -> int | None:
        file = self.files.get(file_id)
        return None if file is None else file.service_id

    def add_struct(self, name: str, file_id: int | None = None, line: int = 0) -> int | None:
        """Insert a struct, or attach a location to one only known by name."""
        existing = self.structs.lookup("by_name", name)
        if existing is not None:
            if file_id is not None and existing.file_id is None:
                self._update("structs", existing.id, file_id=file_id, line=line)
            return existing.id
        if not self._refs_resolve("structs", file_id=file_id):
            return None
        return self.structs.insert(
            lambda new_id: Struct(id=new_id, name=name, file_id=file_id, line=line)
        ).id

    def get_struct(self, struct_id: int | None) -> Struct | None:
        return self.structs.get(struct_id)

    def find_struct(self, name: str) -> Struct | None:
        return self.structs.lookup("by_name", name)

    def structs_in_file(self, file_id: int) -> list[Struct]:
        return self.structs.lookup_all("by_file", file_id)

    # ------------------------------------------------------------------
    # Test functions
    # ------------------------------------------------------------------

    def add_test_function(
        self,
        name: str,
        file_id: int | None,
        *,
        struct_id: int | None = None,
        prefix: str = "",
        reference_type: ReferenceType | None = None,
        line: int = 0,
    ) -> int | None:
        """Insert a test function; idempotent on (file, name) for file-backed rows."""
        if file_id is not None:
            existing = self.test_functions.lookup("by_file_name", (file_id, name))
            if existing is not None:
                return existing.id
        if not self._refs_resolve("test_functions", file_id=file_id, struct_id=struct_id):
            return None
        return self.test_functions.insert(
            lambda new_id: TestFunction(
                id=new_id,
                name=name,
                file_id=file_id,
                struct_id=struct_id,
                prefix=prefix,
                visibility=ReferenceType.for_visibility(name),
                reference_type=reference_type,
                line=line,
            )
        ).id

    def get_test_function(self, test_function_id: int | None) -> TestFunction | None:
        return self.test_functions.get(test_function_id)

    def find_test_function(self, file_id: int, name: str) -> TestFunction | None:
        return self.test_functions.lookup("by_file_name", (file_id, name))

    def test_functions_named(self, name: str) -> list[TestFunction]:
        return self.test_functions.lookup_all("by_name", name)

    def test_functions_in_file(self, file_id: int) -> list[TestFunction]:
        return self.test_functions.lookup_all("by_file", file_id)

    def test_functions_by_reference_type(self, tag: ReferenceType) -> list[TestFunction]:
        return self.test_functions.lookup_all("by_reference_type", tag)

    def set_test_function_struct(self, test_function_id: int, struct_id: int) -> bool:
        return self._update("test_functions", test_function_id, struct_id=struct_id)

    def set_test_function_reference_type(self, test_function_id: int, tag: ReferenceType) -> bool:
        return self._update("test_functions", test_function_id, reference_type=tag)

    def mark_sequential_entry_point(self, test_function_id: int) -> bool:
        return self._update(
            "test_functions",
            test_function_id,
            sequential_entry_point=True,
            reference_type=ReferenceType.SEQUENTIAL_ENTRYPOINT,
        )

    # ------------------------------------------------------------------
    # Template functions and call chains
    # ------------------------------------------------------------------

    def add_template_function(
        self,
        name: str,
        file_id: int,
        *,
        struct_id: int | None = None,
        line: int = 0,
    ) -> int | None:
        owner_key = ("struct", struct_id, name) if struct_id is not None else ("file", file_id, name)
        existing = self.template_functions.lookup("by_owner", owner_key)
        if existing is not None:
            return existing.id
        if file_id is None or not self._refs_resolve(
            "template_functions", file_id=file_id, struct_id=struct_id
        ):
            return None
        return self.template_functions.insert(
            lambda new_id: TemplateFunction(
                id=new_id,
                name=name,
                file_id=file_id,
                struct_id=struct_id,
                visibility=ReferenceType.for_visibility(name),
                line=line,
            )
        ).id

    def get_template_function(self, template_id: int | None) -> TemplateFunction | None:
        return self.template_functions.get(template_id)

    def find_template_function(self, struct_id: int, name: str) -> TemplateFunction | None:
        return self.template_functions.lookup("by_owner", ("struct", struct_id, name))

    def find_helper_function(self, file_id: int, name: str) -> TemplateFunction | None:
        return self.template_functions.lookup("by_owner", ("file", file_id, name))

    def template_functions_named(self, name: str) -> list[TemplateFunction]:
        return self.template_functions.lookup_all("by_name", name)

    def add_template_call_chain(
        self,
        source_template_id: int,
        target_template_id: int,
        reference_type: ReferenceType,
        *,
        call_text: str = "",
        line: int = 0,
    ) -> int | None:
        existing = self.template_call_chains.lookup(
            "by_edge", (source_template_id, target_template_id)
        )
        if existing is not None:
            return existing.id
        if not self._refs_resolve(
            "template_call_chains",
            source_template_id=source_template_id,
            target_template_id=target_template_id,
        ):
            return None
        return self.template_call_chains.insert(
            lambda new_id: TemplateCallChain(
                id=new_id,
                source_template_id=source_template_id,
                target_template_id=target_template_id,
                reference_type=reference_type,
                call_text=call_text,
                line=line,
            )
        ).id

    def get_template_call_chain(self, chain_id: int | None) -> TemplateCallChain | None:
        return self.template_call_chains.get(chain_id)

    def chains_from(self, template_id: int) -> list[TemplateCallChain]:
        return self.template_call_chains.lookup_all("by_source", template_id)

    def chains_to(self, template_id: int) -> list[TemplateCallChain]:
        return self.template_call_chains.lookup_all("by_target", template_id)

    def template_call_chains_by_reference_type(
        self, tag: ReferenceType
    ) -> list[TemplateCallChain]:
        return self.template_call_chains.lookup_all("by_reference_type", tag)

    # ------------------------------------------------------------------
    # Direct resource references
    # ------------------------------------------------------------------

    def add_direct_resource_reference(
        self,
        template_function_id: int,
        resource_id: int,
        reference_type: ReferenceType,
        *,
        context: str = "",
        context_line: int = 0,
    ) -> int | None:
        existing = self.direct_resource_references.lookup(
            "by_occurrence", (template_function_id, resource_id, reference_type, context_line)
        )
        if existing is not None:
            return existing.id
        if not self._refs_resolve(
            "direct_resource_references",
            template_function_id=template_function_id,
            resource_id=resource_id,
        ):
            return None
        return self.direct_resource_references.insert(
            lambda new_id: DirectResourceReference(
                id=new_id,
                template_function_id=template_function_id,
                resource_id=resource_id,
                reference_type=reference_type,
                context=context,
                context_line=context_line,
            )
        ).id

    def get_direct_resource_reference(self, ref_id: int | None) -> DirectResourceReference | None:
        return self.direct_resource_references.get(ref_id)

    def direct_references_for_resource(self, resource_id: int) -> list[DirectResourceReference]:
        return self.direct_resource_references.lookup_all("by_resource", resource_id)

    def direct_references_in_template(self, template_id: int) -> list[DirectResourceReference]:
        return self.direct_resource_references.lookup_all("by_template", template_id)

    def direct_resource_references_by_reference_type(
        self, tag: ReferenceType
    ) -> list[DirectResourceReference]:
        return self.direct_resource_references.lookup_all("by_reference_type", tag)

    # ------------------------------------------------------------------
    # Test steps and template references
    # ------------------------------------------------------------------

    def add_test_step(
        self,
        test_function_id: int,
        step_index: int,
        *,
        struct_name: str = "",
        config_variable: str = "",
        config_method: str = "",
        config_expr: str = "",
        strategy: str = "",
        is_anonymous: bool = False,
        line: int = 0,
    ) -> int | None:
        """Insert a step in the pending (``UNRESOLVED``) state."""
        existing = self.test_steps.lookup("by_test_index", (test_function_id, step_index))
        if existing is not None:
            return existing.id
        if not self._refs_resolve("test_steps", test_function_id=test_function_id):
            return None
        return self.test_steps.insert(
            lambda new_id: TestStep(
                id=new_id,
                test_function_id=test_function_id,
                step_index=step_index,
                struct_name=struct_name,
                config_variable=config_variable,
                config_method=config_method,
                config_expr=config_expr,
                strategy=strategy,
                is_anonymous=is_anonymous,
                visibility=(
                    ReferenceType.for_visibility(config_method)
                    if config_method
                    else ReferenceType.PUBLIC_REFERENCE
                ),
                line=line,
            )
        ).id

    def get_test_step(self, step_id: int | None) -> TestStep | None:
        return self.test_steps.get(step_id)

    def steps_for_test(self, test_function_id: int) -> list[TestStep]:
        return self.test_steps.lookup_all("by_test", test_function_id)

    def test_steps_by_reference_type(self, tag: ReferenceType) -> list[TestStep]:
        return self.test_steps.lookup_all("by_reference_type", tag)

    def steps_after(self, watermark: int) -> list[TestStep]:
        """Steps with an id above ``watermark``, in id order."""
        return [
            self.test_steps.get(step_id)  # type: ignore[misc]
            for step_id in range(watermark + 1, self.test_steps.next_id)
            if step_id in self.test_steps
        ]

    def set_step_reference_type(self, step_id: int, tag: ReferenceType) -> bool:
        return self._update("test_steps", step_id, reference_type=tag)

    def set_step_visibility(self, step_id: int, tag: ReferenceType) -> bool:
        return self._update("test_steps", step_id, visibility=tag)

    def set_step_resolution(
        self,
        step_id: int,
        *,
        struct_id: int | None,
        template_function_id: int | None,
        service_id: int | None,
    ) -> bool:
        return self._update(
            "test_steps",
            step_id,
            struct_id=struct_id,
            template_function_id=template_function_id,
            service_id=service_id,
        )

    def add_template_reference(
        self,
        test_function_id: int,
        test_step_id: int,
        *,
        struct_id: int | None = None,
        template_function_id: int | None = None,
        call_text: str = "",
    ) -> int | None:
        existing = self.template_references.lookup("by_step", test_step_id)
        if existing is not None:
            return existing.id
        if not self._refs_resolve(
            "template_references",
            test_function_id=test_function_id,
            test_step_id=test_step_id,
            struct_id=struct_id,
            template_function_id=template_function_id,
        ):
            return None
        return self.template_references.insert(
            lambda new_id: TemplateReference(
                id=new_id,
                test_function_id=test_function_id,
                test_step_id=test_step_id,
                struct_id=struct_id,
                template_function_id=template_function_id,
                call_text=call_text,
            )
        ).id

    def get_template_reference(self, ref_id: int | None) -> TemplateReference | None:
        return self.template_references.get(ref_id)

    def template_reference_for_step(self, step_id: int) -> TemplateReference | None:
        return self.template_references.lookup("by_step", step_id)

    def set_template_reference_target(
        self, ref_id: int, *, struct_id: int | None, template_function_id: int | None
    ) -> bool:
        return self._update(
            "template_references",
            ref_id,
            struct_id=struct_id,
            template_function_id=template_function_id,
        )

    # ------------------------------------------------------------------
    # Indirect config references
    # ------------------------------------------------------------------

    def add_indirect_config_reference(
        self,
        test_step_id: int,
        template_reference_id: int,
        template_function_id: int,
        reference_type: ReferenceType,
    ) -> int | None:
        existing = self.indirect_config_references.lookup(
            "by_step_template", (test_step_id, template_function_id)
        )
        if existing is not None:
            return existing.id
        if not self._refs_resolve(
            "indirect_config_references",
            test_step_id=test_step_id,
            template_reference_id=template_reference_id,
            template_function_id=template_function_id,
        ):
            return None
        return self.indirect_config_references.insert(
            lambda new_id: IndirectConfigReference(
                id=new_id,
                test_step_id=test_step_id,
                template_reference_id=template_reference_id,
                template_function_id=template_function_id,
                reference_type=reference_type,
            )
        ).id

    def get_indirect_config_reference(self, ref_id: int | None) -> IndirectConfigReference | None:
        return self.indirect_config_references.get(ref_id)

    def indirect_config_references_by_reference_type(
        self, tag: ReferenceType
    ) -> list[IndirectConfigReference]:
        return self.indirect_config_references.lookup_all("by_reference_type", tag)

    def indirect_config_references_by_service_impact(
        self, tag: ReferenceType
    ) -> list[IndirectConfigReference]:
        return self.indirect_config_references.lookup_all("by_service_impact", tag)

    def set_indirect_service_impact(self, ref_id: int, tag: ReferenceType) -> bool:
        return self._update("indirect_config_references", ref_id, service_impact=tag)

    # ------------------------------------------------------------------
    # Sequential references
    # ------------------------------------------------------------------

    def add_sequential_reference(
        self,
        entry_test_function_id: int,
        referenced_test_function_id: int,
        group: str,
        key: str = "",
        *,
        line: int = 0,
    ) -> int | None:
        existing = self.sequential_references.lookup(
            "by_edge", (entry_test_function_id, referenced_test_function_id, group, key)
        )
        if existing is not None:
            return existing.id
        if not self._refs_resolve(
            "sequential_references",
            entry_test_function_id=entry_test_function_id,
            referenced_test_function_id=referenced_test_function_id,
        ):
            return None
        return self.sequential_references.insert(
            lambda new_id: SequentialReference(
                id=new_id,
                entry_test_function_id=entry_test_function_id,
                referenced_test_function_id=referenced_test_function_id,
                group=group,
                key=key,
                line=line,
            )
        ).id

    def get_sequential_reference(self, ref_id: int | None) -> SequentialReference | None:
        return self.sequential_references.get(ref_id)

    def sequential_references_from(self, entry_test_function_id: int) -> list[SequentialReference]:
        return self.sequential_references.lookup_all("by_entry", entry_test_function_id)

    def sequential_references_to(
        self, referenced_test_function_id: int
    ) -> list[SequentialReference]:
        return self.sequential_references.lookup_all("by_referenced", referenced_test_function_id)
