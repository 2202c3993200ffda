"""Variable-to-struct resolution and template lookup.

A config call names a variable (``r.basic(data)``); the struct behind the
variable is found by the first rule that matches, in this order:

1. the variable is the enclosing method's receiver
2. a struct literal assignment: ``r := ThingResource{}`` / ``r := &ThingResource{...}``
3. a constructor call: ``r := newThingResource()`` / ``r, err := NewThing(...)`` / ``r := new(Thing)``
4. a typed declaration: ``var r ThingResource``

Constructor names are mapped to struct names by the constructor's declared
result type when it was seen during ingestion, otherwise by a pluggable
``StructNameInference``.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

from blastradius.config.models import AnalysisConfig
from blastradius.ingest.lexer import mask_literals
from blastradius.store import FactStore, TemplateFunction

_NOT_STRUCTS = frozenset({"struct", "map", "func", "interface", "chan", "make", "new", "len"})


class StructNameInference(Protocol):
    """Maps a constructor function name to the struct it builds."""

    def infer(self, constructor: str) -> str | None: ...


class ConventionalConstructorInference:
    """Naming-convention inference: ``newThingResource`` -> ``ThingResource``.

    The constructor prefix is stripped, then the name is cut right after
    the last type suffix (``Resource``/``DataSource``); without a type
    suffix, one trailing suffix (``ForTest``, ``WithDefaults``...) is
    stripped instead.
    """

    def __init__(
        self,
        prefixes: Sequence[str] = ("new", "New"),
        type_suffixes: Sequence[str] = ("Resource", "DataSource"),
        trailing_suffixes: Sequence[str] = ("Test", "ForTest", "WithDefaults"),
    ) -> None:
        self._prefixes = sorted(prefixes, key=len, reverse=True)
        self._type_suffixes = list(type_suffixes)
        self._trailing_suffixes = sorted(trailing_suffixes, key=len, reverse=True)

    @classmethod
    def from_config(cls, config: AnalysisConfig) -> ConventionalConstructorInference:
        return cls(
            prefixes=config.constructor_prefixes,
            type_suffixes=config.constructor_type_suffixes,
            trailing_suffixes=config.constructor_trailing_suffixes,
        )

    def infer(self, constructor: str) -> str | None:
        prefix = next(
            (p for p in self._prefixes if constructor.startswith(p) and len(constructor) > len(p)),
            None,
        )
        if prefix is None:
            return None
        name = constructor[len(prefix) :]

        cut = max(
            (name.rfind(s) + len(s) for s in self._type_suffixes if s in name),
            default=-1,
        )
        if cut > 0:
            return name[:cut]
        for suffix in self._trailing_suffixes:
            if name.endswith(suffix) and len(name) > len(suffix):
                return name[: -len(suffix)]
        return name


@dataclass(frozen=True)
class StructResolution:
    struct_name: str
    rule: str


class StructResolver:
    """Resolves a variable in a function body to a struct name."""

    def __init__(
        self,
        inference: StructNameInference | None = None,
        constructors: Mapping[str, str] | None = None,
    ) -> None:
        self._inference = inference or ConventionalConstructorInference()
        self._constructors = constructors if constructors is not None else {}

    def resolve(
        self,
        variable: str,
        body: str,
        *,
        receiver_var: str | None = None,
        receiver_type: str | None = None,
    ) -> StructResolution | None:
        if receiver_var and receiver_type and variable == receiver_var:
            return StructResolution(receiver_type, "receiver")

        masked = mask_literals(body)
        var = re.escape(variable)

        literal = re.compile(
            rf"(?<![\w.]){var}\s*(?::=|=(?!=))\s*&?\s*(?:[A-Za-z_]\w*\s*\.\s*)?(?P<name>[A-Za-z_]\w*)\s*\{{"
        )
        for m in literal.finditer(masked):
            if m.group("name") not in _NOT_STRUCTS:
                return StructResolution(m.group("name"), "literal")

        allocation = re.compile(rf"(?<![\w.]){var}\s*(?::=|=(?!=))\s*new\(\s*\*?(?P<name>[A-Za-z_]\w*)\s*\)")
        if m := allocation.search(masked):
            return StructResolution(m.group("name"), "constructor")

        call = re.compile(
            rf"(?<![\w.]){var}\s*(?:,\s*[A-Za-z_]\w*\s*)?(?::=|=(?!=))\s*"
            rf"(?:[A-Za-z_]\w*\s*\.\s*)?(?P<fn>[A-Za-z_]\w*)\s*\("
        )
        for m in call.finditer(masked):
            fn = m.group("fn")
            if fn in _NOT_STRUCTS:
                continue
            name = self._constructors.get(fn) or self._inference.infer(fn)
            if name:
                return StructResolution(name, "constructor")

        declaration = re.compile(rf"\bvar\s+{var}\s+\*?(?:[A-Za-z_]\w*\s*\.\s*)?(?P<name>[A-Za-z_]\w*)\b")
        if m := declaration.search(masked):
            return StructResolution(m.group("name"), "declaration")
        return None


def locate_template(
    store: FactStore,
    method: str,
    *,
    struct_id: int | None = None,
    file_id: int | None = None,
) -> TemplateFunction | None:
    """Template function ``method`` on a struct, or the closest free helper of that name.

    Without a struct, helpers in ``file_id`` win, then helpers in the same
    service, then any helper.
    """
    if not method:
        return None
    if struct_id is not None:
        return store.find_template_function(struct_id, method)
    if file_id is not None:
        helper = store.find_helper_function(file_id, method)
        if helper is not None:
            return helper

    candidates = [t for t in store.template_functions_named(method) if t.struct_id is None]
    if not candidates:
        return None
    service_id = store.file_service_id(file_id) if file_id is not None else None
    if service_id is not None:
        for candidate in candidates:
            if store.file_service_id(candidate.file_id) == service_id:
                return candidate
    return candidates[0]
