"""Pattern matching over test and template bodies.

Three scanners live here:

- ``find_test_steps``: every ``Config``-bearing element of a
  ``[]acceptance.TestStep{...}`` literal, with its config expression matched
  against the ordered strategies below.
- ``classify_direct_references``: lines of a template body that mention the
  target resource, classified by block shape.
- ``find_template_calls``: template calls inside ``fmt.Sprintf`` arguments.

Config expression strategies, tried in this order (first match wins):

1. receiver-variable method call     ``r.basic(data)`` / ``r.basic``
2. bare struct literal method call   ``ThingResource{}.basic(data)``
3. named variable                    ``Config: config`` after ``config := r.basic(data)``
4. anonymous closure                 ``func(data acceptance.TestData) string { return r.basic(data) }``
5. bare helper call                  ``testAccThing_basic(data)``

A closure is unwrapped and its return expression matched with strategies
1, 2, 3 and 5; the result is marked anonymous.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from enum import Enum

from blastradius.config.constants import CONTEXT_MAX_CHARS
from blastradius.ingest.lexer import LineIndex, mask_literals, match_brace, split_top_level, value_end
from blastradius.store.models import ReferenceType

# []acceptance.TestStep{
_STEP_SLICE_RE = re.compile(r"\[\]\s*(?P<pkg>[A-Za-z_]\w*)\s*\.\s*TestStep\s*\{")

# Config: (a key of a composite literal, not ConfigPlanChecks etc.)
_CONFIG_KEY_RE = re.compile(r"\bConfig\s*:")

# r.basic(data)  or the method value r.basic
_RECEIVER_CALL_RE = re.compile(r"^(?P<var>[A-Za-z_]\w*)\s*\.\s*(?P<method>[A-Za-z_]\w*)\s*(?:\(|$)")

# ThingResource{}.basic(data)
_STRUCT_LITERAL_CALL_RE = re.compile(
    r"^&?\s*(?P<struct>[A-Za-z_]\w*)\s*\{\s*\}\s*\.\s*(?P<method>[A-Za-z_]\w*)\s*(?:\(|$)"
)

# config
_IDENTIFIER_RE = re.compile(r"^(?P<name>[A-Za-z_]\w*)$")

# func(...)
_CLOSURE_RE = re.compile(r"^func\s*\(")

# testAccThing_basic(data)
_HELPER_CALL_RE = re.compile(r"^(?P<func>[A-Za-z_]\w*)\s*\(")

_RETURN_RE = re.compile(r"\breturn\b")

# fmt.Sprintf(
_SPRINTF_RE = re.compile(r"\bfmt\s*\.\s*Sprintf\s*\(")

_KEYWORDS = frozenset({"func", "return", "struct", "map", "chan", "interface", "nil", "true", "false"})


class ConfigStrategy(str, Enum):
    """Which pattern recognized a step's config expression."""

    RECEIVER_METHOD = "receiver_method"
    STRUCT_LITERAL = "struct_literal"
    NAMED_VARIABLE = "named_variable"
    ANONYMOUS_CLOSURE = "anonymous_closure"
    HELPER_CALL = "helper_call"


@dataclass(frozen=True)
class ConfigCall:
    """A recognized config expression: who is called and how it was found."""

    strategy: ConfigStrategy
    method: str
    variable: str = ""
    struct_name: str = ""
    is_anonymous: bool = False
    via_variable: str = ""


@dataclass(frozen=True)
class StepConfig:
    """One ``Config``-bearing test step."""

    step_index: int
    expr: str
    line: int
    call: ConfigCall | None


@dataclass(frozen=True)
class ResourceMention:
    kind: ReferenceType
    context: str
    line: int


@dataclass(frozen=True)
class TemplateCall:
    """A call found in a ``fmt.Sprintf`` argument of a template."""

    method: str
    variable: str
    struct_name: str
    text: str
    line: int

    @property
    def is_helper(self) -> bool:
        return not self.variable and not self.struct_name


# ---------------------------------------------------------------------------
# Config expression strategies
# ---------------------------------------------------------------------------


def _receiver_method(expr: str, body: str) -> ConfigCall | None:  # noqa: ARG001
    m = _RECEIVER_CALL_RE.match(expr)
    if not m or m.group("var") in _KEYWORDS:
        return None
    return ConfigCall(ConfigStrategy.RECEIVER_METHOD, m.group("method"), variable=m.group("var"))


def _struct_literal(expr: str, body: str) -> ConfigCall | None:  # noqa: ARG001
    m = _STRUCT_LITERAL_CALL_RE.match(expr)
    if not m or m.group("struct") in _KEYWORDS:
        return None
    return ConfigCall(ConfigStrategy.STRUCT_LITERAL, m.group("method"), struct_name=m.group("struct"))


def _assigned_value(name: str, body: str) -> str | None:
    """Right-hand side of the first ``name := ...`` / ``name = ...`` in ``body``."""
    masked = mask_literals(body)
    pattern = re.compile(rf"(?<![\w.]){re.escape(name)}\s*(?::=|=(?!=))\s*")
    m = pattern.search(masked)
    if not m:
        return None
    end = value_end(masked, m.end(), stop_at_newline=True)
    return body[m.end() : end].strip()


def _named_variable(expr: str, body: str) -> ConfigCall | None:
    m = _IDENTIFIER_RE.match(expr)
    if not m or m.group("name") in _KEYWORDS:
        return None
    value = _assigned_value(m.group("name"), body)
    if not value:
        return None
    inner = _receiver_method(value, body) or _struct_literal(value, body) or _helper_call(value, body)
    if inner is None:
        return None
    return replace(inner, strategy=ConfigStrategy.NAMED_VARIABLE, via_variable=m.group("name"))


def closure_return(expr: str) -> str | None:
    """Expression returned by a ``func(...) ... { return <expr> }`` literal."""
    if not _CLOSURE_RE.match(expr):
        return None
    masked = mask_literals(expr)
    params_close = match_brace(masked, masked.index("("))
    if params_close == -1:
        return None
    body_open = masked.find("{", params_close)
    if body_open == -1:
        return None
    body_close = match_brace(masked, body_open)
    if body_close == -1:
        return None
    ret = _RETURN_RE.search(masked, body_open, body_close)
    if not ret:
        return None
    end = value_end(masked, ret.end(), stop_at_newline=True)
    return expr[ret.end() : min(end, body_close)].strip()


def _anonymous_closure(expr: str, body: str) -> ConfigCall | None:
    returned = closure_return(expr)
    if not returned:
        return None
    for strategy in (_receiver_method, _struct_literal, _named_variable, _helper_call):
        inner = strategy(returned, body)
        if inner is not None:
            return replace(inner, strategy=ConfigStrategy.ANONYMOUS_CLOSURE, is_anonymous=True)
    return None


def _helper_call(expr: str, body: str) -> ConfigCall | None:  # noqa: ARG001
    m = _HELPER_CALL_RE.match(expr)
    if not m or m.group("func") in _KEYWORDS:
        return None
    return ConfigCall(ConfigStrategy.HELPER_CALL, m.group("func"))


# Order is part of the contract: first match wins.
CONFIG_STRATEGIES: tuple[Callable[[str, str], ConfigCall | None], ...] = (
    _receiver_method,
    _struct_literal,
    _named_variable,
    _anonymous_closure,
    _helper_call,
)


def match_config_expression(expr: str, body: str) -> ConfigCall | None:
    """Match a ``Config`` value against the ordered strategies.

    Args:
        expr: The config expression text.
        body: The enclosing test function body, for variable lookups.
    """
    expr = expr.strip()
    for strategy in CONFIG_STRATEGIES:
        call = strategy(expr, body)
        if call is not None:
            return call
    return None


def find_test_steps(
    body: str,
    body_line: int = 1,
    step_packages: Sequence[str] = ("acceptance", "resource", "pluginsdk"),
) -> list[StepConfig]:
    """Every ``Config``-bearing step of every TestStep slice in ``body``.

    Step indexes are 1-based and count only steps that carry ``Config``.
    Steps wrapped in calls (``data.DisappearsStep(...{Config: ...})``) count.
    """
    masked = mask_literals(body)
    lines = LineIndex(body, first_line=body_line)
    steps: list[StepConfig] = []
    for m in _STEP_SLICE_RE.finditer(masked):
        if m.group("pkg") not in step_packages:
            continue
        open_index = m.end() - 1
        close_index = match_brace(masked, open_index)
        if close_index == -1:
            continue
        for start, end in split_top_level(masked, open_index + 1, close_index):
            key = _CONFIG_KEY_RE.search(masked, start, end)
            if not key:
                continue
            value_start = key.end()
            while value_start < end and masked[value_start].isspace():
                value_start += 1
            value_stop = min(value_end(masked, value_start), end)
            expr = body[value_start:value_stop].strip()
            steps.append(
                StepConfig(
                    step_index=len(steps) + 1,
                    expr=expr,
                    line=lines.line_of(start),
                    call=match_config_expression(expr, body),
                )
            )
    return steps


def classify_direct_references(
    body: str,
    body_line: int,
    resource_name: str,
    exclusions: Sequence[str] = (),
) -> list[ResourceMention]:
    """Lines of ``body`` that mention ``resource_name``, one mention per line.

    A ``resource "<name>"`` or ``data "<name>"`` line is a block; any other
    mention is an attribute mention. Lines containing an assertion shape
    from ``exclusions`` only name the resource and are skipped.
    """
    name = re.escape(resource_name)
    word = re.compile(rf"(?<![\w]){name}(?![\w])")
    block = re.compile(rf'(?:^|`)\s*(?P<kind>resource|data)\s+"{name}"')

    mentions: list[ResourceMention] = []
    # Go comments never declare a dependency
    text = mask_literals(body, strings=False)
    for offset, line in enumerate(text.split("\n")):
        if not word.search(line):
            continue
        if any(fragment in line for fragment in exclusions):
            continue
        opened = block.search(line)
        if opened is None:
            kind = ReferenceType.ATTRIBUTE_REFERENCE
        elif opened.group("kind") == "resource":
            kind = ReferenceType.RESOURCE_BLOCK
        else:
            kind = ReferenceType.DATA_SOURCE_BLOCK
        mentions.append(
            ResourceMention(
                kind=kind,
                context=line.strip()[:CONTEXT_MAX_CHARS],
                line=body_line + offset,
            )
        )
    return mentions


def find_template_calls(body: str, body_line: int = 1) -> list[TemplateCall]:
    """Calls made from the non-format arguments of ``fmt.Sprintf``."""
    masked = mask_literals(body)
    lines = LineIndex(body, first_line=body_line)
    calls: list[TemplateCall] = []
    for m in _SPRINTF_RE.finditer(masked):
        open_index = m.end() - 1
        close_index = match_brace(masked, open_index)
        if close_index == -1:
            continue
        # First argument is the format string
        for start, end in split_top_level(masked, open_index + 1, close_index)[1:]:
            arg = body[start:end]
            line = lines.line_of(start)
            if (c := _STRUCT_LITERAL_CALL_RE.match(arg)) and "(" in arg:
                calls.append(TemplateCall(c.group("method"), "", c.group("struct"), arg, line))
            elif (c := _RECEIVER_CALL_RE.match(arg)) and "(" in arg:
                calls.append(TemplateCall(c.group("method"), c.group("var"), "", arg, line))
            elif (c := _HELPER_CALL_RE.match(arg)) and c.group("func") not in _KEYWORDS:
                calls.append(TemplateCall(c.group("func"), "", "", arg, line))
    return calls
