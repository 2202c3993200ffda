"""Line scanner for sequential test orchestration.

Recognizes two forms inside a test function body:

- The nested group-of-keys map, either assigned to a variable or passed
  inline to ``acceptance.RunTestsInSequence``::

      testCases := map[string]map[string]func(t *testing.T){
          "group": {
              "key": testAccThing_basic,
          },
      }

- The ordered form, one ``t.Run("name", fn)`` call per line; the name is
  the group and the key is empty.

The scanner is a forward state machine: OUTSIDE -> IN_SEQUENCE_BLOCK ->
IN_GROUP -> IN_SEQUENCE_BLOCK -> OUTSIDE, driven by brace depth measured on
masked text so braces inside strings and comments do not count.
"""

from __future__ import annotations

import re
from enum import Enum

from blastradius.ingest.lexer import mask_literals
from blastradius.ingest.models import SequentialFact

# Start of a map[string]map[string]func(...) literal
_SEQUENCE_MAP_RE = re.compile(r"map\s*\[\s*string\s*\]\s*map\s*\[\s*string\s*\]\s*func\s*\(")

# t.Run("name", fn) with a named function (closures are not references)
_T_RUN_RE = re.compile(r'\bt\.Run\(\s*"(?P<name>[^"]*)"\s*,\s*(?P<fn>[A-Za-z_][\w.]*)\s*\)')

# "group": {
_GROUP_OPEN_RE = re.compile(r'^\s*"(?P<group>[^"]+)"\s*:\s*\{')

# "key": fn   (terminated by a comma, a closing brace or end of line)
_ENTRY_RE = re.compile(r'"(?P<key>[^"]+)"\s*:\s*(?P<fn>[A-Za-z_][\w.]*)\s*(?=,|\}|$)')


class ScanState(Enum):
    OUTSIDE = "outside"
    IN_SEQUENCE_BLOCK = "in_sequence_block"
    IN_GROUP = "in_group"


def _function_name(ref: str) -> str | None:
    name = ref.rsplit(".", 1)[-1]
    if name in ("func", "nil", "true", "false"):
        return None
    return name


def scan_sequential_references(
    entry_point: str, body: str, body_line: int = 1
) -> list[SequentialFact]:
    """Extract (group, key, referenced function) triples from a test body."""
    facts: list[SequentialFact] = []
    masked = mask_literals(body)

    state = ScanState.OUTSIDE
    depth = 0
    block_depth = 0
    group_depth = 0
    group = ""

    def emit(group_name: str, key: str, ref: str, line_no: int) -> None:
        name = _function_name(ref)
        if name:
            facts.append(
                SequentialFact(
                    entry_point=entry_point,
                    referenced=name,
                    group=group_name,
                    key=key,
                    line=line_no,
                )
            )

    for offset, (line, mline) in enumerate(zip(body.split("\n"), masked.split("\n"))):
        line_no = body_line + offset
        depth_before = depth
        depth += mline.count("{") - mline.count("}")

        if state is ScanState.OUTSIDE:
            if _SEQUENCE_MAP_RE.search(mline):
                state = ScanState.IN_SEQUENCE_BLOCK
                block_depth = depth_before
                if depth <= block_depth:
                    state = ScanState.OUTSIDE
                continue
            for m in _T_RUN_RE.finditer(line):
                emit(m.group("name"), "", m.group("fn"), line_no)
            continue

        if state is ScanState.IN_SEQUENCE_BLOCK:
            opened = _GROUP_OPEN_RE.match(line)
            if opened:
                group = opened.group("group")
                group_depth = depth_before
                state = ScanState.IN_GROUP
                for m in _ENTRY_RE.finditer(line, opened.end()):
                    emit(group, m.group("key"), m.group("fn"), line_no)
        else:
            for m in _ENTRY_RE.finditer(line):
                emit(group, m.group("key"), m.group("fn"), line_no)

        if state is ScanState.IN_GROUP and depth <= group_depth:
            state = ScanState.IN_SEQUENCE_BLOCK
        if depth <= block_depth:
            state = ScanState.OUTSIDE

    return facts
