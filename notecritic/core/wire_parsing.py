"""Wire Parsing — extract one JSON object per inbound line, skipping noise.

Invariants:
    - Blank lines, SSE comments (": ping") and "event:" lines never raise
    - Only the first balanced {...} substring of a line is considered
    - Unparseable candidates are skipped (ProtocolError tolerated), never fatal here
    - Braces inside JSON strings do not affect balancing

Design Decisions:
    - Brace scanner instead of a greedy regex: "data: {...} trailing {" still yields the object
"""

import json
import logging

logger = logging.getLogger(__name__)

KEEPALIVE_PREFIXES = (":", "event:", "id:", "retry:")


def extract_json_candidate(line: str) -> str | None:
    """Return the first balanced {...} substring of line, or None."""
    start = line.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(line)):
        ch = line[pos]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return line[start:pos + 1]
    return None


def parse_wire_line(line: str) -> dict | None:
    """Parse one wire line into a JSON object; None for noise or malformed input."""
    stripped = line.strip()
    if not stripped or stripped.startswith(KEEPALIVE_PREFIXES):
        return None
    candidate = extract_json_candidate(stripped)
    if candidate is None:
        return None
    try:
        obj = json.loads(candidate)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed wire object: %s", candidate[:200])
        return None
    return obj if isinstance(obj, dict) else None

