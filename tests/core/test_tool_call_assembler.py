"""Tool-Call Assembler — tests for rebuilding tool calls from fragmented JSON.

Invariants:
    - start + delta* + complete yields the parsed input
    - Indices are independent and may interleave in any order
    - Unknown indices are no-ops; complete() always removes the entry
    - Malformed JSON raises ToolParseError carrying the call id/name
"""

import pytest

from notecritic.core.errors import ToolParseError
from notecritic.core.tool_call_assembler import ToolCallAssembler


# -- Reconstruction ------------------------------------------------------------

def test_fragments_reassemble_into_input():
    asm = ToolCallAssembler()
    asm.start(0, "c1", "tool", {})
    asm.delta(0, '{"a":')
    asm.delta(0, "1")
    asm.delta(0, "}")
    call = asm.complete(0)

    assert call.id == "c1"
    assert call.name == "tool"
    assert call.input == {"a": 1}
    assert call.result is None


def test_no_fragments_uses_initial_input():
    asm = ToolCallAssembler()
    asm.start(3, "srv_1", "web_search", {"query": "notes"}, is_server_executed=True)
    call = asm.complete(3)

    assert call.input == {"query": "notes"}
    assert call.is_server_executed is True


def test_fragments_override_initial_input():
    asm = ToolCallAssembler()
    asm.start(0, "c1", "tool", {})
    asm.delta(0, '{"b": 2}')
    assert asm.complete(0).input == {"b": 2}


def test_interleaved_indices_out_of_order():
    """Index 1 may start and finish before index 0."""
    asm = ToolCallAssembler()
    asm.start(1, "second", "t", {})
    asm.start(0, "first", "t", {})
    asm.delta(0, '{"x": ')
    asm.delta(1, '{"y": 2}')
    second = asm.complete(1)
    asm.delta(0, "1}")
    first = asm.complete(0)

    assert second.input == {"y": 2}
    assert first.input == {"x": 1}
    assert len(asm) == 0


def test_empty_fragment_is_ignored():
    asm = ToolCallAssembler()
    asm.start(0, "c1", "tool", None)
    asm.delta(0, "")
    assert asm.complete(0).input is None


# -- Unknown indices -----------------------------------------------------------

def test_delta_on_unknown_index_is_noop():
    asm = ToolCallAssembler()
    asm.delta(7, '{"a": 1}')
    assert 7 not in asm
    assert len(asm) == 0


def test_complete_on_unknown_index_returns_none():
    assert ToolCallAssembler().complete(5) is None


def test_complete_twice_returns_none_second_time():
    asm = ToolCallAssembler()
    asm.start(0, "c1", "tool", {})
    assert asm.complete(0) is not None
    assert asm.complete(0) is None


# -- Parse failure -------------------------------------------------------------

def test_malformed_json_raises_tool_parse_error():
    asm = ToolCallAssembler()
    asm.start(0, "c1", "web_browser", {})
    asm.delta(0, '{"url": ')

    with pytest.raises(ToolParseError) as exc_info:
        asm.complete(0)

    assert exc_info.value.tool_call_id == "c1"
    assert exc_info.value.tool_name == "web_browser"
    assert exc_info.value.message.startswith("Failed to parse tool call")


def test_parse_failure_still_removes_entry():
    asm = ToolCallAssembler()
    asm.start(0, "c1", "tool", {})
    asm.delta(0, "{nope")
    with pytest.raises(ToolParseError):
        asm.complete(0)
    assert 0 not in asm
    assert asm.complete(0) is None


def test_restart_same_index_replaces_entry():
    asm = ToolCallAssembler()
    asm.start(0, "old", "tool", {})
    asm.delta(0, '{"stale": ')
    asm.start(0, "new", "tool", {})
    asm.delta(0, '{"fresh": true}')
    call = asm.complete(0)
    assert call.id == "new"
    assert call.input == {"fresh": True}
