"""Core Layer — pure domain logic for turns, steps, tool calls and wire parsing.

Invariants:
    - Core never imports from services/, infrastructure/ or api/
    - Only the orchestrator mutates Turn / Step / ToolCall state

Design Decisions:
    - Dataclasses for mutable conversation state, frozen dataclasses for user input
"""
