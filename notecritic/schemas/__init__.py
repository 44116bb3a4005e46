"""Pydantic Schemas — the StreamEvent wire contract and API request validation.

Invariants:
    - Schemas validate at system boundaries; core/ dataclasses stay framework-free
"""
