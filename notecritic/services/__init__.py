"""Services Layer — stream engine, turn orchestration, tools and persistence.

Invariants:
    - Services depend on core/ protocols, never on api/
    - Tool dispatch uses an explicit dict mapping (no auto-discovery)
"""
