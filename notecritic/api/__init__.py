"""API Layer — FastAPI routes, dependencies and error handlers.

Invariants:
    - Routes are thin: they validate, delegate to the orchestrator/stores and serialize
"""
