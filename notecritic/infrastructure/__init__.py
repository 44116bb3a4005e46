"""Infrastructure Layer — HTTP transport, database and logging.

Invariants:
    - Infrastructure never imports from services/ or api/
    - All network failures mapped to core/errors.py types before leaving this layer
"""
