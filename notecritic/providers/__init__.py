"""Provider Adapters — per-vendor request building and wire-object parsing.

Invariants:
    - Adapters are pure: no I/O, no clock, no shared mutable state between calls
    - Adding a vendor means one adapter + one formatter + one ADAPTERS entry
"""
