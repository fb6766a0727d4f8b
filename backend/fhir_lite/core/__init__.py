"""Core Layer — envelope, codec, filter and bundle logic; no IO, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic (clocks are injected)

Design Decisions:
    - Functional core separated from imperative shell (ADR: impureim sandwich)
"""
