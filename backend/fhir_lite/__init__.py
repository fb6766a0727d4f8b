"""FHIR Lite — Patient create/read/search over a document store.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
