"""API Layer — FastAPI routes and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - All FHIR endpoints return application/fhir+json

Design Decisions:
    - Thin routes delegate to services (ADR: impureim sandwich)
"""
