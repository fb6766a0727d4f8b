"""Services Layer — orchestration, bundle assembly and payload validation.

Invariants:
    - Services depend on core protocols, never on concrete engines
"""
