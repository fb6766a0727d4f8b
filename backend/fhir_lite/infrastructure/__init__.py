"""Infrastructure Layer — database sessions, document engines, logging.

Invariants:
    - Every SQLAlchemy failure is translated before it leaves this layer
"""
