"""ORM Models — SQLAlchemy declarative models.

Invariants:
    - All models inherit from Base (db/base.py)

Design Decisions:
    - Models imported here so Base.metadata is complete for create_all and alembic
"""

from fhir_lite.models.stored_resource import StoredResource  # noqa: F401
