"""Pydantic Schemas — structural models for validating inbound FHIR payloads.

Design Decisions:
    - Separate from core.resource_document: schemas validate what callers send,
      the core document type carries what the store returns
"""
