"""
Pydantic schema definitions for API payloads.

Each domain (profiles, listings, matches, etc.) defines its own Pydantic
models for request and response bodies.  Schemas are separated from
the SQL in the services to decouple API representation from
persistence.
"""
