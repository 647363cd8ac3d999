"""
Infrastructure layer - external service integrations.

- snowflake: entity directories backed by Snowflake tables
- memory: in-memory entity store for mock mode
- auth: the authenticated identity of the current request

These wrappers translate between external formats and our domain models.
"""
