"""
Snowflake persistence.

Connection management plus the repositories that implement the digest's
entity directories on Snowflake tables.
"""
