"""
Core business logic for GameFrame.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
or any infrastructure concerns. The digest engine talks to its stores
through Protocols, so it can be tested with in-memory fakes.
"""
