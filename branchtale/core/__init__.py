"""Story runtime primitives (variables, conditions, editing and playback).

Kept free of FastAPI concerns so it can be reused by API routes, scripts, and tests.
"""
