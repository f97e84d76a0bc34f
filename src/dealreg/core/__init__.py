"""Core primitives -- domain errors and security helpers."""
