"""
schemagen Test Suite.

This package contains:
- unit/: Unit tests, one module per pipeline stage
- integration/: End-to-end compile and CLI flows
"""
