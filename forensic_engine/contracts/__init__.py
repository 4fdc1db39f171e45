"""
Contracts Module

This module defines the immutable records that form the contracts between
pipeline stages. All inter-stage communication MUST use these contracts.
No stage may import implementation details from another stage.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. All classifications are closed enums
3. Records reference each other by id, never by object identity
4. Identity is content-derived (SHA-256), never random
5. Structural violations are rejected at construction time
"""
