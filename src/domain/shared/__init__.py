"""
Shared Domain Module

Shared domain concepts used across all subdomains (effects, tasks).

This module exports:
    - DomainException: Base exception for all domain errors
    - ValidationError: Base class for local, pre-network failures
"""

from .exceptions import DomainException, ValidationError

__all__ = [
    "DomainException",
    "ValidationError",
]
