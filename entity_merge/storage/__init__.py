"""Persistence collaborators for the merge core."""

from .base import EntityRepository
from .memory import InMemoryEntityRepository

__all__ = [
    'EntityRepository',
    'InMemoryEntityRepository',
]
