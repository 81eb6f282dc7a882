"""Centralized cache key management for consistency and type safety.

Only catalog configuration is cached; claim and quota state is always read
from the database.
"""

from uuid import UUID

from beartype import beartype


class CacheKeys:
    """Centralized cache key management."""

    WELFARE_PREFIX = "welfare"

    @staticmethod
    @beartype
    def sub_program(sub_program_id: UUID) -> str:
        """Cache key for a sub-program and its parent's active flag."""
        return f"{CacheKeys.WELFARE_PREFIX}:sub_program:{sub_program_id}"
