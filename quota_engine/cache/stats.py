"""
Cache statistics tracking.
"""


class CacheStats:
    """Track cache hit/miss rates."""

    def __init__(self):
        self.hits = 0
        self.misses = 0

    def record_hit(self):
        """Record a cache hit."""
        self.hits += 1

    def record_miss(self):
        """Record a cache miss."""
        self.misses += 1

    def get_rate(self) -> float:
        """
        Get cache hit rate.

        Returns:
            Hit rate as a float between 0.0 and 1.0
        """
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def get_total(self) -> int:
        """Get total cache operations."""
        return self.hits + self.misses
