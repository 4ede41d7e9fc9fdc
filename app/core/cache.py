# app/core/cache.py
"""
Cache-invalidation signal for UI views.

Views such as the dashboard and onboarding pages are cached by the
frontend, not here. After a profile write we publish which views are
stale for which identity; deployments subscribe a listener (e.g. a call
to the frontend's revalidation endpoint).
"""
import logging
from typing import Callable, Iterable

logger = logging.getLogger(__name__)

Listener = Callable[[str, list[str]], None]

ONBOARDING_VIEWS: tuple[str, ...] = ("/dashboard", "/onboarding")


class CacheInvalidator:
    """Fan out invalidation signals to registered listeners."""

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def invalidate(self, identity_id: str, paths: Iterable[str]) -> list[str]:
        """
        Signal that `paths` are stale for `identity_id`.

        A failing listener is logged and skipped; the write it follows has
        already been committed.

        Returns:
            The list of invalidated paths.
        """
        paths = list(paths)
        logger.debug("Cache INVALIDATE for %s: %s", identity_id, paths)
        for listener in list(self._listeners):
            try:
                listener(identity_id, paths)
            except Exception as e:
                logger.error(f"❌ Cache invalidation listener failed: {e}")
        return paths


# Global invalidator instance
cache_invalidator = CacheInvalidator()
