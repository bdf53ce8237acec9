"""In-memory cache of assembled workouts."""

import logging

from ..models.workout import WorkoutView

logger = logging.getLogger(__name__)


class WorkoutCache:
    """Caches the compiled workout per user.

    Entries are keyed by user and the calendar position they were built
    for. Callers must invalidate a user after any change to their maxes
    or enrollment, and invalidate everything after a program changes.

    Every invalidation moves a generation token. A view compiled while
    the token moved is not stored, so a compile that raced a write never
    outlives it.
    """

    def __init__(self):
        self._entries: dict[str, tuple[tuple, WorkoutView]] = {}
        self._generations: dict[str, int] = {}
        self._program_generation = 0

    def generation(self, user_id: str) -> tuple[int, int]:
        """Token to take before compiling and hand back to :meth:`put`."""
        return (self._program_generation, self._generations.get(user_id, 0))

    def get(self, user_id: str, key: tuple) -> WorkoutView | None:
        entry = self._entries.get(user_id)
        if entry is None or entry[0] != key:
            return None
        return entry[1]

    def put(
        self,
        user_id: str,
        key: tuple,
        view: WorkoutView,
        generation: tuple[int, int] | None = None,
    ) -> bool:
        """Store a view; returns False when it was invalidated mid-compile."""
        if generation is not None and generation != self.generation(user_id):
            logger.debug("Dropped workout for %s compiled before an invalidation", user_id)
            return False
        self._entries[user_id] = (key, view)
        return True

    def invalidate(self, user_id: str) -> None:
        self._generations[user_id] = self._generations.get(user_id, 0) + 1
        if self._entries.pop(user_id, None) is not None:
            logger.debug("Invalidated cached workout for %s", user_id)

    def invalidate_program(self, program_id: str) -> None:
        """Drop every entry built from a program."""
        self._program_generation += 1
        stale = [uid for uid, (_, view) in self._entries.items() if view.program_id == program_id]
        for user_id in stale:
            del self._entries[user_id]
        if stale:
            logger.debug("Invalidated %s cached workouts for program %s", len(stale), program_id)

    def clear(self) -> None:
        self._program_generation += 1
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
