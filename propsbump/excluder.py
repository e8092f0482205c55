"""Solution exclusion by path fragment."""

from collections.abc import Iterable


class Excluder:
    """Skips solutions whose path contains any configured fragment, ignoring case."""

    def __init__(self, ignores: Iterable[str] = ()):
        self.ignores = [ignore.lower() for ignore in ignores if ignore]

    def should_exclude(self, solution: str) -> bool:
        lowered = str(solution).lower()
        return any(ignore in lowered for ignore in self.ignores)
