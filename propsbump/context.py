"""Per-run state shared by version lookups."""

from dataclasses import dataclass, field

from .models import PackageMetadata
from .registry import ClientCache
from .versioning import CandidateKey


@dataclass
class UpdateContext:
    """Registry clients and memoized lookups for one run.

    Both maps only grow during a run; nothing is shared between runs.
    """

    clients: ClientCache
    resolved: dict[tuple[CandidateKey, tuple[str, ...]], PackageMetadata | None] = field(
        default_factory=dict
    )

    @classmethod
    def create(cls, timeout: float = 30.0) -> "UpdateContext":
        return cls(clients=ClientCache(timeout=timeout))

    async def aclose(self) -> None:
        await self.clients.aclose()

    async def __aenter__(self) -> "UpdateContext":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
