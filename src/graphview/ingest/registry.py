from __future__ import annotations

from dataclasses import dataclass, field

from .models import Identity


@dataclass(slots=True)
class IdentityRegistry:
    """Binds database identities to dataset-scoped sequential ids.

    Lookups are by value, so two driver objects for the same entity resolve
    to the same local id. Ids start at 1 and are never reused or evicted.
    """

    _ids: dict[Identity, int] = field(default_factory=dict)
    _next: int = 1

    def local_id_for(self, identity: Identity) -> int:
        local_id = self._ids.get(identity)
        if local_id is None:
            local_id = self._next
            self._ids[identity] = local_id
            self._next += 1
        return local_id

    def lookup(self, identity: Identity) -> int | None:
        return self._ids.get(identity)

    def __contains__(self, identity: object) -> bool:
        return identity in self._ids

    def __len__(self) -> int:
        return len(self._ids)
