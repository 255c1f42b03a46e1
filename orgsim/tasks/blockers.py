"""
Blockers of one task.

Behavioral Contract:
- Active blockers are the unresolved ones; resolving or cancelling a
  blocker removes it from the active list.
- The history keeps every blocker ever added, in order.
- number_of_tries only increases, and never changes once resolved.
"""

from typing import List, Optional
from uuid import uuid4

from orgsim.errors import InvalidArgumentError
from orgsim.models.blocker import Blocker
from orgsim.models.murphy import BlockerResolution, MurphyKind


class BlockerCollection:
    """The blockers attached to one task."""

    def __init__(self):
        self._active: List[Blocker] = []
        self._history: List[Blocker] = []

    def add(
        self,
        kind: MurphyKind,
        step: int,
        parameter: Optional[int] = None,
        parameter2: Optional[int] = None,
    ) -> Blocker:
        blocker = Blocker(
            id=f"blk_{uuid4().hex[:12]}",
            kind=kind,
            parameter=parameter,
            parameter2=parameter2,
            initial_step=step,
        )
        self._active.append(blocker)
        self._history.append(blocker)
        return blocker

    def update(self, blocker: Blocker, step: int) -> None:
        """Count one more recovery attempt."""
        if blocker is None:
            raise InvalidArgumentError("blocker is required")
        if blocker.is_resolved:
            return
        blocker.number_of_tries += 1
        blocker.last_recovery_step = step

    def recover(self, blocker: Blocker, resolution: BlockerResolution, step: int) -> bool:
        """
        Resolve a blocker. Returns False when it was already resolved,
        in which case nothing changes.
        """
        if blocker is None:
            raise InvalidArgumentError("blocker is required")
        if resolution == BlockerResolution.NONE:
            raise InvalidArgumentError("a blocker cannot be resolved with NONE")
        if blocker.is_resolved:
            return False
        blocker.resolution = resolution
        blocker.resolved_step = step
        self._active = [b for b in self._active if b.id != blocker.id]
        return True

    def cancel(self, blocker: Blocker, step: int) -> bool:
        return self.recover(blocker, BlockerResolution.CANCELLED, step)

    def cancel_all(self, step: int) -> List[Blocker]:
        cancelled = list(self._active)
        for blocker in cancelled:
            self.cancel(blocker, step)
        return cancelled

    def filter_blockers(self, step: int) -> List[Blocker]:
        """Unresolved blockers not yet tried at this step."""
        return [b for b in self._active if b.last_recovery_step != step]

    def find(self, blocker_id: str) -> Optional[Blocker]:
        return next((b for b in self._history if b.id == blocker_id), None)

    def has_been_blocked_by(self, kind: MurphyKind) -> bool:
        return any(b.kind == kind for b in self._history)

    @property
    def is_blocked(self) -> bool:
        return bool(self._active)

    @property
    def active(self) -> List[Blocker]:
        return list(self._active)

    @property
    def history(self) -> List[Blocker]:
        return list(self._history)

    def __len__(self) -> int:
        return len(self._active)
