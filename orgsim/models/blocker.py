"""Blocker — a typed obstruction attached to a task."""

from typing import Optional

from pydantic import BaseModel

from orgsim.models.murphy import BlockerResolution, MurphyKind


class Blocker(BaseModel):
    """
    One obstruction on one task.

    `parameter` / `parameter2` carry the knowledge (or belief) id and the bit
    index for knowledge and belief blockers; information blockers have none.
    Mutated only through the owning BlockerCollection.
    """

    id: str
    kind: MurphyKind
    parameter: Optional[int] = None
    parameter2: Optional[int] = None
    initial_step: int
    last_recovery_step: Optional[int] = None
    number_of_tries: int = 0
    resolution: BlockerResolution = BlockerResolution.NONE
    resolved_step: Optional[int] = None

    @property
    def is_resolved(self) -> bool:
        return self.resolution != BlockerResolution.NONE
