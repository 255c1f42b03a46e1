"""
Agent databases — personal stores (e.g. an email box) searched before
asking peers for help.
"""

import logging
from typing import Dict, Iterable, Optional

import numpy as np

from orgsim.models.common import AgentId

logger = logging.getLogger("orgsim.knowledge.database")


class DatabaseEntry:
    """Stored bits of one knowledge topic."""

    def __init__(self, knowledge_id: int, bits: np.ndarray, step: int):
        self.knowledge_id = knowledge_id
        self.bits = bits
        self.last_touched = step


class Database:
    """
    Knowledge stored by an agent outside its own expertise.

    Stored values are the incoming bits scaled by a rate. Entries idle
    longer than `time_to_live` steps are dropped (-1 = never).
    """

    def __init__(self, owner: AgentId, time_to_live: int = -1):
        self.owner = owner
        self.time_to_live = time_to_live
        self._entries: Dict[int, DatabaseEntry] = {}

    def store_knowledge(self, knowledge_id: int, bits: Iterable[float], rate: float, step: int) -> None:
        incoming = np.asarray(list(bits), dtype=float) * rate
        entry = self._entries.get(knowledge_id)
        if entry is None or len(entry.bits) != len(incoming):
            self._entries[knowledge_id] = DatabaseEntry(knowledge_id, incoming, step)
            return
        entry.bits = np.maximum(entry.bits, incoming)
        entry.last_touched = step

    def search_knowledge(self, knowledge_id: int, bit: int, minimum: float, step: Optional[int] = None) -> bool:
        """True when the stored bit is strictly above `minimum`."""
        entry = self._entries.get(knowledge_id)
        if entry is None or bit < 0 or bit >= len(entry.bits):
            return False
        found = float(entry.bits[bit]) > minimum
        if found and step is not None:
            entry.last_touched = step
        return found

    def get(self, knowledge_id: int) -> Optional[DatabaseEntry]:
        return self._entries.get(knowledge_id)

    def contains(self, knowledge_id: int) -> bool:
        return knowledge_id in self._entries

    def forgetting_process(self, step: int) -> int:
        """Drop idle entries. Returns the number of entries removed."""
        if self.time_to_live == -1:
            return 0
        stale = [
            kid for kid, entry in self._entries.items()
            if step - entry.last_touched > self.time_to_live
        ]
        for kid in stale:
            del self._entries[kid]
        if stale:
            logger.debug("Database of %s forgot %d entries", self.owner, len(stale))
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)
