"""
All-or-nothing execution of a public operation.

Every mutating entry point runs inside `atomic(...)`. Participants that can
snapshot their state are captured on entry; if the operation raises, each one
is restored and the exception propagates unchanged. Collaborators without
snapshot support are external: their only failure mode is declining a
transfer, which happens before they change anything.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Protocol, Tuple, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Snapshottable(Protocol):
    def take_snapshot(self) -> Any: ...

    def restore_snapshot(self, snapshot: Any) -> None: ...


@contextmanager
def atomic(*participants: Any) -> Iterator[None]:
    """Restore every snapshottable participant if the block raises."""
    taken: List[Tuple[Snapshottable, Any]] = []
    seen = set()
    for participant in participants:
        if id(participant) in seen or not isinstance(participant, Snapshottable):
            continue
        seen.add(id(participant))
        taken.append((participant, participant.take_snapshot()))

    try:
        yield
    except Exception:
        for participant, snapshot in reversed(taken):
            participant.restore_snapshot(snapshot)
        logger.debug("Rolled back %d participant(s)", len(taken))
        raise
