"""Step-by-step search traces for replay and animation.

A ``StepTraceRecorder`` is handed to a search strategy as a passive
observer. After every expansion the strategy reports its frontier and the
combinations discovered so far; the recorder freezes them into a
``StepRecord``. The finished ``StepTrace`` can be replayed from any index
without re-running the search.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union, overload

from .graph import Combination


@dataclass(frozen=True)
class StepRecord:
    """Immutable snapshot of search state after one expansion."""
    index: int
    element: Optional[str]  # None for the initial snapshot
    frontier: Tuple[str, ...]
    discovered: Mapping[str, Combination]
    found_target: bool = False
    seen: Tuple[str, ...] = ()
    backward_frontier: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.index,
            "current": self.element,
            "queue": list(self.frontier),
            "backward_queue": list(self.backward_frontier),
            "seen": list(self.seen),
            "discovered": {
                product: {"ingredient_a": c.ingredient_a, "ingredient_b": c.ingredient_b}
                for product, c in self.discovered.items()
            },
            "found_target": self.found_target,
        }


class StepTrace:
    """Ordered, finite, replayable sequence of ``StepRecord``."""

    def __init__(self, records: Iterable[StepRecord] = (), truncated: bool = False):
        self._records: Tuple[StepRecord, ...] = tuple(records)
        self.truncated = truncated

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[StepRecord]:
        return iter(self._records)

    @overload
    def __getitem__(self, index: int) -> StepRecord: ...

    @overload
    def __getitem__(self, index: slice) -> Tuple[StepRecord, ...]: ...

    def __getitem__(self, index: Union[int, slice]) -> Union[StepRecord, Tuple[StepRecord, ...]]:
        return self._records[index]

    def seek(self, index: int) -> StepRecord:
        """Return the record at ``index``; raises IndexError outside the trace."""
        if not 0 <= index < len(self._records):
            raise IndexError(f"Step {index} outside trace of {len(self._records)} steps")
        return self._records[index]

    @property
    def final(self) -> Optional[StepRecord]:
        return self._records[-1] if self._records else None

    def found_index(self) -> Optional[int]:
        """Index of the first step that admitted the target, if any."""
        for record in self._records:
            if record.found_target:
                return record.index
        return None

    def to_list(self) -> List[Dict[str, Any]]:
        return [record.to_dict() for record in self._records]

    def __repr__(self) -> str:
        return f"StepTrace(steps={len(self._records)}, truncated={self.truncated})"


@dataclass
class StepTraceRecorder:
    """
    Observer that snapshots strategy state after each expansion.

    Attributes
    ----------
    max_steps : int | None
        Stop recording after this many records (the search itself continues).
    """
    max_steps: Optional[int] = None
    _records: List[StepRecord] = field(default_factory=list, repr=False)
    _truncated: bool = field(default=False, repr=False)

    def record(
        self,
        element: Optional[str],
        frontier: Iterable[str],
        discovered: Mapping[str, Combination],
        found_target: bool = False,
        seen: Iterable[str] = (),
        backward_frontier: Iterable[str] = (),
    ) -> None:
        if self.max_steps is not None and len(self._records) >= self.max_steps:
            self._truncated = True
            return
        self._records.append(
            StepRecord(
                index=len(self._records),
                element=element,
                frontier=tuple(frontier),
                discovered=MappingProxyType(dict(discovered)),
                found_target=found_target,
                seen=tuple(seen),
                backward_frontier=tuple(backward_frontier),
            )
        )

    def __len__(self) -> int:
        return len(self._records)

    def trace(self) -> StepTrace:
        return StepTrace(self._records, truncated=self._truncated)
