"""
Append-only in-memory ledger with secondary indexes.

Records are never removed or reordered; insertion order is the source of
truth for "most recent" queries. Indexes are maintained on append so report
generation does not rescan the full log.
"""

from collections import defaultdict
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, TypeVar

T = TypeVar("T")


class AppendOnlyLog(Generic[T]):
    """
    Arena of records addressed by insertion index.

    Usage:
        log = AppendOnlyLog(indexes={"severity": lambda v: v.severity.value})
        index = log.append(violation)
        log.count_by("severity")  # {"critical": 1}
    """

    def __init__(self, indexes: Optional[Dict[str, Callable[[T], Any]]] = None):
        self._records: List[T] = []
        self._keys: Dict[str, Callable[[T], Any]] = dict(indexes or {})
        self._index: Dict[str, Dict[Any, List[int]]] = {
            name: defaultdict(list) for name in self._keys
        }

    def append(self, record: T) -> int:
        """Append a record and return its position."""
        position = len(self._records)
        self._records.append(record)
        for name, key in self._keys.items():
            self._index[name][key(record)].append(position)
        return position

    def get(self, position: int) -> T:
        return self._records[position]

    def latest(self) -> Optional[T]:
        return self._records[-1] if self._records else None

    def select(self, index: str, value: Any) -> List[T]:
        """All records whose indexed key equals value, in insertion order."""
        return [self._records[i] for i in self._index[index].get(value, [])]

    def count(self, index: str, value: Any) -> int:
        return len(self._index[index].get(value, []))

    def count_by(self, index: str) -> Dict[Any, int]:
        return {k: len(v) for k, v in self._index[index].items() if v}

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._records))

    def __bool__(self) -> bool:
        return bool(self._records)
