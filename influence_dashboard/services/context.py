from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, TypeVar

from ..config import Settings, settings as default_settings
from ..models.common import as_utc, utcnow
from .store import RelationStore

T = TypeVar("T")
R = TypeVar("R")


class RequestCache:
    """
    Per-request memo of store lookups (network ids, supporter maps, weights).

    Thread-safe: concurrent callers asking for the same key compute it once.
    Lives and dies with a RequestContext, never shared across requests.
    """

    def __init__(self) -> None:
        self._values: Dict[Hashable, Any] = {}
        self._locks: Dict[Hashable, threading.Lock] = {}
        self._guard = threading.Lock()

    def get_or_compute(self, key: Hashable, compute: Callable[[], T]) -> T:
        with self._guard:
            if key in self._values:
                return self._values[key]
            lock = self._locks.setdefault(key, threading.Lock())

        with lock:
            with self._guard:
                if key in self._values:
                    return self._values[key]
            value = compute()
            with self._guard:
                self._values[key] = value
            return value

    def __contains__(self, key: Hashable) -> bool:
        with self._guard:
            return key in self._values

    def __len__(self) -> int:
        with self._guard:
            return len(self._values)


@dataclass
class RequestContext:
    """
    Everything one aggregation request needs, passed explicitly down the call
    chain: the store, the policy settings, a frozen "now" and the request cache.
    """

    store: RelationStore
    settings: Settings = field(default_factory=lambda: default_settings)
    now: datetime = field(default_factory=utcnow)
    cache: RequestCache = field(default_factory=RequestCache)

    def __post_init__(self) -> None:
        self.now = as_utc(self.now) or utcnow()

    @property
    def today(self) -> date:
        return self.now.date()

    @property
    def active_window_start(self) -> datetime:
        return self.now - timedelta(days=self.settings.active_window_days)

    def fan_out(self, fn: Callable[[T], R], items: Iterable[T]) -> List[R]:
        """
        Map fn over items concurrently (bounded by settings.max_workers),
        preserving input order. max_workers == 1 runs inline.
        """
        values = list(items)
        workers = min(int(self.settings.max_workers), len(values))
        if workers <= 1:
            return [fn(v) for v in values]
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="influence") as pool:
            return list(pool.map(fn, values))

    def gather(self, *calls: Callable[[], Any]) -> List[Any]:
        """
        Run independent zero-arg calls concurrently and return their results
        in call order. The first exception propagates.
        """
        return self.fan_out(lambda call: call(), calls)


def new_context(
    store: RelationStore,
    cfg: Optional[Settings] = None,
    *,
    now: Optional[datetime] = None,
) -> RequestContext:
    return RequestContext(store=store, settings=cfg or default_settings, now=now or utcnow())
