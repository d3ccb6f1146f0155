from __future__ import annotations

import logging
from typing import Any, Callable, ContextManager, Iterable, Iterator, List, Optional, Sequence, Type, TypeVar

from sqlalchemy.engine import Engine
from sqlmodel import Session

from ..config import MAX_STORE_BATCH_SIZE, Settings
from ..database import session_scope
from ..errors import StoreError
from .retry import RetryPolicy, with_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")


def chunked(values: Sequence[T], size: int) -> Iterator[List[T]]:
    for i in range(0, len(values), size):
        yield list(values[i : i + size])


def unique_ids(values: Iterable[Optional[str]]) -> List[str]:
    """
    Drop empties and duplicates, keep first-seen order.
    """
    return list(dict.fromkeys(v for v in values if v))


class RelationStore:
    """
    The aggregation core's only gateway to the database.

    - Every read opens its own short-lived Session, so calls are safe to fan
      out across threads.
    - Every read goes through the same RetryPolicy (with_retry).
    - in_batches() splits IN (...) lookups at the batch ceiling and applies the
      partial-success policy: a failed batch is logged and skipped.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        batch_size: int = MAX_STORE_BATCH_SIZE,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self.engine = engine
        self.batch_size = max(1, min(int(batch_size), MAX_STORE_BATCH_SIZE))
        self.retry_policy = retry_policy or RetryPolicy()

    @classmethod
    def from_settings(cls, engine: Engine, cfg: Settings) -> "RelationStore":
        return cls(
            engine,
            batch_size=cfg.store_batch_size,
            retry_policy=RetryPolicy(attempts=cfg.retry_attempts, base_delay=cfg.retry_base_delay),
        )

    # -------------------------
    # Core read path
    # -------------------------

    def run(self, fn: Callable[[Session], T], *, label: str = "query") -> T:
        @with_retry(self.retry_policy, label=label)
        def _call() -> T:
            with Session(self.engine) as session:
                return fn(session)

        return _call()

    def all(self, stmt: Any, *, label: str = "query") -> List[Any]:
        return self.run(lambda s: list(s.exec(stmt).all()), label=label)

    def get(self, model: Type[T], ident: Any, *, label: Optional[str] = None) -> Optional[T]:
        return self.run(lambda s: s.get(model, ident), label=label or f"get:{model.__name__}")

    def in_batches(
        self,
        ids: Iterable[Optional[str]],
        build_stmt: Callable[[List[str]], Any],
        *,
        label: str = "batch",
    ) -> List[Any]:
        """
        Run build_stmt(batch) for each batch of ids and concatenate the rows.

        A batch that still fails after retries is logged and skipped. If every
        batch fails the last error propagates, so a dead store never looks
        like "no data".
        """
        values = unique_ids(ids)
        if not values:
            return []

        rows: List[Any] = []
        batches = 0
        failures = 0
        last_error: Optional[StoreError] = None

        for batch in chunked(values, self.batch_size):
            batches += 1
            try:
                rows.extend(self.all(build_stmt(batch), label=label))
            except StoreError as exc:
                failures += 1
                last_error = exc
                logger.warning(
                    "%s: batch %d (%d ids) failed, continuing with remaining batches: %s",
                    label,
                    batches,
                    len(batch),
                    exc,
                )

        if last_error is not None and failures == batches:
            raise last_error

        if failures:
            logger.warning("%s: %d of %d batches failed; result is partial", label, failures, batches)

        return rows

    # -------------------------
    # Write path (rollup refresher only)
    # -------------------------

    def write_session(self) -> ContextManager[Session]:
        return session_scope(self.engine)
