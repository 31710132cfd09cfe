"""SQL-backed metrics repository."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from metricgate.db.base import Base, create_engine, create_session_factory, session_scope
from metricgate.db.tables import CounterTable, GaugeTable
from metricgate.errors import MetricNotFound, MetricValidationError, RepositoryError
from metricgate.models import INT64_MAX, Counter, Gauge

T = TypeVar("T")


class SqlRepository:
    """Repository on top of an async SQLAlchemy engine.

    Counter merges are a single upsert (``value = counters.value +
    excluded.value``), so concurrent writers need no application lock.
    Every call is bounded by ``timeout`` seconds.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        timeout: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.engine = engine
        self.timeout = timeout
        self._sessions = create_session_factory(engine)
        self._log = logger or logging.getLogger("metricgate.sql")

        dialect = engine.dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise RepositoryError(f"Unsupported database dialect: {dialect}")
        self._insert = insert

    @classmethod
    async def open(
        cls,
        database_url: str,
        restore: bool = True,
        timeout: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ) -> "SqlRepository":
        """Connect and create tables; ``restore=False`` starts from empty tables."""
        repo = cls(create_engine(database_url), timeout=timeout, logger=logger)
        await repo.init_schema(drop_existing=not restore)
        return repo

    async def init_schema(self, drop_existing: bool = False) -> None:
        async with self.engine.begin() as conn:
            if drop_existing:
                await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    async def ping(self) -> bool:
        try:
            await self._run("ping", self._ping)
        except RepositoryError:
            return False
        return True

    async def _ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def _run(self, description: str, op: Callable[[], Awaitable[T]]) -> T:
        try:
            return await asyncio.wait_for(op(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            self._log.error(f"Database call timed out: {description}")
            raise RepositoryError(f"{description} timed out") from e
        except SQLAlchemyError as e:
            self._log.error(f"Database call failed: {description}: {e}")
            raise RepositoryError(f"{description} failed") from e

    # Statements

    def _counter_upsert(self, counter: Counter) -> Any:
        stmt = self._insert(CounterTable).values(name=counter.name, value=counter.value)
        return stmt.on_conflict_do_update(
            index_elements=[CounterTable.name],
            set_={"value": CounterTable.value + stmt.excluded.value},
            where=CounterTable.value <= INT64_MAX - stmt.excluded.value,
        )

    def _gauge_upsert(self, gauge: Gauge) -> Any:
        stmt = self._insert(GaugeTable).values(name=gauge.name, value=gauge.value)
        return stmt.on_conflict_do_update(
            index_elements=[GaugeTable.name],
            set_={"value": stmt.excluded.value},
        )

    # Counters

    async def store_counter(self, counter: Counter) -> None:
        counter.validate_value()

        async def op() -> int:
            async with session_scope(self._sessions) as session:
                result = await session.execute(self._counter_upsert(counter))
                return result.rowcount

        if await self._run("store counter", op) == 0:
            raise _counter_overflow(counter)

    async def retrieve_counter(self, name: str) -> Counter:
        async def op() -> Optional[int]:
            async with self._sessions() as session:
                result = await session.execute(
                    select(CounterTable.value).where(CounterTable.name == name)
                )
                return result.scalar_one_or_none()

        value = await self._run("retrieve counter", op)
        if value is None:
            self._log.info(f"Counter does not exist: {name}")
            raise MetricNotFound("counter", name)
        return Counter(name=name, value=value)

    async def write_bulk_counters(self, counters: Sequence[Counter]) -> None:
        await self._write_bulk(
            "bulk write counters", counters, self._counter_upsert
        )

    # Gauges

    async def store_gauge(self, gauge: Gauge) -> None:
        gauge.validate_value()

        async def op() -> None:
            async with session_scope(self._sessions) as session:
                await session.execute(self._gauge_upsert(gauge))

        await self._run("store gauge", op)

    async def retrieve_gauge(self, name: str) -> Gauge:
        async def op() -> Optional[float]:
            async with self._sessions() as session:
                result = await session.execute(
                    select(GaugeTable.value).where(GaugeTable.name == name)
                )
                return result.scalar_one_or_none()

        value = await self._run("retrieve gauge", op)
        if value is None:
            self._log.info(f"Gauge does not exist: {name}")
            raise MetricNotFound("gauge", name)
        return Gauge(name=name, value=value)

    async def write_bulk_gauges(self, gauges: Sequence[Gauge]) -> None:
        await self._write_bulk("bulk write gauges", gauges, self._gauge_upsert)

    async def _write_bulk(
        self,
        description: str,
        metrics: Sequence[Any],
        upsert: Callable[[Any], Any],
    ) -> None:
        """Upsert metrics in one transaction, committing the valid prefix.

        A counter upsert that matches no row was refused by the overflow guard.
        """
        if not metrics:
            return
        failure: Optional[MetricValidationError] = None

        async def op() -> None:
            nonlocal failure
            async with session_scope(self._sessions) as session:
                for metric in metrics:
                    try:
                        metric.validate_value()
                    except MetricValidationError as e:
                        failure = e
                        break
                    result = await session.execute(upsert(metric))
                    if result.rowcount == 0:
                        failure = _counter_overflow(metric)
                        break

        await self._run(description, op)
        if failure is not None:
            raise failure

    # Listing

    async def list_stored_metrics(self) -> tuple[list[Gauge], list[Counter]]:
        async def op() -> tuple[list[Gauge], list[Counter]]:
            async with self._sessions() as session:
                gauge_rows = await session.execute(
                    select(GaugeTable.name, GaugeTable.value).order_by(GaugeTable.name)
                )
                counter_rows = await session.execute(
                    select(CounterTable.name, CounterTable.value).order_by(CounterTable.name)
                )
                return (
                    [Gauge(name=n, value=v) for n, v in gauge_rows.all()],
                    [Counter(name=n, value=v) for n, v in counter_rows.all()],
                )

        return await self._run("list metrics", op)


def _counter_overflow(counter: Counter) -> MetricValidationError:
    return MetricValidationError(
        f"Counter {counter.name!r} would overflow", "COUNTER_OVERFLOW"
    )
