"""
SQL repository tests against a file-backed SQLite database.
"""

import asyncio

import pytest

from metricgate.errors import (
    InvalidCounter,
    InvalidGauge,
    MetricNotFound,
    MetricValidationError,
    RepositoryError,
)
from metricgate.models import INT64_MAX, Counter, Gauge
from metricgate.repository import Repository, SqlRepository


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'metrics.db'}"


@pytest.fixture
async def sql_repo(database_url):
    repo = await SqlRepository.open(database_url, restore=False, timeout=5.0)
    yield repo
    await repo.close()


@pytest.mark.asyncio
async def test_sql_repository_satisfies_protocol(sql_repo):
    assert isinstance(sql_repo, Repository)
    assert await sql_repo.ping() is True


@pytest.mark.asyncio
async def test_counter_upsert_accumulates(sql_repo):
    await sql_repo.store_counter(Counter(name="requests", value=5))
    await sql_repo.store_counter(Counter(name="requests", value=3))

    assert (await sql_repo.retrieve_counter("requests")).value == 8


@pytest.mark.asyncio
async def test_gauge_upsert_overwrites(sql_repo):
    await sql_repo.store_gauge(Gauge(name="temp", value=36.6))
    await sql_repo.store_gauge(Gauge(name="temp", value=37.1))

    assert (await sql_repo.retrieve_gauge("temp")).value == 37.1


@pytest.mark.asyncio
async def test_missing_metric_raises_not_found(sql_repo):
    with pytest.raises(MetricNotFound):
        await sql_repo.retrieve_counter("absent")
    with pytest.raises(MetricNotFound):
        await sql_repo.retrieve_gauge("absent")


@pytest.mark.asyncio
async def test_invalid_samples_are_rejected(sql_repo):
    with pytest.raises(InvalidCounter):
        await sql_repo.store_counter(Counter(name="requests", value=-1))
    with pytest.raises(InvalidGauge):
        await sql_repo.store_gauge(Gauge(name="temp", value=float("nan")))

    assert await sql_repo.list_stored_metrics() == ([], [])


@pytest.mark.asyncio
async def test_counter_overflow_is_rejected(sql_repo):
    """A merge past the int64 range is refused and the stored total kept."""
    await sql_repo.store_counter(Counter(name="big", value=INT64_MAX))

    with pytest.raises(MetricValidationError):
        await sql_repo.store_counter(Counter(name="big", value=1))

    assert (await sql_repo.retrieve_counter("big")).value == INT64_MAX
    _, counters = await sql_repo.list_stored_metrics()
    assert counters == [Counter(name="big", value=INT64_MAX)]


@pytest.mark.asyncio
async def test_bulk_overflow_keeps_prefix(sql_repo):
    await sql_repo.store_counter(Counter(name="big", value=INT64_MAX - 1))

    with pytest.raises(MetricValidationError):
        await sql_repo.write_bulk_counters(
            [
                Counter(name="a", value=1),
                Counter(name="big", value=2),
                Counter(name="c", value=1),
            ]
        )

    assert (await sql_repo.retrieve_counter("a")).value == 1
    assert (await sql_repo.retrieve_counter("big")).value == INT64_MAX - 1
    with pytest.raises(MetricNotFound):
        await sql_repo.retrieve_counter("c")


@pytest.mark.asyncio
async def test_bulk_write_commits_prefix_before_invalid_entry(sql_repo):
    counters = [
        Counter(name="a", value=1),
        Counter(name="a", value=2),
        Counter(name="b", value=-1),
        Counter(name="c", value=1),
    ]
    with pytest.raises(InvalidCounter):
        await sql_repo.write_bulk_counters(counters)

    assert (await sql_repo.retrieve_counter("a")).value == 3
    with pytest.raises(MetricNotFound):
        await sql_repo.retrieve_counter("c")


@pytest.mark.asyncio
async def test_listing_is_sorted(sql_repo):
    await sql_repo.write_bulk_gauges([Gauge(name="z", value=1.0), Gauge(name="a", value=2.0)])
    await sql_repo.write_bulk_counters([Counter(name="polls", value=4)])

    gauges, counters = await sql_repo.list_stored_metrics()

    assert gauges == [Gauge(name="a", value=2.0), Gauge(name="z", value=1.0)]
    assert counters == [Counter(name="polls", value=4)]


@pytest.mark.asyncio
async def test_restore_flag_controls_existing_rows(database_url):
    first = await SqlRepository.open(database_url, restore=False, timeout=5.0)
    await first.store_counter(Counter(name="c", value=7))
    await first.close()

    kept = await SqlRepository.open(database_url, restore=True, timeout=5.0)
    try:
        assert (await kept.retrieve_counter("c")).value == 7
    finally:
        await kept.close()

    wiped = await SqlRepository.open(database_url, restore=False, timeout=5.0)
    try:
        with pytest.raises(MetricNotFound):
            await wiped.retrieve_counter("c")
    finally:
        await wiped.close()


@pytest.mark.asyncio
async def test_sequential_counter_writes_are_not_lost(sql_repo):
    for _ in range(20):
        await sql_repo.store_counter(Counter(name="hits", value=1))

    assert (await sql_repo.retrieve_counter("hits")).value == 20


@pytest.mark.asyncio
async def test_slow_call_becomes_repository_error(sql_repo):
    async def slow() -> None:
        await asyncio.sleep(1)

    sql_repo.timeout = 0.01
    with pytest.raises(RepositoryError):
        await sql_repo._run("slow call", slow)


def test_unsupported_dialect_is_rejected():
    class FakeDialect:
        name = "oracle"

    class FakeEngine:
        dialect = FakeDialect()

    with pytest.raises(RepositoryError):
        SqlRepository(FakeEngine())
