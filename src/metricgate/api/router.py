"""REST API router."""

import logging
import math
import re

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response

from metricgate.api.deps import get_hash_key, get_repository
from metricgate.api.text import format_float, render_metrics_page
from metricgate.errors import (
    MetricIntegrityError,
    MetricNotFound,
    MetricValidationError,
    RepositoryError,
)
from metricgate.hashing import sign, verify
from metricgate.models import (
    Counter,
    Gauge,
    MetricEnvelope,
    MetricType,
    decode_batch,
    decode_envelope,
)
from metricgate.repository import Repository

logger = logging.getLogger("metricgate.api")

_INTEGER = re.compile(r"-?[0-9]+")

router = APIRouter()


# ============================================================================
# Health & listing
# ============================================================================


@router.get("/", response_class=HTMLResponse)
async def list_metrics(repository: Repository = Depends(get_repository)):
    """Dump all stored metrics, one per line."""
    try:
        gauges, counters = await repository.list_stored_metrics()
    except RepositoryError as e:
        raise HTTPException(status_code=500, detail=e.message)
    return HTMLResponse(render_metrics_page(gauges, counters))


@router.get("/ping")
async def ping(repository: Repository = Depends(get_repository)):
    """Backend health check."""
    if await repository.ping():
        return PlainTextResponse("OK")
    raise HTTPException(status_code=500, detail="db is down")


# ============================================================================
# Value lookups
# ============================================================================


@router.get("/value/{metric_type}/{name}", response_class=PlainTextResponse)
async def get_value(
    metric_type: str,
    name: str,
    repository: Repository = Depends(get_repository),
):
    """Current value of one metric as plain text."""
    kind = MetricType.parse(metric_type)
    if kind is None:
        raise HTTPException(status_code=404, detail=f"unknown metric type: {metric_type}")
    try:
        if kind is MetricType.COUNTER:
            counter = await repository.retrieve_counter(name)
            return PlainTextResponse(str(counter.value))
        gauge = await repository.retrieve_gauge(name)
        return PlainTextResponse(format_float(gauge.value))
    except MetricNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    except RepositoryError as e:
        raise HTTPException(status_code=500, detail=e.message)


@router.post("/value/")
async def post_value(
    request: Request,
    repository: Repository = Depends(get_repository),
    hash_key: str = Depends(get_hash_key),
):
    """Fill an id+type envelope with the stored value, signed if keyed."""
    try:
        envelope = decode_envelope(await request.body())
    except MetricValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)

    kind = envelope.metric_type
    if kind is None:
        raise HTTPException(status_code=404, detail=f"unknown metric type: {envelope.type}")

    try:
        if kind is MetricType.COUNTER:
            counter = await repository.retrieve_counter(envelope.id)
            result = MetricEnvelope.from_counter(counter)
        else:
            gauge = await repository.retrieve_gauge(envelope.id)
            result = MetricEnvelope.from_gauge(gauge)
    except MetricNotFound as e:
        logger.info(f"Not found metric {envelope.type}/{envelope.id}")
        raise HTTPException(status_code=404, detail=e.message)
    except RepositoryError as e:
        raise HTTPException(status_code=500, detail=e.message)

    return JSONResponse(sign(result, hash_key).to_wire())


# ============================================================================
# Updates
# ============================================================================


@router.post("/update/")
async def update(
    request: Request,
    repository: Repository = Depends(get_repository),
    hash_key: str = Depends(get_hash_key),
):
    """Store one JSON envelope."""
    try:
        envelope = decode_envelope(await request.body())
        verify(envelope, hash_key)
        metric = envelope.to_metric()
    except (MetricValidationError, MetricIntegrityError) as e:
        raise HTTPException(status_code=400, detail=e.message)

    await _save(repository, metric)
    return Response(status_code=200)


@router.post("/updates/")
async def updates(
    request: Request,
    repository: Repository = Depends(get_repository),
    hash_key: str = Depends(get_hash_key),
):
    """Store a JSON array of envelopes.

    Every hash is checked before anything is written, so a tampered entry
    rejects the whole batch.
    """
    try:
        envelopes = decode_batch(await request.body())
        for envelope in envelopes:
            verify(envelope, hash_key)
        metrics = [envelope.to_metric() for envelope in envelopes]
    except (MetricValidationError, MetricIntegrityError) as e:
        raise HTTPException(status_code=400, detail=e.message)

    gauges = [m for m in metrics if isinstance(m, Gauge)]
    counters = [m for m in metrics if isinstance(m, Counter)]
    try:
        await repository.write_bulk_gauges(gauges)
        await repository.write_bulk_counters(counters)
    except MetricValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except RepositoryError as e:
        logger.error(f"Bulk write to db failed: {e.message}")
        raise HTTPException(status_code=500, detail="internal error")
    return Response(status_code=200)


@router.post("/update/counter/{name}/{value}")
async def update_counter(
    name: str,
    value: str,
    repository: Repository = Depends(get_repository),
):
    """Increment a counter by an integer path value."""
    if not _INTEGER.fullmatch(value):
        raise HTTPException(status_code=400, detail="value is not integer")
    delta = int(value)
    await _save(repository, Counter(name=name, value=delta))
    return Response(status_code=200)


@router.post("/update/gauge/{name}/{value}")
async def update_gauge(
    name: str,
    value: str,
    repository: Repository = Depends(get_repository),
):
    """Set a gauge to a float path value."""
    # float() also takes digit separators and padding
    if "_" in value or value != value.strip():
        raise HTTPException(status_code=400, detail="value is not float")
    try:
        number = float(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="value is not float")
    if not math.isfinite(number):
        raise HTTPException(status_code=400, detail="float must be a number")
    await _save(repository, Gauge(name=name, value=number))
    return Response(status_code=200)


@router.post("/update/{metric_type}/{name}/{value}")
async def update_unknown(metric_type: str, name: str, value: str):
    """Any other metric type is not implemented."""
    raise HTTPException(status_code=501, detail="not implemented")


async def _save(repository: Repository, metric: Counter | Gauge) -> None:
    try:
        if isinstance(metric, Counter):
            await repository.store_counter(metric)
        else:
            await repository.store_gauge(metric)
    except MetricValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except RepositoryError:
        raise HTTPException(status_code=500, detail="internal error")
