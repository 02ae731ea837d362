from __future__ import annotations

import json
import os
import logging

import redis

from .schema import EventEnvelope
from .metrics import get_events_total, get_events_dlq_total


log = logging.getLogger("custodian.events")


def _stream_events() -> str:
    return os.getenv("EVENTS_STREAM", "custodian.events")


def _stream_dlq() -> str:
    return os.getenv("EVENTS_DLQ", "custodian.dlq")


def _get_redis():
    return redis.Redis.from_url(os.getenv("REDIS_URL", "redis://localhost:6379/0"), decode_responses=True)


def to_line(env: EventEnvelope) -> str:
    return json.dumps({
        "schema_version": env.schema_version,
        "correlation_id": env.correlation_id,
        "sequence": env.sequence,
        "event": env.event.model_dump(),
    }, separators=(",", ":"))


def publish(env: EventEnvelope) -> None:
    """Publish a ledger event to Redis Streams and log a single-line JSON.

    Best-effort: an unreachable Redis never affects the ledger operation that
    produced the event. Failed stream writes go to the DLQ stream.
    """
    event_type = env.event.event_type
    get_events_total().labels(event_type).inc()

    line = to_line(env)
    try:
        r = _get_redis()
        r.xadd(_stream_events(), {"json": line})
    except Exception:
        try:
            get_events_dlq_total().labels(event_type).inc()
            r = _get_redis()
            r.xadd(_stream_dlq(), {"json": line})
        except Exception:
            pass
    # Always log for Loki ingestion
    log.info(line)


def ensure_group(group: str) -> None:
    try:
        r = _get_redis()
        r.xgroup_create(name=_stream_events(), groupname=group, id="$", mkstream=True)
    except Exception as e:
        if "BUSYGROUP" in str(e):
            return


def consume(group: str, consumer: str, block_ms: int = 15000):
    """Generator yielding (id, json_str) from the events consumer group.

    Yields None when a read times out. Caller is responsible for XACK.
    """
    r = _get_redis()
    ensure_group(group)
    while True:
        resp = r.xreadgroup(group, consumer, {_stream_events(): ">"}, count=100, block=block_ms)
        if not resp:
            yield None
            continue
        # resp is list[(stream, [(id, {field:value}), ...])]
        for _stream, entries in resp:
            for msg_id, fields in entries:
                yield (msg_id, fields.get("json", ""))
