"""Ledger event append and query - the persisted event stream."""

from __future__ import annotations

import json
import time
from typing import TYPE_CHECKING, Any

from bbforecast.models import LedgerEvent

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def prepare_event_row(event: LedgerEvent, emitted_at: int) -> tuple[str, int, str | None, int, str]:
    """Build a ledger_events row: (event_type, market_id, bettor, emitted_at, payload_json)."""
    payload = event.model_dump(mode="json")
    bettor = payload.get("bettor")
    return (event.event_type, event.market_id, bettor, emitted_at, json.dumps(payload))


def append_event(conn: DuckDBPyConnection, event: LedgerEvent, emitted_at: int | None = None) -> None:
    """Append one emitted event. emitted_at is unix seconds, like every ledger timestamp."""
    ts = emitted_at if emitted_at is not None else int(time.time())
    conn.execute(
        """
        INSERT INTO ledger_events (event_type, market_id, bettor, emitted_at, payload)
        VALUES (?, ?, ?, ?, ?)
        """,
        list(prepare_event_row(event, ts)),
    )


def list_events(
    conn: DuckDBPyConnection,
    market_id: int | None = None,
    event_type: str | None = None,
    limit: int = 1000,
) -> list[dict[str, Any]]:
    """Events in emission order, optionally filtered. Payload is decoded."""
    where = []
    params: list[Any] = []
    if market_id is not None:
        where.append("market_id = ?")
        params.append(market_id)
    if event_type is not None:
        where.append("event_type = ?")
        params.append(event_type)
    sql = "SELECT id, event_type, market_id, bettor, emitted_at, payload FROM ledger_events"
    if where:
        sql += " WHERE " + " AND ".join(where)
    sql += " ORDER BY id LIMIT ?"
    params.append(limit)
    rows = conn.execute(sql, params).fetchall()
    columns = ["id", "event_type", "market_id", "bettor", "emitted_at", "payload"]
    out = []
    for r in rows:
        item = dict(zip(columns, r))
        if isinstance(item["payload"], str):
            item["payload"] = json.loads(item["payload"])
        out.append(item)
    return out


def log_stats(conn: DuckDBPyConnection) -> dict[str, Any]:
    """Return event log statistics: total count, min/max emitted_at, counts by type and market."""
    total = conn.execute("SELECT COUNT(*) FROM ledger_events").fetchone()[0]
    range_row = conn.execute("SELECT MIN(emitted_at), MAX(emitted_at) FROM ledger_events").fetchone()
    by_type = conn.execute(
        "SELECT event_type, COUNT(*) FROM ledger_events GROUP BY event_type ORDER BY event_type"
    ).fetchall()
    by_market = conn.execute(
        "SELECT market_id, COUNT(*) AS cnt FROM ledger_events GROUP BY market_id ORDER BY cnt DESC, market_id LIMIT 20"
    ).fetchall()
    return {
        "total_events": total,
        "min_emitted_at": range_row[0],
        "max_emitted_at": range_row[1],
        "by_type": {r[0]: r[1] for r in by_type},
        "by_market": [{"market_id": r[0], "count": r[1]} for r in by_market],
    }


class DuckDBEventSink:
    """Ledger event sink that appends to ledger_events."""

    def __init__(self, conn: DuckDBPyConnection) -> None:
        self.conn = conn

    def __call__(self, event: LedgerEvent) -> None:
        append_event(self.conn, event)
