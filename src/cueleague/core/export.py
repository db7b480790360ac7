"""Full league export as plain JSON-ready data."""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime

from sqlalchemy import inspect

from cueleague.db.models import (
    AnnouncementRow,
    Base,
    MatchResultRow,
    MatchRow,
    PlayerStatsRow,
    SeasonRow,
    StandingRow,
    TeamRow,
    UserRow,
    VenueRow,
)
from cueleague.db.repository import Repository

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"

# Section name -> table, in an order that satisfies foreign keys on reload.
EXPORT_TABLES: dict[str, type[Base]] = {
    "users": UserRow,
    "seasons": SeasonRow,
    "teams": TeamRow,
    "venues": VenueRow,
    "matches": MatchRow,
    "match_results": MatchResultRow,
    "standings": StandingRow,
    "player_stats": PlayerStatsRow,
    "announcements": AnnouncementRow,
}


def row_to_dict(row: Base) -> dict:
    """Column attributes of *row*, with dates as ISO strings."""
    out = {}
    for attr in inspect(type(row)).column_attrs:
        value = getattr(row, attr.key)
        if isinstance(value, (date, datetime)):
            value = value.isoformat()
        out[attr.key] = value
    return out


async def export_league(repo: Repository) -> dict:
    """Snapshot every league table. The audit log is not included."""
    data = {}
    for section, model in EXPORT_TABLES.items():
        data[section] = [row_to_dict(row) for row in await repo.all_rows(model)]
    logger.info(
        "league_exported %s",
        " ".join(f"{name}={len(rows)}" for name, rows in data.items()),
    )
    return {
        "export_date": datetime.now(UTC).isoformat(),
        "version": EXPORT_VERSION,
        "data": data,
    }
