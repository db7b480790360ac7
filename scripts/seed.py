"""Seed a Cue League database.

Usage:
    python scripts/seed.py admin          # Create the admin user (ADMIN_EMAIL)
    python scripts/seed.py demo           # Admin + demo season, teams, venues, schedule
    python scripts/seed.py status         # Print the active season's standings
    python scripts/seed.py token EMAIL    # Print a bearer token for a user

Uses DATABASE_URL (default sqlite+aiosqlite:///cueleague.db).
"""

from __future__ import annotations

import asyncio
import sys
from datetime import date, timedelta

from cueleague.auth.deps import issue_token
from cueleague.config import Settings
from cueleague.core.season import activate_season, generate_schedule
from cueleague.core.standings import win_percentage
from cueleague.core.teams import add_member, create_team
from cueleague.db.engine import create_engine, get_session, init_schema
from cueleague.db.repository import Repository
from cueleague.models.constants import Role
from cueleague.models.streak import Streak

TEAMS = [
    {
        "name": "Corner Pocket Crew",
        "players": [("Sam", "Rack", 6), ("Lena", "Bank", 5), ("Ozzie", "Kiss", 4)],
    },
    {
        "name": "Break & Run",
        "players": [("Nina", "Draw", 7), ("Hal", "Follow", 3), ("Rita", "Jump", 5)],
    },
    {
        "name": "Side Spin",
        "players": [("Gus", "English", 4), ("Mae", "Masse", 6), ("Theo", "Combo", 2)],
    },
    {
        "name": "Eight Ball Express",
        "players": [("Vic", "Safety", 5), ("June", "Scratch", 3), ("Ike", "Carom", 6)],
    },
    {
        "name": "Chalk Dust",
        "players": [("Pia", "Rail", 4), ("Lou", "Cushion", 5), ("Dot", "Spot", 3)],
    },
]

VENUES = [
    {"name": "The Rack Room", "address": "12 Felt St", "city": "Springfield"},
    {"name": "Blue Chalk Billiards", "address": "400 Cue Ave", "city": "Springfield"},
]


async def _ensure_admin(repo: Repository, settings: Settings):
    admin = await repo.get_user_by_email(settings.admin_email)
    if admin is None:
        admin = await repo.create_user(
            email=settings.admin_email,
            first_name="League",
            last_name="Admin",
            role=Role.ADMIN.value,
        )
        print(f"Admin user created: {admin.email}")
    else:
        print(f"Admin user already exists: {admin.email}")
    return admin


async def seed_admin(settings: Settings) -> None:
    engine = create_engine(settings.database_url)
    await init_schema(engine)
    async with get_session(engine) as session:
        admin = await _ensure_admin(Repository(session), settings)
        print(f"Token: {issue_token(settings, admin.id, admin.role)}")
    await engine.dispose()


async def seed_demo(settings: Settings) -> None:
    """Create the admin plus an active demo season with a full schedule."""
    engine = create_engine(settings.database_url)
    await init_schema(engine)

    async with get_session(engine) as session:
        repo = Repository(session)
        admin = await _ensure_admin(repo, settings)
        if await repo.get_user_by_email("sam.rack@example.com") is not None:
            print("Demo data already present. Use 'status' to view it.")
            return

        today = date.today()
        start = today - timedelta(days=today.weekday())
        season = await repo.create_season(
            f"Demo Season {today.year}",
            start_date=start,
            end_date=start + timedelta(weeks=12),
            playoff_date=start + timedelta(weeks=13),
        )
        await activate_season(repo, season.id)

        venue_ids = []
        for v in VENUES:
            venue = await repo.create_venue(**v)
            venue_ids.append(venue.id)

        team_ids = []
        for t in TEAMS:
            players = []
            for first, last, handicap in t["players"]:
                email = f"{first}.{last}@example.com".lower()
                player = await repo.create_user(email, first, last, handicap=handicap)
                players.append(player)
            team = await create_team(repo, season.id, t["name"], captain_id=players[0].id)
            for player in players:
                await add_member(repo, team, player.id)
            team_ids.append(team.id)

        summary = await generate_schedule(
            repo,
            season.id,
            start_date=start,
            match_time=settings.default_match_time,
            team_ids=team_ids,
            venue_ids=venue_ids,
            rotate_venues=True,
        )

        print(
            f"Season seeded: {len(TEAMS)} teams, {summary.weeks_generated} weeks, "
            f"{summary.matches_created} matches"
        )
        print(f"Season ID: {season.id}")
        for i, tid in enumerate(team_ids):
            print(f"  {TEAMS[i]['name']}: {tid}")
        print(f"Admin token: {issue_token(settings, admin.id, admin.role)}")

    await engine.dispose()


async def status(settings: Settings) -> None:
    """Print the active season's table."""
    engine = create_engine(settings.database_url)
    async with get_session(engine) as session:
        repo = Repository(session)
        season = await repo.get_active_season()
        if season is None:
            print("No active season. Run 'demo' first.")
            return

        standings = await repo.get_standings_for_season(season.id)
        played = await repo.count_matches(season.id, status="COMPLETED")
        print(f"Season: {season.name} | Matches played: {played}")
        print(f"{'#':>2} {'Team':<25} {'W':>3} {'L':>3} {'PCT':>6} {'STRK':>5}")
        for s in standings:
            streak = Streak.from_columns(s.streak_direction, s.streak_length)
            print(
                f"{s.rank or '-':>2} {s.team.name:<25} {s.wins:>3} {s.losses:>3} "
                f"{win_percentage(s.wins, s.losses):>6} {str(streak):>5}"
            )

    await engine.dispose()


async def token(settings: Settings, email: str) -> None:
    engine = create_engine(settings.database_url)
    async with get_session(engine) as session:
        user = await Repository(session).get_user_by_email(email)
        if user is None:
            print(f"No user with email {email}")
        else:
            print(issue_token(settings, user.id, user.role))
    await engine.dispose()


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        return

    settings = Settings()
    cmd = sys.argv[1]
    if cmd == "admin":
        asyncio.run(seed_admin(settings))
    elif cmd == "demo":
        asyncio.run(seed_demo(settings))
    elif cmd == "status":
        asyncio.run(status(settings))
    elif cmd == "token":
        if len(sys.argv) < 3:
            print("Usage: seed.py token EMAIL")
            return
        asyncio.run(token(settings, sys.argv[2]))
    else:
        print(f"Unknown command: {cmd}")
        print(__doc__)


if __name__ == "__main__":
    main()
