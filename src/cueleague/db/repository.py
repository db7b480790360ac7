"""Repository pattern for database access.

Wraps SQLAlchemy async sessions. The repository only flushes; the session
owner (``get_session`` or the request dependency) commits once per unit of
work, so multi-row updates such as a score plus the season re-rank land
atomically.

Relationships are never lazy-loaded under asyncio, so every query whose rows
are serialized with related names uses ``selectinload``.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cueleague.core.scheduler import ScheduledMatch
from cueleague.db.models import (
    AnnouncementRow,
    AuditLogRow,
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
from cueleague.models.constants import MatchStatus


def _match_options() -> tuple:
    return (
        selectinload(MatchRow.home_team),
        selectinload(MatchRow.away_team),
        selectinload(MatchRow.venue),
    )


class Repository:
    """Async repository for all database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # --- Users ---

    async def create_user(
        self,
        email: str,
        first_name: str,
        last_name: str,
        role: str = "PLAYER",
        phone: str | None = None,
        handicap: int | None = None,
    ) -> UserRow:
        row = UserRow(
            email=email.lower(),
            first_name=first_name,
            last_name=last_name,
            role=role,
            phone=phone,
            handicap=handicap,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_user(self, user_id: str) -> UserRow | None:
        return await self.session.get(UserRow, user_id)

    async def get_user_by_email(self, email: str) -> UserRow | None:
        stmt = select(UserRow).where(UserRow.email == email.lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_users(self, active_only: bool = False) -> list[UserRow]:
        stmt = select(UserRow).order_by(UserRow.last_name, UserRow.first_name)
        if active_only:
            stmt = stmt.where(UserRow.is_active.is_(True))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_users(self, active_only: bool = False) -> int:
        stmt = select(func.count()).select_from(UserRow)
        if active_only:
            stmt = stmt.where(UserRow.is_active.is_(True))
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def get_team_members(self, team_id: str) -> list[UserRow]:
        stmt = (
            select(UserRow)
            .where(UserRow.team_id == team_id)
            .order_by(UserRow.last_name, UserRow.first_name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def detach_team_members(self, team_ids: Iterable[str]) -> None:
        """Clear ``team_id`` on every user who belongs to one of *team_ids*."""
        ids = list(team_ids)
        if not ids:
            return
        await self.session.execute(
            update(UserRow).where(UserRow.team_id.in_(ids)).values(team_id=None)
        )

    async def delete_user(self, user: UserRow) -> None:
        """Delete a user with their season stats. Teams they captain keep going without them."""
        await self.session.execute(
            update(TeamRow).where(TeamRow.captain_id == user.id).values(captain_id=None)
        )
        await self.session.execute(
            update(TeamRow).where(TeamRow.co_captain_id == user.id).values(co_captain_id=None)
        )
        await self.session.execute(
            delete(PlayerStatsRow).where(PlayerStatsRow.player_id == user.id)
        )
        await self.session.delete(user)
        await self.session.flush()

    # --- Seasons ---

    async def create_season(
        self,
        name: str,
        start_date: date,
        end_date: date,
        playoff_date: date | None = None,
    ) -> SeasonRow:
        row = SeasonRow(
            name=name,
            start_date=start_date,
            end_date=end_date,
            playoff_date=playoff_date,
            is_active=False,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_season(self, season_id: str) -> SeasonRow | None:
        return await self.session.get(SeasonRow, season_id)

    async def get_all_seasons(self, active_only: bool = False) -> list[SeasonRow]:
        """Return seasons, most recent start date first."""
        stmt = select(SeasonRow).order_by(SeasonRow.start_date.desc())
        if active_only:
            stmt = stmt.where(SeasonRow.is_active.is_(True))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_active_season(self) -> SeasonRow | None:
        stmt = select(SeasonRow).where(SeasonRow.is_active.is_(True)).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def deactivate_all_seasons(self) -> None:
        await self.session.execute(
            update(SeasonRow).where(SeasonRow.is_active.is_(True)).values(is_active=False)
        )

    async def delete_season(self, season: SeasonRow) -> None:
        """Delete a season; teams, matches, standings and stats cascade."""
        await self.session.delete(season)
        await self.session.flush()

    # --- Teams ---

    async def create_team(
        self,
        season_id: str,
        name: str,
        captain_id: str | None = None,
        co_captain_id: str | None = None,
        logo: str | None = None,
    ) -> TeamRow:
        row = TeamRow(
            season_id=season_id,
            name=name,
            captain_id=captain_id,
            co_captain_id=co_captain_id,
            logo=logo,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_team(self, team_id: str) -> TeamRow | None:
        stmt = (
            select(TeamRow)
            .where(TeamRow.id == team_id)
            .options(selectinload(TeamRow.members), selectinload(TeamRow.standing))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_teams_for_season(self, season_id: str) -> list[TeamRow]:
        stmt = (
            select(TeamRow)
            .where(TeamRow.season_id == season_id)
            .options(selectinload(TeamRow.members), selectinload(TeamRow.standing))
            .order_by(TeamRow.name)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_all_teams(self) -> list[TeamRow]:
        stmt = (
            select(TeamRow)
            .options(selectinload(TeamRow.members), selectinload(TeamRow.standing))
            .order_by(TeamRow.name)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_team_by_name(self, name: str, season_id: str | None = None) -> TeamRow | None:
        """Case-insensitive name lookup, newest team first."""
        stmt = select(TeamRow).where(func.lower(TeamRow.name) == name.strip().lower())
        if season_id:
            stmt = stmt.where(TeamRow.season_id == season_id)
        stmt = stmt.order_by(TeamRow.created_at.desc()).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_team_ids_for_season(self, season_id: str) -> list[str]:
        stmt = select(TeamRow.id).where(TeamRow.season_id == season_id).order_by(TeamRow.name)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_teams(self, season_id: str) -> int:
        stmt = select(func.count()).select_from(TeamRow).where(TeamRow.season_id == season_id)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def delete_team(self, team: TeamRow) -> None:
        await self.detach_team_members([team.id])
        await self.session.delete(team)
        await self.session.flush()

    # --- Venues ---

    async def create_venue(
        self,
        name: str,
        address: str | None = None,
        city: str | None = None,
        phone: str | None = None,
    ) -> VenueRow:
        row = VenueRow(name=name, address=address, city=city, phone=phone)
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_venue(self, venue_id: str) -> VenueRow | None:
        return await self.session.get(VenueRow, venue_id)

    async def get_venues(self, active_only: bool = False) -> list[VenueRow]:
        stmt = select(VenueRow).order_by(VenueRow.name)
        if active_only:
            stmt = stmt.where(VenueRow.is_active.is_(True))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_venue(self, venue: VenueRow) -> None:
        await self.session.execute(
            update(MatchRow).where(MatchRow.venue_id == venue.id).values(venue_id=None)
        )
        await self.session.delete(venue)
        await self.session.flush()

    # --- Matches ---

    async def create_match(
        self,
        season_id: str,
        home_team_id: str,
        away_team_id: str,
        match_date: date,
        week: int,
        time: str = "7:00 PM",
        venue_id: str | None = None,
    ) -> MatchRow:
        row = MatchRow(
            season_id=season_id,
            home_team_id=home_team_id,
            away_team_id=away_team_id,
            match_date=match_date,
            week=week,
            time=time,
            venue_id=venue_id,
            status=MatchStatus.SCHEDULED.value,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def create_scheduled_matches(
        self, season_id: str, fixtures: list[ScheduledMatch]
    ) -> list[MatchRow]:
        """Bulk-insert generated fixtures as SCHEDULED matches."""
        rows = [
            MatchRow(
                season_id=season_id,
                home_team_id=f.home_team_id,
                away_team_id=f.away_team_id,
                match_date=f.match_date,
                week=f.week,
                time=f.time,
                venue_id=f.venue_id,
                status=MatchStatus.SCHEDULED.value,
            )
            for f in fixtures
        ]
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def get_match(self, match_id: str) -> MatchRow | None:
        """Get a match with teams, venue and individual game results loaded."""
        stmt = (
            select(MatchRow)
            .where(MatchRow.id == match_id)
            .options(
                *_match_options(),
                selectinload(MatchRow.results).selectinload(MatchResultRow.player),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_matches(
        self,
        season_id: str | None = None,
        team_id: str | None = None,
        status: str | None = None,
        week: int | None = None,
        upcoming_from: date | None = None,
        limit: int = 50,
    ) -> list[MatchRow]:
        """List matches by date then time, with optional filters.

        ``upcoming_from`` keeps only scheduled or in-progress matches on or
        after that date.
        """
        stmt = select(MatchRow).options(*_match_options())
        if season_id:
            stmt = stmt.where(MatchRow.season_id == season_id)
        if status:
            stmt = stmt.where(MatchRow.status == status)
        if week is not None:
            stmt = stmt.where(MatchRow.week == week)
        if team_id:
            stmt = stmt.where(
                or_(MatchRow.home_team_id == team_id, MatchRow.away_team_id == team_id)
            )
        if upcoming_from is not None:
            stmt = stmt.where(
                MatchRow.match_date >= upcoming_from,
                MatchRow.status.in_(
                    [MatchStatus.SCHEDULED.value, MatchStatus.IN_PROGRESS.value]
                ),
            )
        stmt = stmt.order_by(MatchRow.match_date, MatchRow.time, MatchRow.week).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_completed_matches(self, season_id: str) -> list[MatchRow]:
        """Scored, completed matches of a season in the order they were played."""
        stmt = (
            select(MatchRow)
            .where(
                MatchRow.season_id == season_id,
                MatchRow.status == MatchStatus.COMPLETED.value,
                MatchRow.home_score.is_not(None),
                MatchRow.away_score.is_not(None),
            )
            .order_by(MatchRow.match_date, MatchRow.week, MatchRow.created_at, MatchRow.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_head_to_head_matches(
        self, team_a_id: str, team_b_id: str, season_id: str | None = None
    ) -> list[MatchRow]:
        """Completed matches between two teams, most recent first."""
        stmt = (
            select(MatchRow)
            .where(
                or_(
                    (MatchRow.home_team_id == team_a_id) & (MatchRow.away_team_id == team_b_id),
                    (MatchRow.home_team_id == team_b_id) & (MatchRow.away_team_id == team_a_id),
                ),
                MatchRow.status == MatchStatus.COMPLETED.value,
                MatchRow.home_score.is_not(None),
                MatchRow.away_score.is_not(None),
            )
            .options(*_match_options())
            .order_by(MatchRow.match_date.desc())
        )
        if season_id:
            stmt = stmt.where(MatchRow.season_id == season_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_matches(
        self,
        season_id: str,
        status: str | None = None,
        from_date: date | None = None,
    ) -> int:
        stmt = select(func.count()).select_from(MatchRow).where(MatchRow.season_id == season_id)
        if status:
            stmt = stmt.where(MatchRow.status == status)
        if from_date is not None:
            stmt = stmt.where(MatchRow.match_date >= from_date)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def delete_match(self, match: MatchRow) -> None:
        await self.session.delete(match)
        await self.session.flush()

    async def delete_matches_for_season(self, season_id: str) -> int:
        """Delete every match of a season. Game results cascade. Returns the count."""
        result = await self.session.execute(
            delete(MatchRow)
            .where(MatchRow.season_id == season_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    # --- Individual game results ---

    async def get_match_result(
        self, match_id: str, player_id: str, game_number: int
    ) -> MatchResultRow | None:
        stmt = select(MatchResultRow).where(
            MatchResultRow.match_id == match_id,
            MatchResultRow.player_id == player_id,
            MatchResultRow.game_number == game_number,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_match_result(
        self,
        match_id: str,
        player_id: str,
        game_number: int,
        won: bool,
        is_runout: bool = False,
    ) -> MatchResultRow:
        row = MatchResultRow(
            match_id=match_id,
            player_id=player_id,
            game_number=game_number,
            won=won,
            is_runout=is_runout,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    # --- Standings ---

    async def get_standing_for_team(self, team_id: str) -> StandingRow | None:
        stmt = (
            select(StandingRow)
            .where(StandingRow.team_id == team_id)
            .options(selectinload(StandingRow.team))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_standing(
        self,
        team_id: str,
        season_id: str,
        wins: int = 0,
        losses: int = 0,
        streak_direction: str | None = None,
        streak_length: int = 0,
    ) -> StandingRow:
        row = StandingRow(
            team_id=team_id,
            season_id=season_id,
            wins=wins,
            losses=losses,
            streak_direction=streak_direction,
            streak_length=streak_length,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_standings_for_season(self, season_id: str) -> list[StandingRow]:
        """Standings in table order (rank, then wins desc, losses asc).

        Unranked rows sort last.
        """
        stmt = (
            select(StandingRow)
            .where(StandingRow.season_id == season_id)
            .options(selectinload(StandingRow.team))
            .order_by(
                StandingRow.rank.is_(None),
                StandingRow.rank,
                StandingRow.wins.desc(),
                StandingRow.losses,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # --- Player stats ---

    async def get_player_stats(self, player_id: str, season_id: str) -> PlayerStatsRow | None:
        stmt = select(PlayerStatsRow).where(
            PlayerStatsRow.player_id == player_id,
            PlayerStatsRow.season_id == season_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_player_stats(self, player_id: str, season_id: str) -> PlayerStatsRow:
        row = PlayerStatsRow(player_id=player_id, season_id=season_id, wins=0, losses=0, runouts=0)
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_or_create_player_stats(self, player_id: str, season_id: str) -> PlayerStatsRow:
        existing = await self.get_player_stats(player_id, season_id)
        if existing is not None:
            return existing
        return await self.create_player_stats(player_id, season_id)

    async def get_player_rankings(self, season_id: str, limit: int = 50) -> list[PlayerStatsRow]:
        """Player stats ordered by wins, then run-outs."""
        stmt = (
            select(PlayerStatsRow)
            .where(PlayerStatsRow.season_id == season_id)
            .options(selectinload(PlayerStatsRow.player))
            .order_by(PlayerStatsRow.wins.desc(), PlayerStatsRow.runouts.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_player_stats(self, season_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(PlayerStatsRow)
            .where(PlayerStatsRow.season_id == season_id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    # --- Audit log ---

    async def add_audit_log(
        self,
        user_id: str | None,
        action: str,
        entity: str,
        entity_id: str | None = None,
        details: dict | None = None,
        ip_address: str | None = None,
    ) -> AuditLogRow:
        row = AuditLogRow(
            user_id=user_id,
            action=action,
            entity=entity,
            entity_id=entity_id,
            details=details,
            ip_address=ip_address,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_audit_logs(
        self,
        page: int = 1,
        limit: int = 50,
        user_id: str | None = None,
        action: str | None = None,
        entity: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> tuple[list[AuditLogRow], int]:
        """Return one page of audit entries (newest first) and the total count."""
        filters = []
        if user_id:
            filters.append(AuditLogRow.user_id == user_id)
        if action:
            filters.append(AuditLogRow.action.ilike(f"%{action}%"))
        if entity:
            filters.append(AuditLogRow.entity == entity)
        if start is not None:
            filters.append(AuditLogRow.created_at >= start)
        if end is not None:
            filters.append(AuditLogRow.created_at <= end)

        stmt = (
            select(AuditLogRow)
            .where(*filters)
            .options(selectinload(AuditLogRow.user))
            .order_by(AuditLogRow.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(AuditLogRow).where(*filters)

        result = await self.session.execute(stmt)
        total = (await self.session.execute(count_stmt)).scalar_one()
        return list(result.scalars().all()), total

    # --- Announcements ---

    async def create_announcement(
        self,
        title: str,
        content: str,
        is_urgent: bool = False,
        creator_id: str | None = None,
    ) -> AnnouncementRow:
        row = AnnouncementRow(
            title=title, content=content, is_urgent=is_urgent, creator_id=creator_id
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_announcement(self, announcement_id: str) -> AnnouncementRow | None:
        stmt = (
            select(AnnouncementRow)
            .where(AnnouncementRow.id == announcement_id)
            .options(selectinload(AnnouncementRow.creator))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_announcements(
        self, active_only: bool = True, page: int = 1, limit: int = 20
    ) -> tuple[list[AnnouncementRow], int]:
        """One page of announcements, urgent first then newest, plus the total."""
        filters = [AnnouncementRow.is_active.is_(True)] if active_only else []
        stmt = (
            select(AnnouncementRow)
            .where(*filters)
            .options(selectinload(AnnouncementRow.creator))
            .order_by(AnnouncementRow.is_urgent.desc(), AnnouncementRow.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(AnnouncementRow).where(*filters)
        result = await self.session.execute(stmt)
        total = (await self.session.execute(count_stmt)).scalar_one()
        return list(result.scalars().all()), total

    async def delete_announcement(self, announcement: AnnouncementRow) -> None:
        await self.session.delete(announcement)
        await self.session.flush()

    # --- Export ---

    async def all_rows(self, model: type[Base]) -> list:
        """Every row of one table, oldest first where the table tracks creation."""
        stmt = select(model)
        created = getattr(model, "created_at", None)
        if created is not None:
            stmt = stmt.order_by(created)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
