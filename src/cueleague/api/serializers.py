"""JSON shapes shared by several routers."""

from __future__ import annotations

from cueleague.core.standings import win_percentage
from cueleague.db.models import (
    AnnouncementRow,
    MatchResultRow,
    MatchRow,
    StandingRow,
    TeamRow,
    UserRow,
    VenueRow,
)
from cueleague.models.streak import Streak


def user_dict(user: UserRow) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "full_name": user.full_name,
        "phone": user.phone,
        "handicap": user.handicap,
        "role": user.role,
        "is_active": user.is_active,
        "team_id": user.team_id,
    }


def team_ref(team: TeamRow | None) -> dict | None:
    if team is None:
        return None
    return {"id": team.id, "name": team.name}


def venue_dict(venue: VenueRow | None) -> dict | None:
    if venue is None:
        return None
    return {
        "id": venue.id,
        "name": venue.name,
        "address": venue.address,
        "city": venue.city,
        "phone": venue.phone,
        "is_active": venue.is_active,
    }


def streak_text(standing: StandingRow) -> str:
    return str(Streak.from_columns(standing.streak_direction, standing.streak_length))


def standing_dict(standing: StandingRow) -> dict:
    return {
        "rank": standing.rank,
        "team_id": standing.team_id,
        "team_name": standing.team.name,
        "wins": standing.wins,
        "losses": standing.losses,
        "total_games": standing.wins + standing.losses,
        "win_percentage": win_percentage(standing.wins, standing.losses),
        "streak": streak_text(standing),
    }


def game_result_dict(result: MatchResultRow) -> dict:
    return {
        "id": result.id,
        "player_id": result.player_id,
        "player_name": result.player.full_name if result.player else None,
        "game_number": result.game_number,
        "won": result.won,
        "is_runout": result.is_runout,
    }


def match_dict(match: MatchRow, include_results: bool = False) -> dict:
    """Serialize a match loaded with its teams and venue."""
    data = {
        "id": match.id,
        "season_id": match.season_id,
        "week": match.week,
        "date": match.match_date.isoformat(),
        "time": match.time,
        "status": match.status,
        "home_team": team_ref(match.home_team),
        "away_team": team_ref(match.away_team),
        "venue": venue_dict(match.venue),
        "home_score": match.home_score,
        "away_score": match.away_score,
        "winner_team_id": match.winner_team_id,
    }
    if include_results:
        data["results"] = [game_result_dict(r) for r in match.results]
    return data


def announcement_dict(announcement: AnnouncementRow) -> dict:
    creator = announcement.creator
    return {
        "id": announcement.id,
        "title": announcement.title,
        "content": announcement.content,
        "is_urgent": announcement.is_urgent,
        "is_active": announcement.is_active,
        "creator": (
            {"id": creator.id, "first_name": creator.first_name, "last_name": creator.last_name}
            if creator is not None
            else None
        ),
        "created_at": announcement.created_at.isoformat(),
        "updated_at": announcement.updated_at.isoformat(),
    }
