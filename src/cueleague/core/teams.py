"""Team membership rules.

A player belongs to at most one team per season. Captains are promoted to
the CAPTAIN role when they are assigned and cannot be removed from the
roster while they hold the captaincy.
"""

from __future__ import annotations

import logging

from cueleague.core.errors import ConflictError, NotFoundError, ValidationError
from cueleague.db.models import TeamRow, UserRow
from cueleague.db.repository import Repository
from cueleague.models.constants import OFFICIAL_ROLES, Role

logger = logging.getLogger(__name__)


async def _require_user(repo: Repository, user_id: str, label: str) -> UserRow:
    user = await repo.get_user(user_id)
    if user is None:
        raise NotFoundError.for_entity(label, user_id)
    return user


async def _promote_captain(repo: Repository, user_id: str | None) -> None:
    if user_id is None:
        return
    user = await _require_user(repo, user_id, "User")
    # Officials keep their wider role.
    if user.role not in OFFICIAL_ROLES:
        user.role = Role.CAPTAIN.value


async def create_team(
    repo: Repository,
    season_id: str,
    name: str,
    captain_id: str | None = None,
    co_captain_id: str | None = None,
    logo: str | None = None,
) -> TeamRow:
    """Create a team with a zeroed standing and promote its captains.

    Raises:
        NotFoundError: The season or a captain does not exist.
        ValidationError: Captain and co-captain are the same user.
    """
    if await repo.get_season(season_id) is None:
        raise NotFoundError.for_entity("Season", season_id)
    if captain_id is not None and captain_id == co_captain_id:
        raise ValidationError("Captain and co-captain must differ", field="co_captain_id")

    await _promote_captain(repo, captain_id)
    await _promote_captain(repo, co_captain_id)

    team = await repo.create_team(
        season_id=season_id,
        name=name,
        captain_id=captain_id,
        co_captain_id=co_captain_id,
        logo=logo,
    )
    await repo.create_standing(team_id=team.id, season_id=season_id)
    logger.info("team_created team=%s season=%s name=%s", team.id, season_id, name)
    return team


async def update_team(
    repo: Repository,
    team: TeamRow,
    *,
    name: str | None = None,
    logo: str | None = None,
    captain_id: str | None = None,
    co_captain_id: str | None = None,
) -> TeamRow:
    """Apply the supplied fields to *team*; ``None`` leaves a field unchanged."""
    new_captain = captain_id if captain_id is not None else team.captain_id
    new_co_captain = co_captain_id if co_captain_id is not None else team.co_captain_id
    if new_captain is not None and new_captain == new_co_captain:
        raise ValidationError("Captain and co-captain must differ", field="co_captain_id")

    if name is not None:
        team.name = name
    if logo is not None:
        team.logo = logo
    if captain_id is not None and captain_id != team.captain_id:
        await _promote_captain(repo, captain_id)
        team.captain_id = captain_id
    if co_captain_id is not None and co_captain_id != team.co_captain_id:
        await _promote_captain(repo, co_captain_id)
        team.co_captain_id = co_captain_id
    await repo.session.flush()
    return team


async def add_member(repo: Repository, team: TeamRow, player_id: str) -> UserRow:
    """Put a player on *team* and open their stats line for the season.

    Raises:
        NotFoundError: The player does not exist.
        ConflictError: The player is already on a team this season.
    """
    player = await _require_user(repo, player_id, "Player")
    if player.team_id == team.id:
        raise ConflictError("Player is already on this team")
    if player.team_id is not None:
        current = await repo.get_team(player.team_id)
        if current is not None and current.season_id == team.season_id:
            raise ConflictError("Player is already on a team this season")

    player.team_id = team.id
    await repo.get_or_create_player_stats(player.id, team.season_id)
    await repo.session.flush()
    logger.info("team_member_added team=%s player=%s", team.id, player.id)
    return player


async def remove_member(repo: Repository, team: TeamRow, player_id: str) -> UserRow:
    """Take a player off *team*. Captains must be replaced first.

    Season stats are kept.
    """
    player = await _require_user(repo, player_id, "Player")
    if player.team_id != team.id:
        raise NotFoundError(f"Player {player_id} is not a member of team {team.id}")
    if team.is_captained_by(player.id):
        raise ValidationError(
            "Cannot remove a captain or co-captain; assign a new captain first",
            field="player_id",
        )
    player.team_id = None
    await repo.session.flush()
    logger.info("team_member_removed team=%s player=%s", team.id, player.id)
    return player
