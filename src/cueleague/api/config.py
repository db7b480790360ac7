"""Public league configuration for clients."""

from __future__ import annotations

from fastapi import APIRouter

from cueleague.api.deps import SettingsDep

router = APIRouter(prefix="/api/config", tags=["config"])


@router.get("")
async def get_config(settings: SettingsDep) -> dict:
    """League branding. No authentication required."""
    return {
        "data": {
            "league": {
                "name": settings.league_name,
                "short_name": settings.league_short_name,
                "description": settings.league_description,
                "contact_email": settings.league_contact_email,
                "contact_phone": settings.league_contact_phone,
                "location": settings.league_location,
                "website": settings.league_website,
                "rules_url": settings.league_rules_url,
            },
            "default_match_time": settings.default_match_time,
        },
    }
