# macro_tracker/api/deps.py
"""
FastAPI dependencies: the service container, the authenticated user and
result unwrapping.

Services are built once in the application lifespan and stored on
`app.state.services`; routes receive them through `get_services`.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Header, Request

from macro_tracker.config.settings import Settings
from macro_tracker.errors import (
    AuthenticationRequiredError,
    InvalidRequestError,
    MacroTrackerError,
    NotFoundError,
)
from macro_tracker.services.ai_gateway import AIGatewayClient
from macro_tracker.services.analysis_service import AnalysisService
from macro_tracker.services.export_service import ExportService
from macro_tracker.services.food_database import FoodDatabaseService
from macro_tracker.services.library_service import LibraryService
from macro_tracker.services.meal_service import MealService
from macro_tracker.services.stats_service import StatsService
from macro_tracker.services.suggestion_service import SuggestionService
from macro_tracker.services.user_service import UserService
from macro_tracker.utils.dates import is_iso_date

logger = logging.getLogger(__name__)

INVALID_PREFIX = "invalid: "


@dataclass
class Services:
    settings: Settings
    library: LibraryService
    users: UserService
    meals: MealService
    stats: StatsService
    export: ExportService
    food_db: FoodDatabaseService
    analysis: AnalysisService
    suggestions: SuggestionService


def build_services(settings: Settings, client: Any, ai_client: Optional[Any] = None) -> Services:
    """Wire every service around one supabase client and one AI client."""
    tz = settings.app_timezone
    library = LibraryService(client)
    users = UserService(client)
    meals = MealService(client, library, users, timezone=tz)
    food_db = FoodDatabaseService(settings)
    ai = AIGatewayClient(settings, client=ai_client)
    return Services(
        settings=settings,
        library=library,
        users=users,
        meals=meals,
        stats=StatsService(client, users, timezone=tz),
        export=ExportService(meals, timezone=tz),
        food_db=food_db,
        analysis=AnalysisService(ai, food_db, library, blend_with_usda=settings.blend_ai_with_usda),
        suggestions=SuggestionService(ai, library, users),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


async def current_user(
    request: Request, authorization: Optional[str] = Header(default=None)
) -> str:
    """Resolve `Authorization: Bearer <token>` to a user id or raise a 401 with redirect info."""
    settings: Settings = request.app.state.services.settings
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()

    user_id = None
    if token:
        manager = request.app.state.session_manager
        user_id = await asyncio.to_thread(manager.authenticate, token)
    if not user_id:
        logger.info("Unauthenticated request to %s", request.url.path)
        raise AuthenticationRequiredError(
            redirect_to=settings.external_auth_url,
            redirect_after_seconds=settings.auth_redirect_delay_seconds,
        )
    return user_id


def unwrap(result: Dict[str, Any], action: str, missing: str = "Not found") -> Any:
    """
    Return result["data"] or raise the matching API error.

    "not_found" -> 404 `missing`; "invalid: <msg>" -> 400 <msg>;
    anything else -> 500 "Failed to <action>".
    """
    if result.get("ok"):
        return result.get("data")
    error = str(result.get("error") or "")
    if error == "not_found":
        raise NotFoundError(missing)
    if error.startswith(INVALID_PREFIX):
        raise InvalidRequestError(error[len(INVALID_PREFIX):])
    logger.error("Failed to %s: %s diagnostics=%s", action, error, result.get("diagnostics"))
    raise MacroTrackerError(f"Failed to {action}")


def checked_date(value: Optional[str], field: str = "date") -> Optional[str]:
    """Pass a YYYY-MM-DD path/query value through, or raise a 400."""
    if value is not None and not is_iso_date(value):
        raise InvalidRequestError(f"{field}: expected a calendar date as YYYY-MM-DD")
    return value
