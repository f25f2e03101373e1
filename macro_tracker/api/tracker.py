"""Settings, daily stats, dashboard, statistics, CSV export and barcode lookup."""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from macro_tracker.api.deps import Services, checked_date, current_user, get_services, unwrap
from macro_tracker.errors import NotFoundError
from macro_tracker.schemas import DailyStatsIn, UserSettingsIn
from macro_tracker.services.export_service import EXPORT_FILENAME

router = APIRouter()


@router.get("/settings")
async def get_settings(
    user_id: str = Depends(current_user), services: Services = Depends(get_services)
) -> Dict[str, Any]:
    return {"settings": unwrap(await services.users.get_settings(user_id), "fetch settings")}


@router.put("/settings")
async def save_settings(
    body: UserSettingsIn,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    row = unwrap(await services.users.save_settings(user_id, body.model_dump()), "save settings")
    return {"settings": row}


@router.get("/daily-stats/{date}")
async def get_daily_stats(
    date: str,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    return {"daily_stats": unwrap(await services.users.get_daily_stats(user_id, checked_date(date)), "fetch daily stats")}


@router.put("/daily-stats")
async def save_daily_stats(
    body: DailyStatsIn,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    row = unwrap(await services.users.save_daily_stats(user_id, body.model_dump()), "save daily stats")
    return {"daily_stats": row}


@router.get("/dashboard")
async def dashboard(
    date: Optional[str] = Query(default=None),
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    day = checked_date(date) or services.meals.today()
    return unwrap(await services.meals.dashboard(user_id, day), "load dashboard")


@router.get("/stats")
async def stats(
    period: str = Query(default="week"),
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    return unwrap(await services.stats.summary(user_id, period), "load stats")


@router.get("/export")
async def export_csv(
    range_key: str = Query(default="today", alias="range"),
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Response:
    csv_text = unwrap(
        await services.export.export_csv(user_id, range_key, start, end),
        "export data",
        missing="No data found for the selected range",
    )
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.get("/foods/barcode/{barcode}")
async def barcode_lookup(
    barcode: str,
    user_id: str = Depends(current_user),
    services: Services = Depends(get_services),
) -> Dict[str, Any]:
    food = await services.food_db.fetch_by_barcode(barcode)
    if food is None:
        raise NotFoundError("Product not found")
    return food
