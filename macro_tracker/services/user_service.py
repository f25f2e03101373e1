# macro_tracker/services/user_service.py
"""
Per-user settings and daily stats.

- `user_settings` has one row per user; reads fall back to defaults.
- `daily_stats` has one row per (user, date) and carries weight, exercise
  calories and the weekly goal.
Both are written with upserts so repeated saves never duplicate rows.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from macro_tracker.services.goal_calculator import DEFAULT_WEEKLY_GOAL, resolve_settings
from macro_tracker.services.supabase_service import SupabaseService, first_row, make_result, rows_of
from macro_tracker.utils.dates import now_iso

logger = logging.getLogger(__name__)

# How far back to look for the last logged weight
WEIGHT_LOOKBACK_ROWS = 60


class UserService(SupabaseService):

    async def get_settings(self, user_id: str) -> Dict[str, Any]:
        """Settings row merged over the defaults. diagnostics["defaults"] is True if no row exists."""

        def _fn(uid):
            return (
                self._table("user_settings")
                .select("*")
                .eq("user_id", uid)
                .maybe_single()
                .execute()
            )

        res = await self._call_db(_fn, user_id)
        if not res["ok"]:
            return res
        row = first_row(res["data"])
        return make_result(True, data=resolve_settings(row), diagnostics={"defaults": row is None})

    async def save_settings(self, user_id: str, settings: Dict[str, Any]) -> Dict[str, Any]:
        payload = {**settings, "user_id": user_id, "updated_at": now_iso()}

        def _fn(data):
            return self._table("user_settings").upsert(data, on_conflict="user_id").execute()

        res = await self._call_db(_fn, payload)
        if not res["ok"]:
            return res
        logger.info("Saved settings for user=%s", user_id)
        return make_result(True, data=first_row(res["data"]))

    async def get_daily_stats(self, user_id: str, date: str) -> Dict[str, Any]:
        """Stats row for `date`, or data None when nothing was logged."""

        def _fn(uid, d):
            return (
                self._table("daily_stats")
                .select("*")
                .eq("user_id", uid)
                .eq("date", d)
                .maybe_single()
                .execute()
            )

        res = await self._call_db(_fn, user_id, date)
        if not res["ok"]:
            return res
        return make_result(True, data=first_row(res["data"]))

    async def save_daily_stats(self, user_id: str, stats: Dict[str, Any]) -> Dict[str, Any]:
        payload = {
            "weekly_goal": DEFAULT_WEEKLY_GOAL,
            **stats,
            "user_id": user_id,
            "updated_at": now_iso(),
        }

        def _fn(data):
            return self._table("daily_stats").upsert(data, on_conflict="user_id,date").execute()

        res = await self._call_db(_fn, payload)
        if not res["ok"]:
            return res
        return make_result(True, data=first_row(res["data"]))

    async def list_daily_stats(self, user_id: str, start: str, end: str) -> Dict[str, Any]:
        def _fn(uid, s, e):
            return (
                self._table("daily_stats")
                .select("*")
                .eq("user_id", uid)
                .gte("date", s)
                .lte("date", e)
                .order("date")
                .execute()
            )

        res = await self._call_db(_fn, user_id, start, end)
        return make_result(True, data=rows_of(res["data"])) if res["ok"] else res

    async def latest_weight(self, user_id: str) -> Dict[str, Any]:
        """Most recently logged weight, or data None."""

        def _fn(uid):
            return (
                self._table("daily_stats")
                .select("date, weight")
                .eq("user_id", uid)
                .order("date", desc=True)
                .limit(WEIGHT_LOOKBACK_ROWS)
                .execute()
            )

        res = await self._call_db(_fn, user_id)
        if not res["ok"]:
            return res
        weight: Optional[float] = next(
            (float(r["weight"]) for r in rows_of(res["data"]) if r.get("weight") is not None),
            None,
        )
        return make_result(True, data=weight)
