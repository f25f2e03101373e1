# macro_tracker/services/supabase_service.py
"""
Shared plumbing for services that read and write Supabase tables.

- Standardized return shape for every public method:
    {"ok": bool, "data": ..., "error": "...", "diagnostics": {...}}
  Routes map a failed result to a generic "Failed to <action>" response.
- All blocking supabase SDK calls go through asyncio.to_thread so the event
  loop is never blocked.
- Supabase responses (object with .data or dict with "data") are normalized.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


def parse_supabase_response(resp: Any) -> Dict[str, Any]:
    """
    Turn Supabase SDK responses (object with .data or dict) into a predictable dict.
    Returns {ok, data, status_code, raw}
    """
    if resp is None:
        # maybe_single() yields None when no row matched
        return {"ok": True, "data": None, "status_code": None, "raw": None}

    if hasattr(resp, "data"):
        return {
            "ok": True,
            "data": getattr(resp, "data"),
            "status_code": getattr(resp, "status_code", None),
            "raw": resp,
        }

    if isinstance(resp, dict):
        status_code = resp.get("status_code", resp.get("status", None))
        ok = not (isinstance(status_code, int) and status_code >= 400)
        return {"ok": ok, "data": resp.get("data"), "status_code": status_code, "raw": resp}

    return {"ok": False, "data": None, "status_code": None, "raw": str(resp)}


def make_result(
    ok: bool,
    data: Any = None,
    error: Optional[str] = None,
    diagnostics: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    res: Dict[str, Any] = {"ok": ok}
    if ok:
        res["data"] = data
    else:
        res["error"] = error or "unknown_error"
    res["diagnostics"] = diagnostics or {}
    return res


def rows_of(data: Any) -> List[Dict[str, Any]]:
    if not data:
        return []
    if isinstance(data, list):
        return data
    return [data]


def first_row(data: Any) -> Optional[Dict[str, Any]]:
    rows = rows_of(data)
    return rows[0] if rows else None


class SupabaseService:
    """Base class: holds the injected supabase client and runs queries off-loop."""

    def __init__(self, client: Any):
        self.client = client
        if self.client is None:
            logger.warning(
                "%s: Supabase client not available. DB operations will fail.",
                type(self).__name__,
            )

    async def _call_db(self, fn: Callable, *args, **kwargs) -> Dict[str, Any]:
        """
        Run blocking DB function in a thread and normalize response.
        `fn` should be a callable that invokes supabase SDK and returns its raw response.
        """
        if self.client is None:
            return make_result(False, error="no_supabase_client")
        name = getattr(fn, "__name__", str(fn))
        try:
            raw = await asyncio.to_thread(lambda: fn(*args, **kwargs))
        except Exception as exc:
            logger.exception("DB call %s raised exception: %s", name, exc)
            return make_result(False, error=str(exc), diagnostics={"fn": name})

        parsed = parse_supabase_response(raw)
        diagnostics = {"called": name, "raw_preview": str(parsed.get("raw"))[:500]}
        if not parsed["ok"]:
            return make_result(False, error="db_error", diagnostics=diagnostics)
        return make_result(True, data=parsed.get("data"), diagnostics=diagnostics)

    def _table(self, name: str):
        return self.client.table(name)
