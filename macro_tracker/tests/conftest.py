# macro_tracker/tests/conftest.py
import itertools
import uuid
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from unittest.mock import AsyncMock

from macro_tracker.config.settings import Settings
from macro_tracker.services.library_service import LibraryService
from macro_tracker.services.meal_service import MealService
from macro_tracker.services.user_service import UserService

USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"
VALID_TOKEN = "valid-token"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        supabase_url=None,
        supabase_service_role_key=None,
        ai_gateway_api_key="test-key",
        usda_generic_only=True,
        blend_ai_with_usda=False,
    )


# --- Fake Supabase client ---
MEAL_DEFAULTS = {
    "is_confirmed": False,
    "is_supplement": False,
    "supplement_id": None,
    "is_recipe": False,
    "recipe_id": None,
}

_clock = itertools.count()


class FakeQuery:
    """Records a PostgREST-style chain and applies it to the table's rows on execute()."""

    def __init__(self, store: List[Dict[str, Any]], table: str):
        self._store = store
        self._table = table
        self._action = "select"
        self._payload: Any = None
        self._on_conflict: Optional[str] = None
        self._filters = []
        self._orders = []
        self._limit: Optional[int] = None
        self._single = False

    # actions
    def select(self, *args, **kwargs):
        self._action = "select"
        return self

    def insert(self, data):
        self._action, self._payload = "insert", data
        return self

    def upsert(self, data, on_conflict=None):
        self._action, self._payload, self._on_conflict = "upsert", data, on_conflict
        return self

    def update(self, data):
        self._action, self._payload = "update", data
        return self

    def delete(self):
        self._action = "delete"
        return self

    # filters / modifiers
    def eq(self, col, value):
        self._filters.append(lambda r: r.get(col) == value)
        return self

    def gte(self, col, value):
        self._filters.append(lambda r: r.get(col) is not None and r.get(col) >= value)
        return self

    def lte(self, col, value):
        self._filters.append(lambda r: r.get(col) is not None and r.get(col) <= value)
        return self

    def in_(self, col, values):
        values = list(values)
        self._filters.append(lambda r: r.get(col) in values)
        return self

    def order(self, col, desc=False):
        self._orders.append((col, desc))
        return self

    def limit(self, n):
        self._limit = n
        return self

    def maybe_single(self):
        self._single = True
        return self

    def _new_row(self, row: Dict[str, Any]) -> Dict[str, Any]:
        base = dict(MEAL_DEFAULTS) if self._table == "meals" else {}
        return {
            **base,
            "id": str(uuid.uuid4()),
            "created_at": f"2024-01-01T00:00:{next(_clock):06d}",
            **row,
        }

    def _matching(self) -> List[Dict[str, Any]]:
        return [r for r in self._store if all(f(r) for f in self._filters)]

    def execute(self):
        if self._action == "insert":
            rows = self._payload if isinstance(self._payload, list) else [self._payload]
            created = [self._new_row(r) for r in rows]
            self._store.extend(created)
            return SimpleNamespace(data=[dict(r) for r in created], status_code=201)

        if self._action == "upsert":
            rows = self._payload if isinstance(self._payload, list) else [self._payload]
            keys = [k.strip() for k in (self._on_conflict or "id").split(",")]
            out = []
            for row in rows:
                existing = next(
                    (r for r in self._store if all(r.get(k) == row.get(k) for k in keys)), None
                )
                if existing is not None:
                    existing.update(row)
                    out.append(dict(existing))
                else:
                    created = self._new_row(row)
                    self._store.append(created)
                    out.append(dict(created))
            return SimpleNamespace(data=out, status_code=200)

        if self._action == "update":
            rows = self._matching()
            for r in rows:
                r.update(self._payload)
            return SimpleNamespace(data=[dict(r) for r in rows], status_code=200)

        if self._action == "delete":
            rows = self._matching()
            for r in rows:
                self._store.remove(r)
            return SimpleNamespace(data=[dict(r) for r in rows], status_code=200)

        rows = [dict(r) for r in self._matching()]
        for col, desc in reversed(self._orders):
            rows.sort(key=lambda r: (r.get(col) is None, r.get(col) or ""), reverse=desc)
        if self._limit is not None:
            rows = rows[: self._limit]
        if self._single:
            return SimpleNamespace(data=rows[0] if rows else None, status_code=200)
        return SimpleNamespace(data=rows, status_code=200)


class FakeAuth:

    def __init__(self, tokens: Dict[str, str]):
        self.tokens = tokens
        self.signed_out = False

    def get_user(self, token):
        if token not in self.tokens:
            raise ValueError("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(id=self.tokens[token]))

    def sign_out(self):
        self.signed_out = True


class FakeSupabase:

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.auth = FakeAuth({VALID_TOKEN: USER_ID})

    def table(self, name):
        return FakeQuery(self.tables.setdefault(name, []), name)

    def rows(self, name) -> List[Dict[str, Any]]:
        return self.tables.get(name, [])

    def seed(self, name, *rows) -> List[Dict[str, Any]]:
        return FakeQuery(self.tables.setdefault(name, []), name).insert(list(rows)).execute().data


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def library_service(fake_supabase):
    return LibraryService(fake_supabase)


@pytest.fixture
def user_service(fake_supabase):
    return UserService(fake_supabase)


@pytest.fixture
def meal_service(fake_supabase, library_service, user_service):
    return MealService(fake_supabase, library_service, user_service)


# --- Fake OpenAI-compatible chat client ---
class FakeChatClient:
    """Mimics `client.chat.completions.create` and records every call."""

    def __init__(self, content: str = '{"foods": []}', error: Optional[Exception] = None):
        self.content = content
        self.error = error
        self.calls: List[Dict[str, Any]] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


@pytest.fixture
def fake_chat():
    return FakeChatClient()


# --- Patch httpx.AsyncClient.get for nutrient lookups ---
class FakeResponse:

    def __init__(self, status_code: int = 200, payload: Any = None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


@pytest.fixture
def patch_httpx_get(monkeypatch):
    """
    Route GETs by URL substring: `routes` maps a fragment of the URL to a
    FakeResponse, an exception to raise, or a callable(url, params).
    Unmatched URLs answer 404.
    """
    routes: Dict[str, Any] = {}

    async def _fake_get(url, params=None, **kwargs):
        for fragment, answer in routes.items():
            if fragment in url:
                if isinstance(answer, Exception):
                    raise answer
                if callable(answer):
                    return answer(url, params)
                return answer
        return FakeResponse(404, {})

    mock = AsyncMock(side_effect=_fake_get)
    mock.routes = routes
    monkeypatch.setattr("httpx.AsyncClient.get", mock)
    return mock


def usda_payload(calories, protein, carbs, fats, fiber=0.0):
    return {
        "foods": [
            {
                "description": "test food",
                "foodNutrients": [
                    {"nutrientName": "Protein", "unitName": "G", "value": protein},
                    {"nutrientName": "Total lipid (fat)", "unitName": "G", "value": fats},
                    {"nutrientName": "Carbohydrate, by difference", "unitName": "G", "value": carbs},
                    {"nutrientName": "Energy", "unitName": "KCAL", "value": calories},
                    {"nutrientName": "Fiber, total dietary", "unitName": "G", "value": fiber},
                ],
            }
        ]
    }
