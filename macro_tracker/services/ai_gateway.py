# macro_tracker/services/ai_gateway.py
"""
AI gateway client (OpenAI-compatible chat completions).

Design goals:
- One place that knows the gateway's transport, model and error statuses.
- The blocking SDK call runs in a worker thread so the event loop stays free.
- No retries: a rate limit, payment problem or network error fails the request
  with a typed error.
- Replies for food extraction are parsed into `Ok(items)` or `Err(reason)` with
  schema validation; callers never handle raw JSON.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional

import openai
from openai import OpenAI
from pydantic import ValidationError

from macro_tracker.config.settings import Settings
from macro_tracker.errors import ExternalServiceError, PaymentRequiredError, RateLimitedError
from macro_tracker.schemas import Err, ExtractedFood, Ok, ParseResult
from macro_tracker.utils.text import mask

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?", flags=re.IGNORECASE)


def strip_markdown_fences(content: str) -> str:
    return _FENCE_RE.sub("", content or "").strip()


def parse_food_items(content: str) -> ParseResult:
    """
    Parse an extraction reply into validated food items.

    Accepts `{"foods": [...]}` or a bare JSON array, optionally wrapped in
    markdown code fences.
    """
    text = strip_markdown_fences(content)
    if not text:
        return Err("empty_reply")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        return Err(f"invalid_json: {exc.msg}")

    if isinstance(payload, dict):
        payload = payload.get("foods")
    if not isinstance(payload, list):
        return Err("missing_foods_array")

    items: List[ExtractedFood] = []
    for index, raw in enumerate(payload):
        if not isinstance(raw, dict):
            return Err(f"item_{index}_not_an_object")
        try:
            items.append(ExtractedFood.model_validate(raw))
        except ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", ()))
            return Err(f"item_{index}_invalid: {field} {first.get('msg')}")
    return Ok(items)


class AIGatewayClient:

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        self.settings = settings
        self.model = settings.ai_model
        self.client = client
        if self.client is None and settings.ai_gateway_api_key:
            self.client = OpenAI(
                api_key=settings.ai_gateway_api_key,
                base_url=settings.ai_gateway_base_url,
                timeout=settings.ai_request_timeout,
                max_retries=0,
            )
            logger.info(
                "AI gateway client created for %s (key=%s)",
                settings.ai_gateway_base_url,
                mask(settings.ai_gateway_api_key),
            )

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """
        Run one chat completion and return the assistant's text.

        Raises:
            RateLimitedError: gateway answered 429
            PaymentRequiredError: gateway answered 402
            ExternalServiceError: any other gateway, network or shape failure
        """
        if self.client is None:
            raise ExternalServiceError("AI gateway API key is not configured")

        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        try:
            resp = await asyncio.to_thread(
                lambda: self.client.chat.completions.create(model=self.model, messages=messages)
            )
        except openai.RateLimitError as exc:
            logger.warning("AI gateway rate limited: %s", exc)
            raise RateLimitedError() from exc
        except openai.APIStatusError as exc:
            if exc.status_code == 429:
                raise RateLimitedError() from exc
            if exc.status_code == 402:
                logger.warning("AI gateway reports payment required")
                raise PaymentRequiredError() from exc
            logger.error("AI gateway error: %s %s", exc.status_code, exc)
            raise ExternalServiceError("AI analysis failed") from exc
        except openai.APIError as exc:
            logger.error("AI gateway request failed: %s", exc)
            raise ExternalServiceError("AI analysis failed") from exc

        try:
            content = resp.choices[0].message.content
        except (AttributeError, IndexError) as exc:
            raise ExternalServiceError("AI gateway returned no choices") from exc
        if not content:
            raise ExternalServiceError("AI gateway returned an empty reply")
        return content
