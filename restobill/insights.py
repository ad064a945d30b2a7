"""
AI sales insight client.

Wraps the Gemini generateContent HTTP API. Billing never depends on this
module: every failure (missing key, network, timeout, malformed reply)
resolves to a fixed fallback payload instead of raising.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Iterable

import httpx

from restobill.billing import ZERO, round_money
from restobill.config import INSIGHT_API_KEY_ENVS, INSIGHT_BASE_URL, INSIGHT_MODEL, INSIGHT_TIMEOUT_SECONDS
from restobill.errors import InsightGenerationFailure
from restobill.models import MenuItem, Order, OrderStatus
from restobill.reports import item_popularity

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = "Could not generate insights at this time."
FALLBACK_TIPS = ("Please check your internet connection or API key.",)


@dataclass(frozen=True)
class SalesInsight:
    summary: str
    insights: list[str] = field(default_factory=list)
    is_fallback: bool = False


def fallback_insight() -> SalesInsight:
    return SalesInsight(summary=FALLBACK_SUMMARY, insights=list(FALLBACK_TIPS), is_fallback=True)


def resolve_api_key() -> str | None:
    for env_name in INSIGHT_API_KEY_ENVS:
        value = os.environ.get(env_name, "").strip()
        if value:
            return value
    return None


def build_prompt(orders: Iterable[Order], menu: Iterable[MenuItem]) -> str:
    """Summarize completed orders into a compact prompt."""
    completed = [order for order in orders if order.status is OrderStatus.COMPLETED]
    total_revenue = sum((order.total for order in completed), ZERO)
    popular = ", ".join(f"{row.name} ({row.count})" for row in item_popularity(completed)[:5])
    hours = ", ".join(
        f"{order.completed_at.astimezone():%H}:00" for order in completed if order.completed_at is not None
    )
    categories = sorted({item.category for item in menu})
    return (
        "As a restaurant manager AI, analyze the following daily sales summary and provide "
        "3 key insights or actionable suggestions.\n\n"
        "Data:\n"
        f"- Total Revenue: {round_money(total_revenue)}\n"
        f"- Total Orders: {len(completed)}\n"
        f"- Top Selling Items: {popular or 'none'}\n"
        f"- Order Times: {hours or 'none'}\n"
        f"- Menu Categories: {', '.join(categories) or 'none'}\n\n"
        'Format the output as a JSON object with a "summary" string and an array of "insights" (strings).'
    )


def parse_insight(payload: dict[str, Any]) -> SalesInsight:
    """Extract the JSON answer from a generateContent response body."""
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
        answer = json.loads(text)
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise InsightGenerationFailure(f"Unreadable insight response: {exc}") from exc
    if not isinstance(answer, dict) or not isinstance(answer.get("summary"), str):
        raise InsightGenerationFailure("Insight response has no summary")
    tips = answer.get("insights") or []
    if not isinstance(tips, list):
        raise InsightGenerationFailure("Insight response has malformed insights")
    return SalesInsight(summary=answer["summary"], insights=[str(tip) for tip in tips])


async def _request_insight(client: httpx.AsyncClient, api_key: str, prompt: str, model: str) -> SalesInsight:
    resp = await client.post(
        f"{INSIGHT_BASE_URL}/models/{model}:generateContent",
        headers={"x-goog-api-key": api_key},
        json={
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"responseMimeType": "application/json"},
        },
    )
    resp.raise_for_status()
    return parse_insight(resp.json())


async def generate_sales_insight(
    orders: Iterable[Order],
    menu: Iterable[MenuItem],
    api_key: str | None = None,
    client: httpx.AsyncClient | None = None,
    timeout: float = INSIGHT_TIMEOUT_SECONDS,
    model: str = INSIGHT_MODEL,
) -> SalesInsight:
    """Ask the model for a sales summary; return the fallback payload on any failure."""
    try:
        key = api_key or resolve_api_key()
        if not key:
            raise InsightGenerationFailure("API key not found")
        prompt = build_prompt(orders, menu)
        if client is None:
            async with httpx.AsyncClient(timeout=timeout) as owned:
                return await asyncio.wait_for(_request_insight(owned, key, prompt, model), timeout)
        return await asyncio.wait_for(_request_insight(client, key, prompt, model), timeout)
    except asyncio.TimeoutError:
        logger.warning("insight request timed out after %.1fs", timeout)
    except Exception as exc:
        logger.warning("insight generation failed: %s", exc)
    return fallback_insight()
