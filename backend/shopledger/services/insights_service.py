# Overview: Business insights assistant; asks a Gemini-compatible text model about the shop's figures.

"""
Insights Service

Sends the aggregated insights snapshot plus the operator's question to the
generateContent endpoint and returns the answer text.

ask() never raises: a missing key, a transport failure, a non-2xx answer or
an empty reply each come back as a readable fallback message.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "API Key not found. Please ensure it is configured."
CONNECTION_ERROR_MESSAGE = "Error connecting to AI assistant. Please try again later."
EMPTY_ANSWER_MESSAGE = "I'm sorry, I couldn't analyze the data right now."

SYSTEM_INSTRUCTION_TEMPLATE = """\
You are the business assistant for {shop_name}, a clothing store.
Answer the owner's questions about the business data below in a professional,
encouraging tone, using simple business language. Reply in English or Bengali,
matching the question.

Amounts are in cents.

Current business data:
{summary}

Guidelines:
- For growth questions, compare profit against expenses.
- For top products, work from the recent sales.
- For stock questions, mention the items in low_stock_product_names.
- Offer concrete steps for increasing profit.
"""


def build_system_instruction(summary: dict, shop_name: str) -> str:
    return SYSTEM_INSTRUCTION_TEMPLATE.format(
        shop_name=shop_name or "the shop",
        summary=json.dumps(summary, indent=2, ensure_ascii=False),
    )


def _answer_text(payload: Any) -> str:
    try:
        parts = payload["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict)).strip()


class InsightsClient:
    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str = "https://generativelanguage.googleapis.com",
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, config: dict) -> "InsightsClient":
        return cls(
            api_key=config.get("GEMINI_API_KEY", ""),
            model=config.get("GEMINI_MODEL", "gemini-2.5-pro"),
            base_url=config.get("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com"),
            timeout=float(config.get("GEMINI_TIMEOUT_SECONDS", 60)),
        )

    def ask(self, summary: dict, query: str, shop_name: str = "") -> str:
        if not self.api_key:
            return MISSING_KEY_MESSAGE

        body = {
            "systemInstruction": {"parts": [{"text": build_system_instruction(summary, shop_name)}]},
            "contents": [{"role": "user", "parts": [{"text": query}]}],
        }

        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self._transport) as client:
                response = client.post(
                    f"/v1beta/models/{self.model}:generateContent",
                    json=body,
                    headers={"x-goog-api-key": self.api_key},
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            logger.error("Insights request failed: %s", exc)
            return CONNECTION_ERROR_MESSAGE
        except ValueError as exc:
            logger.error("Insights response was not JSON: %s", exc)
            return CONNECTION_ERROR_MESSAGE

        return _answer_text(payload) or EMPTY_ANSWER_MESSAGE
