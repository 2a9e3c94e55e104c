"""Insights client tests; the model endpoint is replaced by httpx.MockTransport."""

import json

import httpx

from shopledger.services.insights_service import (
    CONNECTION_ERROR_MESSAGE,
    EMPTY_ANSWER_MESSAGE,
    MISSING_KEY_MESSAGE,
    InsightsClient,
    build_system_instruction,
)

SUMMARY = {"product_count": 2, "total_profit_cents": 1200, "low_stock_product_names": ["Linen Shirt"]}


def _client(handler, api_key="test-key"):
    return InsightsClient(
        api_key=api_key,
        model="gemini-test",
        base_url="https://example.test",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


def _answer(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_sends_summary_and_question():
    captured = {}

    def handler(request):
        captured["url"] = str(request.url)
        captured["key"] = request.headers.get("x-goog-api-key")
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=_answer("Restock Linen Shirt. "))

    answer = _client(handler).ask(SUMMARY, "What should I restock?", shop_name="Sylsas")

    assert answer == "Restock Linen Shirt."
    assert captured["url"] == "https://example.test/v1beta/models/gemini-test:generateContent"
    assert captured["key"] == "test-key"
    assert captured["body"]["contents"][0]["parts"][0]["text"] == "What should I restock?"
    instruction = captured["body"]["systemInstruction"]["parts"][0]["text"]
    assert "Sylsas" in instruction
    assert "Linen Shirt" in instruction


def test_missing_key_skips_request():
    def handler(request):
        raise AssertionError("no request expected")

    assert _client(handler, api_key="").ask(SUMMARY, "hi") == MISSING_KEY_MESSAGE


def test_http_error_status_falls_back():
    answer = _client(lambda request: httpx.Response(500, json={"error": "boom"})).ask(SUMMARY, "hi")
    assert answer == CONNECTION_ERROR_MESSAGE


def test_transport_failure_falls_back():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    assert _client(handler).ask(SUMMARY, "hi") == CONNECTION_ERROR_MESSAGE


def test_non_json_body_falls_back():
    answer = _client(lambda request: httpx.Response(200, text="<html>")).ask(SUMMARY, "hi")
    assert answer == CONNECTION_ERROR_MESSAGE


def test_empty_answer_falls_back():
    answer = _client(lambda request: httpx.Response(200, json={"candidates": []})).ask(SUMMARY, "hi")
    assert answer == EMPTY_ANSWER_MESSAGE


def test_system_instruction_defaults_shop_name():
    text = build_system_instruction({}, "")
    assert "the shop" in text


def test_from_config():
    client = InsightsClient.from_config({"GEMINI_API_KEY": "k", "GEMINI_MODEL": "m", "GEMINI_TIMEOUT_SECONDS": 3})
    assert client.api_key == "k"
    assert client.model == "m"
    assert client.timeout == 3.0
