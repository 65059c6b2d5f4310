"""Quote provider fallback tests using httpx.MockTransport."""

import httpx
import pytest

from deepterm.core.config import settings
from deepterm.services.price_service import PriceService


def _yahoo_chart(price):
    return {"chart": {"result": [{"meta": {"symbol": "AAPL", "regularMarketPrice": price}}], "error": None}}


def _service(handler, monkeypatch, fmp_key="fmp-test-key") -> PriceService:
    monkeypatch.setattr(settings, "FMP_API_KEY", fmp_key)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PriceService(http_client=client)


@pytest.mark.asyncio
async def test_fmp_price_is_used_first(monkeypatch):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.host)
        assert request.url.path == "/api/v3/quote-short/AAPL"
        assert request.url.params["apikey"] == "fmp-test-key"
        return httpx.Response(200, json=[{"symbol": "AAPL", "price": 152.3, "volume": 1000}])

    service = _service(handler, monkeypatch)
    try:
        assert await service.get_current_price("AAPL") == 152.3
    finally:
        await service.close()

    assert seen == ["financialmodelingprep.com"]


@pytest.mark.asyncio
async def test_fmp_error_falls_back_to_yahoo(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "financialmodelingprep.com":
            return httpx.Response(500, json={"error": "upstream"})
        assert request.url.path == "/v8/finance/chart/AAPL"
        assert request.url.params["interval"] == "1m"
        assert request.url.params["range"] == "1d"
        return httpx.Response(200, json=_yahoo_chart(151.75))

    service = _service(handler, monkeypatch)
    try:
        assert await service.get_current_price("AAPL") == 151.75
    finally:
        await service.close()


@pytest.mark.asyncio
async def test_fmp_empty_list_falls_back_to_yahoo(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "financialmodelingprep.com":
            return httpx.Response(200, json=[])
        return httpx.Response(200, json=_yahoo_chart(99.0))

    service = _service(handler, monkeypatch)
    try:
        assert await service.get_current_price("AAPL") == 99.0
    finally:
        await service.close()


@pytest.mark.asyncio
async def test_network_error_falls_back_to_yahoo(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "financialmodelingprep.com":
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=_yahoo_chart(10.5))

    service = _service(handler, monkeypatch)
    try:
        assert await service.get_current_price("AAPL") == 10.5
    finally:
        await service.close()


@pytest.mark.asyncio
async def test_both_providers_failing_returns_none(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "financialmodelingprep.com":
            return httpx.Response(429, json={"error": "rate limited"})
        return httpx.Response(404, json={"chart": {"result": None, "error": {"code": "Not Found"}}})

    service = _service(handler, monkeypatch)
    try:
        assert await service.get_current_price("ZZZZ") is None
    finally:
        await service.close()


@pytest.mark.asyncio
async def test_yahoo_without_price_returns_none(monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"chart": {"result": [{"meta": {}}], "error": None}})

    service = _service(handler, monkeypatch, fmp_key=None)
    try:
        assert await service.get_current_price("ZZZZ") is None
    finally:
        await service.close()


@pytest.mark.asyncio
async def test_without_fmp_key_only_yahoo_is_called(monkeypatch):
    hosts = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        return httpx.Response(200, json=_yahoo_chart(42.0))

    service = _service(handler, monkeypatch, fmp_key=None)
    try:
        assert await service.get_current_price("KO") == 42.0
    finally:
        await service.close()

    assert hosts == ["query1.finance.yahoo.com"]
