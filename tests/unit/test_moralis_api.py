import sys
from pathlib import Path

import pytest
import requests

REPO_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(REPO_ROOT))

import moralis_api  # noqa: E402
from agentlink_errors import MalformedResponseError, ProviderError  # noqa: E402
from moralis_api import MoralisAPI  # noqa: E402


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def _fake_get(responses, seen):
    def fake_get(url, params=None, headers=None, timeout=None):
        seen.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        return responses.pop(0)

    return fake_get


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


def test_metadata_maps_fields(monkeypatch):
    seen = []
    payload = {
        "mint": "Mint111",
        "name": "Dog Coin",
        "symbol": "DOG",
        "decimals": "6",
        "logo": "https://img/dog.png",
        "fullyDilutedValue": "120000.5",
    }
    monkeypatch.setattr(moralis_api.requests, "get", _fake_get([FakeResponse(payload)], seen))

    info = MoralisAPI("key").get_token_metadata("Mint111")

    assert seen[0]["url"] == "https://solana-gateway.moralis.io/token/mainnet/Mint111/metadata"
    assert seen[0]["headers"]["X-API-Key"] == "key"
    assert seen[0]["timeout"] == moralis_api.REQUEST_TIMEOUT
    assert info.to_dict() == {
        "address": "Mint111",
        "name": "Dog Coin",
        "symbol": "DOG",
        "decimals": 6,
        "marketCap": 120000.5,
        "image": "https://img/dog.png",
    }


def test_metadata_404_has_not_found_message(monkeypatch):
    monkeypatch.setattr(
        moralis_api.requests, "get", _fake_get([FakeResponse({}, status_code=404)], [])
    )
    with pytest.raises(ProviderError) as exc_info:
        MoralisAPI("key").get_token_metadata("Mint111")
    assert "not found on Moralis" in str(exc_info.value)
    assert not isinstance(exc_info.value, MalformedResponseError)


def test_network_failure_is_provider_error(monkeypatch):
    def boom(*_args, **_kwargs):
        raise requests.exceptions.ConnectionError("connection refused")

    monkeypatch.setattr(moralis_api.requests, "get", boom)
    with pytest.raises(ProviderError) as exc_info:
        MoralisAPI("key").get_token_price("Mint111")
    assert "connection refused" in str(exc_info.value)


def test_metadata_without_name_is_malformed(monkeypatch):
    monkeypatch.setattr(
        moralis_api.requests, "get", _fake_get([FakeResponse({"symbol": "X"})], [])
    )
    with pytest.raises(MalformedResponseError):
        MoralisAPI("key").get_token_metadata("Mint111")


def test_invalid_json_is_malformed(monkeypatch):
    monkeypatch.setattr(
        moralis_api.requests, "get", _fake_get([FakeResponse(ValueError("no json"))], [])
    )
    with pytest.raises(MalformedResponseError):
        MoralisAPI("key").get_token_metadata("Mint111")


def test_price_maps_native_price(monkeypatch):
    payload = {
        "tokenAddress": "Mint111",
        "usdPrice": 0.0012,
        "nativePrice": {"value": "8000", "decimals": 9, "name": "Wrapped Solana", "symbol": "WSOL"},
        "exchangeName": "Raydium",
        "pairAddress": "Pair111",
    }
    monkeypatch.setattr(moralis_api.requests, "get", _fake_get([FakeResponse(payload)], []))

    price = MoralisAPI("key").get_token_price("Mint111").to_dict()

    assert price["usdPrice"] == 0.0012
    assert price["nativePrice"] == {
        "value": "8000",
        "decimals": 9,
        "name": "Wrapped Solana",
        "symbol": "WSOL",
    }
    assert price["exchangeName"] == "Raydium"
    assert price["pairAddress"] == "Pair111"
    assert "exchangeAddress" not in price


def test_lifecycle_page_with_cursor(monkeypatch):
    seen = []
    payload = {
        "result": [
            {
                "tokenAddress": "Mint111",
                "name": "Dog",
                "symbol": "DOG",
                "priceUsd": "0.001",
                "bondingCurveProgress": 42.5,
            }
        ],
        "cursor": "page2",
    }
    monkeypatch.setattr(moralis_api.requests, "get", _fake_get([FakeResponse(payload)], seen))

    page = MoralisAPI("key").get_lifecycle_tokens("bonding", limit=10, cursor="page1")

    assert seen[0]["url"].endswith("/token/mainnet/exchange/pumpfun/bonding")
    assert seen[0]["params"] == {"limit": 10, "cursor": "page1"}
    assert page.cursor == "page2"
    assert page.result[0].to_dict() == {
        "tokenAddress": "Mint111",
        "name": "Dog",
        "symbol": "DOG",
        "priceUsd": "0.001",
        "bondingCurveProgress": 42.5,
    }


def test_lifecycle_without_result_list_is_malformed(monkeypatch):
    monkeypatch.setattr(
        moralis_api.requests, "get", _fake_get([FakeResponse({"cursor": None})], [])
    )
    with pytest.raises(MalformedResponseError):
        MoralisAPI("key").get_lifecycle_tokens("graduated")


def test_api_key_required():
    with pytest.raises(ValueError):
        MoralisAPI("")


def test_failure_message_keeps_address_case(monkeypatch):
    def boom(*_args, **_kwargs):
        raise requests.exceptions.ConnectionError("down")

    monkeypatch.setattr(moralis_api.requests, "get", boom)
    with pytest.raises(ProviderError) as exc_info:
        MoralisAPI("key").get_token_metadata("MintABCxyz")
    assert str(exc_info.value) == (
        "Failed to fetch token metadata for MintABCxyz from Moralis: down"
    )
