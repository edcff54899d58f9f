import sys
from pathlib import Path

import pytest
import requests

REPO_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(REPO_ROOT))

import pumpportal_api  # noqa: E402
from agentlink_errors import MalformedResponseError, ProviderError  # noqa: E402
from pumpportal_api import PumpPortalAPI  # noqa: E402


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, payload=None, content=b"", status_code=200, text=""):
        self._payload = payload
        self.content = content
        self.status_code = status_code
        self.text = text

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)

    def json(self):
        return self._payload


def _api():
    return PumpPortalAPI("Wallet111", "https://trade.local/api", "https://search.local/coins")


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


def test_search_maps_coins(monkeypatch):
    seen = {}

    def fake_get(url, params=None, timeout=None):
        seen.update(url=url, params=params)
        return FakeResponse(
            [
                {
                    "mint": "Mint111",
                    "name": "Dog",
                    "symbol": "DOG",
                    "usd_market_cap": 5300.25,
                    "image_uri": "https://img/dog.png",
                }
            ]
        )

    monkeypatch.setattr(pumpportal_api.requests, "get", fake_get)
    tokens = _api().search_tokens("dog")

    assert seen["url"] == "https://search.local/coins"
    assert seen["params"]["searchTerm"] == "dog"
    assert [t.to_dict() for t in tokens] == [
        {
            "address": "Mint111",
            "name": "Dog",
            "symbol": "DOG",
            "decimals": 6,
            "marketCap": 5300.25,
            "image": "https://img/dog.png",
        }
    ]


def test_search_accepts_wrapped_listing(monkeypatch):
    monkeypatch.setattr(
        pumpportal_api.requests,
        "get",
        lambda *a, **k: FakeResponse({"coins": [{"mint": "M", "name": "N", "symbol": "S"}]}),
    )
    assert _api().search_tokens("n")[0].address == "M"


def test_search_unexpected_shape_is_malformed(monkeypatch):
    monkeypatch.setattr(
        pumpportal_api.requests, "get", lambda *a, **k: FakeResponse({"error": "nope"})
    )
    with pytest.raises(MalformedResponseError):
        _api().search_tokens("n")


# ---------------------------------------------------------------------------
# Transaction generation
# ---------------------------------------------------------------------------


def test_sell_request_body(monkeypatch):
    seen = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        seen.update(url=url, json=json)
        return FakeResponse(content=b"\x01unsigned")

    monkeypatch.setattr(pumpportal_api.requests, "post", fake_post)
    blob = _api().generate_sell_transaction("Mint111", "100%", 2.0, 0.0005, "raydium")

    assert blob == b"\x01unsigned"
    assert seen["url"] == "https://trade.local/api"
    assert seen["json"] == {
        "publicKey": "Wallet111",
        "action": "sell",
        "mint": "Mint111",
        "amount": "100%",
        "denominatedInSol": "false",
        "slippage": 2.0,
        "priorityFee": 0.0005,
        "pool": "raydium",
    }


def test_buy_is_denominated_in_sol(monkeypatch):
    seen = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        seen.update(json=json)
        return FakeResponse(content=b"tx")

    monkeypatch.setattr(pumpportal_api.requests, "post", fake_post)
    _api().generate_buy_transaction("Mint111", 0.5)

    assert seen["json"]["action"] == "buy"
    assert seen["json"]["denominatedInSol"] == "true"
    assert seen["json"]["amount"] == 0.5


def test_http_error_includes_body(monkeypatch):
    monkeypatch.setattr(
        pumpportal_api.requests,
        "post",
        lambda *a, **k: FakeResponse(status_code=400, text="Bad mint"),
    )
    with pytest.raises(ProviderError) as exc_info:
        _api().generate_buy_transaction("Mint111", 0.5)
    message = str(exc_info.value)
    assert message.startswith("Failed to generate buy transaction")
    assert "Bad mint" in message


def test_empty_body_is_malformed(monkeypatch):
    monkeypatch.setattr(pumpportal_api.requests, "post", lambda *a, **k: FakeResponse(content=b""))
    with pytest.raises(MalformedResponseError):
        _api().generate_sell_transaction("Mint111", "10")


def test_search_invalid_decimals_is_malformed(monkeypatch):
    monkeypatch.setattr(
        pumpportal_api.requests,
        "get",
        lambda *a, **k: FakeResponse([{"mint": "M", "name": "N", "symbol": "S", "decimals": "six"}]),
    )
    with pytest.raises(MalformedResponseError) as exc_info:
        _api().search_tokens("n")
    assert "invalid decimals" in str(exc_info.value)
