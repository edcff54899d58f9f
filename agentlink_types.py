"""
Result types shared by the provider clients and the trading orchestrator.

Each type serializes to the camelCase JSON shape returned to MCP callers via
``to_dict()``. Optional fields that are absent are left out of the output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")

WSOL_NAME = "Wrapped Solana"
WSOL_SYMBOL = "WSOL"
SOLANA_DECIMALS = 9


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


# ---------------------------------------------------------------------------
# Optional providers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Unconfigured:
    """An optional provider that is switched off, with the reason why."""

    reason: str


@dataclass(frozen=True)
class Configured(Generic[T]):
    """An optional provider that is ready to be called."""

    client: T


Provider = Union[Unconfigured, Configured[T]]


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenInfo:
    address: str
    name: str
    symbol: str
    decimals: int
    price: float | None = None
    volume24h: float | None = None
    market_cap: float | None = None
    image: str | None = None
    note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "address": self.address,
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "price": self.price,
            "volume24h": self.volume24h,
            "marketCap": self.market_cap,
            "image": self.image,
            "note": self.note,
        })


@dataclass(frozen=True)
class NativePrice:
    value: str | None
    decimals: int = SOLANA_DECIMALS
    name: str = WSOL_NAME
    symbol: str = WSOL_SYMBOL

    def to_dict(self) -> dict[str, Any]:
        # value stays in the output even when unknown
        return {
            "value": self.value,
            "decimals": self.decimals,
            "name": self.name,
            "symbol": self.symbol,
        }


@dataclass(frozen=True)
class TokenPrice:
    address: str
    usd_price: float | None
    native_price: NativePrice
    exchange_name: str | None = None
    exchange_address: str | None = None
    pair_address: str | None = None
    note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {
            "address": self.address,
            "usdPrice": self.usd_price,
            "nativePrice": self.native_price.to_dict(),
        }
        data.update(_compact({
            "exchangeName": self.exchange_name,
            "exchangeAddress": self.exchange_address,
            "pairAddress": self.pair_address,
            "note": self.note,
        }))
        return data


@dataclass(frozen=True)
class LifecycleToken:
    """One entry of a graduated or bonding token listing."""

    token_address: str
    name: str
    symbol: str
    logo: str | None = None
    decimals: str | None = None
    price_native: str | None = None
    price_usd: str | None = None
    liquidity: str | None = None
    fully_diluted_valuation: str | None = None
    graduated_at: str | None = None
    bonding_curve_progress: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "tokenAddress": self.token_address,
            "name": self.name,
            "symbol": self.symbol,
            "logo": self.logo,
            "decimals": self.decimals,
            "priceNative": self.price_native,
            "priceUsd": self.price_usd,
            "liquidity": self.liquidity,
            "fullyDilutedValuation": self.fully_diluted_valuation,
            "graduatedAt": self.graduated_at,
            "bondingCurveProgress": self.bonding_curve_progress,
        })


@dataclass(frozen=True)
class TokenPage:
    stage: str
    result: list[LifecycleToken] = field(default_factory=list)
    cursor: str | None = None
    note: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "stage": self.stage,
            "result": [token.to_dict() for token in self.result],
            "cursor": self.cursor,
            "note": self.note,
        })


# ---------------------------------------------------------------------------
# Trades
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransactionResult:
    """
    Outcome of a buy or sell submission.

    status "sent" means the RPC node accepted the transaction. It says nothing
    about confirmation; nothing polls for it.
    """

    success: bool
    transaction_id: str
    token_address: str
    status: str
    explorer_url: str
    amount_sol: float | None = None
    amount: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact({
            "success": self.success,
            "transactionId": self.transaction_id,
            "tokenAddress": self.token_address,
            "amountSol": self.amount_sol,
            "amount": self.amount,
            "status": self.status,
            "explorerUrl": self.explorer_url,
        })
