"""
Solana signing and JSON-RPC submission.

Implements:
- Loading the wallet keypair (base58 string or JSON byte array)
- Deserializing and signing PumpPortal's unsigned VersionedTransactions
- Submitting signed transactions with sendTransaction
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any

import base58
import requests
from solders.keypair import Keypair
from solders.transaction import VersionedTransaction

from agentlink_errors import MalformedResponseError, ProviderError, SigningError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15
SOLSCAN_TX_URL = "https://solscan.io/tx/"


# ---------------------------------------------------------------------------
# Keys and transactions
# ---------------------------------------------------------------------------


def _parse_secret(secret: str) -> bytes:
    value = secret.strip()
    if value.startswith("["):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError as exc:
            raise SigningError("Wallet private key is not a valid JSON byte array.") from exc
        if not isinstance(parsed, list) or not all(
            isinstance(item, int) and 0 <= item < 256 for item in parsed
        ):
            raise SigningError("Wallet private key is not a valid JSON byte array.")
        return bytes(parsed)
    try:
        return base58.b58decode(value)
    except ValueError as exc:
        raise SigningError("Wallet private key is not valid base58.") from exc


def load_keypair(secret: str) -> Keypair:
    """
    Build a Keypair from WALLET_PRIVATE_KEY.

    Accepts the 64-byte secret (base58, as exported by Phantom, or the JSON
    array written by solana-keygen) or a bare 32-byte seed.
    """
    secret_bytes = _parse_secret(secret)
    try:
        if len(secret_bytes) == 64:
            return Keypair.from_bytes(secret_bytes)
        if len(secret_bytes) == 32:
            return Keypair.from_seed(secret_bytes)
    except Exception as exc:
        raise SigningError(f"Wallet private key is invalid: {exc}") from exc
    raise SigningError("Wallet private key must decode to 32 or 64 bytes.")


def deserialize_transaction(blob: bytes) -> VersionedTransaction:
    try:
        return VersionedTransaction.from_bytes(blob)
    except Exception as exc:
        raise MalformedResponseError(f"Failed to deserialize transaction: {exc}") from exc


def sign_transaction(transaction: VersionedTransaction, keypair: Keypair) -> VersionedTransaction:
    """Return a copy of `transaction` signed by `keypair` as its only signer."""
    try:
        return VersionedTransaction(transaction.message, [keypair])
    except Exception as exc:
        raise SigningError(f"Failed to sign transaction: {exc}") from exc


def explorer_url(signature: str) -> str:
    return f"{SOLSCAN_TX_URL}{signature}"


# ---------------------------------------------------------------------------
# JSON-RPC
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SolanaRPCClient:
    """Thin wrapper around Solana's JSON-RPC interface."""

    endpoint: str
    timeout: float = REQUEST_TIMEOUT

    def _call(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            resp = requests.post(self.endpoint, json=payload, timeout=self.timeout)
            resp.raise_for_status()
        except requests.exceptions.RequestException as exc:
            raise ProviderError(f"RPC request failed: {exc}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise MalformedResponseError("Invalid JSON in RPC response") from exc

        if not isinstance(data, dict):
            raise MalformedResponseError("Malformed RPC response; expected an object")
        if "error" in data:
            error = data["error"] or {}
            message = error.get("message", "Unknown RPC error") if isinstance(error, dict) else str(error)
            raise ProviderError(f"RPC error: {message}")
        if "result" not in data:
            raise MalformedResponseError("Malformed RPC response; missing result")
        return data["result"]

    def send_transaction(self, transaction: VersionedTransaction) -> str:
        """
        Submit a signed transaction and return its signature.

        The node runs preflight simulation; nothing here waits for the
        transaction to land.
        """
        encoded = base64.b64encode(bytes(transaction)).decode("ascii")
        try:
            signature = self._call(
                "sendTransaction",
                [encoded, {"encoding": "base64", "preflightCommitment": "confirmed"}],
            )
        except MalformedResponseError:
            raise
        except ProviderError as exc:
            raise ProviderError(f"Failed to send transaction: {exc}") from exc

        if not isinstance(signature, str) or not signature:
            raise MalformedResponseError("Failed to send transaction: RPC returned no signature")
        logger.info("Transaction sent: %s", signature)
        return signature
