"""Minimal Solana JSON-RPC client over urllib with 429/backoff handling."""

from __future__ import annotations

import http.client
import json
import logging
import time
import urllib.error
import urllib.request
from typing import Any, Callable, Dict, List, Optional

from solders.hash import Hash

from .errors import RpcError

logger = logging.getLogger(__name__)


class RpcClient:
    def __init__(
        self,
        url: str,
        *,
        max_retries: int = 8,
        timeout: float = 30.0,
        commitment: str = "confirmed",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.url = url
        self.max_retries = max(int(max_retries), 1)
        self.timeout = timeout
        self.commitment = commitment
        self._sleep = sleep

    def _post(self, payload: bytes) -> dict:
        req = urllib.request.Request(
            self.url, data=payload, headers={"Content-Type": "application/json"}
        )
        with urllib.request.urlopen(req, timeout=self.timeout) as resp:
            return json.loads(resp.read().decode("utf-8"))

    def call(self, method: str, params: list) -> Any:
        """Send one JSON-RPC request and return its ``result`` member.

        HTTP 429 and transport errors are retried with a linear backoff.
        Other HTTP errors and RPC ``error`` answers raise ``RpcError``
        immediately; retrying a deterministic node answer gains nothing.
        """
        payload = json.dumps({"jsonrpc": "2.0", "id": 1, "method": method, "params": params})
        data = payload.encode("utf-8")

        last_err: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                out = self._post(data)
            except urllib.error.HTTPError as e:
                last_err = e
                if e.code == 429:
                    logger.debug("%s rate limited (attempt %d)", method, attempt)
                    self._sleep(min(2 * attempt, 10))
                    continue
                try:
                    body = e.read().decode("utf-8", errors="replace")
                except OSError:
                    body = ""
                raise RpcError(f"RPC HTTPError {e.code} {e.reason}: {body}", code=e.code) from e
            except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as e:
                last_err = e
                logger.debug("%s transport error (attempt %d): %s", method, attempt, e)
                self._sleep(min(1.25 * attempt, 8))
                continue

            if "error" in out:
                err = out["error"] or {}
                code = err.get("code") if isinstance(err, dict) else None
                raise RpcError(f"RPC error: {err}", code=code)
            return out.get("result")

        raise RpcError(f"RPC call failed after retries: {method} (last={last_err})")

    # ---------------- Typed helpers ----------------
    def get_token_accounts_by_owner(self, owner: str, program_id: str) -> List[dict]:
        result = self.call(
            "getTokenAccountsByOwner",
            [
                owner,
                {"programId": program_id},
                {"encoding": "jsonParsed", "commitment": self.commitment},
            ],
        )
        return list((result or {}).get("value") or [])

    def get_balance(self, pubkey: str) -> int:
        result = self.call("getBalance", [pubkey, {"commitment": self.commitment}])
        return int((result or {}).get("value", 0) or 0)

    def get_latest_blockhash(self) -> Hash:
        result = self.call("getLatestBlockhash", [{"commitment": self.commitment}])
        bh = ((result or {}).get("value") or {}).get("blockhash")
        if not bh:
            raise RpcError(f"getLatestBlockhash failed: {result}")
        return Hash.from_string(str(bh))

    def send_transaction(self, tx_b64: str, *, skip_preflight: bool = False) -> str:
        sig = self.call(
            "sendTransaction",
            [
                tx_b64,
                {
                    "encoding": "base64",
                    "skipPreflight": bool(skip_preflight),
                    "preflightCommitment": self.commitment,
                },
            ],
        )
        if not sig:
            raise RpcError("sendTransaction returned no signature")
        return str(sig)

    def get_signature_status(self, sig: str) -> Optional[Dict[str, Any]]:
        result = self.call(
            "getSignatureStatuses",
            [[sig], {"searchTransactionHistory": True}],
        )
        return ((result or {}).get("value") or [None])[0]
