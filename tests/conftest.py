"""Shared fixtures: an in-memory stand-in for the Solana RPC node."""

import base64
from typing import Dict, Iterable, List, Optional

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from rent_reclaim.config import TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_ID, ReclaimConfig
from rent_reclaim.errors import RpcError

RENT = 2_039_280
BLOCKHASH = "11111111111111111111111111111111"


def token_entry(
    address: str,
    amount: int = 0,
    *,
    mint: Optional[str] = None,
    lamports: int = RENT,
    state: str = "initialized",
) -> dict:
    """One jsonParsed getTokenAccountsByOwner entry."""
    return {
        "pubkey": address,
        "account": {
            "lamports": lamports,
            "data": {
                "parsed": {
                    "info": {
                        "mint": mint or str(Pubkey.new_unique()),
                        "state": state,
                        "tokenAmount": {"amount": str(amount), "decimals": 6},
                    },
                    "type": "account",
                },
                "program": "spl-token",
            },
        },
    }


def new_address() -> str:
    return str(Pubkey.new_unique())


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def __call__(self) -> float:
        return self.now


class FakeRpc:
    """Keeps token accounts per program and closes them when a tx confirms.

    ``failing_accounts``: a tx touching any of these lands with an on-chain error.
    ``stuck_accounts``: a tx touching any of these never gets a status.
    ``send_failures``: number of leading sendTransaction calls that raise.
    """

    def __init__(
        self,
        accounts: Optional[Dict[str, List[dict]]] = None,
        *,
        failing_accounts: Iterable[str] = (),
        stuck_accounts: Iterable[str] = (),
        send_failures: int = 0,
        scan_error: bool = False,
    ) -> None:
        self.accounts = {k: list(v) for k, v in (accounts or {}).items()}
        self.failing_accounts = set(failing_accounts)
        self.stuck_accounts = set(stuck_accounts)
        self.send_failures = send_failures
        self.scan_error = scan_error
        self.calls: List[str] = []
        self.sent: List[List[str]] = []
        self._pending: Dict[str, List[str]] = {}
        self._failed: Dict[str, List[str]] = {}

    @property
    def writes(self) -> int:
        return self.calls.count("sendTransaction")

    def get_token_accounts_by_owner(self, owner: str, program_id: str) -> List[dict]:
        self.calls.append("getTokenAccountsByOwner")
        if self.scan_error:
            raise RpcError("RPC error: node unavailable")
        return list(self.accounts.get(program_id, []))

    def get_latest_blockhash(self):
        self.calls.append("getLatestBlockhash")
        return Hash.from_string(BLOCKHASH)

    def send_transaction(self, tx_b64: str) -> str:
        self.calls.append("sendTransaction")
        if self.send_failures > 0:
            self.send_failures -= 1
            raise RpcError("RPC error: Blockhash not found")
        tx = Transaction.from_bytes(base64.b64decode(tx_b64))
        keys = tx.message.account_keys
        closed = [str(keys[ix.accounts[0]]) for ix in tx.message.instructions]
        self.sent.append(closed)
        sig = str(tx.signatures[0])
        self._pending[sig] = closed
        return sig

    def get_signature_status(self, sig: str):
        self.calls.append("getSignatureStatuses")
        closed = self._pending.get(sig)
        if closed is None:
            if sig in self._failed:
                return {"err": {"InstructionError": [0, "Custom"]}, "confirmationStatus": "confirmed"}
            return None
        if self.stuck_accounts.intersection(closed):
            return None
        if self.failing_accounts.intersection(closed):
            self._failed[sig] = self._pending.pop(sig)
            return {"err": {"InstructionError": [0, "Custom"]}, "confirmationStatus": "confirmed"}
        del self._pending[sig]
        gone = set(closed)
        for program_id, entries in self.accounts.items():
            self.accounts[program_id] = [e for e in entries if e["pubkey"] not in gone]
        return {"err": None, "confirmationStatus": "confirmed"}


@pytest.fixture
def keypair():
    return Keypair()


@pytest.fixture
def wallet(keypair):
    return str(keypair.pubkey())


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return ReclaimConfig(rpc_url="http://127.0.0.1:8899", sleep_ms=0, confirm_timeout_sec=5)


def spl_accounts(entries: List[dict]) -> Dict[str, List[dict]]:
    return {str(TOKEN_PROGRAM_ID): entries, str(TOKEN_2022_PROGRAM_ID): []}
