"""Read-only scan of a wallet's token accounts."""

from __future__ import annotations

import logging
from typing import Iterable, List

from solders.pubkey import Pubkey

from .errors import NetworkScanError, RpcError
from .models import TokenAccountRecord
from .rpc import RpcClient

logger = logging.getLogger(__name__)


def parse_token_account(entry: dict, program_id: str) -> TokenAccountRecord:
    """Build a record from one jsonParsed ``getTokenAccountsByOwner`` entry."""
    account = entry["account"]
    info = account["data"]["parsed"]["info"]
    return TokenAccountRecord(
        address=str(entry["pubkey"]),
        mint=str(info["mint"]),
        balance=int(info["tokenAmount"]["amount"]),
        program_id=program_id,
        lamports=int(account.get("lamports", 0) or 0),
        state=str(info.get("state") or "initialized"),
    )


class AccountScanner:
    def __init__(self, rpc: RpcClient, token_programs: Iterable[Pubkey]) -> None:
        self.rpc = rpc
        self.token_programs = [str(p) for p in token_programs]

    def scan(self, wallet: str) -> List[TokenAccountRecord]:
        """Return every token account owned by ``wallet``, in RPC order.

        Any RPC failure or malformed entry aborts the scan with
        ``NetworkScanError``; a partial scan would under-report the wallet.
        """
        try:
            Pubkey.from_string(wallet)
        except ValueError as e:
            raise NetworkScanError(f"Invalid wallet address: {wallet!r}") from e

        records: List[TokenAccountRecord] = []
        for program_id in self.token_programs:
            try:
                entries = self.rpc.get_token_accounts_by_owner(wallet, program_id)
            except RpcError as e:
                raise NetworkScanError(f"getTokenAccountsByOwner failed for {program_id}: {e}") from e
            for entry in entries:
                try:
                    records.append(parse_token_account(entry, program_id))
                except (KeyError, TypeError, ValueError) as e:
                    raise NetworkScanError(
                        f"Unexpected token account entry {entry!r:.120}: {e!r}"
                    ) from e
            logger.info("Scanned %d accounts under %s", len(entries), program_id)
        return records
