"""Batched CloseAccount submission.

One transaction per batch, one CloseAccount instruction per token account,
the wallet acting as both close authority and rent destination. Batches go
out strictly one after another; a failed batch is recorded and the next one
is still attempted.
"""

from __future__ import annotations

import base64
import logging
import time
from typing import Callable, List, Optional, Sequence

from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from .config import ReclaimConfig
from .errors import BatchSubmissionError, ConfirmationTimeout, RpcError
from .models import Batch, BatchOutcome
from .rpc import RpcClient

logger = logging.getLogger(__name__)

# SPL Token CloseAccount instruction index
CLOSE_ACCOUNT_IX = bytes([9])


def build_close_token_account_ix(
    token_program_id: Pubkey,
    token_account: Pubkey,
    destination: Pubkey,
    authority: Pubkey,
) -> Instruction:
    return Instruction(
        program_id=token_program_id,
        accounts=[
            AccountMeta(pubkey=token_account, is_signer=False, is_writable=True),
            AccountMeta(pubkey=destination, is_signer=False, is_writable=True),
            AccountMeta(pubkey=authority, is_signer=True, is_writable=False),
        ],
        data=CLOSE_ACCOUNT_IX,
    )


def build_close_instructions(batch: Batch, owner: Pubkey) -> List[Instruction]:
    return [
        build_close_token_account_ix(
            Pubkey.from_string(record.program_id),
            Pubkey.from_string(record.address),
            destination=owner,
            authority=owner,
        )
        for record in batch.accounts
    ]


def _accepted_statuses(commitment: str) -> set:
    if commitment == "finalized":
        return {"finalized"}
    return {"confirmed", "finalized"}


class BatchSubmitter:
    def __init__(
        self,
        rpc: RpcClient,
        keypair: Keypair,
        config: ReclaimConfig,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.rpc = rpc
        self.keypair = keypair
        self.config = config
        self._sleep = sleep
        self._clock = clock

    def _send(self, instructions: Sequence[Instruction]) -> str:
        """Sign and broadcast, retrying with a fresh blockhash until a signature comes back."""
        payer = self.keypair.pubkey()
        last_exc: Exception | None = None
        for attempt in range(1, self.config.send_max_retries + 1):
            try:
                bh = self.rpc.get_latest_blockhash()
                msg = Message.new_with_blockhash(list(instructions), payer, bh)
                tx = Transaction.new_unsigned(msg)
                tx.sign([self.keypair], bh)
                tx_b64 = base64.b64encode(bytes(tx)).decode("utf-8")
                return self.rpc.send_transaction(tx_b64)
            except RpcError as exc:
                last_exc = exc
                logger.debug("send attempt %d failed: %s", attempt, exc)
                if attempt < self.config.send_max_retries:
                    self._sleep(0.8 * attempt)
        raise BatchSubmissionError(f"send failed after retries: {last_exc}") from last_exc

    def _confirm(self, sig: str) -> None:
        accepted = _accepted_statuses(self.config.commitment)
        deadline = self._clock() + self.config.confirm_timeout_sec
        while self._clock() < deadline:
            try:
                val = self.rpc.get_signature_status(sig)
            except RpcError as exc:
                raise BatchSubmissionError(f"status lookup failed: {exc}", signature=sig) from exc
            if val is None:
                self._sleep(0.8)
                continue
            err = val.get("err")
            if err:
                raise BatchSubmissionError(f"Transaction {sig} failed: {err}", signature=sig)
            status = (val.get("confirmationStatus") or "").lower()
            if status in accepted:
                return
            self._sleep(0.5)
        raise ConfirmationTimeout(f"Timed out waiting for confirmation: {sig}", signature=sig)

    def submit(self, batch: Batch) -> BatchOutcome:
        """Close every account in ``batch`` with one transaction; never raises for batch errors."""
        owner = self.keypair.pubkey()
        sig: Optional[str] = None
        try:
            try:
                instructions = build_close_instructions(batch, owner)
            except ValueError as exc:
                raise BatchSubmissionError(f"invalid account address in batch: {exc}") from exc
            sig = self._send(instructions)
            self._confirm(sig)
        except Exception as exc:
            logger.warning("batch %d failed (%s): %s", batch.index, type(exc).__name__, exc)
            return BatchOutcome(
                batch=batch,
                succeeded=False,
                signature=getattr(exc, "signature", None) or sig,
                error=str(exc) or repr(exc),
                error_type=type(exc).__name__,
            )

        closed = len(batch)
        logger.info("batch %d closed %d accounts: %s", batch.index, closed, sig)
        return BatchOutcome(
            batch=batch,
            succeeded=True,
            signature=sig,
            accounts_closed=closed,
            recovered_lamports=closed * self.config.rent_exempt_lamports,
        )

    def submit_all(
        self,
        batches: Sequence[Batch],
        on_outcome: Optional[Callable[[BatchOutcome], None]] = None,
    ) -> List[BatchOutcome]:
        outcomes: List[BatchOutcome] = []
        for n, batch in enumerate(batches):
            if n:
                self._sleep(max(self.config.sleep_ms, 0) / 1000)
            outcome = self.submit(batch)
            outcomes.append(outcome)
            if on_outcome is not None:
                on_outcome(outcome)
        return outcomes
