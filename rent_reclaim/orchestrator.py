"""Run sequencing: scan, classify, gate, submit, report.

State flow:
  scanning -> classifying -> (dry_run_report | awaiting_confirmation)
  -> submitting -> reporting

``aborted`` is reachable only from ``awaiting_confirmation`` when the
operator declines. A scan failure raises before any report is returned.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from solders.keypair import Keypair

from .classifier import classify_accounts
from .config import ReclaimConfig
from .errors import ConfigError, IdentityMismatch
from .models import BatchOutcome, Classification, RunReport, RunState
from .planner import plan_batches
from .rpc import RpcClient
from .scanner import AccountScanner
from .submitter import BatchSubmitter

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[RunReport], bool]


def verify_identity(keypair: Keypair, wallet: str) -> None:
    keypair_pubkey = str(keypair.pubkey())
    if keypair_pubkey != wallet:
        raise IdentityMismatch(keypair_pubkey, wallet)


class ReclamationOrchestrator:
    def __init__(
        self,
        config: ReclaimConfig,
        rpc: Optional[RpcClient] = None,
        *,
        confirm: Optional[ConfirmFn] = None,
        on_outcome: Optional[Callable[[BatchOutcome], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.rpc = rpc or RpcClient(
            config.rpc_url,
            max_retries=config.rpc_max_retries,
            commitment=config.commitment,
        )
        self.scanner = AccountScanner(self.rpc, config.token_programs)
        # Without a confirm callback the gate declines.
        self._confirm = confirm
        self._on_outcome = on_outcome
        self._sleep = sleep
        self._clock = clock

    def scan(self, wallet: str) -> Classification:
        records = self.scanner.scan(wallet)
        return classify_accounts(records, self.config.rent_exempt_lamports)

    def run(
        self,
        wallet: str,
        keypair: Optional[Keypair] = None,
        *,
        dry_run: bool = False,
        assume_yes: bool = False,
    ) -> RunReport:
        if keypair is None and not dry_run:
            raise ConfigError("Keypair required unless running with dry_run")
        if keypair is not None:
            verify_identity(keypair, wallet)

        report = RunReport(wallet=wallet, dry_run=dry_run)
        report.enter(RunState.SCANNING)
        records = self.scanner.scan(wallet)

        report.enter(RunState.CLASSIFYING)
        report.apply_classification(classify_accounts(records, self.config.rent_exempt_lamports))
        logger.info(
            "wallet=%s scanned=%d closeable=%d",
            wallet,
            report.total_scanned,
            report.total_closeable,
        )

        if dry_run:
            report.enter(RunState.DRY_RUN_REPORT)
            report.enter(RunState.REPORTING)
            return report

        if not report.closeable:
            report.enter(RunState.REPORTING)
            return report

        report.enter(RunState.AWAITING_CONFIRMATION)
        if not assume_yes and not (self._confirm is not None and self._confirm(report)):
            logger.info("operator declined; no transactions sent")
            report.enter(RunState.ABORTED)
            return report

        report.enter(RunState.SUBMITTING)
        batches = plan_batches(report.closeable, self.config.batch_size)
        submitter = BatchSubmitter(
            self.rpc, keypair, self.config, sleep=self._sleep, clock=self._clock
        )

        def _record(outcome: BatchOutcome) -> None:
            report.record(outcome)
            if self._on_outcome is not None:
                self._on_outcome(outcome)

        submitter.submit_all(batches, on_outcome=_record)

        report.enter(RunState.REPORTING)
        return report
