from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .config import LAMPORTS_PER_SOL


class RunState(str, enum.Enum):
    SCANNING = "scanning"
    CLASSIFYING = "classifying"
    DRY_RUN_REPORT = "dry_run_report"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    SUBMITTING = "submitting"
    REPORTING = "reporting"
    ABORTED = "aborted"


# ---------------- Data structures ----------------
@dataclass(frozen=True, slots=True)
class TokenAccountRecord:
    address: str
    mint: str
    balance: int
    program_id: str
    lamports: int = 0
    state: str = "initialized"

    @property
    def is_closeable(self) -> bool:
        return self.balance == 0


@dataclass(frozen=True, slots=True)
class Classification:
    closeable: Tuple[TokenAccountRecord, ...]
    non_closeable: Tuple[TokenAccountRecord, ...]
    estimated_recoverable_sol: float

    @property
    def total_scanned(self) -> int:
        return len(self.closeable) + len(self.non_closeable)

    @property
    def observed_closeable_lamports(self) -> int:
        return sum(r.lamports for r in self.closeable)


@dataclass(frozen=True, slots=True)
class Batch:
    index: int
    accounts: Tuple[TokenAccountRecord, ...]

    @property
    def addresses(self) -> List[str]:
        return [a.address for a in self.accounts]

    def __len__(self) -> int:
        return len(self.accounts)


@dataclass(frozen=True, slots=True)
class BatchOutcome:
    batch: Batch
    succeeded: bool
    signature: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    accounts_closed: int = 0
    recovered_lamports: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batch": self.batch.index,
            "addresses": self.batch.addresses,
            "succeeded": self.succeeded,
            "signature": self.signature,
            "error": self.error,
            "error_type": self.error_type,
            "accounts_closed": self.accounts_closed,
            "recovered_lamports": self.recovered_lamports,
        }


@dataclass(slots=True)
class RunReport:
    """Terminal artifact of a run.

    Totals only move through ``record``, once per completed batch, so the
    report reflects what landed on-chain rather than what was attempted.
    """

    wallet: str
    dry_run: bool = False
    state: RunState = RunState.SCANNING
    total_scanned: int = 0
    total_closeable: int = 0
    total_non_closeable: int = 0
    estimated_recoverable_sol: float = 0.0
    observed_closeable_lamports: int = 0
    total_closed: int = 0
    total_recovered_lamports: int = 0
    closeable: Tuple[TokenAccountRecord, ...] = ()
    outcomes: List[BatchOutcome] = field(default_factory=list)
    history: List[RunState] = field(default_factory=list)

    def enter(self, state: RunState) -> None:
        self.state = state
        self.history.append(state)

    def apply_classification(self, classification: Classification) -> None:
        self.total_scanned = classification.total_scanned
        self.total_closeable = len(classification.closeable)
        self.total_non_closeable = len(classification.non_closeable)
        self.estimated_recoverable_sol = classification.estimated_recoverable_sol
        self.observed_closeable_lamports = classification.observed_closeable_lamports
        self.closeable = classification.closeable

    def record(self, outcome: BatchOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.succeeded:
            self.total_closed += outcome.accounts_closed
            self.total_recovered_lamports += outcome.recovered_lamports

    @property
    def total_recovered_sol(self) -> float:
        return self.total_recovered_lamports / LAMPORTS_PER_SOL

    @property
    def failed_outcomes(self) -> List[BatchOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed_outcomes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wallet": self.wallet,
            "dry_run": self.dry_run,
            "state": self.state.value,
            "total_scanned": self.total_scanned,
            "total_closeable": self.total_closeable,
            "total_non_closeable": self.total_non_closeable,
            "estimated_recoverable_sol": self.estimated_recoverable_sol,
            "observed_closeable_lamports": self.observed_closeable_lamports,
            "total_closed": self.total_closed,
            "total_recovered_lamports": self.total_recovered_lamports,
            "total_recovered_sol": self.total_recovered_sol,
            "closeable": [r.address for r in self.closeable],
            "outcomes": [o.to_dict() for o in self.outcomes],
            "history": [s.value for s in self.history],
        }
