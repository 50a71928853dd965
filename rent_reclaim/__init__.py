"""Reclaim the rent deposit locked in empty SPL token accounts."""

from .config import ReclaimConfig
from .errors import (
    BatchSubmissionError,
    ConfirmationTimeout,
    IdentityMismatch,
    InvalidKeyFormat,
    KeyFileNotFound,
    NetworkScanError,
    ReclaimError,
)
from .keys import KeyLoadResult, load_keypair
from .models import Batch, BatchOutcome, RunReport, RunState, TokenAccountRecord
from .orchestrator import ReclamationOrchestrator

__version__ = "0.1.0"

__all__ = [
    "Batch",
    "BatchOutcome",
    "BatchSubmissionError",
    "ConfirmationTimeout",
    "IdentityMismatch",
    "InvalidKeyFormat",
    "KeyFileNotFound",
    "KeyLoadResult",
    "NetworkScanError",
    "ReclaimConfig",
    "ReclaimError",
    "ReclamationOrchestrator",
    "RunReport",
    "RunState",
    "TokenAccountRecord",
    "load_keypair",
]
