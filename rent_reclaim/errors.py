"""Error taxonomy for the rent reclamation engine.

Scan-phase and identity-phase errors are fatal to a run. Batch-phase errors
are captured on the batch's outcome and never abort the remaining batches.
"""

from __future__ import annotations


class ReclaimError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(ReclaimError):
    pass


class RpcError(ReclaimError, RuntimeError):
    """JSON-RPC transport failure or an ``error`` member in the response."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class KeyFileNotFound(ReclaimError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Keypair file not found: {path}")
        self.path = path


class InvalidKeyFormat(ReclaimError):
    def __init__(self, path: str, detail: str = "") -> None:
        msg = f"Invalid keypair format in {path}. Expected JSON array or base58 string."
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)
        self.path = path


class IdentityMismatch(ReclaimError):
    def __init__(self, keypair_pubkey: str, wallet: str) -> None:
        super().__init__(
            f"Keypair public key does not match wallet address "
            f"(keypair={keypair_pubkey} wallet={wallet})"
        )
        self.keypair_pubkey = keypair_pubkey
        self.wallet = wallet


class NetworkScanError(ReclaimError):
    pass


class BatchSubmissionError(ReclaimError):
    def __init__(self, message: str, *, signature: str | None = None) -> None:
        super().__init__(message)
        self.signature = signature


class ConfirmationTimeout(BatchSubmissionError):
    pass
