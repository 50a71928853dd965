from __future__ import annotations

from typing import Iterable

from .config import LAMPORTS_PER_SOL
from .models import Classification, TokenAccountRecord


def estimate_recoverable_sol(closeable_count: int, rent_exempt_lamports: int) -> float:
    return closeable_count * rent_exempt_lamports / LAMPORTS_PER_SOL


def classify_accounts(
    records: Iterable[TokenAccountRecord],
    rent_exempt_lamports: int,
) -> Classification:
    """Split records into closeable (zero balance) and the rest, keeping scan order."""
    closeable = []
    non_closeable = []
    for record in records:
        (closeable if record.is_closeable else non_closeable).append(record)
    return Classification(
        closeable=tuple(closeable),
        non_closeable=tuple(non_closeable),
        estimated_recoverable_sol=estimate_recoverable_sol(len(closeable), rent_exempt_lamports),
    )
