from __future__ import annotations

from typing import List, Sequence

from .config import DEFAULT_BATCH_SIZE
from .models import Batch, TokenAccountRecord


def plan_batches(
    closeable: Sequence[TokenAccountRecord],
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> List[Batch]:
    """Slice ``closeable`` into consecutive batches of at most ``batch_size``."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1 (got {batch_size})")
    return [
        Batch(index=n, accounts=tuple(closeable[i : i + batch_size]))
        for n, i in enumerate(range(0, len(closeable), batch_size))
    ]
