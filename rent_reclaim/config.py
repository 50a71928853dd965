"""Run configuration.

Env:
  - RPC_URL or SOLANA_URL (optional override)
  - HELIUS_API_KEY (optional)
  - RECLAIM_COMMITMENT (default: confirmed)
  - RECLAIM_BATCH_SIZE (default: 10)
  - RENT_EXEMPT_LAMPORTS (default: 2039280)
  - RECLAIM_INCLUDE_TOKEN_2022 (default: 1)
  - RECLAIM_CONFIRM_TIMEOUT_SEC (default: 60)
  - RECLAIM_SEND_RETRIES (default: 3)
  - RECLAIM_RPC_RETRIES (default: 8)
  - RECLAIM_SLEEP_MS (default: 100)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Tuple

from dotenv import load_dotenv
from solders.pubkey import Pubkey

from .errors import ConfigError

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000

TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")
TOKEN_2022_PROGRAM_ID = Pubkey.from_string("TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb")

# Minimum balance for a 165-byte SPL token account. Advisory: the network
# parameter can change, so this only drives estimates.
DEFAULT_RENT_EXEMPT_LAMPORTS = 2_039_280

DEFAULT_BATCH_SIZE = 10

PUBLIC_MAINNET_RPC = "https://api.mainnet-beta.solana.com"


def default_rpc_url() -> str:
    override = (os.getenv("RPC_URL") or os.getenv("SOLANA_URL") or "").strip()
    if override:
        return override
    api_key = (os.getenv("HELIUS_API_KEY") or "").strip()
    if api_key:
        return f"https://mainnet.helius-rpc.com/?api-key={api_key}"
    logger.warning("HELIUS_API_KEY not set; using public mainnet RPC (slower).")
    return PUBLIC_MAINNET_RPC


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer (got {raw!r})") from e


def _env_flag(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw not in {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ReclaimConfig:
    rpc_url: str = PUBLIC_MAINNET_RPC
    commitment: str = "confirmed"
    batch_size: int = DEFAULT_BATCH_SIZE
    rent_exempt_lamports: int = DEFAULT_RENT_EXEMPT_LAMPORTS
    token_programs: Tuple[Pubkey, ...] = field(
        default_factory=lambda: (TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID)
    )
    confirm_timeout_sec: float = 60.0
    send_max_retries: int = 3
    rpc_max_retries: int = 8
    sleep_ms: int = 100

    def __post_init__(self) -> None:
        if not self.rpc_url:
            raise ConfigError("rpc_url must not be empty")
        if self.batch_size < 1:
            raise ConfigError(f"batch_size must be >= 1 (got {self.batch_size})")
        if self.rent_exempt_lamports < 0:
            raise ConfigError("rent_exempt_lamports must be >= 0")
        if self.confirm_timeout_sec <= 0:
            raise ConfigError("confirm_timeout_sec must be > 0")
        if self.send_max_retries < 1 or self.rpc_max_retries < 1:
            raise ConfigError("retry counts must be >= 1")
        if self.sleep_ms < 0:
            raise ConfigError("sleep_ms must be >= 0")
        if not self.token_programs:
            raise ConfigError("at least one token program is required")

    @classmethod
    def from_env(cls, **overrides) -> "ReclaimConfig":
        """Build a config from ``.env`` and the environment.

        Keyword overrides whose value is ``None`` are ignored, so CLI flags
        can be passed straight through.
        """
        load_dotenv()

        programs: Tuple[Pubkey, ...] = (TOKEN_PROGRAM_ID,)
        if _env_flag("RECLAIM_INCLUDE_TOKEN_2022", True):
            programs = (TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID)

        values = dict(
            commitment=(os.getenv("RECLAIM_COMMITMENT") or "confirmed").strip(),
            batch_size=_env_int("RECLAIM_BATCH_SIZE", DEFAULT_BATCH_SIZE),
            rent_exempt_lamports=_env_int("RENT_EXEMPT_LAMPORTS", DEFAULT_RENT_EXEMPT_LAMPORTS),
            token_programs=programs,
            confirm_timeout_sec=float(_env_int("RECLAIM_CONFIRM_TIMEOUT_SEC", 60)),
            send_max_retries=_env_int("RECLAIM_SEND_RETRIES", 3),
            rpc_max_retries=_env_int("RECLAIM_RPC_RETRIES", 8),
            sleep_ms=_env_int("RECLAIM_SLEEP_MS", 100),
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        if not values.get("rpc_url"):
            values["rpc_url"] = default_rpc_url()
        return cls(**values)

