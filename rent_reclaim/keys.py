"""Keypair loading.

Supports:
  - JSON array of 64 ints (Solana CLI default)
  - base58 string of 64 raw bytes (Phantom-style export)

Either may be stored plain or gzipped (``.json.gz``). Loading returns a
``KeyLoadResult`` rather than raising, so callers branch on ``ok``.
"""

from __future__ import annotations

import gzip
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from solders.keypair import Keypair

from .errors import InvalidKeyFormat, KeyFileNotFound

SECRET_KEY_LEN = 64

# ---------------- Minimal base58 (no external dependency) ----------------
_B58_ALPHABET = b"123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_B58_INDEX = {c: i for i, c in enumerate(_B58_ALPHABET)}


def b58decode(s: str) -> Optional[bytes]:
    """Decode base58 text; ``None`` if it contains a non-alphabet character."""
    try:
        s_bytes = s.encode("ascii")
    except UnicodeEncodeError:
        return None
    if not s_bytes:
        return None
    n = 0
    for ch in s_bytes:
        idx = _B58_INDEX.get(ch)
        if idx is None:
            return None
        n = n * 58 + idx
    out = n.to_bytes((n.bit_length() + 7) // 8, "big") if n else b""
    pad = 0
    for ch in s_bytes:
        if ch == _B58_ALPHABET[0]:
            pad += 1
        else:
            break
    return b"\x00" * pad + out


@dataclass(frozen=True)
class KeyLoadResult:
    path: str
    keypair: Optional[Keypair] = None
    error: Optional[Union[KeyFileNotFound, InvalidKeyFormat]] = None

    @property
    def ok(self) -> bool:
        return self.keypair is not None

    def unwrap(self) -> Keypair:
        if self.keypair is None:
            raise self.error or InvalidKeyFormat(self.path)
        return self.keypair


def resolve_key_path(raw: str) -> Path:
    return Path(raw).expanduser().resolve()


def _read_text(path: Path) -> str:
    if path.name.endswith(".gz"):
        with gzip.open(path, "rt", encoding="utf-8") as fh:
            return fh.read()
    return path.read_text(encoding="utf-8")


def _keypair_from_secret(raw: bytes) -> Optional[Keypair]:
    if len(raw) != SECRET_KEY_LEN:
        return None
    try:
        return Keypair.from_bytes(raw)
    except ValueError:
        return None


def _try_json_array(text: str) -> Optional[Keypair]:
    try:
        payload = json.loads(text)
    except (ValueError, RecursionError):
        return None
    if not isinstance(payload, list):
        return None
    if not all(isinstance(x, int) and not isinstance(x, bool) and 0 <= x <= 255 for x in payload):
        return None
    return _keypair_from_secret(bytes(payload))


def _try_base58(text: str) -> Optional[Keypair]:
    candidate = text
    # A JSON-quoted string ("5Kd3...") is accepted too.
    if len(candidate) >= 2 and candidate[0] == candidate[-1] == '"':
        candidate = candidate[1:-1]
    raw = b58decode(candidate)
    if raw is None:
        return None
    return _keypair_from_secret(raw)


def load_keypair(raw_path: str) -> KeyLoadResult:
    """Resolve ``raw_path`` (``~`` allowed) and decode the keypair it holds."""
    path = resolve_key_path(raw_path)
    shown = str(path)
    if not path.is_file():
        return KeyLoadResult(shown, error=KeyFileNotFound(shown))

    try:
        text = _read_text(path).strip()
    except (OSError, EOFError, UnicodeDecodeError) as exc:
        return KeyLoadResult(shown, error=InvalidKeyFormat(shown, f"unreadable: {exc}"))

    keypair = _try_json_array(text) or _try_base58(text)
    if keypair is None:
        return KeyLoadResult(shown, error=InvalidKeyFormat(shown))
    return KeyLoadResult(shown, keypair=keypair)
