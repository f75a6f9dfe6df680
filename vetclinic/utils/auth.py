# vetclinic/utils/auth.py
from __future__ import annotations

import hmac
from typing import Optional, Union

import bcrypt

from ..config import BCRYPT_ROUNDS

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
_BCRYPT_MIN_ROUNDS = 4  # bcrypt's own floor


def _is_bcrypt(stored: str) -> bool:
    return stored.startswith(_BCRYPT_PREFIXES)


def _parse_bcrypt_cost(hash_str: str) -> int | None:
    """
    Extract the cost from a bcrypt hash: $2b$12$...
    Returns None if not parseable.
    """
    parts = hash_str.split("$")
    # ['', '2b', '12', 'rest...']
    if len(parts) < 4:
        return None
    try:
        return int(parts[2])
    except ValueError:
        return None


def hash_password(password: str, *, rounds: Optional[int] = None) -> str:
    """
    Hash `password` with bcrypt. `rounds` defaults to the configured cost
    (VETCLINIC_BCRYPT_ROUNDS, 12 unless overridden).
    """
    if password is None:
        raise ValueError("Password cannot be None")
    if not isinstance(password, str) or password == "":
        raise ValueError("Password must be a non-empty string")
    cost = max(_BCRYPT_MIN_ROUNDS, int(rounds if rounds is not None else BCRYPT_ROUNDS))
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(cost)).decode("utf-8")


def verify_password(password: str, stored_hash: Union[str, bytes, None]) -> bool:
    """
    Verify `password` against `stored_hash`.

    Documents imported from older exports may still carry plain-text
    passwords; those are compared in constant time and reported by
    needs_rehash() so the caller can upgrade them.
    """
    if stored_hash is None or password is None:
        return False
    if isinstance(stored_hash, bytes):
        stored_hash = stored_hash.decode("utf-8", errors="replace")
    stored_hash = stored_hash.strip()
    if not stored_hash:
        return False

    if _is_bcrypt(stored_hash):
        try:
            return bcrypt.checkpw(password.encode("utf-8"), stored_hash.encode("utf-8"))
        except ValueError:
            return False
    return hmac.compare_digest(password.encode("utf-8"), stored_hash.encode("utf-8"))


def needs_rehash(stored_hash: Union[str, bytes, None], *, min_rounds: Optional[int] = None) -> bool:
    """
    True if the stored value should be replaced: plain text, malformed, or a
    bcrypt hash below the configured cost.
    """
    if not stored_hash:
        return True
    if isinstance(stored_hash, bytes):
        stored_hash = stored_hash.decode("utf-8", errors="replace")
    h = stored_hash.strip()
    if not _is_bcrypt(h):
        return True
    cost = _parse_bcrypt_cost(h)
    floor = max(_BCRYPT_MIN_ROUNDS, int(min_rounds if min_rounds is not None else BCRYPT_ROUNDS))
    return cost is None or cost < floor
