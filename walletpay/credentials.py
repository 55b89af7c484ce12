"""Access/refresh token pair and its durable store.

The store is the only authority on whether a session exists. Any problem
reading it (missing file, bad JSON, half a pair, wrong secret) counts as
"no credentials": storage errors degrade to an anonymous session.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import os
import secrets
import tempfile
import threading
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

SEAL_PREFIX = "v2|"
SEAL_SALT = b"walletpay_credentials_v2"


@dataclass(frozen=True)
class CredentialPair:
    access: str
    refresh: str

    def __post_init__(self) -> None:
        if not isinstance(self.access, str) or not self.access:
            raise ValueError("access token missing")
        if not isinstance(self.refresh, str) or not self.refresh:
            raise ValueError("refresh token missing")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CredentialPair":
        return cls(access=d.get("access"), refresh=d.get("refresh"))

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    def __repr__(self) -> str:
        return "CredentialPair(access=***, refresh=***)"


# ------------------------
# At-rest sealing
# ------------------------
def derive_storage_key(secret: str) -> bytes:
    return hashlib.sha256(SEAL_SALT + secret.encode()).digest()[:32]


def seal(plaintext: str, secret: str) -> str:
    aes = AESGCM(derive_storage_key(secret))
    nonce = secrets.token_bytes(12)
    ct = aes.encrypt(nonce, plaintext.encode(), None)
    return SEAL_PREFIX + base64.b64encode(nonce + ct).decode()


def unseal(enc: str, secret: str) -> str:
    """Raises ValueError (or InvalidTag) when the envelope is damaged or the secret is wrong."""
    raw = base64.b64decode(enc[len(SEAL_PREFIX):])
    if len(raw) < 13:
        raise ValueError("sealed record too short")
    aes = AESGCM(derive_storage_key(secret))
    return aes.decrypt(raw[:12], raw[12:], None).decode()


# ------------------------
# Stores
# ------------------------
class MemoryCredentialStore:
    """Process-local store with the same contract as CredentialStore."""

    def __init__(self, pair: Optional[CredentialPair] = None):
        self._pair = pair
        self._lock = threading.Lock()

    def get(self) -> Optional[CredentialPair]:
        with self._lock:
            return self._pair

    def set(self, pair: CredentialPair) -> None:
        with self._lock:
            self._pair = pair

    def clear(self) -> None:
        with self._lock:
            self._pair = None


class CredentialStore:
    """One JSON record ``{"access", "refresh"}`` in a file, replaced atomically."""

    def __init__(self, path: Path, secret: Optional[str] = None):
        self.path = Path(path)
        self.secret = secret
        self._lock = threading.Lock()

    def get(self) -> Optional[CredentialPair]:
        with self._lock:
            try:
                if not self.path.exists():
                    return None
                text = self.path.read_text().strip()
                if text.startswith(SEAL_PREFIX):
                    if not self.secret:
                        logger.warning("credential record is sealed but no storage secret is set")
                        return None
                    text = unseal(text, self.secret)
                return CredentialPair.from_dict(json.loads(text))
            except Exception as e:
                logger.warning(f"credential record unreadable, treating as absent: {type(e).__name__}")
                return None

    def set(self, pair: CredentialPair) -> None:
        payload = json.dumps(pair.to_dict())
        if self.secret:
            payload = seal(payload, self.secret)
        with self._lock:
            old_umask = os.umask(0o077)
            tmp = None
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".creds-")
                with os.fdopen(fd, "w") as f:
                    f.write(payload)
                os.chmod(tmp, 0o600)
                os.replace(tmp, self.path)
                tmp = None
            except OSError as e:
                logger.warning(f"failed to persist credentials: {e}")
            finally:
                os.umask(old_umask)
                if tmp and os.path.exists(tmp):
                    os.unlink(tmp)

    def clear(self) -> None:
        with self._lock:
            try:
                self.path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"failed to clear credentials: {e}")
