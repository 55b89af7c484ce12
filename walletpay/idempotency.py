"""Idempotency keys for mutating requests.

One key per logical transfer attempt. A retry of the same attempt must send
the key it already has; only a new attempt asks for a new one.
"""

from __future__ import annotations

import uuid


def new_key() -> str:
    # uuid4 draws from os.urandom
    return str(uuid.uuid4())
