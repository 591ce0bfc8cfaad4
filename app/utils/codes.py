from __future__ import annotations

import secrets
import string
import time

_BASE36 = string.digits + string.ascii_uppercase


def to_base36(n: int) -> str:
    if n < 0:
        raise ValueError("negative numbers are not supported")
    if n == 0:
        return "0"
    out = []
    while n:
        n, rem = divmod(n, 36)
        out.append(_BASE36[rem])
    return "".join(reversed(out))


def generate_confirmation_number(now_ms: int | None = None) -> str:
    """CNSL-<timestamp ms em base36>-<4 caracteres aleatórios>."""
    stamp = to_base36(now_ms if now_ms is not None else time.time_ns() // 1_000_000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"CNSL-{stamp}-{suffix}"
