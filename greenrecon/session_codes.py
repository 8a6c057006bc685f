"""Short human-friendly session codes."""

from __future__ import annotations

import secrets

# O/0 and I/1 are left out so codes read unambiguously off a projector.
CHARSET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6


def generate_session_code() -> str:
    return "".join(secrets.choice(CHARSET) for _ in range(CODE_LENGTH))


def is_valid_session_code(code: str) -> bool:
    if len(code) != CODE_LENGTH:
        return False
    return all(char.upper() in CHARSET for char in code)


def normalize_session_code(code: str) -> str:
    return code.strip().upper()
