from __future__ import annotations

import re
import secrets
from urllib.parse import urlencode

ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
REFERRAL_CODE_RE = re.compile(rf"^[{ALPHABET}]{{6,8}}$")
SIGNUP_PATH = "/auth/signup"


def generate_referral_code(length: int = 6) -> str:
    """Generates a short uppercase referral code with low typo ambiguity."""
    if length <= 0:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def normalize_referral_code(raw_code: str | None) -> str:
    if raw_code is None:
        return ""
    return raw_code.strip().upper()


def is_well_formed_referral_code(code: str) -> bool:
    return REFERRAL_CODE_RE.fullmatch(code) is not None


def build_referral_link(base_url: str, code: str) -> str:
    """Shareable signup link carrying the code as the `ref` query parameter."""
    query = urlencode({"ref": normalize_referral_code(code)})
    return f"{base_url.rstrip('/')}{SIGNUP_PATH}?{query}"
