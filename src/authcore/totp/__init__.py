"""TOTP engine: secret generation, provisioning URIs and token checks."""

from __future__ import annotations

from .engine import BASE32_SECRET, SECRET_LENGTH, TokenCheck, TotpEngine, TotpSecret
from .qr import render_qr_data_url

__all__: list[str] = [
    "TotpEngine",
    "TotpSecret",
    "TokenCheck",
    "BASE32_SECRET",
    "SECRET_LENGTH",
    "render_qr_data_url",
]
