"""
Escrow settings.

Values come from the process environment, with a `.env` file in the working
directory loaded first (existing variables win):

- FINALIZE_RESTRICTED_TO_CREATOR: only the creator may finalize (default true)
- CAP_RELEASES_AT_RAISED: never release more than is held (default true)
- CLOSE_AT_TARGET: stop accepting contributions at the target (default false)
- ALGOD_SERVER / ALGOD_TOKEN: Algorand node for the escrow account
- ESCROW_MNEMONIC: 25-word mnemonic of the escrow account
- LOG_LEVEL / LOG_JSON: logging output
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def parse_bool(name: str, raw: Optional[str], default: bool) -> bool:
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


@dataclass(frozen=True)
class EscrowSettings:
    finalize_restricted_to_creator: bool = True
    cap_releases_at_raised: bool = True
    close_at_target: bool = False
    algod_server: str = "http://localhost:4001"
    algod_token: str = "a" * 64
    escrow_mnemonic: Optional[str] = None
    log_level: str = "INFO"
    log_json: bool = True

    @classmethod
    def from_env(cls, load_dotenv_file: bool = True) -> "EscrowSettings":
        """Build settings from environment variables (and `.env`)."""
        if load_dotenv_file:
            load_dotenv(find_dotenv(usecwd=True))

        return cls(
            finalize_restricted_to_creator=parse_bool(
                "FINALIZE_RESTRICTED_TO_CREATOR", os.getenv("FINALIZE_RESTRICTED_TO_CREATOR"), True
            ),
            cap_releases_at_raised=parse_bool(
                "CAP_RELEASES_AT_RAISED", os.getenv("CAP_RELEASES_AT_RAISED"), True
            ),
            close_at_target=parse_bool("CLOSE_AT_TARGET", os.getenv("CLOSE_AT_TARGET"), False),
            algod_server=os.getenv("ALGOD_SERVER", "http://localhost:4001"),
            algod_token=os.getenv("ALGOD_TOKEN", "a" * 64),
            escrow_mnemonic=os.getenv("ESCROW_MNEMONIC") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_json=parse_bool("LOG_JSON", os.getenv("LOG_JSON"), True),
        )
