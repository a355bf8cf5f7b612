"""Access gate configuration loaded from environment variables.

Environment Variables:
    LFSGATE_REALM: Realm named in the Basic credential challenge
    LFSGATE_TOKEN_EXPIRE_SEC: Lifetime of minted bearer tokens in seconds
    LFSGATE_TOKEN_ENSURE_TIME: Fraction of the lifetime a presented token
        must still have left to be accepted (0.0 - 1.0)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

LFSGATE_REALM_ENV = "LFSGATE_REALM"
LFSGATE_TOKEN_EXPIRE_SEC_ENV = "LFSGATE_TOKEN_EXPIRE_SEC"
LFSGATE_TOKEN_ENSURE_TIME_ENV = "LFSGATE_TOKEN_ENSURE_TIME"

DEFAULT_REALM = "lfsgate"
DEFAULT_TOKEN_EXPIRE_SEC = 3600
DEFAULT_TOKEN_ENSURE_TIME = 0.5


@dataclass(frozen=True, slots=True)
class GatewayConfig:
    """Settings shared by the access gate and token handling.

    Attributes:
        realm: Realm reported in WWW-Authenticate challenges.
        token_expire_sec: Lifetime of newly minted tokens.
        token_ensure_time: Fraction of the lifetime a presented token must
            still cover; tokens closer to expiry are treated as absent so the
            client re-authenticates before the token can lapse mid-transfer.
    """

    realm: str = DEFAULT_REALM
    token_expire_sec: int = DEFAULT_TOKEN_EXPIRE_SEC
    token_ensure_time: float = DEFAULT_TOKEN_ENSURE_TIME

    @property
    def token_ensure_seconds(self) -> int:
        """Minimum remaining lifetime, in whole seconds, of an accepted token."""
        return round(self.token_expire_sec * self.token_ensure_time)


def load_gateway_config() -> GatewayConfig:
    """Load gateway configuration from environment variables.

    Invalid numeric values fall back to defaults with a warning.
    """
    realm = os.environ.get(LFSGATE_REALM_ENV) or DEFAULT_REALM

    raw_expire = os.environ.get(LFSGATE_TOKEN_EXPIRE_SEC_ENV, str(DEFAULT_TOKEN_EXPIRE_SEC))
    try:
        token_expire_sec = int(raw_expire)
        if token_expire_sec <= 0:
            raise ValueError(raw_expire)
    except ValueError:
        logger.warning(
            "Invalid %s=%r; using %d",
            LFSGATE_TOKEN_EXPIRE_SEC_ENV,
            raw_expire,
            DEFAULT_TOKEN_EXPIRE_SEC,
        )
        token_expire_sec = DEFAULT_TOKEN_EXPIRE_SEC

    raw_ensure = os.environ.get(LFSGATE_TOKEN_ENSURE_TIME_ENV, str(DEFAULT_TOKEN_ENSURE_TIME))
    try:
        token_ensure_time = float(raw_ensure)
    except ValueError:
        logger.warning(
            "Invalid %s=%r; using %s",
            LFSGATE_TOKEN_ENSURE_TIME_ENV,
            raw_ensure,
            DEFAULT_TOKEN_ENSURE_TIME,
        )
        token_ensure_time = DEFAULT_TOKEN_ENSURE_TIME
    token_ensure_time = min(max(token_ensure_time, 0.0), 1.0)

    return GatewayConfig(
        realm=realm,
        token_expire_sec=token_expire_sec,
        token_ensure_time=token_ensure_time,
    )
