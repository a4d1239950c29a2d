"""Identity token verification.

Clients authenticate with an access token issued by the identity provider.
Tokens are verified against the provider's public key; the subject is the
provider's user id and maps one-to-one onto a ``Profile``.
"""

import logging
from dataclasses import dataclass

from jose import JWTError, jwt

from hyperdca.config import Settings, settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    subject: str
    email: str | None = None


def decode_identity_token(token: str, app_settings: Settings = settings) -> Identity | None:
    """Verify an access token and return its identity. Returns None on failure."""
    if not app_settings.identity_verification_key:
        logger.error("HD_IDENTITY_VERIFICATION_KEY not set; rejecting token")
        return None
    try:
        payload = jwt.decode(
            token,
            app_settings.identity_verification_key,
            algorithms=[app_settings.identity_algorithm],
            audience=app_settings.identity_app_id or None,
            issuer=app_settings.identity_issuer or None,
            options={"verify_aud": bool(app_settings.identity_app_id)},
        )
    except JWTError as e:
        logger.info(f"Identity token rejected: {e}")
        return None
    subject = payload.get("sub")
    if not subject:
        return None
    return Identity(subject=str(subject), email=payload.get("email"))
