"""Authentication API: session start for identity-provider users."""

import logging

from fastapi import APIRouter, Depends

from hyperdca.api.deps import get_identity, get_store, get_wallets
from hyperdca.schemas.profile import ProfileRead, SessionRequest
from hyperdca.services.agent_wallet import AgentWalletManager
from hyperdca.services.auth import Identity
from hyperdca.services.store import Store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/session", response_model=ProfileRead)
def start_session(
    body: SessionRequest,
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
    wallets: AgentWalletManager = Depends(get_wallets),
):
    """Get or create the caller's profile and make sure it has an agent wallet."""
    profile = store.get_profile_by_identity(identity.subject)

    if profile is None:
        profile = store.create_profile(
            identity_subject=identity.subject,
            email=body.email or identity.email,
            wallet_address=body.wallet_address,
            wallet_type=body.wallet_type,
        )
        logger.info(f"Created profile {profile.id} for {identity.subject}")
    elif body.wallet_address and profile.wallet_address != body.wallet_address:
        if not profile.wallet_address or profile.wallet_type == "embedded":
            profile = store.update_profile(profile.id, {"wallet_address": body.wallet_address})
        else:
            # External wallets never switch silently; approvals belong to the old wallet
            logger.warning(
                f"Connected wallet ({body.wallet_address}) differs from profile wallet "
                f"({profile.wallet_address}) for profile {profile.id}. Clearing agent authorization."
            )
            profile = wallets.clear_authorization(profile.id)

    if not profile.agent_wallet_address:
        wallets.ensure(profile)
        profile = store.require_profile(profile.id)
    return profile
