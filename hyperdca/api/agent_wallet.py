"""Agent wallet API: address, authorization status and approval tracking."""

from fastapi import APIRouter, Depends

from hyperdca.api.deps import get_current_profile, get_store, get_wallets
from hyperdca.models import Profile
from hyperdca.schemas.profile import AgentWalletStatus
from hyperdca.services.agent_wallet import AgentWalletManager
from hyperdca.services.store import Store

router = APIRouter(prefix="/api/agent-wallet", tags=["agent-wallet"])


def _status(profile: Profile) -> AgentWalletStatus:
    return AgentWalletStatus(
        agent_address=profile.agent_wallet_address,
        authorized=profile.agent_wallet_authorized_at is not None,
        authorized_at=profile.agent_wallet_authorized_at,
        network_mode=profile.network_mode,
    )


@router.get("", response_model=AgentWalletStatus)
def get_agent_wallet(
    profile: Profile = Depends(get_current_profile),
    store: Store = Depends(get_store),
    wallets: AgentWalletManager = Depends(get_wallets),
):
    """Current agent address, created or repaired if needed. Approve this address on Hyperliquid."""
    wallets.ensure(profile)
    return _status(store.require_profile(profile.id))


@router.get("/status", response_model=AgentWalletStatus)
def authorization_status(
    profile: Profile = Depends(get_current_profile),
    wallets: AgentWalletManager = Depends(get_wallets),
):
    authorized = wallets.check_authorization(profile.id)
    return _status(profile).model_copy(update={"authorized": authorized})


@router.post("/authorization", response_model=AgentWalletStatus)
def register_authorization(
    profile: Profile = Depends(get_current_profile),
    wallets: AgentWalletManager = Depends(get_wallets),
):
    """Record that the main wallet approved the agent on the exchange."""
    return _status(wallets.register_authorization(profile.id))


@router.post("/authorization/sync", response_model=AgentWalletStatus)
async def sync_authorization(
    profile: Profile = Depends(get_current_profile),
    store: Store = Depends(get_store),
    wallets: AgentWalletManager = Depends(get_wallets),
):
    """Check Hyperliquid's approved-agent list and mark the agent authorized if present."""
    await wallets.sync_authorization_from_exchange(profile.id)
    return _status(store.require_profile(profile.id))


@router.delete("/authorization", response_model=AgentWalletStatus)
def revoke_authorization(
    profile: Profile = Depends(get_current_profile),
    wallets: AgentWalletManager = Depends(get_wallets),
):
    return _status(wallets.clear_authorization(profile.id))
