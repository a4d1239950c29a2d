"""Wallet API: sync with Hyperliquid and read cached holdings and history."""

from fastapi import APIRouter, Depends, HTTPException

from hyperdca.api.deps import get_current_profile, get_store, get_wallet_sync
from hyperdca.engine.wallet_sync import WalletSync
from hyperdca.models import Profile
from hyperdca.services.store import Store

router = APIRouter(prefix="/api/wallet", tags=["wallet"])


@router.post("/sync")
async def sync_wallet(
    profile: Profile = Depends(get_current_profile),
    sync: WalletSync = Depends(get_wallet_sync),
):
    if not profile.wallet_address:
        raise HTTPException(status_code=400, detail="Profile has no wallet address")
    result = await sync.sync(profile.id, profile.wallet_address, profile.network_mode)
    return result.to_dict()


@router.get("/holdings")
def list_holdings(
    profile: Profile = Depends(get_current_profile),
    store: Store = Depends(get_store),
):
    return store.list_holdings(profile.id)


@router.get("/balance")
def get_balance(
    profile: Profile = Depends(get_current_profile),
    store: Store = Depends(get_store),
):
    balance = store.get_balance(profile.id)
    if balance is None:
        return {"usdc_balance": 0.0, "total_value_usd": 0.0, "last_synced_at": None}
    return balance


@router.get("/transactions")
def list_transactions(
    limit: int = 50,
    offset: int = 0,
    profile: Profile = Depends(get_current_profile),
    store: Store = Depends(get_store),
):
    return store.list_transactions(profile.id, limit=limit, offset=offset)
