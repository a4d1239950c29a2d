"""Profile API: read and update the caller's settings."""

import logging

from fastapi import APIRouter, Depends

from hyperdca.api.deps import get_current_profile, get_store
from hyperdca.models import Profile
from hyperdca.schemas.profile import ProfileRead, ProfileUpdate
from hyperdca.services.store import Store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("", response_model=ProfileRead)
def get_profile(profile: Profile = Depends(get_current_profile)):
    return profile


@router.patch("", response_model=ProfileRead)
def update_profile(
    data: ProfileUpdate,
    profile: Profile = Depends(get_current_profile),
    store: Store = Depends(get_store),
):
    updates = data.model_dump(exclude_unset=True, exclude_none=True)
    if "network_mode" in updates:
        updates["network_mode"] = updates["network_mode"].value
        if updates["network_mode"] != profile.network_mode:
            # Agent approvals are per network
            updates["agent_wallet_authorized_at"] = None
            logger.info(f"Profile {profile.id} switched to {updates['network_mode']}; authorization cleared")
    if not updates:
        return profile
    return store.update_profile(profile.id, updates)
