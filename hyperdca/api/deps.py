"""Shared API dependencies."""

import hmac

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from hyperdca.config import settings
from hyperdca.engine.order_executor import OrderExecutor
from hyperdca.engine.wallet_sync import WalletSync
from hyperdca.models import Profile
from hyperdca.services.agent_wallet import AgentWalletManager
from hyperdca.services.auth import Identity, decode_identity_token
from hyperdca.services.components import (
    build_client_factory,
    build_executor,
    build_store,
    build_wallet_sync,
    build_wallets,
)
from hyperdca.services.store import Store

bearer_scheme = HTTPBearer()


def get_store() -> Store:
    return build_store()


def get_identity(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> Identity:
    """Validate the identity token and return the caller's identity."""
    identity = decode_identity_token(credentials.credentials)
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return identity


def get_current_profile(
    identity: Identity = Depends(get_identity),
    store: Store = Depends(get_store),
) -> Profile:
    """Profile owned by the authenticated caller."""
    profile = store.get_profile_by_identity(identity.subject)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found. Start a session first.",
        )
    return profile


def get_wallets(store: Store = Depends(get_store)) -> AgentWalletManager:
    return build_wallets(store, build_client_factory())


def get_executor(store: Store = Depends(get_store)) -> OrderExecutor:
    return build_executor(store)


def get_wallet_sync(store: Store = Depends(get_store)) -> WalletSync:
    return build_wallet_sync(store)


def require_operator(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> None:
    """Reject callers that do not present the operator token."""
    expected = settings.operator_token
    if not expected or not hmac.compare_digest(credentials.credentials.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Operator credential required",
        )
