"""Database models."""

from hyperdca.models.profile import Profile
from hyperdca.models.dca_plan import DcaPlan
from hyperdca.models.dca_execution import DcaExecution
from hyperdca.models.wallet_holding import WalletHolding
from hyperdca.models.wallet_balance import WalletBalance
from hyperdca.models.wallet_transaction import WalletTransaction

__all__ = [
    "Profile",
    "DcaPlan",
    "DcaExecution",
    "WalletHolding",
    "WalletBalance",
    "WalletTransaction",
]
