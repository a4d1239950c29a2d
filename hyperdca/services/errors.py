"""Trading error taxonomy.

Every failure a caller can act on is a ``TradingError`` carrying a symbolic
``kind``, a human-readable message and the HTTP status used when it crosses
the API boundary.
"""


class TradingError(Exception):
    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"success": False, "error": self.kind, "message": self.message}


class ConfigurationError(TradingError):
    kind = "configuration_error"
    status_code = 500


class ProfileNotFound(TradingError):
    kind = "profile_not_found"
    status_code = 404


class AssetNotFound(TradingError):
    kind = "asset_not_found"
    status_code = 400


class AgentNotAuthorized(TradingError):
    kind = "agent_not_authorized"
    status_code = 409


class InsufficientOrderSize(TradingError):
    kind = "insufficient_order_size"
    status_code = 400


class NoLiquidity(TradingError):
    kind = "no_liquidity"
    status_code = 400


class ExchangeRejected(TradingError):
    kind = "exchange_rejected"
    status_code = 502


class TransientNetworkError(TradingError):
    kind = "transient_network_error"
    status_code = 502


class OrderOutcomeUnknown(TransientNetworkError):
    """The order was sent but no response arrived; it may have executed."""

    kind = "order_outcome_unknown"


class SigningError(TradingError):
    kind = "signing_error"
    status_code = 500


class PersistenceGap(TradingError):
    """A filled trade could not be recorded locally. Logged, never raised to users."""

    kind = "persistence_gap"
    status_code = 500
