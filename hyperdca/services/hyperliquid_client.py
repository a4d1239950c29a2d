"""Hyperliquid HTTP client for info queries and signed exchange actions.

Wraps the hyperliquid SDK's blocking ``API`` transport. Reads are retried on
any transport failure; exchange submissions are retried only when the request
never reached the server, and a lost response is reported as an unknown
outcome rather than retried.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any

import requests
from hyperliquid.api import API
from hyperliquid.utils.error import Error as HyperliquidHTTPError

from hyperdca.config import Settings, settings
from hyperdca.services.errors import ExchangeRejected, OrderOutcomeUnknown, TransientNetworkError
from hyperdca.utils.constants import Network
from hyperdca.utils.retry import RetryPolicy, retry_async

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkConfig:
    network: Network
    api_url: str

    @property
    def is_mainnet(self) -> bool:
        return self.network == Network.MAINNET

    @property
    def info_url(self) -> str:
        return f"{self.api_url}/info"

    @property
    def exchange_url(self) -> str:
        return f"{self.api_url}/exchange"


def network_config(network: Network | str, app_settings: Settings = settings) -> NetworkConfig:
    network = Network(network)
    url = app_settings.mainnet_api_url if network == Network.MAINNET else app_settings.testnet_api_url
    return NetworkConfig(network=network, api_url=url.rstrip("/"))


def is_transport_error(exc: BaseException) -> bool:
    return isinstance(exc, requests.exceptions.RequestException)


def is_undelivered(exc: BaseException) -> bool:
    # ConnectTimeout is a ConnectionError; ReadTimeout is not
    return isinstance(exc, requests.exceptions.ConnectionError)


def default_retry_policy(app_settings: Settings = settings) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=app_settings.retry_max_attempts,
        base_delay=app_settings.retry_base_delay,
        backoff_multiplier=app_settings.retry_backoff_multiplier,
        is_retryable=is_transport_error,
    )


def _describe(exc: HyperliquidHTTPError) -> str:
    status = getattr(exc, "status_code", None)
    detail = getattr(exc, "error_message", None) or getattr(exc, "message", None) or str(exc)
    return f"HTTP {status}: {detail}" if status else str(detail)


class HyperliquidClient:
    """One client per request and network; never mixes hosts within an operation."""

    def __init__(
        self,
        config: NetworkConfig,
        retry_policy: RetryPolicy | None = None,
        timeout: float | None = None,
        api: API | None = None,
    ):
        self.config = config
        self.retry_policy = retry_policy or RetryPolicy(is_retryable=is_transport_error)
        self._api = api or API(base_url=config.api_url, timeout=timeout)

    @property
    def network(self) -> Network:
        return self.config.network

    async def _post(self, path: str, payload: dict) -> Any:
        # The SDK transport is synchronous; keep the event loop free
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._api.post, path, payload)

    async def info(self, payload: dict) -> Any:
        query = payload.get("type", "info")
        policy = replace(self.retry_policy, is_retryable=is_transport_error)
        try:
            return await retry_async(lambda: self._post("/info", payload), policy, label=f"info:{query}")
        except requests.exceptions.RequestException as e:
            raise TransientNetworkError(f"Hyperliquid {query} request failed: {e}") from e
        except HyperliquidHTTPError as e:
            raise ExchangeRejected(f"Hyperliquid {query} request rejected ({_describe(e)})") from e

    async def all_mids(self) -> dict[str, str]:
        result = await self.info({"type": "allMids"})
        return result if isinstance(result, dict) else {}

    async def spot_meta(self) -> dict:
        result = await self.info({"type": "spotMeta"})
        return result if isinstance(result, dict) else {}

    async def spot_clearinghouse_state(self, user: str) -> dict:
        result = await self.info({"type": "spotClearinghouseState", "user": user.lower()})
        return result if isinstance(result, dict) else {}

    async def ledger_updates(self, user: str, start_time: int, end_time: int | None = None) -> list[dict]:
        """Deposits, withdrawals and transfers (non-funding ledger updates)."""
        payload = {"type": "userNonFundingLedgerUpdates", "user": user.lower(), "startTime": start_time}
        if end_time is not None:
            payload["endTime"] = end_time
        result = await self.info(payload)
        return result if isinstance(result, list) else []

    async def user_fills_by_time(self, user: str, start_time: int, end_time: int | None = None) -> list[dict]:
        payload = {"type": "userFillsByTime", "user": user.lower(), "startTime": start_time}
        if end_time is not None:
            payload["endTime"] = end_time
        result = await self.info(payload)
        return result if isinstance(result, list) else []

    async def extra_agents(self, user: str) -> list[dict]:
        """Agent wallets the user has approved, each ``{address, validUntil}``."""
        result = await self.info({"type": "extraAgents", "user": user.lower()})
        if isinstance(result, list):
            return result
        if isinstance(result, dict) and isinstance(result.get("response"), list):
            return result["response"]
        return []

    async def submit_action(
        self,
        action: dict,
        nonce: int,
        signature: dict,
        vault_address: str | None = None,
    ) -> Any:
        """POST a signed L1 action. ``action`` must be the exact object that was signed."""
        payload = {
            "action": action,
            "nonce": nonce,
            "signature": signature,
            "vaultAddress": vault_address,
        }
        policy = replace(self.retry_policy, is_retryable=is_undelivered)
        try:
            return await retry_async(lambda: self._post("/exchange", payload), policy, label="exchange")
        except requests.exceptions.ConnectionError as e:
            raise TransientNetworkError(f"Could not reach Hyperliquid exchange: {e}") from e
        except requests.exceptions.RequestException as e:
            raise OrderOutcomeUnknown(
                f"No response from Hyperliquid for order nonce={nonce}; it may have executed. "
                f"Check your wallet before retrying."
            ) from e
        except HyperliquidHTTPError as e:
            raise ExchangeRejected(f"Hyperliquid order failed ({_describe(e)})") from e


def make_client(network: Network | str, app_settings: Settings = settings) -> HyperliquidClient:
    return HyperliquidClient(
        network_config(network, app_settings),
        retry_policy=default_retry_policy(app_settings),
        timeout=app_settings.http_timeout,
    )
