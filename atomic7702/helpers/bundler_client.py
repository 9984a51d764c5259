import itertools
import logging
import time
from typing import Any

import requests

from atomic7702.config.network import RECEIPT_POLL_INTERVAL, RPC_TIMEOUT
from atomic7702.errors import BundlerRpcError, InclusionTimeoutError, TransportError
from atomic7702.helpers.user_operation import UserOperation

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------

logger = logging.getLogger(__name__)


class BundlerClient:
    """JSON-RPC client for an ERC-4337 bundler with Pimlico paymaster extensions."""

    def __init__(
        self,
        url: str,
        entry_point: str,
        session: requests.Session | None = None,
        timeout: int = RPC_TIMEOUT,
    ):
        self.url = url
        self.entry_point = entry_point
        self.session = session or requests.Session()
        self.timeout = timeout
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        self._ids = itertools.count(1)

    # ---------- transport ----------

    def call(self, method: str, params: list[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        logger.debug("--- Sending to bundler: %s ---", method)
        logger.debug("Params: %s", params)

        try:
            response = self.session.post(self.url, json=payload, headers=self.headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"{method}: bundler unreachable: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(
                f"{method}: non-JSON response from bundler (HTTP {response.status_code})"
            ) from e

        if not isinstance(body, dict):
            raise TransportError(f"{method}: unexpected response from bundler: {body!r}")

        error = body.get("error")
        if error:
            raise BundlerRpcError(method, error.get("code"), error.get("message", str(error)), error.get("data"))

        if response.status_code >= 400:
            raise TransportError(f"{method}: HTTP {response.status_code} from bundler")

        logger.debug("Result: %s", body.get("result"))
        return body.get("result")

    # ---------- core ----------

    def supported_entry_points(self) -> list[str]:
        return self.call("eth_supportedEntryPoints", [])

    def chain_id(self) -> int:
        return int(self.call("eth_chainId", []), 16)

    def get_user_operation_gas_price(self, speed: str = "fast") -> dict[str, int]:
        """Pimlico gas price suggestion: {maxFeePerGas, maxPriorityFeePerGas}."""
        prices = self.call("pimlico_getUserOperationGasPrice", [])
        tier = prices[speed]
        return {
            "maxFeePerGas": int(tier["maxFeePerGas"], 16),
            "maxPriorityFeePerGas": int(tier["maxPriorityFeePerGas"], 16),
        }

    def estimate_user_operation_gas(self, user_op: UserOperation) -> dict[str, Any]:
        return self.call("eth_estimateUserOperationGas", [user_op.to_rpc(), self.entry_point])

    def sponsor_user_operation(self, user_op: UserOperation, sponsorship_policy_id: str | None = None) -> dict[str, Any]:
        """Ask the paymaster to cover the operation; returns gas limits and paymaster fields."""
        params: list[Any] = [user_op.to_rpc(), self.entry_point]
        if sponsorship_policy_id:
            params.append({"sponsorshipPolicyId": sponsorship_policy_id})
        return self.call("pm_sponsorUserOperation", params)

    def send_user_operation(self, user_op: UserOperation) -> str:
        """Submit a signed operation; returns the userOpHash."""
        return self.call("eth_sendUserOperation", [user_op.to_rpc(), self.entry_point])

    def get_user_operation_receipt(self, user_op_hash: str) -> dict[str, Any] | None:
        return self.call("eth_getUserOperationReceipt", [user_op_hash])

    def wait_for_user_operation_receipt(
        self,
        user_op_hash: str,
        timeout: float,
        poll_interval: float = RECEIPT_POLL_INTERVAL,
    ) -> dict[str, Any]:
        """Poll until the bundler reports the operation included.

        Raises:
            InclusionTimeoutError: No receipt within ``timeout``; the outcome is unknown.
        """
        deadline = time.monotonic() + timeout
        while True:
            receipt = self.get_user_operation_receipt(user_op_hash)
            if receipt:
                return receipt
            if time.monotonic() >= deadline:
                raise InclusionTimeoutError(
                    f"UserOperation {user_op_hash} not included within {timeout}s; outcome unknown",
                    operation_hash=user_op_hash,
                )
            time.sleep(poll_interval)
