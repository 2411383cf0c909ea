"""
Transaction simulator for agentgate.

Dry-runs an on-chain transaction through a JSON-RPC node before it is
signed, so reverts and runaway gas usage surface while the agent can
still back out.

How it works:
    1. eth_call against "latest"; an RPC error means the transaction reverts
    2. eth_estimateGas; an estimate above max_gas is flagged unsafe
    3. Transport failures (timeout, HTTP error, bad JSON) are reported as
       an unsafe result, never raised
"""

import logging
from typing import Any

import httpx

from agentgate.schema import SimulationParams, SimulationResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_GAS = 1_000_000
DEFAULT_TIMEOUT = 15.0


class RPCTransportError(Exception):
    """The RPC endpoint could not be reached or answered with garbage."""


class TransactionSimulator:
    """
    Dry-runs transactions against a JSON-RPC endpoint.

    Usage:
        async with TransactionSimulator("https://rpc.example.org") as sim:
            result = await sim.simulate(SimulationParams(from_address=a, to=b))
            if not result.safe:
                ...

    Attributes:
        rpc_url: JSON-RPC endpoint
        max_gas: Largest acceptable gas estimate
        timeout_seconds: Per-request timeout
    """

    def __init__(
        self,
        rpc_url: str,
        max_gas: int = DEFAULT_MAX_GAS,
        timeout_seconds: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not rpc_url:
            raise ValueError("rpc_url is required for TransactionSimulator")
        self.rpc_url = rpc_url
        self.max_gas = max_gas
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._request_id = 0

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "TransactionSimulator":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def simulate(self, params: SimulationParams) -> SimulationResult:
        """
        Simulate a transaction with eth_call and eth_estimateGas.

        Args:
            params: Transaction to dry-run

        Returns:
            SimulationResult; safe is False on revert, excessive gas or
            transport failure
        """
        tx = params.to_rpc()

        try:
            call = await self._rpc_call("eth_call", [tx, "latest"])
            if call.get("error"):
                error = call["error"]
                detail = error.get("message") if isinstance(error, dict) else None
                logger.info("Simulation of tx to %s reverted: %s", params.to, detail or error)
                return SimulationResult(
                    safe=False,
                    error=f"Simulation reverted: {detail or error}",
                    warnings=["Transaction will revert on-chain"],
                )

            estimate = await self._rpc_call("eth_estimateGas", [tx])
            gas_estimate = int(estimate["result"], 16) if estimate.get("result") else None
        except (httpx.HTTPError, RPCTransportError, ValueError, TypeError) as e:
            logger.warning("Simulation failed against %s: %s", self.rpc_url, e)
            return SimulationResult(safe=False, error=f"Simulation failed: {e}")

        warnings: list[str] = []
        if gas_estimate is not None and gas_estimate > self.max_gas:
            warnings.append(f"Gas estimate {gas_estimate} exceeds limit {self.max_gas}")

        return SimulationResult(
            safe=not warnings,
            gas_estimate=gas_estimate,
            warnings=warnings or None,
        )

    async def _rpc_call(self, method: str, params: list[Any]) -> dict[str, Any]:
        self._request_id += 1
        response = await self._get_client().post(
            self.rpc_url,
            json={
                "jsonrpc": "2.0",
                "id": self._request_id,
                "method": method,
                "params": params,
            },
        )
        if response.status_code >= 400:
            raise RPCTransportError(f"RPC HTTP {response.status_code}")
        body = response.json()
        if not isinstance(body, dict):
            raise RPCTransportError(f"Unexpected RPC response: {body!r}")
        return body
