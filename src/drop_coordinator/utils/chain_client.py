"""
Chain access for the coordinator.

Read-only queries go through a chain's REST (LCD) and Tendermint RPC
endpoints with httpx. Signing is delegated to cosmpy and only set up when
a mnemonic is configured.
"""

import asyncio
import base64
import json
import logging
from typing import TYPE_CHECKING, Any, Optional

import httpx
from cosmpy.aerial.client import LedgerClient, NetworkConfig
from cosmpy.aerial.gas import SimulationGasStrategy
from cosmpy.aerial.wallet import LocalWallet

from ..exceptions import ChainQueryError
from ..models import GasPrice

if TYPE_CHECKING:
    from ..config import CoordinatorConfig

logger = logging.getLogger(__name__)


class ChainQueryClient:
    """
    Read-only client for one chain.

    Every request is bounded by ``timeout`` seconds end to end; failures of
    any kind surface as ChainQueryError.
    """

    def __init__(
        self,
        rest_url: str,
        rpc_url: str = "",
        timeout: float = 30,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the query client.

        Args:
            rest_url: REST (LCD) endpoint URL
            rpc_url: Tendermint RPC endpoint URL, used for block height
            timeout: Per-request timeout in seconds
            client: Pre-built httpx client (tests inject a mock transport)
        """
        self.rest_url = rest_url.rstrip("/")
        self.rpc_url = rpc_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _get(self, url: str, params: Optional[dict[str, str]] = None) -> Any:
        try:
            response = await asyncio.wait_for(
                self._client.get(url, params=params), timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except asyncio.TimeoutError as e:
            raise ChainQueryError(f"Request to {url} timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise ChainQueryError(
                f"Request to {url} returned HTTP {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise ChainQueryError(f"Request to {url} failed: {e}") from e
        except ValueError as e:
            raise ChainQueryError(f"Malformed JSON in response from {url}") from e

    async def query_contract_smart(self, address: str, msg: dict[str, Any]) -> Any:
        """
        Run a CosmWasm smart query.

        Args:
            address: Contract address
            msg: JSON query message, e.g. ``{"config": {}}``

        Returns:
            The ``data`` field of the response
        """
        payload = base64.urlsafe_b64encode(
            json.dumps(msg, separators=(",", ":")).encode()
        ).decode()
        body = await self._get(f"{self.rest_url}/cosmwasm/wasm/v1/contract/{address}/smart/{payload}")
        if not isinstance(body, dict) or "data" not in body:
            raise ChainQueryError(f"Malformed smart query response from {address}: {body!r}")
        logger.debug(f"Smart query {msg} on {address}: {body['data']}")
        return body["data"]

    async def get_latest_height(self) -> int:
        """Latest block height from the RPC status endpoint."""
        body = await self._get(f"{self.rpc_url}/status")
        try:
            return int(body["result"]["sync_info"]["latest_block_height"])
        except (KeyError, TypeError, ValueError) as e:
            raise ChainQueryError(f"Malformed status response from {self.rpc_url}") from e

    async def get_balance(self, address: str, denom: str) -> int:
        """Bank balance of ``address`` in ``denom``."""
        body = await self._get(
            f"{self.rest_url}/cosmos/bank/v1beta1/balances/{address}/by_denom",
            params={"denom": denom},
        )
        try:
            return int(body["balance"]["amount"])
        except (KeyError, TypeError, ValueError) as e:
            raise ChainQueryError(f"Malformed balance response for {address}") from e

    async def get_chain_id(self) -> str:
        body = await self._get(f"{self.rest_url}/cosmos/base/tendermint/v1beta1/node_info")
        try:
            return body["default_node_info"]["network"]
        except (KeyError, TypeError) as e:
            raise ChainQueryError(f"Malformed node info response from {self.rest_url}") from e

    async def close(self) -> None:
        await self._client.aclose()


class ContractClient:
    """Query client bound to a single contract address."""

    def __init__(self, query_client: ChainQueryClient, address: str):
        self.query_client = query_client
        self.address = address

    async def query(self, msg: dict[str, Any]) -> Any:
        return await self.query_client.query_contract_smart(self.address, msg)


class SigningClient:
    """
    Coordinator account on the hub, backed by a cosmpy wallet and ledger
    client.
    """

    def __init__(self, wallet: LocalWallet, ledger: LedgerClient):
        self.wallet = wallet
        self.ledger = ledger

    @classmethod
    def from_mnemonic(
        cls,
        mnemonic: str,
        prefix: str,
        rest_url: str,
        chain_id: str,
        gas_price: GasPrice,
        gas_adjustment: float | None = None,
    ) -> "SigningClient":
        """
        Derive the account from a mnemonic and connect a ledger client.

        Args:
            mnemonic: BIP-39 mnemonic of the coordinator account
            prefix: Bech32 account prefix of the chain
            rest_url: REST endpoint used for broadcasting
            chain_id: Chain ID reported by the node
            gas_price: Minimum gas price and fee denom
            gas_adjustment: Multiplier applied to simulated gas
        """
        wallet = LocalWallet.from_mnemonic(mnemonic, prefix=prefix)
        network = NetworkConfig(
            chain_id=chain_id,
            url=f"rest+{rest_url.rstrip('/')}",
            fee_minimum_gas_price=float(gas_price.amount),
            fee_denomination=gas_price.denom,
            staking_denomination=gas_price.denom,
        )
        ledger = LedgerClient(network)
        if gas_adjustment:
            ledger.gas_strategy = SimulationGasStrategy(ledger, multiplier=gas_adjustment)
        return cls(wallet, ledger)

    @property
    def address(self) -> str:
        return str(self.wallet.address())


class ChainClientSet:
    """
    Query clients for the hub and target chains, plus the coordinator's hub
    account when a mnemonic is configured.

    Built once at startup and shared read-only by every component.
    """

    def __init__(
        self,
        hub_query: ChainQueryClient,
        target_query: ChainQueryClient,
        hub_signer: Optional[SigningClient] = None,
    ):
        self.hub_query = hub_query
        self.target_query = target_query
        self.hub_signer = hub_signer

    @classmethod
    async def connect(cls, config: "CoordinatorConfig") -> "ChainClientSet":
        """
        Create clients for both chains.

        The hub signing client is only created when a mnemonic is
        configured; the chain ID it needs is fetched from the node. The
        query clients are closed again if that fails.

        Raises:
            ChainQueryError: If the hub chain ID cannot be fetched
        """
        timeout = config.timeouts.query_timeout
        hub_query = ChainQueryClient(config.hub.rest_url, config.hub.rpc_url, timeout)
        target_query = ChainQueryClient(config.target.rest_url, config.target.rpc_url, timeout)

        hub_signer = None
        mnemonic = config.coordinator.mnemonic
        try:
            if mnemonic:
                hub_signer = SigningClient.from_mnemonic(
                    mnemonic,
                    prefix=config.hub.account_prefix,
                    rest_url=config.hub.rest_url,
                    chain_id=await hub_query.get_chain_id(),
                    gas_price=config.hub.gas_price,
                    gas_adjustment=config.hub.gas_adjustment,
                )
                logger.info(f"Coordinator account address: {hub_signer.address}")
            else:
                logger.info("No mnemonic configured, running with query clients only")
        except Exception:
            await hub_query.close()
            await target_query.close()
            raise

        return cls(hub_query, target_query, hub_signer)

    async def close(self) -> None:
        await self.hub_query.close()
        await self.target_query.close()
