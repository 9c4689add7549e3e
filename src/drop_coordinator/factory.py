"""
Factory discovery.

Queries the Drop factory contract for the addresses of all protocol
sub-contracts. Discovery runs once at startup and is required: modules that
rely on factory addresses cannot be scheduled without it.
"""

import logging

from .exceptions import ChainQueryError, FactoryDiscoveryError
from .models import FactoryState
from .utils.chain_client import ChainQueryClient, ContractClient

logger = logging.getLogger(__name__)


class FactoryDiscovery:
    """Reads the factory contract state."""

    STATE_QUERY = {"state": {}}

    def __init__(self, query_client: ChainQueryClient, factory_address: str):
        self.factory_address = factory_address
        self.contract = ContractClient(query_client, factory_address)

    async def discover(self) -> FactoryState:
        """
        Query the factory and build a FactoryState snapshot.

        Raises:
            FactoryDiscoveryError: If the query fails or the state is malformed
        """
        logger.info(f"Connecting to factory contract {self.factory_address}...")
        try:
            response = await self.contract.query(self.STATE_QUERY)
        except ChainQueryError as e:
            raise FactoryDiscoveryError(f"Unable to query factory contract state: {e}") from e

        try:
            state = FactoryState.from_response(response)
        except ValueError as e:
            raise FactoryDiscoveryError(f"Unexpected factory contract state: {e}") from e

        logger.info(f"Factory contract state discovered: {len(state)} contracts")
        for role in state.roles:
            logger.debug(f"  {role}: {state[role]}")
        return state
