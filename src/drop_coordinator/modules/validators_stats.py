"""
Validators stats check.

Relays the interchain queries the validators-stats contract has registered.
"""

import json
from typing import Any, ClassVar

from ..exceptions import ChainQueryError
from .base import CheckModule


class ValidatorsStatsModule(CheckModule):
    """Hands registered validator statistics query ids to the ICQ relayer."""

    name = "validators_stats"
    role = "validators_stats"

    # Contract releases that expose KVQueryIds answer {"k_v_query_ids": {}}
    query_ids_msg: ClassVar[dict[str, Any]] = {"query_ids": {}}

    async def check(self) -> None:
        query_ids = await self.query(self.query_ids_msg)

        self.logger.info(f"Validator stats query ids: {json.dumps(query_ids)}")

        pending = self.pending_query_ids(query_ids)
        if pending:
            assert self.context is not None
            await self.context.relay.relay(pending)

    @staticmethod
    def pending_query_ids(response: Any) -> list[str]:
        """
        Non-empty query ids in response order.

        The contract answers with an object of named ids; a plain list is
        accepted as well. Unset (falsy) ids are dropped.
        """
        match response:
            case dict():
                values = list(response.values())
            case list():
                values = response
            case _:
                raise ChainQueryError(f"Malformed query ids response: {response!r}")
        return [str(value) for value in values if value]
