from .base import CheckModule


class CoreModule(CheckModule):
    """Observes the core contract's lifecycle state and transfer acknowledgement."""

    name = "core"
    role = "core"

    async def check(self) -> None:
        contract_state = await self.query({"contract_state": {}})
        transfer_ack = await self.query({"transfer_ack_received": {}})

        self.logger.info(
            f"Core contract state: {contract_state}, transfer ACK received: {transfer_ack}"
        )
