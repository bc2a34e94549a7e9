"""In-memory ownership of active flows — one flow per chat, never shared."""

import logging

from serene_bot.flows.flow import Flow

logger = logging.getLogger(__name__)


class FlowRegistry:
    def __init__(self):
        self._flows: dict[int, Flow] = {}

    def mount(self, chat_id: int, flow: Flow) -> Flow:
        """Start a flow for a chat, discarding whatever was running there."""
        self.discard(chat_id)
        self._flows[chat_id] = flow
        logger.info("Mounted %s flow for chat %s", flow.definition.name, chat_id)
        return flow

    def get(self, chat_id: int) -> Flow | None:
        return self._flows.get(chat_id)

    def discard(self, chat_id: int) -> None:
        flow = self._flows.pop(chat_id, None)
        if flow is not None:
            flow.close()
            logger.info("Discarded %s flow for chat %s", flow.definition.name, chat_id)

    def __len__(self) -> int:
        return len(self._flows)


flows = FlowRegistry()
