"""Conversation provider protocol.

The conversational intake flow is an external language-model collaborator.
The matching engine only consumes the structured attributes it extracts.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class ConversationReply:
    reply: str
    extracted_attributes: dict[str, Any] = field(default_factory=dict)
    profile_complete: bool = False


@runtime_checkable
class ConversationProvider(Protocol):
    async def send_message(self, entity_id: str, message: str) -> ConversationReply:
        """Send one user message and return the reply and extracted attributes."""
        ...
