"""
botsmith.core.messages - Repair Conversation Messages
=======================================================

The repair oracle talks to the LLM in multi-turn conversations. A
RepairConversation starts with the guideline prompt for the resource type
being mutated and grows by one user/assistant pair per failed attempt:

    [user]      guideline prompt (slot type / slot / intent rules)
    [user]      payload + schema + platform error (attempt 1)
    [assistant] corrected payload
    [user]      payload + schema + platform error (attempt 2)
    [assistant] corrected payload
    ...

The conversation is owned by the caller of ResourceMutator.apply(), so it
stays inspectable after the call for diagnostics. It is thrown away once the
mutation succeeds or the budget is exhausted.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from botsmith.core.enums import ConversationRole


class ConversationMessage(BaseModel):
    """A single role-tagged turn.

    Attributes:
        role: Who produced the text.
        text: The message body.
    """

    role: ConversationRole
    text: str

    def to_wire(self) -> dict[str, Any]:
        """Render in the Anthropic messages format used on Bedrock."""
        return {
            "role": self.role.value,
            "content": [{"type": "text", "text": self.text}],
        }


class RepairConversation(BaseModel):
    """Ordered dialogue used to ask the oracle for corrected payloads.

    Example:
        >>> conversation = RepairConversation.seeded(SLOT_TYPE_GUIDELINES)
        >>> conversation.add_user("There is a call made to CreateSlotType ...")
        >>> conversation.add_assistant("```json {...} ```")
        >>> len(conversation)
        3
    """

    messages: list[ConversationMessage] = Field(default_factory=list)

    @classmethod
    def seeded(cls, guideline: str) -> RepairConversation:
        """Start a conversation with a guideline prompt as the first turn."""
        conversation = cls()
        conversation.add_user(guideline)
        return conversation

    def add_user(self, text: str) -> None:
        self.messages.append(ConversationMessage(role=ConversationRole.USER, text=text))

    def add_assistant(self, text: str) -> None:
        self.messages.append(ConversationMessage(role=ConversationRole.ASSISTANT, text=text))

    def to_wire(self) -> list[dict[str, Any]]:
        return [m.to_wire() for m in self.messages]

    @property
    def assistant_turns(self) -> int:
        """Number of answers the oracle has given in this conversation."""
        return sum(1 for m in self.messages if m.role == ConversationRole.ASSISTANT)

    def __len__(self) -> int:
        return len(self.messages)
