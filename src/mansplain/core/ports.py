from __future__ import annotations
from dataclasses import dataclass
from typing import Protocol, Iterable, List, Dict, Literal, Sequence

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatTurn:
    role: Role
    text: str

    def as_message(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.text}


class Provider(Protocol):
    """
    Interface the core uses to talk to an LLM backend.
    """

    # Surfaced for logging
    model: str

    def chat(self, turns: Sequence[ChatTurn]) -> Dict[str, str]:
        """
        Synchronous call. Returns {'content': <assistant_text>}.
        """
        ...

    def chat_stream(self, turns: Sequence[ChatTurn]) -> Iterable[str]:
        """
        Streaming call. Yields text fragments as they arrive.
        """
        ...


def messages_for(turns: Iterable[ChatTurn]) -> List[Dict[str, str]]:
    return [t.as_message() for t in turns]
