from __future__ import annotations
from typing import Iterator, List

from .ports import ChatTurn, Provider

USER_TEMPLATE = (
    "Here is a man page for the user to understand:\n\n{manual}\n\n"
    "Please mansplain this to them."
)


def build_turns(system_prompt: str, manual: str) -> List[ChatTurn]:
    return [
        ChatTurn("system", system_prompt),
        ChatTurn("user", USER_TEMPLATE.format(manual=manual)),
    ]


class ExplainSession:
    def __init__(self, model: Provider, system_prompt: str):
        self.model = model
        self.system_prompt = system_prompt

    def run_turn(self, manual: str) -> str:
        reply = self.model.chat(build_turns(self.system_prompt, manual))
        return reply["content"] if isinstance(reply, dict) else str(reply)

    def run_turn_stream(self, manual: str) -> Iterator[str]:
        turns = build_turns(self.system_prompt, manual)
        return iter(self.model.chat_stream(turns))
