"""Chat model doubles and record factories shared by the tests."""

import json
import re
import threading
import typing as typ

from langchain_core.language_models.chat_models import SimpleChatModel
from pydantic import Field

from classifiers.oracle import OracleClassifier
from records.models import Record

INTENT_MARKER = "extract\nthe search intent"
RANK_MARKER = "Programs to rank:"
CIP_MARKER = "Codes to validate, with sample program titles:"
SOC_MARKER = "occupation classification (SOC)"

_CANDIDATE_LINE = re.compile(r"^\s*(\d+)\. ", re.MULTILINE)

Responder = typ.Callable[[str], str]


class ScriptedChatModel(SimpleChatModel):
    """Answers every call through `responder` and records the prompts it saw."""

    responder: Responder
    calls: list[str] = Field(default_factory=list)
    lock: typ.Any = Field(default_factory=threading.Lock, exclude=True)

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def _call(self, messages, stop=None, run_manager=None, **kwargs) -> str:
        prompt = "\n".join(str(message.content) for message in messages)
        with self.lock:
            self.calls.append(prompt)
        return self.responder(prompt)

    def calls_with(self, marker: str) -> list[str]:
        return [prompt for prompt in self.calls if marker in prompt]


def candidate_count(prompt: str) -> int:
    """Number of numbered candidate lines in a ranking prompt."""
    return len(_CANDIDATE_LINE.findall(prompt.split(RANK_MARKER, 1)[-1]))


def fail(message: str = "oracle unavailable") -> Responder:
    def _raise(prompt: str) -> str:
        raise RuntimeError(message)

    return _raise


def route(
    intent: Responder | None = None,
    rank: Responder | None = None,
    cip: Responder | None = None,
    soc: Responder | None = None,
) -> Responder:
    """Dispatch each prompt to the responder of the agent that produced it."""

    def _respond(prompt: str) -> str:
        for marker, responder in (
            (RANK_MARKER, rank),
            (CIP_MARKER, cip),
            (SOC_MARKER, soc),
            (INTENT_MARKER, intent),
        ):
            if marker in prompt:
                if responder is None:
                    raise RuntimeError(f"no responder for {marker!r}")
                return responder(prompt)
        raise RuntimeError("unrecognized prompt")

    return _respond


def reply(payload: typ.Any) -> Responder:
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return lambda prompt: text


def score_all(score: int, match_type: str = "exact") -> Responder:
    """Ranking responder giving every candidate of the batch the same score."""

    def _respond(prompt: str) -> str:
        return json.dumps(
            {
                "rankings": [
                    {"index": idx, "score": score, "reasoning": "scripted", "matchType": match_type}
                    for idx in range(1, candidate_count(prompt) + 1)
                ]
            }
        )

    return _respond


def oracle(responder: Responder) -> tuple[OracleClassifier, ScriptedChatModel]:
    model = ScriptedChatModel(responder=responder)
    return OracleClassifier.from_provider("fake", "fake-model", llm=model, max_concurrency=2), model


def record(
    description: str,
    code: str = "",
    institution: str = "MAN",
    level: str = "4-Year",
    program: str = "",
) -> Record:
    return Record(
        institution_id=institution,
        program_code=program or description[:4].upper(),
        description=description,
        level=level,
        classification_code=code,
    )
