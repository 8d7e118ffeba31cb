import logging
import re
import typing as typ

import pydantic

logger = logging.getLogger(__name__)

RECENT_TURNS = 3

TOPIC_PATTERNS = [
    re.compile(r"\b(nursing|nurse|rn|bsn|healthcare|medical|clinical)\b", re.IGNORECASE),
    re.compile(
        r"\b(computer science|cs|programming|software|it|tech|data science|cyber\s?security)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b(business|management|marketing|finance|accounting)\b", re.IGNORECASE),
    re.compile(r"\b(engineering|engineer)\b", re.IGNORECASE),
    re.compile(r"\b(education|teaching|teacher)\b", re.IGNORECASE),
    re.compile(r"\b(tourism|hospitality|hotel|culinary)\b", re.IGNORECASE),
    re.compile(r"\b(marine biology|ocean|environmental|conservation)\b", re.IGNORECASE),
    re.compile(r"\b(hawaiian studies|hawaiian culture|indigenous)\b", re.IGNORECASE),
    re.compile(r"\b(liberal arts|humanities|social science)\b", re.IGNORECASE),
    re.compile(r"\b(photography|film|graphic design|digital media|art)\b", re.IGNORECASE),
]


class ConversationTurn(pydantic.BaseModel):
    """One message of the conversation."""

    role: typ.Literal["user", "assistant", "system"] = "user"
    content: str

    model_config = pydantic.ConfigDict(frozen=True)


def coerce_history(
    history: None | str | typ.Sequence[ConversationTurn | dict[str, typ.Any]],
) -> list[ConversationTurn]:
    """Accept a plain string, dicts or turns and return turns."""
    if history is None:
        return []
    if isinstance(history, str):
        return [ConversationTurn(content=history)] if history.strip() else []
    return [
        turn if isinstance(turn, ConversationTurn) else ConversationTurn.model_validate(turn)
        for turn in history
    ]


def _topics(text: str) -> set[int]:
    return {idx for idx, pattern in enumerate(TOPIC_PATTERNS) if pattern.search(text)}


def filter_relevant_conversation(
    history: list[ConversationTurn], max_messages: int = 5
) -> list[ConversationTurn]:
    """Drop older turns that do not share a topic with the most recent ones.

    The last three turns are always kept. Older turns survive only when they
    mention one of the topics found in the recent turns, and at most
    `max_messages` turns are returned overall.
    """
    if len(history) <= RECENT_TURNS:
        return list(history)

    recent = history[-RECENT_TURNS:]
    recent_topics: set[int] = set()
    for turn in recent:
        recent_topics |= _topics(turn.content)
    if not recent_topics:
        return recent

    older = history[:-RECENT_TURNS]
    relevant_older = [turn for turn in older if _topics(turn.content) & recent_topics]
    keep = max(max_messages - RECENT_TURNS, 0)
    filtered_older = relevant_older[-keep:] if keep else []
    if len(filtered_older) < len(older):
        logger.debug(
            "Filtered conversation %d -> %d turns", len(history), len(filtered_older) + len(recent)
        )
    return [*filtered_older, *recent]


class ConversationContext(pydantic.BaseModel):
    """Query, filtered history and program names handed to classifiers."""

    query: str = ""
    history: list[ConversationTurn] = pydantic.Field(default_factory=list)
    programs: list[str] = pydantic.Field(default_factory=list)

    model_config = pydantic.ConfigDict(frozen=True)

    @classmethod
    def build(
        cls,
        query: str | None,
        history: None | str | typ.Sequence[ConversationTurn | dict[str, typ.Any]] = None,
        programs: typ.Sequence[str] | None = None,
    ) -> "ConversationContext":
        return cls(
            query=(query or "").strip(),
            history=filter_relevant_conversation(coerce_history(history)),
            programs=list(programs or [])[:5],
        )

    def recent_user_messages(self, limit: int = RECENT_TURNS) -> list[str]:
        return [turn.content for turn in self.history if turn.role == "user"][-limit:]

    def render(self) -> str:
        """Plain-text context block used in prompts."""
        parts = []
        if self.query:
            parts.append(f'Current query: "{self.query}"')
        recent = self.recent_user_messages()
        if recent:
            parts.append(f"Recent conversation: {' | '.join(recent)}")
        if self.programs:
            parts.append(f"Programs found: {', '.join(self.programs)}")
        return "\n".join(parts) or "No context available"
