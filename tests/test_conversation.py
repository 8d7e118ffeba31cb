import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(SRC_ROOT))

from core.conversation import (
    ConversationContext,
    ConversationTurn,
    coerce_history,
    filter_relevant_conversation,
)


def _turns(*contents: str) -> list[ConversationTurn]:
    return [ConversationTurn(content=c) for c in contents]


class CoerceHistoryTests(unittest.TestCase):
    def test_accepts_strings_dicts_and_turns(self) -> None:
        self.assertEqual(coerce_history(None), [])
        self.assertEqual(coerce_history("   "), [])
        self.assertEqual(coerce_history("nursing?"), [ConversationTurn(content="nursing?")])
        turns = coerce_history([{"role": "assistant", "content": "Hi"}, ConversationTurn(content="x")])
        self.assertEqual([t.role for t in turns], ["assistant", "user"])


class FilterRelevantConversationTests(unittest.TestCase):
    def test_short_history_is_kept(self) -> None:
        history = _turns("a", "b", "c")
        self.assertEqual(filter_relevant_conversation(history), history)

    def test_older_turns_need_a_shared_topic(self) -> None:
        history = _turns(
            "I like cooking and hospitality",
            "tell me about nursing",
            "what about business degrees",
            "is the RN program long?",
            "thanks",
            "do they have clinical hours",
        )
        filtered = filter_relevant_conversation(history)
        self.assertEqual(
            [t.content for t in filtered],
            ["tell me about nursing", "is the RN program long?", "thanks", "do they have clinical hours"],
        )

    def test_recent_turns_without_topics_drop_older_ones(self) -> None:
        history = _turns("nursing", "business", "ok", "thanks", "bye")
        self.assertEqual([t.content for t in filter_relevant_conversation(history)], ["ok", "thanks", "bye"])

    def test_caps_total_turns(self) -> None:
        history = _turns(*["nursing program"] * 8)
        self.assertEqual(len(filter_relevant_conversation(history, max_messages=5)), 5)


class ConversationContextTests(unittest.TestCase):
    def test_render(self) -> None:
        context = ConversationContext.build(
            "  what about Maui? ",
            [
                {"role": "user", "content": "nursing programs"},
                {"role": "assistant", "content": "Here are some."},
                {"role": "user", "content": "any in Hilo?"},
            ],
            programs=["Nursing", "Practical Nursing"],
        )
        self.assertEqual(
            context.render(),
            'Current query: "what about Maui?"\n'
            "Recent conversation: nursing programs | any in Hilo?\n"
            "Programs found: Nursing, Practical Nursing",
        )

    def test_programs_are_capped(self) -> None:
        context = ConversationContext.build("q", programs=[str(i) for i in range(10)])
        self.assertEqual(len(context.programs), 5)

    def test_empty_context(self) -> None:
        self.assertEqual(ConversationContext.build(None).render(), "No context available")


if __name__ == "__main__":
    unittest.main()
