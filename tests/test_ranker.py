import json
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
TESTS_ROOT = PROJECT_ROOT / "tests"
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(SRC_ROOT))
sys.path.insert(0, str(TESTS_ROOT))

from classifiers.rules import RuleBasedClassifier
from fakes import RANK_MARKER, candidate_count, oracle, record, reply, score_all
from retrieval.models import SearchIntent
from retrieval.ranker import SemanticRanker
from tools.cache import InMemoryCache

INTENT = SearchIntent(primary_topic="nursing", related_terms=["registered nurse", "healthcare"])


def _records(n: int) -> list:
    return [record(f"Program {i}", institution="MAN") for i in range(n)]


class SemanticRankerTests(unittest.TestCase):
    def test_every_candidate_appears_once(self) -> None:
        classifier, model = oracle(score_all(6))
        records = _records(45)
        ranked = SemanticRanker(classifier, batch_size=20).rank("nursing", INTENT, records)

        self.assertEqual(len(ranked), 45)
        self.assertEqual({c.record.key for c in ranked}, {r.key for r in records})
        self.assertEqual(sorted(candidate_count(p) for p in model.calls), [5, 20, 20])

    def test_omitted_duplicate_and_out_of_range_indices(self) -> None:
        payload = {
            "rankings": [
                {"index": 2, "score": 9, "reasoning": "strong", "matchType": "synonym"},
                {"index": 2, "score": 1, "reasoning": "duplicate"},
                {"index": 7, "score": 10},
                {"index": 0, "score": 10},
            ]
        }
        classifier, _ = oracle(reply(payload))
        ranked = SemanticRanker(classifier).rank("nursing", INTENT, _records(3))

        by_desc = {c.record.description: c for c in ranked}
        self.assertEqual((by_desc["Program 1"].score, by_desc["Program 1"].match_type), (9, "synonym"))
        self.assertEqual(by_desc["Program 1"].reasoning, "strong")
        for name in ("Program 0", "Program 2"):
            self.assertEqual((by_desc[name].score, by_desc[name].match_type), (7, "related"))
        self.assertEqual(len(ranked), 3)

    def test_sorted_by_score_and_stable_on_ties(self) -> None:
        payload = [
            {"index": 1, "score": 5},
            {"index": 2, "score": 8},
            {"index": 3, "score": 5},
            {"index": 4, "score": 8},
        ]
        classifier, _ = oracle(reply(payload))
        ranked = SemanticRanker(classifier).rank("nursing", INTENT, _records(4))
        self.assertEqual(
            [c.record.description for c in ranked],
            ["Program 1", "Program 3", "Program 0", "Program 2"],
        )

    def test_failed_batch_gets_flat_default(self) -> None:
        def respond(prompt: str) -> str:
            if '"Program 0 ' in prompt:
                raise RuntimeError("timeout")
            return score_all(9)(prompt)

        classifier, _ = oracle(respond)
        with self.assertLogs("retrieval.ranker", level="WARNING"):
            ranked = SemanticRanker(classifier, batch_size=2).rank("nursing", INTENT, _records(4))

        self.assertEqual([c.score for c in ranked], [9, 9, 5, 5])
        self.assertEqual([c.match_type for c in ranked[2:]], ["broad", "broad"])
        self.assertEqual(
            [c.record.description for c in ranked[2:]], ["Program 0", "Program 1"]
        )

    def test_malformed_batch_gets_flat_default(self) -> None:
        classifier, _ = oracle(reply("Sorry, I can't rank these."))
        with self.assertLogs("retrieval.ranker", level="WARNING"):
            ranked = SemanticRanker(classifier).rank("nursing", INTENT, _records(3))
        self.assertTrue(all(c.score == 5 and c.match_type == "broad" for c in ranked))

    def test_candidate_cap(self) -> None:
        classifier, model = oracle(score_all(6))
        ranked = SemanticRanker(classifier, batch_size=10, max_candidates=25).rank(
            "nursing", INTENT, _records(40)
        )
        self.assertEqual(len(ranked), 25)
        self.assertEqual(len(model.calls_with(RANK_MARKER)), 3)

    def test_campus_display_name(self) -> None:
        classifier, _ = oracle(score_all(6))
        ranked = SemanticRanker(classifier).rank("nursing", INTENT, [record("Nursing", institution="HIL")])
        self.assertEqual(ranked[0].campus, "University of Hawaii at Hilo")

    def test_successful_batches_are_cached(self) -> None:
        calls = []

        def respond(prompt: str) -> str:
            calls.append(prompt)
            if len(calls) == 1:
                raise RuntimeError("first call fails")
            return score_all(8)(prompt)

        classifier, model = oracle(respond)
        ranker = SemanticRanker(classifier, cache=InMemoryCache(), batch_size=50)
        records = _records(3)

        with self.assertLogs("retrieval.ranker", level="WARNING"):
            first = ranker.rank("nursing", INTENT, records)
        second = ranker.rank("nursing", INTENT, records)
        third = ranker.rank("nursing", INTENT, records)

        self.assertEqual({c.score for c in first}, {5})
        self.assertEqual({c.score for c in second}, {8})
        self.assertEqual(second, third)
        self.assertEqual(len(model.calls), 2)

    def test_rule_based_scoring(self) -> None:
        records = [
            record("Nursing", "51.3801"),
            record("Registered Nurse Refresher", "51.3801"),
            record("Medical Assisting", "51.0801"),
            record("Welding", "48.0508"),
        ]
        ranked = SemanticRanker(RuleBasedClassifier()).rank("nursing", INTENT, records)
        self.assertEqual(
            [(c.record.description, c.score, c.match_type) for c in ranked],
            [
                ("Nursing", 10, "exact"),
                ("Registered Nurse Refresher", 8, "synonym"),
                ("Medical Assisting", 6, "related"),
                ("Welding", 2, "broad"),
            ],
        )

    def test_unusable_index_is_treated_as_omitted(self) -> None:
        payload = [
            {"index": "two", "score": 1},
            {"index": 1.5, "score": 1},
            {"index": "3", "score": 9, "matchType": "exact"},
        ]
        classifier, _ = oracle(reply(payload))
        ranked = SemanticRanker(classifier).rank("nursing", INTENT, _records(3))

        self.assertEqual(
            [(c.record.description, c.score, c.match_type) for c in ranked],
            [("Program 2", 9, "exact"), ("Program 0", 7, "related"), ("Program 1", 7, "related")],
        )

    def test_rule_based_scores_are_cached(self) -> None:
        records = [record("Nursing", "51.3801"), record("Welding", "48.0508")]
        cache = InMemoryCache()
        first = SemanticRanker(RuleBasedClassifier(), cache=cache).rank("nursing", INTENT, records)
        second = SemanticRanker(RuleBasedClassifier(), cache=cache).rank("nursing", INTENT, records)

        self.assertEqual([c.score for c in first], [10, 2])
        self.assertEqual(first, second)

    def test_empty_input(self) -> None:
        classifier, model = oracle(reply(json.dumps({"rankings": []})))
        self.assertEqual(SemanticRanker(classifier).rank("nursing", INTENT, []), [])
        self.assertEqual(model.calls, [])


if __name__ == "__main__":
    unittest.main()
