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
from fakes import SOC_MARKER, fail, oracle, reply
from tools.cache import InMemoryCache
from verification.models import CareerCodeSet
from verification.soc import SOCVerifier


class SOCVerifierTests(unittest.TestCase):
    def test_photography_drops_computing_occupations(self) -> None:
        mappings = [{"code": "50.0605", "careerCodes": ["27-4021", "15-1255"]}]
        result = SOCVerifier(RuleBasedClassifier()).verify(mappings, "photography careers")

        self.assertEqual(result[0].kept_codes, ["27-4021"])
        self.assertEqual(result[0].removed_codes, ["15-1255"])
        removed = [v for v in result[0].validations if v.original_code == "15-1255"][0]
        self.assertFalse(removed.is_relevant)
        self.assertEqual(removed.family, "Computer and Mathematical")

    def test_single_call_for_all_mappings(self) -> None:
        classifier, model = oracle(
            reply(
                {
                    "validations": [
                        {"originalCode": "29-1141", "isRelevant": True, "confidence": 95},
                        {"originalCode": "35-1011", "isRelevant": False, "confidence": 90,
                         "reasoning": "Culinary, not nursing"},
                    ]
                }
            )
        )
        mappings = [
            CareerCodeSet(cip_code="51.3801", soc_codes=["29-1141", "35-1011"]),
            CareerCodeSet(cip_code="12.0503", soc_codes=["35-1011"]),
            CareerCodeSet(cip_code="01.0000", soc_codes=[]),
        ]
        result = SOCVerifier(classifier).verify(mappings, "nursing", program_context=["Nursing"])

        self.assertEqual(len(model.calls_with(SOC_MARKER)), 1)
        self.assertEqual(len(result), 3)
        self.assertEqual(result[0].kept_codes, ["29-1141"])
        self.assertEqual(result[1].removed_codes, ["35-1011"])
        self.assertEqual(result[2].original_codes, [])
        self.assertEqual(result[0].validations[0].title, "Registered Nurses")
        self.assertIn("Programs found: Nursing", model.calls[0])

    def test_oracle_failure_keeps_well_formed_codes(self) -> None:
        classifier, _ = oracle(fail())
        mappings = [{"cip_code": "50.0605", "soc_codes": ["15-1255", "bogus"]}]
        with self.assertLogs("verification.soc", level="WARNING"):
            result = SOCVerifier(classifier).verify(mappings, "photography")

        self.assertEqual(result[0].kept_codes, ["15-1255"])
        self.assertEqual(result[0].removed_codes, ["bogus"])
        kept = result[0].validations[0]
        self.assertEqual(kept.confidence, 50)

    def test_codes_missing_from_response_are_assumed_relevant(self) -> None:
        classifier, _ = oracle(reply({"validations": [{"originalCode": "15-1252", "isRelevant": False}]}))
        mappings = [{"code": "11.0701", "careerCodes": ["15-1252", "15-1251"]}]
        result = SOCVerifier(classifier).verify(mappings, "graphic design")
        self.assertEqual(result[0].kept_codes, ["15-1251"])
        self.assertEqual(result[0].removed_codes, ["15-1252"])

    def test_no_codes_no_call(self) -> None:
        classifier, model = oracle(fail())
        result = SOCVerifier(classifier).verify([{"code": "51.3801"}], "nursing")
        self.assertEqual(model.calls, [])
        self.assertEqual(result[0].kept_codes, [])

    def test_results_are_cached(self) -> None:
        classifier, model = oracle(reply({"validations": [{"originalCode": "29-1141"}]}))
        verifier = SOCVerifier(classifier, cache=InMemoryCache())
        mappings = [{"code": "51.3801", "careerCodes": ["29-1141"]}]
        first = verifier.verify(mappings, "nursing")
        second = verifier.verify(mappings, "nursing")
        self.assertEqual(first, second)
        self.assertEqual(len(model.calls), 1)


if __name__ == "__main__":
    unittest.main()
