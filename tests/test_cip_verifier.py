import sys
import unittest
from pathlib import Path

import pydantic

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
TESTS_ROOT = PROJECT_ROOT / "tests"
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(SRC_ROOT))
sys.path.insert(0, str(TESTS_ROOT))

from classifiers.rules import RuleBasedClassifier
from fakes import CIP_MARKER, fail, oracle, record, reply
from tools.cache import InMemoryCache
from verification.cip import CIPVerifier
from verification.models import CodeValidation


class CodeValidationTests(unittest.TestCase):
    def test_correction_requires_a_different_code(self) -> None:
        with self.assertRaises(pydantic.ValidationError):
            CodeValidation(
                original_code="11.0701", validated_code="11.0701", is_valid=True,
                corrected=True, reasoning="changed",
            )

    def test_correction_requires_reasoning(self) -> None:
        with self.assertRaises(pydantic.ValidationError):
            CodeValidation(
                original_code="11.0701", validated_code="51.3801", is_valid=True,
                corrected=True, reasoning=" ",
            )


class CIPVerifierTests(unittest.TestCase):
    def test_nursing_query_with_computing_code_is_corrected(self) -> None:
        records = [record("Nursing", "11.0701"), record("Nursing", "11.0701", institution="HIL")]
        verified = CIPVerifier(RuleBasedClassifier()).verify(records, "nursing programs")

        for item in verified:
            self.assertTrue(item.validation.corrected)
            self.assertEqual(item.validation.original_code, "11.0701")
            self.assertEqual(item.validation.validated_code, "51.3801")
            self.assertEqual(item.validation.family, "Health Professions")
            self.assertEqual(item.record.classification_code, "51.3801")
        self.assertEqual([v.record.institution_id for v in verified], ["MAN", "HIL"])

    def test_oracle_correction_is_broadcast_to_every_record(self) -> None:
        classifier, model = oracle(
            reply(
                {
                    "validations": [
                        {"originalCode": "11.0701", "validatedCode": "51.3801", "isValid": True,
                         "corrected": True, "cipFamily": "Health Professions",
                         "confidence": 90, "reasoning": "Nursing belongs to health"},
                        {"originalCode": "51.3801", "validatedCode": "51.3801", "isValid": True,
                         "corrected": False, "confidence": 95},
                    ]
                }
            )
        )
        records = [
            record("Nursing", "11.0701"),
            record("Practical Nursing", "51.3801"),
            record("Nursing", "11.0701", institution="KAP"),
        ]
        verified = CIPVerifier(classifier).verify(records, "nursing")

        self.assertEqual(len(model.calls), 1)
        self.assertEqual(
            [v.record.classification_code for v in verified], ["51.3801", "51.3801", "51.3801"]
        )
        self.assertEqual([v.validation.corrected for v in verified], [True, False, True])
        self.assertEqual(verified[1].validation.family, "Health Professions")

    def test_samples_are_capped_per_code(self) -> None:
        classifier, model = oracle(reply({"validations": []}))
        records = [record(f"Nursing track {i}", "51.3801") for i in range(5)]
        CIPVerifier(classifier).verify(records, "nursing")
        prompt = model.calls_with(CIP_MARKER)[0]
        self.assertIn("Nursing track 2", prompt)
        self.assertNotIn("Nursing track 3", prompt)

    def test_oracle_failure_uses_format_checks(self) -> None:
        classifier, _ = oracle(fail())
        records = [record("Nursing", "11.0701"), record("Mystery", "11-0701")]
        with self.assertLogs("verification.cip", level="WARNING"):
            verified = CIPVerifier(classifier).verify(records, "nursing")

        first, second = (v.validation for v in verified)
        self.assertTrue(first.is_valid)
        self.assertFalse(first.corrected)
        self.assertEqual(first.family, "Computer and Information Sciences")
        self.assertFalse(second.is_valid)
        self.assertFalse(second.corrected)
        self.assertEqual(verified[0].record.classification_code, "11.0701")

    def test_codes_missing_from_response_use_format_checks(self) -> None:
        classifier, _ = oracle(
            reply({"validations": [{"originalCode": "99.9999", "isValid": True}]})
        )
        verified = CIPVerifier(classifier).verify([record("Accounting", "52.0301")], "accounting")
        self.assertTrue(verified[0].validation.is_valid)
        self.assertEqual(verified[0].validation.family, "Business, Management, Marketing")

    def test_inconsistent_oracle_correction_is_normalized(self) -> None:
        classifier, _ = oracle(
            reply(
                {"validations": [
                    {"originalCode": "51.3801", "validatedCode": "51.3801", "corrected": True},
                    {"originalCode": "11.0701", "validatedCode": "not-a-code", "corrected": True},
                ]}
            )
        )
        records = [record("Nursing", "51.3801"), record("Computer Science", "11.0701")]
        with self.assertLogs("verification.cip", level="WARNING"):
            verified = CIPVerifier(classifier).verify(records, "nursing")
        self.assertEqual([v.validation.corrected for v in verified], [False, False])
        self.assertEqual(verified[1].record.classification_code, "11.0701")

    def test_high_school_and_missing_codes_skip_the_oracle(self) -> None:
        classifier, model = oracle(fail())
        records = [
            record("Health Academy", "", institution="Farrington High School", level="High School"),
            record("Nursing", ""),
        ]
        verified = CIPVerifier(classifier).verify(records, "nursing")

        self.assertEqual(model.calls, [])
        high_school, missing = (v.validation for v in verified)
        self.assertTrue(high_school.is_valid)
        self.assertEqual(high_school.validated_code, "N/A")
        self.assertEqual(high_school.family, "High School Program")
        self.assertEqual(high_school.confidence, 100)
        self.assertFalse(missing.is_valid)
        self.assertEqual(missing.reasoning, "No classification code")

    def test_results_are_cached(self) -> None:
        classifier, model = oracle(
            reply({"validations": [{"originalCode": "51.3801", "validatedCode": "51.3801",
                                    "isValid": True, "confidence": 95}]})
        )
        verifier = CIPVerifier(classifier, cache=InMemoryCache())
        records = [record("Nursing", "51.3801")]
        first = verifier.verify(records, "nursing", [{"role": "user", "content": "hello"}])
        second = verifier.verify(records, "nursing", [{"role": "user", "content": "hello"}])
        self.assertEqual(first, second)
        self.assertEqual(len(model.calls), 1)

        verifier.verify(records, "nursing", [{"role": "user", "content": "something else"}])
        self.assertEqual(len(model.calls), 2)

    def test_order_and_count_preserved(self) -> None:
        records = [
            record("Welding", "48.0508"),
            record("Nursing", ""),
            record("Health Academy", "", level="High School"),
            record("Nursing", "51.3801"),
        ]
        verified = CIPVerifier(RuleBasedClassifier()).verify(records, "nursing")
        self.assertEqual([v.record.description for v in verified], [r.description for r in records])


if __name__ == "__main__":
    unittest.main()
