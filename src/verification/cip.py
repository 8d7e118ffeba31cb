import logging
import typing as typ

from agents.cip_agent import CIPValidationItem, CIPValidationOutput
from classifiers.base import Classifier
from classifiers.taxonomy import cip_family, is_cip_format
from core.conversation import ConversationContext, ConversationTurn
from records.models import Record
from tools.cache import Cache, cache_get_model, cache_set, fingerprint
from tools.parsing import ParsedOk
from verification.models import CodeValidation, VerifiedRecord

logger = logging.getLogger(__name__)

MAX_SAMPLES_PER_CODE = 3


def local_validation(code: str, reasoning: str = "Format check only") -> CodeValidation:
    """Format and family-table check; never reports a correction."""
    if is_cip_format(code):
        family = cip_family(code)
        return CodeValidation(
            original_code=code, validated_code=code, is_valid=True, family=family,
            category=family, confidence=70, reasoning=reasoning,
        )
    return CodeValidation(
        original_code=code, validated_code=code, is_valid=False, family="Unknown",
        category="Unknown", confidence=0, reasoning=f"{reasoning}: not in NN.NNNN format",
    )


def high_school_validation(record: Record) -> CodeValidation:
    code = record.classification_code or "N/A"
    return CodeValidation(
        original_code=code, validated_code=code, is_valid=True, family="High School Program",
        category="Pre-College", confidence=100, reasoning="High school program, not classified",
    )


def missing_code_validation() -> CodeValidation:
    return CodeValidation(
        original_code="", validated_code="", is_valid=False, family="Unknown",
        category="Unknown", confidence=0, reasoning="No classification code",
    )


def _from_item(item: CIPValidationItem) -> CodeValidation:
    original = item.original_code
    validated = item.validated_code or original
    if validated != original and not is_cip_format(validated):
        logger.warning("Ignoring malformed correction %s -> %s", original, validated)
        validated = original
    corrected = validated != original
    reasoning = item.reasoning
    if corrected and not reasoning:
        reasoning = f"Reclassified from {original} to {validated}"
    family = item.family if item.family and item.family != "Unknown" else cip_family(validated)
    category = item.category if item.category and item.category != "Unknown" else family
    return CodeValidation(
        original_code=original,
        validated_code=validated,
        is_valid=item.is_valid or corrected,
        corrected=corrected,
        family=family,
        category=category,
        confidence=item.confidence,
        reasoning=reasoning,
    )


class CIPVerifier:
    """Checks education-program codes against what the conversation asks for.

    Records are grouped by code and sent in a single classifier call. When
    the classifier fails, codes get a local format check instead.
    """

    def __init__(
        self,
        classifier: Classifier,
        cache: Cache | None = None,
        cache_ttl_seconds: float = 3600.0,
    ):
        self.classifier = classifier
        self.cache = cache
        self.cache_ttl_seconds = cache_ttl_seconds

    def verify(
        self,
        records: typ.Sequence[Record],
        query: str,
        history: None | str | list[ConversationTurn | dict] = None,
    ) -> list[VerifiedRecord]:
        samples: dict[str, list[str]] = {}
        for record in records:
            if record.is_high_school or not record.classification_code:
                continue
            titles = samples.setdefault(record.classification_code, [])
            if len(titles) < MAX_SAMPLES_PER_CODE and record.description not in titles:
                titles.append(record.description)

        validations = self._validate(samples, ConversationContext.build(query, history)) if samples else {}

        verified = []
        for record in records:
            if record.is_high_school:
                validation = high_school_validation(record)
            elif not record.classification_code:
                validation = missing_code_validation()
            else:
                validation = validations[record.classification_code]
            if validation.corrected:
                record = record.model_copy(update={"classification_code": validation.validated_code})
            verified.append(VerifiedRecord(record=record, validation=validation))

        self._log_summary(verified)
        return verified

    def _validate(
        self, samples: dict[str, list[str]], context: ConversationContext
    ) -> dict[str, CodeValidation]:
        key = fingerprint("cip", self.classifier.name, sorted(samples.items()), context)
        output = cache_get_model(self.cache, key, CIPValidationOutput)
        if output is None:
            result = self.classifier.validate_cip(samples, context)
            if isinstance(result, ParsedOk):
                output = result.value
                cache_set(self.cache, key, output.model_dump(mode="json"), self.cache_ttl_seconds)
            else:
                logger.warning(
                    "CIP validation failed (%s), using format checks for %d codes",
                    result.reason, len(samples),
                )

        validations: dict[str, CodeValidation] = {}
        for item in output.validations if output is not None else []:
            if item.original_code in samples and item.original_code not in validations:
                validations[item.original_code] = _from_item(item)
        for code in samples:
            if code not in validations:
                if output is not None:
                    logger.debug("Code %s missing from CIP validation, using format check", code)
                validations[code] = local_validation(code)
        return validations

    @staticmethod
    def _log_summary(verified: list[VerifiedRecord]) -> None:
        corrected = sum(1 for item in verified if item.validation.corrected)
        invalid = sum(1 for item in verified if not item.validation.is_valid)
        logger.info(
            "CIP verification: %d records, %d valid, %d corrected, %d invalid",
            len(verified), len(verified) - invalid, corrected, invalid,
        )
