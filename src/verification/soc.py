import logging
import typing as typ

from agents.soc_agent import SOCValidationItem, SOCValidationOutput
from classifiers.base import Classifier
from classifiers.taxonomy import SOC_TITLES, is_soc_format, soc_group
from core.conversation import ConversationContext, ConversationTurn
from tools.cache import Cache, cache_get_model, cache_set, fingerprint
from tools.parsing import ParsedOk
from verification.models import CareerCodeSet, CareerCodeValidation, CareerMapping

logger = logging.getLogger(__name__)


def assumed_validation(code: str) -> CareerCodeValidation:
    """Fallback judgement: well-formed codes are kept, malformed ones dropped."""
    if is_soc_format(code):
        return CareerCodeValidation(
            original_code=code, is_relevant=True, family=soc_group(code),
            title=SOC_TITLES.get(code, "Unknown"), confidence=50,
            reasoning="Assumed relevant, could not be verified",
        )
    return CareerCodeValidation(
        original_code=code, is_relevant=False, family="Unknown", title="Unknown",
        confidence=0, reasoning="Not in NN-NNNN format",
    )


def _from_item(item: SOCValidationItem) -> CareerCodeValidation:
    code = item.original_code
    return CareerCodeValidation(
        original_code=code,
        is_relevant=item.is_relevant,
        family=item.family if item.family and item.family != "Unknown" else soc_group(code),
        title=item.title if item.title and item.title != "Unknown" else SOC_TITLES.get(code, "Unknown"),
        confidence=item.confidence,
        reasoning=item.reasoning,
    )


class SOCVerifier:
    """Removes occupation codes that do not fit the conversation."""

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
        mappings: typ.Sequence[CareerCodeSet | dict],
        query: str,
        history: None | str | list[ConversationTurn | dict] = None,
        program_context: typ.Sequence[str] | None = None,
    ) -> list[CareerMapping]:
        code_sets = [
            m if isinstance(m, CareerCodeSet) else CareerCodeSet.model_validate(m) for m in mappings
        ]
        codes = list(dict.fromkeys(code for code_set in code_sets for code in code_set.soc_codes))
        context = ConversationContext.build(query, history, program_context)
        validations = self._validate(codes, context) if codes else {}

        results = []
        for code_set in code_sets:
            checked = [validations[code] for code in code_set.soc_codes]
            results.append(
                CareerMapping(
                    cip_code=code_set.cip_code,
                    original_codes=list(code_set.soc_codes),
                    kept_codes=[v.original_code for v in checked if v.is_relevant],
                    removed_codes=[v.original_code for v in checked if not v.is_relevant],
                    validations=checked,
                )
            )

        kept = sum(len(mapping.kept_codes) for mapping in results)
        removed = sum(len(mapping.removed_codes) for mapping in results)
        logger.info("SOC verification: %d mappings, %d codes kept, %d removed", len(results), kept, removed)
        return results

    def _validate(self, codes: list[str], context: ConversationContext) -> dict[str, CareerCodeValidation]:
        key = fingerprint("soc", self.classifier.name, sorted(codes), context)
        output = cache_get_model(self.cache, key, SOCValidationOutput)
        if output is None:
            result = self.classifier.validate_soc(codes, context)
            if isinstance(result, ParsedOk):
                output = result.value
                cache_set(self.cache, key, output.model_dump(mode="json"), self.cache_ttl_seconds)
            else:
                logger.warning(
                    "SOC validation failed (%s), keeping %d well-formed codes", result.reason, len(codes)
                )

        validations: dict[str, CareerCodeValidation] = {}
        for item in output.validations if output is not None else []:
            if item.original_code in codes and item.original_code not in validations:
                validations[item.original_code] = _from_item(item)
        for code in codes:
            if code not in validations:
                validations[code] = assumed_validation(code)
        return validations
