from retrieval.intent import IntentExtractor
from retrieval.models import PrefilterResult, RankedCandidate, SearchIntent
from retrieval.prefilter import CandidatePrefilter
from retrieval.ranker import SemanticRanker

__all__ = [
    "CandidatePrefilter",
    "IntentExtractor",
    "PrefilterResult",
    "RankedCandidate",
    "SearchIntent",
    "SemanticRanker",
]
