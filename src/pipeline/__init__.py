from pipeline.config import MatchingSettings
from pipeline.search import ProgramSearch, SearchOptions

__all__ = ["MatchingSettings", "ProgramSearch", "SearchOptions"]
