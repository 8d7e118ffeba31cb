"""Search local program data and check the classification codes of the results."""

import logging
import sys
from argparse import ArgumentParser
from pathlib import Path

from rich.console import Console

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_ROOT = PROJECT_ROOT / "src"
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(SRC_ROOT))

from classifiers.rules import RuleBasedClassifier
from pipeline.config import MatchingSettings
from pipeline.search import ProgramSearch, SearchOptions
from tools.display import candidates_table, dict_to_rich_table, verification_table

logger = logging.getLogger(__name__)


def main() -> None:
    parser = ArgumentParser(description="Rank programs for a free-text query")
    parser.add_argument("query", help="What the user is looking for, e.g. 'nursing programs'")
    parser.add_argument("--region", default=None, help="Restrict results to one region")
    parser.add_argument("--infer-region", action="store_true", help="Detect a region in the query")
    parser.add_argument("--history", action="append", default=[], help="Earlier user turn (repeatable)")
    parser.add_argument("--max-results", type=int, default=20)
    parser.add_argument("--min-relevance", type=int, default=5)
    parser.add_argument("--data-dir", type=Path, default=None, help="Directory with the data files")
    parser.add_argument("--rules", action="store_true", help="Use the offline rule-based classifier")
    parser.add_argument("--no-verify", action="store_true", help="Skip CIP verification of results")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    log_fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=log_fmt)

    settings = MatchingSettings()
    if args.data_dir is not None:
        settings = settings.model_copy(update={"data_dir": args.data_dir})
    search = ProgramSearch.from_settings(
        settings, classifier=RuleBasedClassifier() if args.rules else None
    )

    console = Console()
    console.print(dict_to_rich_table(search.store.stats(), title="Record store"))

    history = [{"role": "user", "content": turn} for turn in args.history]
    options = SearchOptions(
        max_results=args.max_results,
        min_relevance=args.min_relevance,
        conversation_context=history,
        infer_region=args.infer_region,
    )
    outcome = search.search_with_outcome(args.query, region_filter=args.region, options=options)
    console.print(
        dict_to_rich_table(
            {
                "topic": outcome.best.intent.primary_topic,
                "kind": outcome.best.intent.kind,
                "related terms": ", ".join(outcome.best.intent.related_terms[:10]),
                "attempts": len(outcome.attempts),
                "quality": outcome.best.quality,
                "outcome": outcome.state.value,
            },
            title="Search",
        )
    )
    console.print(candidates_table(outcome.candidates, title=f"Results for {args.query!r}"))

    if not args.no_verify and outcome.candidates:
        verified = search.verify_classification(outcome.candidates, args.query, history)
        console.print(verification_table(verified, title="Classification check"))


if __name__ == "__main__":
    main()
