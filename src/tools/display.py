from rich.table import Table

from retrieval.models import RankedCandidate
from verification.models import VerifiedRecord


def dict_to_rich_table(data: dict, title: str) -> Table:
    """Convert dictionary to rich table for logging."""
    table = Table(title=title, show_header=True, header_style="bold blue")
    table.add_column("Feature", style="bold", no_wrap=False)
    table.add_column("Value", no_wrap=False)

    row_colors = ["default", "magenta"]
    for idx, (key, value) in enumerate(data.items()):
        table.add_row(str(key), str(value), style=row_colors[idx % 2])

    return table


def candidates_table(candidates: list[RankedCandidate], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold blue")
    table.add_column("#", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Match")
    table.add_column("Program", no_wrap=False)
    table.add_column("Campus")
    table.add_column("CIP")
    table.add_column("Reasoning", no_wrap=False)
    for idx, candidate in enumerate(candidates, start=1):
        table.add_row(
            str(idx),
            str(candidate.score),
            candidate.match_type,
            candidate.record.description,
            candidate.campus,
            candidate.record.classification_code or "-",
            candidate.reasoning,
        )
    return table


def verification_table(verified: list[VerifiedRecord], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold blue")
    table.add_column("Program", no_wrap=False)
    table.add_column("Original")
    table.add_column("Validated")
    table.add_column("Status")
    table.add_column("Family", no_wrap=False)
    table.add_column("Confidence", justify="right")
    for item in verified:
        validation = item.validation
        if validation.corrected:
            status = "[yellow]corrected[/yellow]"
        elif validation.is_valid:
            status = "[green]valid[/green]"
        else:
            status = "[red]invalid[/red]"
        table.add_row(
            item.record.description,
            validation.original_code or "-",
            validation.validated_code or "-",
            status,
            validation.family,
            str(validation.confidence),
        )
    return table
