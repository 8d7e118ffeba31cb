import json
import logging
import typing as typ
from pathlib import Path

import pydantic

from core.errors import RecordStoreError
from records.models import Record, RegionEntry
from records.regions import institution_code, normalize_region

logger = logging.getLogger(__name__)


def _iter_rows(path: Path) -> typ.Iterator[tuple[int, typ.Any]]:
    """Yield `(line_number, row)` pairs from a JSONL or JSON-array file."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.warning("Could not parse JSON file %s: %s", path, exc)
            return
        rows = parsed if isinstance(parsed, list) else [parsed]
        yield from enumerate(rows, start=1)
        return

    for line_number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            yield line_number, json.loads(line)
        except json.JSONDecodeError:
            logger.warning("Skipping malformed line %d in %s: %s", line_number, path, line[:100])


def _load_models(path: Path, model: type[pydantic.BaseModel]) -> list[typ.Any]:
    items = []
    for line_number, row in _iter_rows(path):
        if not isinstance(row, dict):
            logger.warning("Skipping non-object row %d in %s", line_number, path)
            continue
        try:
            items.append(model.model_validate(row))
        except pydantic.ValidationError as exc:
            logger.warning(
                "Skipping invalid row %d in %s: %d error(s)", line_number, path, exc.error_count()
            )
    return items


class RecordStore:
    """Read-only, lazily loaded record set and region lookup tables.

    Files are read once on first access and kept in memory for the lifetime of
    the store. A record file that is missing or contains no valid record is a
    fatal condition (`RecordStoreError`); missing lookup tables only log a
    warning and behave as empty tables.
    """

    def __init__(
        self,
        records_path: Path | str,
        *,
        region_institutions_path: Path | str | None = None,
        region_schools_path: Path | str | None = None,
    ):
        self.records_path = Path(records_path)
        self.region_institutions_path = (
            Path(region_institutions_path) if region_institutions_path else None
        )
        self.region_schools_path = Path(region_schools_path) if region_schools_path else None
        self._records: tuple[Record, ...] | None = None
        self._institutions: dict[str, list[str]] | None = None
        self._schools: dict[str, list[str]] | None = None

    @classmethod
    def from_records(
        cls,
        records: typ.Iterable[Record],
        *,
        institutions_by_region: dict[str, list[str]] | None = None,
        schools_by_region: dict[str, list[str]] | None = None,
    ) -> "RecordStore":
        """Build a store from already loaded records."""
        store = cls("<memory>")
        store._records = tuple(records)
        store._institutions = {
            normalize_region(region): [institution_code(code) for code in codes]
            for region, codes in (institutions_by_region or {}).items()
        }
        store._schools = {
            normalize_region(region): list(names)
            for region, names in (schools_by_region or {}).items()
        }
        return store

    def load(self) -> "RecordStore":
        """Eagerly load every table."""
        self.records()
        self._region_institutions()
        self._region_schools()
        return self

    def records(self) -> tuple[Record, ...]:
        if self._records is None:
            self._records = self._load_records()
        return self._records

    def records_in_region(self, region: str) -> list[Record]:
        """Records whose institution belongs to `region`."""
        allowed = set(self.institutions_in_region(region))
        scoped = [record for record in self.records() if record.institution_id.upper() in allowed]
        logger.info("Scoped %d records to region %s", len(scoped), normalize_region(region))
        return scoped

    def institutions_in_region(self, region: str) -> list[str]:
        return list(self._region_institutions().get(normalize_region(region), []))

    def schools_in_region(self, region: str) -> list[str]:
        return list(self._region_schools().get(normalize_region(region), []))

    def is_institution_in_region(self, institution_id: str, region: str) -> bool:
        return institution_code(institution_id) in self.institutions_in_region(region)

    def is_school_in_region(self, school: str, region: str) -> bool:
        return school in self.schools_in_region(region)

    def regions(self) -> list[str]:
        return sorted(set(self._region_institutions()) | set(self._region_schools()))

    def stats(self) -> dict[str, int]:
        return {
            "records": len(self.records()),
            "regions": len(self.regions()),
            "institutions": sum(len(v) for v in self._region_institutions().values()),
            "schools": sum(len(v) for v in self._region_schools().values()),
        }

    def _load_records(self) -> tuple[Record, ...]:
        if not self.records_path.exists():
            raise RecordStoreError(str(self.records_path), reason="file not found")
        try:
            records = _load_models(self.records_path, Record)
        except OSError as exc:
            raise RecordStoreError(str(self.records_path), reason=str(exc)) from exc
        if not records:
            raise RecordStoreError(str(self.records_path), reason="no valid records")
        logger.info("Loaded %d records from %s", len(records), self.records_path)
        return tuple(records)

    def _region_institutions(self) -> dict[str, list[str]]:
        if self._institutions is None:
            entries = self._load_lookup(self.region_institutions_path)
            self._institutions = {
                normalize_region(entry.region): [institution_code(x) for x in entry.institutions]
                for entry in entries
            }
        return self._institutions

    def _region_schools(self) -> dict[str, list[str]]:
        if self._schools is None:
            entries = self._load_lookup(self.region_schools_path)
            self._schools = {normalize_region(entry.region): entry.schools for entry in entries}
        return self._schools

    def _load_lookup(self, path: Path | None) -> list[RegionEntry]:
        if path is None:
            return []
        if not path.exists():
            logger.warning("Region lookup file not found: %s", path)
            return []
        try:
            entries = _load_models(path, RegionEntry)
        except OSError as exc:
            logger.warning("Could not read region lookup %s: %s", path, exc)
            return []
        logger.info("Loaded %d region entries from %s", len(entries), path)
        return entries
