"""
Import executor.

Commits mapped rows one at a time in input order. Every row ends in exactly
one outcome (created, updated, skipped, failed); a failing row is recorded
and the loop moves on. A dry run makes the same decisions without calling
create/update on the store.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

import structlog

from exceptions import AppError, CustomerReferenceNotFoundError, ExistingRecordError
from importers.mappers.base import EntityMapper

logger = structlog.get_logger(__name__)


OUTCOME_CREATED = "created"
OUTCOME_UPDATED = "updated"
OUTCOME_SKIPPED = "skipped"
OUTCOME_FAILED = "failed"


class RecordStore(Protocol):
    """Destination store capability used by the executor."""

    def find_existing(self, entity_type: str, field: str, value: str) -> Optional[dict]:
        ...

    def create(self, entity_type: str, record: dict) -> dict:
        ...

    def update(self, entity_type: str, record_id: Any, record: dict) -> dict:
        ...

    def find_customer(self, reference: str) -> Optional[dict]:
        ...


@dataclass
class ImportOptions:
    skip_existing: bool = True
    update_existing: bool = False
    dry_run: bool = True


@dataclass
class RowOutcome:
    """Result for one input row (row is 0-based)."""
    row: int
    status: str
    record_id: Optional[Any] = None
    message: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "row": self.row,
            "status": self.status,
            "record_id": self.record_id,
            "message": self.message,
        }


@dataclass
class RowFailure:
    row: int
    message: str

    def to_dict(self) -> dict:
        return {"row": self.row, "message": self.message}


@dataclass
class ImportRunResult:
    """Aggregate of one executor run."""
    dry_run: bool
    outcomes: list[RowOutcome] = field(default_factory=list)

    def _count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def created(self) -> int:
        return self._count(OUTCOME_CREATED)

    @property
    def updated(self) -> int:
        return self._count(OUTCOME_UPDATED)

    @property
    def skipped(self) -> int:
        return self._count(OUTCOME_SKIPPED)

    @property
    def failures(self) -> list[RowFailure]:
        return [
            RowFailure(row=o.row, message=o.message or "Unknown error")
            for o in self.outcomes
            if o.status == OUTCOME_FAILED
        ]

    @property
    def success(self) -> bool:
        return not any(o.status == OUTCOME_FAILED for o in self.outcomes)

    @property
    def message(self) -> str:
        if self.dry_run:
            text = (
                f"Dry run complete: {self.created} would be created, "
                f"{self.updated} would be updated, {self.skipped} would be skipped"
            )
        else:
            text = (
                f"Import complete: {self.created} created, "
                f"{self.updated} updated, {self.skipped} skipped"
            )

        failed = len(self.failures)
        if failed:
            text += f", {failed} failed"
        return text

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "success": self.success,
            "dry_run": self.dry_run,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "failed": len(self.failures),
            "errors": [f.to_dict() for f in self.failures],
            "outcomes": [o.to_dict() for o in self.outcomes],
            "message": self.message,
        }


class ImportExecutor:
    """
    Runs the commit stage for one entity type.

    Keys created or updated earlier in the same run count as existing for
    later rows, in dry runs too, so a dry run reports the same counts as
    the real run that follows it.
    """

    def __init__(self, mapper: EntityMapper, store: RecordStore):
        self.mapper = mapper
        self.store = store

    def execute(
        self,
        rows: list[dict[str, Any]],
        mapping: dict[str, str],
        options: Optional[ImportOptions] = None
    ) -> ImportRunResult:
        """
        Execute the import.

        Args:
            rows: Raw rows keyed by source column
            mapping: Source column → target field
            options: Conflict policy and dry-run flag

        Returns:
            ImportRunResult with one outcome per input row
        """
        options = options or ImportOptions()
        result = ImportRunResult(dry_run=options.dry_run)
        # (field, value) → record id (None for dry-run creations)
        seen: dict[tuple[str, str], Optional[Any]] = {}

        logger.info(
            "import_started",
            entity_type=self.mapper.entity_type,
            rows=len(rows),
            dry_run=options.dry_run,
            skip_existing=options.skip_existing,
            update_existing=options.update_existing
        )

        for index, row in enumerate(rows):
            outcome = self._process_row(index, row, mapping, options, seen)
            result.outcomes.append(outcome)

            if outcome.status == OUTCOME_FAILED:
                logger.warning(
                    "import_row_failed",
                    entity_type=self.mapper.entity_type,
                    row=index,
                    error=outcome.message
                )

        logger.info(
            "import_finished",
            entity_type=self.mapper.entity_type,
            dry_run=options.dry_run,
            created=result.created,
            updated=result.updated,
            skipped=result.skipped,
            failed=len(result.failures)
        )

        return result

    def _process_row(
        self,
        index: int,
        row: dict[str, Any],
        mapping: dict[str, str],
        options: ImportOptions,
        seen: dict[tuple[str, str], Optional[Any]]
    ) -> RowOutcome:
        try:
            record = self.mapper.transform(row, mapping, index)
        except Exception as e:
            return RowOutcome(index, OUTCOME_FAILED, message=f"Could not map row: {e}")

        if record is None:
            return RowOutcome(index, OUTCOME_SKIPPED, message="Nothing to import")

        data = record.to_dict()
        keys = self.mapper.natural_key_values(data)

        try:
            collision = self._find_collision(keys, seen)

            if collision is not None:
                key_field, key_value, existing_id = collision

                if options.update_existing:
                    self._attach_customer(data)
                    if not options.dry_run and existing_id is not None:
                        self.store.update(self.mapper.entity_type, existing_id, data)
                    self._remember(keys, seen, existing_id)
                    return RowOutcome(index, OUTCOME_UPDATED, record_id=existing_id)

                if options.skip_existing:
                    return RowOutcome(
                        index,
                        OUTCOME_SKIPPED,
                        record_id=existing_id,
                        message=f"{key_field} {key_value} already exists"
                    )

                raise ExistingRecordError(self.mapper.entity_type, key_field, key_value)

            self._attach_customer(data)

            record_id = None
            if not options.dry_run:
                created = self.store.create(self.mapper.entity_type, data)
                record_id = (created or {}).get("id")

            self._remember(keys, seen, record_id)
            return RowOutcome(index, OUTCOME_CREATED, record_id=record_id)

        except AppError as e:
            return RowOutcome(index, OUTCOME_FAILED, message=e.message)
        except Exception as e:
            logger.error(
                "import_row_error",
                entity_type=self.mapper.entity_type,
                row=index,
                error=str(e)
            )
            return RowOutcome(index, OUTCOME_FAILED, message=str(e) or type(e).__name__)

    def _find_collision(
        self,
        keys: list[tuple[str, str]],
        seen: dict[tuple[str, str], Optional[Any]]
    ) -> Optional[tuple[str, str, Optional[Any]]]:
        """First natural key that already exists, in this run or in the store."""
        for key_field, key_value in keys:
            if (key_field, key_value) in seen:
                return key_field, key_value, seen[(key_field, key_value)]

            existing = self.store.find_existing(self.mapper.entity_type, key_field, key_value)
            if existing:
                return key_field, key_value, existing.get("id")

        return None

    @staticmethod
    def _remember(
        keys: list[tuple[str, str]],
        seen: dict[tuple[str, str], Optional[Any]],
        record_id: Optional[Any]
    ) -> None:
        for key in keys:
            seen.setdefault(key, record_id)

    def _attach_customer(self, data: dict) -> None:
        """Resolve customer_ref into customer_id for invoices and orders."""
        if not self.mapper.requires_customer:
            return

        reference = data.get("customer_ref")
        customer = self.store.find_customer(reference) if reference else None
        if not customer:
            raise CustomerReferenceNotFoundError(reference or "")

        data["customer_id"] = customer.get("id")
