import json
import logging
from typing import Iterable, TypeVar

from django.db import transaction
from pydantic import ValidationError as SchemaValidationError

from .models import StoredCollection
from .schemas import AssignmentRecord, CamelSchema, EmployeeRecord, PriorityRecord
from .signals import collection_replaced

logger = logging.getLogger(__name__)

EMPLOYEES_KEY = "priority-system-employees"
PRIORITIES_KEY = "priority-system-priorities"
ASSIGNMENTS_KEY = "priority-system-assignments"

COLLECTION_KEYS = (EMPLOYEES_KEY, PRIORITIES_KEY, ASSIGNMENTS_KEY)

RECORD_TYPES = {
    EMPLOYEES_KEY: EmployeeRecord,
    PRIORITIES_KEY: PriorityRecord,
    ASSIGNMENTS_KEY: AssignmentRecord,
}

R = TypeVar("R", bound=CamelSchema)


def _safe_json_load(raw: str | None, key: str) -> list:
    if raw is None:
        return []
    raw = raw.strip()
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Stored value under %s is not valid JSON, reading it as empty", key)
        return []
    if not isinstance(data, list):
        logger.warning("Stored value under %s is not a list, reading it as empty", key)
        return []
    return data


def dump_records(records: Iterable[CamelSchema]) -> str:
    return json.dumps([r.model_dump(by_alias=True) for r in records], ensure_ascii=False)


class RecordStore:
    """
    Key/value persistence of the employees, priorities and assignments collections.

    Each collection is one JSON string in a StoredCollection row. Parsed values
    are cached per instance; the cache entry is dropped when another store
    instance replaces the same key.
    """

    def __init__(self):
        self._cache: dict[str, list] = {}
        collection_replaced.connect(self._on_collection_replaced)

    def _on_collection_replaced(self, sender, key, store=None, **kwargs):
        if store is not self:
            self._cache.pop(key, None)

    # ---------- raw access ----------

    def get_raw(self, key: str) -> str | None:
        """Stored JSON string for ``key``, or None when it was never written."""
        row = StoredCollection.objects.filter(key=key).only("value").first()
        return row.value if row else None

    def put_raw(self, key: str, raw: str) -> None:
        StoredCollection.objects.update_or_create(key=key, defaults={"value": raw})
        self._cache.pop(key, None)
        collection_replaced.send(sender=RecordStore, key=key, store=self)

    def replace_all(self, values: dict[str, str]) -> None:
        """Write every given collection in one transaction, then notify."""
        with transaction.atomic():
            for key, raw in values.items():
                StoredCollection.objects.update_or_create(key=key, defaults={"value": raw})
        for key in values:
            self._cache.pop(key, None)
        for key in values:
            collection_replaced.send(sender=RecordStore, key=key, store=self)
        logger.info("Replaced collections: %s", ", ".join(values))

    # ---------- typed access ----------

    def _get(self, key: str, record_type: type[R]) -> list[R]:
        if key not in self._cache:
            records = []
            for item in _safe_json_load(self.get_raw(key), key):
                try:
                    records.append(record_type.model_validate(item))
                except SchemaValidationError:
                    logger.warning("Skipping malformed record under %s: %r", key, item)
            self._cache[key] = records
        return list(self._cache[key])

    def _put(self, key: str, records: list) -> None:
        self.put_raw(key, dump_records(records))
        self._cache[key] = list(records)

    def get_employees(self) -> list[EmployeeRecord]:
        return self._get(EMPLOYEES_KEY, EmployeeRecord)

    def put_employees(self, records: list[EmployeeRecord]) -> None:
        self._put(EMPLOYEES_KEY, records)

    def get_priorities(self) -> list[PriorityRecord]:
        return self._get(PRIORITIES_KEY, PriorityRecord)

    def put_priorities(self, records: list[PriorityRecord]) -> None:
        self._put(PRIORITIES_KEY, records)

    def get_assignments(self) -> list[AssignmentRecord]:
        """Assignments with at most one record per employee; repeats are merged into the first."""
        merged: dict[str, AssignmentRecord] = {}
        for record in self._get(ASSIGNMENTS_KEY, AssignmentRecord):
            first = merged.get(record.employee_id)
            if first is None:
                merged[record.employee_id] = record
                continue
            logger.warning("Merging repeated assignment record for employee %s", record.employee_id)
            # later entries rank after the ones already held
            offset = max((e.order for e in first.priorities), default=0)
            extra = [e.model_copy(update={"order": e.order + offset}) for e in record.priorities]
            merged[record.employee_id] = first.model_copy(update={"priorities": first.priorities + extra})
        return list(merged.values())

    def put_assignments(self, records: list[AssignmentRecord]) -> None:
        self._put(ASSIGNMENTS_KEY, records)
