import json
import logging
import uuid
from typing import Any

from django.conf import settings
from django.utils import timezone

from .exceptions import CorruptBackupError, DuplicateAssignmentError, RecordNotFoundError, ValidationError
from .schemas import (
    AssignmentDetailSchema, AssignmentEntry, AssignmentRecord, ColorSchema, DashboardSchema,
    EmployeePrioritiesSchema, EmployeeRecord, PriorityRecord, RankedPrioritySchema, ReportSchema,
)
from .store import ASSIGNMENTS_KEY, EMPLOYEES_KEY, PRIORITIES_KEY, RecordStore

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "bg-blue-500"

PRIORITY_COLORS = [
    ("bg-blue-500", "Azul"),
    ("bg-green-500", "Verde"),
    ("bg-orange-500", "Laranja"),
    ("bg-purple-500", "Roxo"),
    ("bg-pink-500", "Rosa"),
    ("bg-red-500", "Vermelho"),
    ("bg-yellow-500", "Amarelo"),
    ("bg-cyan-500", "Ciano"),
    ("bg-indigo-500", "Índigo"),
    ("bg-violet-500", "Violeta"),
    ("bg-sky-500", "Azul Claro"),
    ("bg-emerald-500", "Verde Claro"),
    ("bg-amber-500", "Laranja Claro"),
    ("bg-rose-500", "Rosa Claro"),
    ("bg-blue-700", "Azul Escuro"),
    ("bg-green-700", "Verde Escuro"),
]

MSG_EMPLOYEE_FIELDS = "Por favor, preencha todos os campos."
MSG_EMPLOYEE_NOT_FOUND = "Colaborador não encontrado."
MSG_PRIORITY_NAME = "Por favor, preencha o nome da prioridade."
MSG_PRIORITY_COLOR = "Cor de prioridade inválida."
MSG_PRIORITY_NOT_FOUND = "Prioridade não encontrada."
MSG_DUPLICATE = "Esta prioridade já foi atribuída ao colaborador."
MSG_CORRUPT_BACKUP = "O arquivo selecionado não é um backup válido."


def _new_id() -> str:
    return uuid.uuid4().hex


def _now_iso() -> str:
    return timezone.now().isoformat()


def _required(value: str | None, message: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(message)
    return value


class EmployeeRegistry:
    """Service class for employee records."""

    def __init__(self, store: RecordStore):
        self.store = store

    def list_employees(self) -> list[EmployeeRecord]:
        return self.store.get_employees()

    def get(self, employee_id: str) -> EmployeeRecord | None:
        return next((e for e in self.store.get_employees() if e.id == employee_id), None)

    def create(self, full_name: str, position: str) -> EmployeeRecord:
        full_name = _required(full_name, MSG_EMPLOYEE_FIELDS)
        position = _required(position, MSG_EMPLOYEE_FIELDS)
        employee = EmployeeRecord(id=_new_id(), full_name=full_name, position=position, created_at=_now_iso())
        self.store.put_employees(self.store.get_employees() + [employee])
        logger.info("Created employee %s", employee.id)
        return employee

    def update(self, employee_id: str, full_name: str, position: str) -> EmployeeRecord:
        full_name = _required(full_name, MSG_EMPLOYEE_FIELDS)
        position = _required(position, MSG_EMPLOYEE_FIELDS)
        employees = self.store.get_employees()
        for index, employee in enumerate(employees):
            if employee.id == employee_id:
                updated = employee.model_copy(update={"full_name": full_name, "position": position})
                employees[index] = updated
                self.store.put_employees(employees)
                logger.info("Updated employee %s", employee_id)
                return updated
        raise RecordNotFoundError(MSG_EMPLOYEE_NOT_FOUND)

    def delete(self, employee_id: str) -> bool:
        """Remove the employee; an unknown id is a no-op. Assignments are left as they are."""
        employees = self.store.get_employees()
        remaining = [e for e in employees if e.id != employee_id]
        if len(remaining) == len(employees):
            return False
        self.store.put_employees(remaining)
        logger.info("Deleted employee %s", employee_id)
        return True


class PriorityCatalog:
    """Service class for priority types."""

    def __init__(self, store: RecordStore):
        self.store = store

    @staticmethod
    def colors() -> list[ColorSchema]:
        return [ColorSchema(value=value, label=label) for value, label in PRIORITY_COLORS]

    @staticmethod
    def _checked_color(color: str | None) -> str:
        color = color or DEFAULT_COLOR
        if color not in dict(PRIORITY_COLORS):
            raise ValidationError(MSG_PRIORITY_COLOR)
        return color

    def list_priorities(self) -> list[PriorityRecord]:
        return self.store.get_priorities()

    def get(self, priority_id: str) -> PriorityRecord | None:
        return next((p for p in self.store.get_priorities() if p.id == priority_id), None)

    def create(self, name: str, description: str = "", color: str = DEFAULT_COLOR) -> PriorityRecord:
        name = _required(name, MSG_PRIORITY_NAME)
        color = self._checked_color(color)
        priority = PriorityRecord(
            id=_new_id(),
            name=name,
            description=(description or "").strip(),
            color=color,
            created_at=_now_iso(),
        )
        self.store.put_priorities(self.store.get_priorities() + [priority])
        logger.info("Created priority %s", priority.id)
        return priority

    def update(self, priority_id: str, name: str, description: str = "", color: str | None = None) -> PriorityRecord:
        """Replace name, description and color; ``color=None`` keeps the stored color."""
        name = _required(name, MSG_PRIORITY_NAME)
        if color is not None:
            color = self._checked_color(color)
        priorities = self.store.get_priorities()
        for index, priority in enumerate(priorities):
            if priority.id == priority_id:
                color = color or priority.color
                updated = priority.model_copy(update={
                    "name": name,
                    "description": (description or "").strip(),
                    "color": color,
                })
                priorities[index] = updated
                self.store.put_priorities(priorities)
                logger.info("Updated priority %s", priority_id)
                return updated
        raise RecordNotFoundError(MSG_PRIORITY_NOT_FOUND)

    def delete(self, priority_id: str) -> bool:
        """Remove the priority type; assignments keep the dangling reference."""
        priorities = self.store.get_priorities()
        remaining = [p for p in priorities if p.id != priority_id]
        if len(remaining) == len(priorities):
            return False
        self.store.put_priorities(remaining)
        logger.info("Deleted priority %s", priority_id)
        return True


class AssignmentEngine:
    """
    Owns the ranked priority list of each employee.

    Ranks are never trusted as stored: entries are kept as an ordered list of
    priority ids and every write recomputes ``order`` from list position, so
    orders are always ``1..n`` without gaps or repeats. Employee and priority
    existence is not checked here.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    @staticmethod
    def rerank(priority_ids: list[str]) -> list[AssignmentEntry]:
        return [AssignmentEntry(priority_id=pid, order=index + 1) for index, pid in enumerate(priority_ids)]

    def _priority_ids(self, employee_id: str) -> list[str]:
        assignment = next((a for a in self.store.get_assignments() if a.employee_id == employee_id), None)
        if assignment is None:
            return []
        # stable sort keeps list position for equal orders
        ordered = sorted(assignment.priorities, key=lambda entry: entry.order)
        ids = []
        for entry in ordered:
            if entry.priority_id not in ids:
                ids.append(entry.priority_id)
        return ids

    def get_entries(self, employee_id: str) -> list[AssignmentEntry]:
        return self.rerank(self._priority_ids(employee_id))

    def persist(self, employee_id: str, entries: list[AssignmentEntry]) -> None:
        """Write the employee's entries back; an empty list removes the assignment."""
        assignments = self.store.get_assignments()
        index = next((i for i, a in enumerate(assignments) if a.employee_id == employee_id), None)
        if index is None and not entries:
            return
        # every record of the employee is replaced by at most one
        remaining = [a for a in assignments if a.employee_id != employee_id]
        if entries:
            record = AssignmentRecord(employee_id=employee_id, priorities=entries)
            remaining.insert(len(remaining) if index is None else index, record)
        self.store.put_assignments(remaining)

    def _save(self, employee_id: str, priority_ids: list[str]) -> list[AssignmentEntry]:
        entries = self.rerank(priority_ids)
        self.persist(employee_id, entries)
        return entries

    def add_entry(self, employee_id: str, priority_id: str) -> list[AssignmentEntry]:
        ids = self._priority_ids(employee_id)
        if priority_id in ids:
            raise DuplicateAssignmentError(MSG_DUPLICATE)
        ids.append(priority_id)
        logger.info("Assigned priority %s to employee %s at rank %d", priority_id, employee_id, len(ids))
        return self._save(employee_id, ids)

    def remove_entry(self, employee_id: str, priority_id: str) -> list[AssignmentEntry]:
        ids = self._priority_ids(employee_id)
        if priority_id not in ids:
            return self.rerank(ids)
        ids.remove(priority_id)
        logger.info("Removed priority %s from employee %s", priority_id, employee_id)
        return self._save(employee_id, ids)

    def _move(self, employee_id: str, priority_id: str, step: int) -> list[AssignmentEntry]:
        ids = self._priority_ids(employee_id)
        if priority_id not in ids:
            return self.rerank(ids)
        index = ids.index(priority_id)
        target = index + step
        if target < 0 or target >= len(ids):
            return self.rerank(ids)
        ids[index], ids[target] = ids[target], ids[index]
        return self._save(employee_id, ids)

    def move_up(self, employee_id: str, priority_id: str) -> list[AssignmentEntry]:
        return self._move(employee_id, priority_id, -1)

    def move_down(self, employee_id: str, priority_id: str) -> list[AssignmentEntry]:
        return self._move(employee_id, priority_id, 1)

    def set_entries(self, employee_id: str, priority_ids: list[str]) -> list[AssignmentEntry]:
        """Replace the whole ranked list with ``priority_ids`` in the given order."""
        if len(set(priority_ids)) != len(priority_ids):
            raise DuplicateAssignmentError(MSG_DUPLICATE)
        logger.info("Saved %d priorities for employee %s", len(priority_ids), employee_id)
        return self._save(employee_id, list(priority_ids))

    def list_ranked(self, employee_id: str) -> list[tuple[AssignmentEntry, PriorityRecord]]:
        """Entries in rank order joined with their priority; dangling ids are dropped."""
        priorities = {p.id: p for p in self.store.get_priorities()}
        return [
            (entry, priorities[entry.priority_id])
            for entry in self.get_entries(employee_id)
            if entry.priority_id in priorities
        ]


class PriorityViewService:
    """Read-only projections for the dashboard, employee view and reports."""

    def __init__(self, store: RecordStore, engine: AssignmentEngine):
        self.store = store
        self.engine = engine

    @staticmethod
    def order_label(rank: int) -> str:
        return f"{rank}ª Prioridade"

    def ranked_list(self, employee_id: str) -> list[RankedPrioritySchema]:
        return [
            RankedPrioritySchema(
                rank=rank,
                order=entry.order,
                label=self.order_label(rank),
                priority_id=priority.id,
                name=priority.name,
                description=priority.description,
                color=priority.color,
            )
            for rank, (entry, priority) in enumerate(self.engine.list_ranked(employee_id), start=1)
        ]

    def dashboard(self) -> DashboardSchema:
        employees = self.store.get_employees()
        assigned = {a.employee_id for a in self.store.get_assignments() if a.priorities}
        with_priorities = sum(1 for e in employees if e.id in assigned)
        return DashboardSchema(
            total_employees=len(employees),
            total_priorities=len(self.store.get_priorities()),
            employees_with_priorities=with_priorities,
            employees_without_priorities=len(employees) - with_priorities,
        )

    def employee_view(self, employee_id: str) -> EmployeePrioritiesSchema | None:
        employee = next((e for e in self.store.get_employees() if e.id == employee_id), None)
        if employee is None:
            return None
        return EmployeePrioritiesSchema(employee=employee, priorities=self.ranked_list(employee_id))

    def overview(self) -> list[EmployeePrioritiesSchema]:
        return [
            EmployeePrioritiesSchema(employee=employee, priorities=self.ranked_list(employee.id))
            for employee in self.store.get_employees()
        ]

    def available_priorities(self, employee_id: str) -> list[PriorityRecord]:
        assigned = {entry.priority_id for entry in self.engine.get_entries(employee_id)}
        return [p for p in self.store.get_priorities() if p.id not in assigned]

    def assignment_detail(self, employee_id: str) -> AssignmentDetailSchema:
        return AssignmentDetailSchema(
            employee_id=employee_id,
            priorities=self.ranked_list(employee_id),
            available=self.available_priorities(employee_id),
        )

    def report(self, employee_id: str | None = None) -> ReportSchema:
        """Report for every employee, or for ``employee_id`` alone (empty when unknown)."""
        if employee_id:
            view = self.employee_view(employee_id)
            sections = [view] if view else []
        else:
            sections = self.overview()
        return ReportSchema(
            title=settings.PRIORITY_REPORT_TITLE,
            subtitle=settings.PRIORITY_REPORT_SUBTITLE,
            generated_at=timezone.now(),
            employee_id=employee_id or None,
            sections=sections,
        )


class BackupCodec:
    """Export and import of the three collections as one JSON envelope."""

    FIELDS = {
        "employees": EMPLOYEES_KEY,
        "priorities": PRIORITIES_KEY,
        "assignments": ASSIGNMENTS_KEY,
    }

    def __init__(self, store: RecordStore):
        self.store = store

    @staticmethod
    def filename() -> str:
        return f"backup-prioridades-{timezone.localdate().isoformat()}.json"

    def export(self) -> dict[str, str]:
        envelope = {field: self.store.get_raw(key) or "[]" for field, key in self.FIELDS.items()}
        envelope["timestamp"] = timezone.now().isoformat()
        return envelope

    @staticmethod
    def _decode(value: Any) -> tuple[str, list]:
        """Raw string and decoded list for one collection field."""
        if isinstance(value, str):
            try:
                items = json.loads(value)
            except ValueError as exc:
                raise CorruptBackupError(MSG_CORRUPT_BACKUP) from exc
            raw = value
        else:
            items = value
            raw = json.dumps(items, ensure_ascii=False)
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise CorruptBackupError(MSG_CORRUPT_BACKUP)
        return raw, items

    def import_envelope(self, envelope: Any) -> dict[str, int]:
        """
        Replace all three collections from ``envelope``.

        Every field is decoded and checked before anything is written, so a
        corrupt backup leaves the stored data untouched.
        """
        if not isinstance(envelope, dict):
            raise CorruptBackupError(MSG_CORRUPT_BACKUP)
        values = {}
        counts = {}
        for field, key in self.FIELDS.items():
            if envelope.get(field) in (None, ""):
                raise CorruptBackupError(MSG_CORRUPT_BACKUP)
            values[key], items = self._decode(envelope[field])
            counts[field] = len(items)
        self.store.replace_all(values)
        logger.info("Imported backup from %s: %s", envelope.get("timestamp", "unknown date"), counts)
        return counts

    def import_json(self, text: str | bytes) -> dict[str, int]:
        try:
            envelope = json.loads(text)
        except ValueError as exc:
            raise CorruptBackupError(MSG_CORRUPT_BACKUP) from exc
        return self.import_envelope(envelope)


class PriorityBoard:
    """Wires every service to one shared record store."""

    def __init__(self, store: RecordStore | None = None):
        self.store = store or RecordStore()
        self.employees = EmployeeRegistry(self.store)
        self.priorities = PriorityCatalog(self.store)
        self.assignments = AssignmentEngine(self.store)
        self.views = PriorityViewService(self.store, self.assignments)
        self.backup = BackupCodec(self.store)

