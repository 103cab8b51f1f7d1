from datetime import datetime

from ninja import Schema
from pydantic import ConfigDict
from pydantic.alias_generators import to_camel


class CamelSchema(Schema):
    """Schema serialized with camelCase keys, the layout used by storage and backups."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- stored records ----------

class EmployeeRecord(CamelSchema):
    """Employee as stored under the employees key."""
    id: str
    full_name: str
    position: str
    created_at: str | None = None


class PriorityRecord(CamelSchema):
    """Priority type as stored under the priorities key."""
    id: str
    name: str
    description: str = ""
    color: str = "bg-blue-500"
    created_at: str | None = None


class AssignmentEntry(CamelSchema):
    priority_id: str
    order: int


class AssignmentRecord(CamelSchema):
    """Ranked priority references held by one employee."""
    employee_id: str
    priorities: list[AssignmentEntry] = []


# ---------- request payloads ----------

class EmployeeIn(CamelSchema):
    full_name: str
    position: str


class PriorityIn(CamelSchema):
    name: str
    description: str = ""
    color: str = "bg-blue-500"


class PriorityUpdateIn(CamelSchema):
    """Priority edit; a missing color keeps the stored one."""
    name: str
    description: str = ""
    color: str | None = None


class AssignmentEntryIn(CamelSchema):
    priority_id: str


class AssignmentOrderIn(CamelSchema):
    """Complete ordered list of priority ids for one employee."""
    priority_ids: list[str]


# ---------- read models ----------

class ColorSchema(CamelSchema):
    value: str
    label: str


class RankedPrioritySchema(CamelSchema):
    """Single row of an employee's ranked list."""
    rank: int  # 1-indexed display position
    order: int  # stored rank
    label: str
    priority_id: str
    name: str
    description: str
    color: str


class EmployeePrioritiesSchema(CamelSchema):
    """An employee together with the ranked list."""
    employee: EmployeeRecord
    priorities: list[RankedPrioritySchema]


class AssignmentDetailSchema(CamelSchema):
    """Ranked list of an employee plus the priorities still available to add."""
    employee_id: str
    priorities: list[RankedPrioritySchema]
    available: list[PriorityRecord]


class DashboardSchema(CamelSchema):
    total_employees: int
    total_priorities: int
    employees_with_priorities: int
    employees_without_priorities: int


class ReportSchema(CamelSchema):
    """Printable report covering every employee or a single one."""
    title: str
    subtitle: str
    generated_at: datetime
    employee_id: str | None = None
    sections: list[EmployeePrioritiesSchema]


# ---------- responses ----------

class ActionResultSchema(CamelSchema):
    """Outcome of a mutating operation with its notification message."""
    success: bool
    message: str


class EmployeeResultSchema(ActionResultSchema):
    employee: EmployeeRecord


class PriorityResultSchema(ActionResultSchema):
    priority: PriorityRecord


class AssignmentResultSchema(ActionResultSchema):
    employee_id: str
    priorities: list[RankedPrioritySchema]


class BackupResultSchema(ActionResultSchema):
    employees: int
    priorities: int
    assignments: int
