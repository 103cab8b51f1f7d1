import json

from django.http import HttpRequest, HttpResponse
from ninja import NinjaAPI, Swagger

from .exceptions import CorruptBackupError, PriorityBoardError, RecordNotFoundError
from .pdf import render_report_pdf
from .schemas import (
    ActionResultSchema, AssignmentDetailSchema, AssignmentEntryIn, AssignmentOrderIn, AssignmentResultSchema,
    BackupResultSchema, ColorSchema, DashboardSchema, EmployeeIn, EmployeePrioritiesSchema, EmployeeRecord,
    EmployeeResultSchema, PriorityIn, PriorityRecord, PriorityResultSchema, PriorityUpdateIn, ReportSchema,
)
from .services import MSG_CORRUPT_BACKUP, MSG_EMPLOYEE_NOT_FOUND, PriorityBoard

api = NinjaAPI(docs=Swagger(settings={"persistAuthorization": True}), title="Priority Board")


@api.exception_handler(PriorityBoardError)
def priority_board_error(request: HttpRequest, exc: PriorityBoardError):
    return api.create_response(request, {"success": False, "message": exc.message}, status=exc.status_code)


def _assignment_result(board: PriorityBoard, employee_id: str, message: str) -> AssignmentResultSchema:
    return AssignmentResultSchema(
        success=True,
        message=message,
        employee_id=employee_id,
        priorities=board.views.ranked_list(employee_id),
    )


# ---------- employees ----------

@api.get("/employees", response=list[EmployeeRecord], by_alias=True)
def list_employees(request: HttpRequest):
    return PriorityBoard().employees.list_employees()


@api.post("/employees", response={201: EmployeeResultSchema}, by_alias=True)
def create_employee(request: HttpRequest, payload: EmployeeIn):
    employee = PriorityBoard().employees.create(payload.full_name, payload.position)
    return 201, EmployeeResultSchema(success=True, message="Colaborador cadastrado com sucesso!", employee=employee)


@api.put("/employees/{employee_id}", response=EmployeeResultSchema, by_alias=True)
def update_employee(request: HttpRequest, employee_id: str, payload: EmployeeIn):
    employee = PriorityBoard().employees.update(employee_id, payload.full_name, payload.position)
    return EmployeeResultSchema(success=True, message="Colaborador atualizado com sucesso!", employee=employee)


@api.delete("/employees/{employee_id}", response=ActionResultSchema, by_alias=True)
def delete_employee(request: HttpRequest, employee_id: str):
    PriorityBoard().employees.delete(employee_id)
    return ActionResultSchema(success=True, message="Colaborador removido com sucesso!")


@api.get("/employees/{employee_id}/priorities", response=EmployeePrioritiesSchema, by_alias=True)
def employee_priorities(request: HttpRequest, employee_id: str):
    """Ranked list seen by the employee."""
    view = PriorityBoard().views.employee_view(employee_id)
    if view is None:
        raise RecordNotFoundError(MSG_EMPLOYEE_NOT_FOUND)
    return view


# ---------- priority types ----------

@api.get("/priorities", response=list[PriorityRecord], by_alias=True)
def list_priorities(request: HttpRequest):
    return PriorityBoard().priorities.list_priorities()


@api.get("/priority-colors", response=list[ColorSchema], by_alias=True)
def list_priority_colors(request: HttpRequest):
    return PriorityBoard().priorities.colors()


@api.post("/priorities", response={201: PriorityResultSchema}, by_alias=True)
def create_priority(request: HttpRequest, payload: PriorityIn):
    priority = PriorityBoard().priorities.create(payload.name, payload.description, payload.color)
    return 201, PriorityResultSchema(success=True, message="Prioridade cadastrada com sucesso!", priority=priority)


@api.put("/priorities/{priority_id}", response=PriorityResultSchema, by_alias=True)
def update_priority(request: HttpRequest, priority_id: str, payload: PriorityUpdateIn):
    priority = PriorityBoard().priorities.update(priority_id, payload.name, payload.description, payload.color)
    return PriorityResultSchema(success=True, message="Prioridade atualizada com sucesso!", priority=priority)


@api.delete("/priorities/{priority_id}", response=ActionResultSchema, by_alias=True)
def delete_priority(request: HttpRequest, priority_id: str):
    PriorityBoard().priorities.delete(priority_id)
    return ActionResultSchema(success=True, message="Prioridade removida com sucesso!")


# ---------- assignments ----------

@api.get("/assignments/{employee_id}", response=AssignmentDetailSchema, by_alias=True)
def get_assignment(request: HttpRequest, employee_id: str):
    return PriorityBoard().views.assignment_detail(employee_id)


@api.put("/assignments/{employee_id}", response=AssignmentResultSchema, by_alias=True)
def save_assignment(request: HttpRequest, employee_id: str, payload: AssignmentOrderIn):
    """Replace the employee's ranked list with the submitted order."""
    board = PriorityBoard()
    board.assignments.set_entries(employee_id, payload.priority_ids)
    return _assignment_result(board, employee_id, "Prioridades salvas com sucesso!")


@api.post("/assignments/{employee_id}/entries", response=AssignmentResultSchema, by_alias=True)
def add_assignment_entry(request: HttpRequest, employee_id: str, payload: AssignmentEntryIn):
    board = PriorityBoard()
    board.assignments.add_entry(employee_id, payload.priority_id)
    return _assignment_result(board, employee_id, "Prioridade atribuída com sucesso!")


@api.delete("/assignments/{employee_id}/entries/{priority_id}", response=AssignmentResultSchema, by_alias=True)
def remove_assignment_entry(request: HttpRequest, employee_id: str, priority_id: str):
    board = PriorityBoard()
    board.assignments.remove_entry(employee_id, priority_id)
    return _assignment_result(board, employee_id, "Prioridade removida com sucesso!")


@api.post("/assignments/{employee_id}/entries/{priority_id}/move-up", response=AssignmentResultSchema, by_alias=True)
def move_assignment_entry_up(request: HttpRequest, employee_id: str, priority_id: str):
    board = PriorityBoard()
    board.assignments.move_up(employee_id, priority_id)
    return _assignment_result(board, employee_id, "Prioridade reordenada com sucesso!")


@api.post("/assignments/{employee_id}/entries/{priority_id}/move-down", response=AssignmentResultSchema, by_alias=True)
def move_assignment_entry_down(request: HttpRequest, employee_id: str, priority_id: str):
    board = PriorityBoard()
    board.assignments.move_down(employee_id, priority_id)
    return _assignment_result(board, employee_id, "Prioridade reordenada com sucesso!")


# ---------- views & reports ----------

@api.get("/dashboard", response=DashboardSchema, by_alias=True)
def dashboard(request: HttpRequest):
    return PriorityBoard().views.dashboard()


@api.get("/overview", response=list[EmployeePrioritiesSchema], by_alias=True)
def overview(request: HttpRequest):
    """Every employee with the ranked list, for the admin panel."""
    return PriorityBoard().views.overview()


def _report_employee(employee_id: str | None) -> str | None:
    # "all" is the selector value for the general report
    return None if employee_id in (None, "", "all") else employee_id


@api.get("/report", response=ReportSchema, by_alias=True)
def report(request: HttpRequest, employee_id: str | None = None):
    return PriorityBoard().views.report(_report_employee(employee_id))


@api.get("/report/pdf")
def report_pdf(request: HttpRequest, employee_id: str | None = None) -> HttpResponse:
    """
    Printable report as PDF. Add ``format=html`` to get the HTML page
    that would be handed to the PDF renderer.
    """
    data = PriorityBoard().views.report(_report_employee(employee_id))
    return render_report_pdf(request, "priorities/report.html", {"report": data})


# ---------- backup ----------

@api.get("/backup")
def export_backup(request: HttpRequest) -> HttpResponse:
    codec = PriorityBoard().backup
    body = json.dumps(codec.export(), ensure_ascii=False, indent=2)
    response = HttpResponse(body, content_type="application/json")
    response["Content-Disposition"] = f'attachment; filename="{codec.filename()}"'
    return response


@api.post("/backup", response=BackupResultSchema, by_alias=True)
def import_backup(request: HttpRequest):
    """
    Restore a backup. Accepts the envelope as the JSON request body or as
    an uploaded ``file`` field.
    """
    if request.content_type == "multipart/form-data":
        upload = request.FILES.get("file")
        if upload is None:
            raise CorruptBackupError(MSG_CORRUPT_BACKUP)
        text = upload.read()
    else:
        text = request.body
    counts = PriorityBoard().backup.import_json(text)
    return BackupResultSchema(success=True, message="Seus dados foram restaurados com sucesso.", **counts)
