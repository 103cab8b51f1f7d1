import json
import random
import tempfile
from contextlib import redirect_stdout
from io import StringIO
from pathlib import Path

from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.test.client import Client

from .exceptions import CorruptBackupError, DuplicateAssignmentError, RecordNotFoundError, ValidationError
from .models import StoredCollection
from .services import PriorityBoard
from .store import ASSIGNMENTS_KEY, EMPLOYEES_KEY, PRIORITIES_KEY, RecordStore


class PriorityBoardTestBase(TestCase):
    """Base test class with common setup and helper methods."""

    def setUp(self):
        """Set up common test data"""
        self.client = Client()
        self.board = PriorityBoard()

        # Create employees
        self.ana = self.board.employees.create("Ana Souza", "Escrevente")
        self.bruno = self.board.employees.create("Bruno Lima", "Tabelião Substituto")

        # Create priority types
        self.protesto = self.board.priorities.create("Protesto", "Títulos a protestar", "bg-red-500")
        self.registro = self.board.priorities.create("Registro Civil", "", "bg-green-500")
        self.escrituras = self.board.priorities.create("Escrituras", "Lavratura de escrituras", "bg-blue-700")

    def ranks(self, employee_id, store=None):
        """Helper returning [(priority_id, order)] as persisted for an employee."""
        store = store or RecordStore()
        assignment = next((a for a in store.get_assignments() if a.employee_id == employee_id), None)
        if assignment is None:
            return None
        return [(entry.priority_id, entry.order) for entry in assignment.priorities]

    def send_json(self, method, url, data):
        """Helper to send a JSON body with the given HTTP method."""
        return getattr(self.client, method)(url, data=json.dumps(data), content_type="application/json")


class AssignmentEngineTest(PriorityBoardTestBase):
    """Test add, remove and move operations on one employee's ranked list."""

    def test_example_scenario(self):
        """Walk through add, move and remove until the assignment disappears."""
        engine = self.board.assignments
        e1, p1, p2 = self.ana.id, self.protesto.id, self.registro.id

        engine.add_entry(e1, p1)
        self.assertEqual(self.ranks(e1), [(p1, 1)])

        engine.add_entry(e1, p2)
        self.assertEqual(self.ranks(e1), [(p1, 1), (p2, 2)])

        engine.move_down(e1, p1)
        self.assertEqual(self.ranks(e1), [(p2, 1), (p1, 2)])

        engine.remove_entry(e1, p2)
        self.assertEqual(self.ranks(e1), [(p1, 1)])

        engine.remove_entry(e1, p1)
        self.assertIsNone(self.ranks(e1))
        self.assertEqual(engine.list_ranked(e1), [])

    def test_add_duplicate_is_rejected(self):
        """Adding the same priority twice raises and leaves entries unchanged."""
        engine = self.board.assignments
        engine.add_entry(self.ana.id, self.protesto.id)
        engine.add_entry(self.ana.id, self.registro.id)

        with self.assertRaises(DuplicateAssignmentError):
            engine.add_entry(self.ana.id, self.protesto.id)

        self.assertEqual(self.ranks(self.ana.id), [(self.protesto.id, 1), (self.registro.id, 2)])

    def test_moves_at_boundaries_are_noops(self):
        """moveUp on the first entry and moveDown on the last change nothing."""
        engine = self.board.assignments
        for priority in (self.protesto, self.registro, self.escrituras):
            engine.add_entry(self.ana.id, priority.id)
        before = self.ranks(self.ana.id)

        engine.move_up(self.ana.id, self.protesto.id)
        self.assertEqual(self.ranks(self.ana.id), before)

        engine.move_down(self.ana.id, self.escrituras.id)
        self.assertEqual(self.ranks(self.ana.id), before)

    def test_move_up_swaps_with_previous(self):
        engine = self.board.assignments
        for priority in (self.protesto, self.registro, self.escrituras):
            engine.add_entry(self.ana.id, priority.id)

        entries = engine.move_up(self.ana.id, self.escrituras.id)

        self.assertEqual(
            [(e.priority_id, e.order) for e in entries],
            [(self.protesto.id, 1), (self.escrituras.id, 2), (self.registro.id, 3)],
        )
        self.assertEqual(self.ranks(self.ana.id), [(e.priority_id, e.order) for e in entries])

    def test_remove_reranks_remaining_entries(self):
        engine = self.board.assignments
        for priority in (self.protesto, self.registro, self.escrituras):
            engine.add_entry(self.ana.id, priority.id)

        engine.remove_entry(self.ana.id, self.protesto.id)

        self.assertEqual(self.ranks(self.ana.id), [(self.registro.id, 1), (self.escrituras.id, 2)])

    def test_operations_on_absent_entries_are_noops(self):
        """Removing or moving a priority that is not assigned does nothing."""
        engine = self.board.assignments
        engine.add_entry(self.ana.id, self.protesto.id)

        engine.remove_entry(self.ana.id, self.registro.id)
        engine.move_up(self.ana.id, self.registro.id)
        engine.move_down(self.bruno.id, self.registro.id)

        self.assertEqual(self.ranks(self.ana.id), [(self.protesto.id, 1)])
        self.assertIsNone(self.ranks(self.bruno.id))

    def test_assignments_are_independent_per_employee(self):
        engine = self.board.assignments
        engine.add_entry(self.ana.id, self.protesto.id)
        engine.add_entry(self.bruno.id, self.protesto.id)
        engine.add_entry(self.bruno.id, self.registro.id)

        engine.remove_entry(self.ana.id, self.protesto.id)

        self.assertIsNone(self.ranks(self.ana.id))
        self.assertEqual(self.ranks(self.bruno.id), [(self.protesto.id, 1), (self.registro.id, 2)])

    def test_last_removal_deletes_assignment_record(self):
        """Empty assignments are not persisted."""
        engine = self.board.assignments
        engine.add_entry(self.ana.id, self.protesto.id)
        engine.remove_entry(self.ana.id, self.protesto.id)

        stored = json.loads(StoredCollection.objects.get(key=ASSIGNMENTS_KEY).value)
        self.assertEqual(stored, [])

    def test_set_entries_replaces_whole_list(self):
        engine = self.board.assignments
        engine.add_entry(self.ana.id, self.protesto.id)

        engine.set_entries(self.ana.id, [self.escrituras.id, self.registro.id])

        self.assertEqual(self.ranks(self.ana.id), [(self.escrituras.id, 1), (self.registro.id, 2)])

        engine.set_entries(self.ana.id, [])
        self.assertIsNone(self.ranks(self.ana.id))

    def test_set_entries_with_duplicates_writes_nothing(self):
        engine = self.board.assignments
        engine.add_entry(self.ana.id, self.protesto.id)

        with self.assertRaises(DuplicateAssignmentError):
            engine.set_entries(self.ana.id, [self.registro.id, self.registro.id])

        self.assertEqual(self.ranks(self.ana.id), [(self.protesto.id, 1)])

    def test_list_ranked_drops_dangling_priorities(self):
        """A deleted priority type stays referenced but is not listed."""
        engine = self.board.assignments
        for priority in (self.protesto, self.registro, self.escrituras):
            engine.add_entry(self.ana.id, priority.id)

        self.board.priorities.delete(self.registro.id)

        ranked = engine.list_ranked(self.ana.id)
        self.assertEqual([priority.id for _, priority in ranked], [self.protesto.id, self.escrituras.id])
        # the reference itself is kept
        self.assertEqual(len(self.ranks(self.ana.id)), 3)

    def test_stored_orders_are_normalized_on_load(self):
        """Imported lists with gaps or repeated orders are read back as 1..n."""
        RecordStore().put_raw(ASSIGNMENTS_KEY, json.dumps([{
            "employeeId": self.ana.id,
            "priorities": [
                {"priorityId": self.registro.id, "order": 7},
                {"priorityId": self.protesto.id, "order": 2},
                {"priorityId": self.protesto.id, "order": 9},
                {"priorityId": self.escrituras.id, "order": 7},
            ],
        }]))

        entries = self.board.assignments.get_entries(self.ana.id)

        self.assertEqual(
            [(e.priority_id, e.order) for e in entries],
            [(self.protesto.id, 1), (self.registro.id, 2), (self.escrituras.id, 3)],
        )

    def test_repeated_records_for_one_employee_are_merged(self):
        """Imported data holding two records for one employee behaves as a single list."""
        RecordStore().put_raw(ASSIGNMENTS_KEY, json.dumps([
            {"employeeId": self.ana.id, "priorities": [{"priorityId": self.protesto.id, "order": 1}]},
            {"employeeId": self.bruno.id, "priorities": [{"priorityId": self.escrituras.id, "order": 1}]},
            {"employeeId": self.ana.id, "priorities": [{"priorityId": self.registro.id, "order": 1}]},
        ]))
        engine = self.board.assignments

        with self.assertLogs("priorities.store", level="WARNING"):
            self.assertEqual(
                [(e.priority_id, e.order) for e in engine.get_entries(self.ana.id)],
                [(self.protesto.id, 1), (self.registro.id, 2)],
            )

        engine.remove_entry(self.ana.id, self.protesto.id)
        self.assertEqual(self.ranks(self.ana.id), [(self.registro.id, 1)])

        engine.remove_entry(self.ana.id, self.registro.id)
        self.assertEqual(engine.list_ranked(self.ana.id), [])
        self.assertIsNone(self.ranks(self.ana.id))
        stored = json.loads(StoredCollection.objects.get(key=ASSIGNMENTS_KEY).value)
        self.assertEqual([a["employeeId"] for a in stored], [self.bruno.id])

    def test_engine_does_not_check_existence(self):
        """Unknown employee and priority ids are accepted as given."""
        self.board.assignments.add_entry("ghost", "missing")
        self.assertEqual(self.ranks("ghost"), [("missing", 1)])
        self.assertEqual(self.board.assignments.list_ranked("ghost"), [])


class AssignmentInvariantTest(PriorityBoardTestBase):
    """Random operation sequences keep ranks contiguous and unique."""

    def assert_invariants(self, employee_id, expected):
        persisted = self.ranks(employee_id) or []
        self.assertEqual([pid for pid, _ in persisted], expected)
        self.assertEqual([order for _, order in persisted], list(range(1, len(expected) + 1)))
        self.assertEqual(len({pid for pid, _ in persisted}), len(persisted))

    def test_random_operation_sequences(self):
        priority_ids = [p.id for p in (self.protesto, self.registro, self.escrituras)]
        priority_ids += [self.board.priorities.create(f"Extra {i}").id for i in range(3)]
        engine = self.board.assignments

        for seed in range(15):
            with self.subTest(seed=seed):
                rng = random.Random(seed)
                employee_id = f"employee-{seed}"
                expected = []

                for _ in range(40):
                    operation = rng.choice(["add", "add", "remove", "up", "down"])
                    priority_id = rng.choice(priority_ids)

                    if operation == "add":
                        if priority_id in expected:
                            with self.assertRaises(DuplicateAssignmentError):
                                engine.add_entry(employee_id, priority_id)
                        else:
                            engine.add_entry(employee_id, priority_id)
                            expected.append(priority_id)
                    elif operation == "remove":
                        engine.remove_entry(employee_id, priority_id)
                        if priority_id in expected:
                            expected.remove(priority_id)
                    elif priority_id in expected:
                        index = expected.index(priority_id)
                        target = index - 1 if operation == "up" else index + 1
                        if 0 <= target < len(expected):
                            expected[index], expected[target] = expected[target], expected[index]
                        getattr(engine, f"move_{operation}")(employee_id, priority_id)
                    else:
                        getattr(engine, f"move_{operation}")(employee_id, priority_id)

                    self.assert_invariants(employee_id, expected)

                if not expected:
                    self.assertIsNone(self.ranks(employee_id))


class EmployeeRegistryTest(PriorityBoardTestBase):
    """Test employee CRUD."""

    def test_create_trims_and_assigns_identity(self):
        employee = self.board.employees.create("  Carla Dias ", " Auxiliar  ")

        self.assertEqual(employee.full_name, "Carla Dias")
        self.assertEqual(employee.position, "Auxiliar")
        self.assertTrue(employee.id)
        self.assertIsNotNone(employee.created_at)
        self.assertNotIn(employee.id, {self.ana.id, self.bruno.id})
        self.assertEqual([e.id for e in self.board.employees.list_employees()][-1], employee.id)

    def test_create_rejects_blank_fields(self):
        for full_name, position in (("", "Escrevente"), ("   ", "Escrevente"), ("Carla", " \t")):
            with self.subTest(full_name=full_name, position=position):
                with self.assertRaises(ValidationError):
                    self.board.employees.create(full_name, position)
        self.assertEqual(len(self.board.employees.list_employees()), 2)

    def test_update_keeps_id_and_creation_time(self):
        updated = self.board.employees.update(self.ana.id, "Ana S. Souza", "Oficial")

        self.assertEqual(updated.id, self.ana.id)
        self.assertEqual(updated.created_at, self.ana.created_at)
        stored = self.board.employees.get(self.ana.id)
        self.assertEqual((stored.full_name, stored.position), ("Ana S. Souza", "Oficial"))

    def test_update_validation_and_unknown_id(self):
        with self.assertRaises(ValidationError):
            self.board.employees.update(self.ana.id, "", "Oficial")
        with self.assertRaises(RecordNotFoundError):
            self.board.employees.update("missing", "Nome", "Cargo")
        self.assertEqual(self.board.employees.get(self.ana.id).full_name, "Ana Souza")

    def test_delete_is_silent_for_unknown_and_does_not_cascade(self):
        self.board.assignments.add_entry(self.ana.id, self.protesto.id)

        self.assertFalse(self.board.employees.delete("missing"))
        self.assertTrue(self.board.employees.delete(self.ana.id))

        self.assertIsNone(self.board.employees.get(self.ana.id))
        self.assertEqual(self.ranks(self.ana.id), [(self.protesto.id, 1)])


class PriorityCatalogTest(PriorityBoardTestBase):
    """Test priority type CRUD and the color palette."""

    def test_palette(self):
        colors = self.board.priorities.colors()
        self.assertEqual(len(colors), 16)
        self.assertEqual(colors[0].value, "bg-blue-500")
        self.assertEqual(len({c.value for c in colors}), 16)

    def test_create_defaults(self):
        priority = self.board.priorities.create(" Atendimento ", None, None)

        self.assertEqual(priority.name, "Atendimento")
        self.assertEqual(priority.description, "")
        self.assertEqual(priority.color, "bg-blue-500")

    def test_create_rejects_blank_name_and_unknown_color(self):
        with self.assertRaises(ValidationError):
            self.board.priorities.create("  ", "desc")
        with self.assertRaises(ValidationError):
            self.board.priorities.create("Atendimento", "", "bg-black")
        self.assertEqual(len(self.board.priorities.list_priorities()), 3)

    def test_update_replaces_fields(self):
        updated = self.board.priorities.update(self.protesto.id, "Protestos", " Urgentes ", "bg-amber-500")

        self.assertEqual(updated.id, self.protesto.id)
        self.assertEqual(updated.created_at, self.protesto.created_at)
        self.assertEqual(
            (updated.name, updated.description, updated.color),
            ("Protestos", "Urgentes", "bg-amber-500"),
        )
        with self.assertRaises(RecordNotFoundError):
            self.board.priorities.update("missing", "Nome")

    def test_update_without_color_keeps_stored_color(self):
        updated = self.board.priorities.update(self.protesto.id, "Protestos")

        self.assertEqual(updated.color, "bg-red-500")
        self.assertEqual(self.board.priorities.get(self.protesto.id).color, "bg-red-500")

    def test_delete(self):
        self.assertTrue(self.board.priorities.delete(self.protesto.id))
        self.assertFalse(self.board.priorities.delete(self.protesto.id))
        self.assertEqual(
            [p.id for p in self.board.priorities.list_priorities()],
            [self.registro.id, self.escrituras.id],
        )


class PriorityViewServiceTest(PriorityBoardTestBase):
    """Test read-side projections."""

    def setUp(self):
        super().setUp()
        engine = self.board.assignments
        engine.add_entry(self.ana.id, self.escrituras.id)
        engine.add_entry(self.ana.id, self.protesto.id)

    def test_dashboard_counts(self):
        self.board.employees.create("Carla Dias", "Auxiliar")

        dashboard = self.board.views.dashboard()

        self.assertEqual(dashboard.total_employees, 3)
        self.assertEqual(dashboard.total_priorities, 3)
        self.assertEqual(dashboard.employees_with_priorities, 1)
        self.assertEqual(dashboard.employees_without_priorities, 2)

    def test_dashboard_ignores_assignments_of_deleted_employees(self):
        self.board.employees.delete(self.ana.id)

        dashboard = self.board.views.dashboard()

        self.assertEqual(dashboard.total_employees, 1)
        self.assertEqual(dashboard.employees_with_priorities, 0)
        self.assertEqual(dashboard.employees_without_priorities, 1)

    def test_ranked_list_display_rank_skips_dangling(self):
        self.board.assignments.add_entry(self.ana.id, self.registro.id)
        self.board.priorities.delete(self.protesto.id)

        ranked = self.board.views.ranked_list(self.ana.id)

        self.assertEqual([r.name for r in ranked], ["Escrituras", "Registro Civil"])
        self.assertEqual([r.rank for r in ranked], [1, 2])
        self.assertEqual([r.order for r in ranked], [1, 3])
        self.assertEqual(ranked[1].label, "2ª Prioridade")

    def test_employee_view_and_available(self):
        view = self.board.views.employee_view(self.ana.id)
        self.assertEqual(view.employee.full_name, "Ana Souza")
        self.assertEqual([r.priority_id for r in view.priorities], [self.escrituras.id, self.protesto.id])

        self.assertIsNone(self.board.views.employee_view("missing"))
        self.assertEqual(
            [p.id for p in self.board.views.available_priorities(self.ana.id)],
            [self.registro.id],
        )

    def test_report_all_single_and_unknown(self):
        report = self.board.views.report()
        self.assertEqual([s.employee.id for s in report.sections], [self.ana.id, self.bruno.id])
        self.assertEqual(report.sections[1].priorities, [])
        self.assertEqual(report.title, "Gerenciamento de Prioridade")

        single = self.board.views.report(self.ana.id)
        self.assertEqual(single.employee_id, self.ana.id)
        self.assertEqual(len(single.sections), 1)
        self.assertEqual([p.name for p in single.sections[0].priorities], ["Escrituras", "Protesto"])

        self.assertEqual(self.board.views.report("missing").sections, [])


class RecordStoreTest(PriorityBoardTestBase):
    """Test tolerant loading and change notification."""

    def test_absent_keys_read_as_empty(self):
        StoredCollection.objects.all().delete()
        store = RecordStore()
        self.assertEqual(store.get_employees(), [])
        self.assertIsNone(store.get_raw(EMPLOYEES_KEY))

    def test_unparsable_value_reads_as_empty(self):
        StoredCollection.objects.filter(key=EMPLOYEES_KEY).update(value="{not json")

        with self.assertLogs("priorities.store", level="WARNING"):
            self.assertEqual(RecordStore().get_employees(), [])

    def test_malformed_records_are_skipped(self):
        RecordStore().put_raw(EMPLOYEES_KEY, json.dumps([
            {"id": "1", "fullName": "Ana", "position": "Escrevente"},
            {"fullName": "sem id"},
        ]))

        with self.assertLogs("priorities.store", level="WARNING"):
            employees = RecordStore().get_employees()
        self.assertEqual([e.id for e in employees], ["1"])

    def test_persisted_layout_uses_external_names(self):
        self.board.assignments.add_entry(self.ana.id, self.protesto.id)

        employees = json.loads(RecordStore().get_raw(EMPLOYEES_KEY))
        assignments = json.loads(RecordStore().get_raw(ASSIGNMENTS_KEY))

        self.assertEqual(set(employees[0]), {"id", "fullName", "position", "createdAt"})
        self.assertEqual(
            assignments,
            [{"employeeId": self.ana.id, "priorities": [{"priorityId": self.protesto.id, "order": 1}]}],
        )

    def test_other_store_instances_see_replaced_collections(self):
        reader = RecordStore()
        self.assertEqual(len(reader.get_employees()), 2)

        PriorityBoard().employees.create("Carla Dias", "Auxiliar")

        self.assertEqual(len(reader.get_employees()), 3)


class BackupCodecTest(PriorityBoardTestBase):
    """Test export and import of the backup envelope."""

    def setUp(self):
        super().setUp()
        self.board.assignments.add_entry(self.ana.id, self.registro.id)
        self.board.assignments.add_entry(self.ana.id, self.protesto.id)
        self.board.assignments.add_entry(self.bruno.id, self.escrituras.id)

    def snapshot(self):
        store = RecordStore()
        return (
            [e.model_dump() for e in store.get_employees()],
            [p.model_dump() for p in store.get_priorities()],
            [a.model_dump() for a in store.get_assignments()],
        )

    def test_export_envelope_shape(self):
        envelope = self.board.backup.export()

        self.assertEqual(set(envelope), {"employees", "priorities", "assignments", "timestamp"})
        for field in ("employees", "priorities", "assignments"):
            self.assertIsInstance(envelope[field], str)
        self.assertEqual(len(json.loads(envelope["employees"])), 2)

    def test_export_of_empty_store(self):
        StoredCollection.objects.all().delete()

        envelope = PriorityBoard().backup.export()

        self.assertEqual(envelope["assignments"], "[]")
        # an empty export is still importable
        PriorityBoard().backup.import_envelope(envelope)

    def test_round_trip(self):
        before = self.snapshot()
        envelope = self.board.backup.export()

        self.board.employees.delete(self.ana.id)
        self.board.priorities.create("Nova", "")
        self.board.assignments.remove_entry(self.bruno.id, self.escrituras.id)

        counts = PriorityBoard().backup.import_envelope(json.loads(json.dumps(envelope)))

        self.assertEqual(counts, {"employees": 2, "priorities": 3, "assignments": 2})
        self.assertEqual(self.snapshot(), before)

    def test_import_accepts_decoded_collections(self):
        envelope = self.board.backup.export()
        decoded = {field: json.loads(envelope[field]) for field in ("employees", "priorities", "assignments")}
        before = self.snapshot()
        StoredCollection.objects.all().delete()

        self.board.backup.import_envelope(decoded)

        self.assertEqual(self.snapshot(), before)

    def test_corrupt_backups_leave_data_untouched(self):
        before = self.snapshot()
        envelope = self.board.backup.export()
        corrupt = [
            "not a mapping",
            {k: v for k, v in envelope.items() if k != "priorities"},
            {**envelope, "assignments": None},
            {**envelope, "employees": ""},
            {**envelope, "assignments": "{broken"},
            {**envelope, "priorities": json.dumps({"id": "1"})},
            {**envelope, "employees": json.dumps([1, 2, 3])},
        ]

        for payload in corrupt:
            with self.subTest(payload=payload):
                with self.assertRaises(CorruptBackupError):
                    self.board.backup.import_envelope(payload)
        with self.assertRaises(CorruptBackupError):
            self.board.backup.import_json("{ definitely not json")

        self.assertEqual(self.snapshot(), before)

    def test_import_refreshes_other_readers(self):
        reader = RecordStore()
        self.assertEqual(len(reader.get_priorities()), 3)

        envelope = self.board.backup.export()
        envelope["priorities"] = "[]"
        self.board.backup.import_envelope(envelope)

        self.assertEqual(reader.get_priorities(), [])

    def test_filename(self):
        self.assertRegex(self.board.backup.filename(), r"^backup-prioridades-\d{4}-\d{2}-\d{2}\.json$")


class BackupCommandTest(PriorityBoardTestBase):
    """Test the dump_backup and load_backup management commands."""

    def test_dump_and_load(self):
        self.board.assignments.add_entry(self.ana.id, self.protesto.id)
        out = StringIO()
        call_command("dump_backup", "--print", stdout=out)
        envelope = json.loads(out.getvalue())
        self.assertEqual(len(json.loads(envelope["employees"])), 2)

        self.board.employees.delete(self.ana.id)

        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "backup.json"
            path.write_text(out.getvalue(), encoding="utf-8")
            call_command("load_backup", str(path), stdout=StringIO())

        self.assertIsNotNone(PriorityBoard().employees.get(self.ana.id))

    def test_dump_to_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "out.json"
            call_command("dump_backup", "--output", str(path), stdout=StringIO())
            envelope = json.loads(path.read_text(encoding="utf-8"))
        self.assertIn("timestamp", envelope)

    def test_print_flag_alone_writes_to_console(self):
        """Same as ``manage.py dump_backup --print``: no stream is passed in."""
        out = StringIO()
        with tempfile.TemporaryDirectory() as tmp, redirect_stdout(out):
            call_command("dump_backup", "--print", output=str(Path(tmp) / "unused.json"))
            self.assertFalse((Path(tmp) / "unused.json").exists())

        envelope = json.loads(out.getvalue())
        self.assertEqual(len(json.loads(envelope["priorities"])), 3)

    def test_load_errors(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(CommandError):
                call_command("load_backup", str(Path(tmp) / "missing.json"), stdout=StringIO())

            path = Path(tmp) / "broken.json"
            path.write_text('{"employees": "[]"}', encoding="utf-8")
            with self.assertRaises(CommandError):
                call_command("load_backup", str(path), stdout=StringIO())


class EmployeeAPITest(PriorityBoardTestBase):
    """Test the employee and priority endpoints."""

    def test_employee_crud(self):
        response = self.send_json("post", "/api/employees", {"fullName": " Carla Dias ", "position": "Auxiliar"})
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertTrue(data["success"])
        self.assertEqual(data["message"], "Colaborador cadastrado com sucesso!")
        self.assertEqual(data["employee"]["fullName"], "Carla Dias")
        carla_id = data["employee"]["id"]

        response = self.send_json("put", f"/api/employees/{carla_id}", {"fullName": "Carla D.", "position": "Oficial"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["employee"]["position"], "Oficial")

        names = [e["fullName"] for e in self.client.get("/api/employees").json()]
        self.assertEqual(names, ["Ana Souza", "Bruno Lima", "Carla D."])

        response = self.client.delete(f"/api/employees/{carla_id}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(self.client.get("/api/employees").json()), 2)

        # deleting again is not an error
        self.assertEqual(self.client.delete(f"/api/employees/{carla_id}").status_code, 200)

    def test_employee_validation_error(self):
        response = self.send_json("post", "/api/employees", {"fullName": "   ", "position": "Auxiliar"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"success": False, "message": "Por favor, preencha todos os campos."})

    def test_update_unknown_employee(self):
        response = self.send_json("put", "/api/employees/missing", {"fullName": "X", "position": "Y"})
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.json()["success"])

    def test_priority_crud_and_colors(self):
        response = self.send_json("post", "/api/priorities", {"name": "Atendimento", "color": "bg-rose-500"})
        self.assertEqual(response.status_code, 201)
        priority = response.json()["priority"]
        self.assertEqual((priority["description"], priority["color"]), ("", "bg-rose-500"))

        response = self.send_json("put", f"/api/priorities/{priority['id']}", {"name": "Balcão", "color": "bg-pink-600"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Cor de prioridade inválida.")

        response = self.send_json("put", f"/api/priorities/{priority['id']}", {"name": "Balcão"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            (response.json()["priority"]["name"], response.json()["priority"]["color"]),
            ("Balcão", "bg-rose-500"),
        )

        response = self.client.delete(f"/api/priorities/{priority['id']}")
        self.assertEqual(response.json()["message"], "Prioridade removida com sucesso!")
        self.assertEqual(len(self.client.get("/api/priorities").json()), 3)

        colors = self.client.get("/api/priority-colors").json()
        self.assertEqual(len(colors), 16)
        self.assertEqual(colors[0], {"value": "bg-blue-500", "label": "Azul"})


class AssignmentAPITest(PriorityBoardTestBase):
    """Test the assignment endpoints."""

    def url(self, suffix=""):
        return f"/api/assignments/{self.ana.id}{suffix}"

    def test_add_move_remove(self):
        for priority in (self.protesto, self.registro):
            response = self.send_json("post", self.url("/entries"), {"priorityId": priority.id})
            self.assertEqual(response.status_code, 200)

        response = self.client.post(self.url(f"/entries/{self.protesto.id}/move-down"))
        data = response.json()
        self.assertEqual([p["priorityId"] for p in data["priorities"]], [self.registro.id, self.protesto.id])
        self.assertEqual([p["rank"] for p in data["priorities"]], [1, 2])
        self.assertEqual(data["message"], "Prioridade reordenada com sucesso!")

        response = self.client.post(self.url(f"/entries/{self.protesto.id}/move-up"))
        self.assertEqual(response.json()["priorities"][0]["priorityId"], self.protesto.id)

        response = self.client.delete(self.url(f"/entries/{self.protesto.id}"))
        self.assertEqual([p["priorityId"] for p in response.json()["priorities"]], [self.registro.id])

    def test_duplicate_is_conflict(self):
        self.send_json("post", self.url("/entries"), {"priorityId": self.protesto.id})

        response = self.send_json("post", self.url("/entries"), {"priorityId": self.protesto.id})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["message"], "Esta prioridade já foi atribuída ao colaborador.")
        self.assertEqual(self.ranks(self.ana.id), [(self.protesto.id, 1)])

    def test_save_order_and_detail(self):
        response = self.send_json("put", self.url(), {"priorityIds": [self.escrituras.id, self.protesto.id]})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Prioridades salvas com sucesso!")

        detail = self.client.get(self.url()).json()
        self.assertEqual(detail["employeeId"], self.ana.id)
        self.assertEqual([p["name"] for p in detail["priorities"]], ["Escrituras", "Protesto"])
        self.assertEqual([p["id"] for p in detail["available"]], [self.registro.id])

    def test_employee_self_view(self):
        self.board.assignments.set_entries(self.ana.id, [self.registro.id, self.escrituras.id])

        response = self.client.get(f"/api/employees/{self.ana.id}/priorities")

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["employee"]["fullName"], "Ana Souza")
        self.assertEqual([p["label"] for p in data["priorities"]], ["1ª Prioridade", "2ª Prioridade"])

        self.assertEqual(self.client.get("/api/employees/missing/priorities").status_code, 404)


class ReportAndBackupAPITest(PriorityBoardTestBase):
    """Test dashboard, report and backup endpoints."""

    def setUp(self):
        super().setUp()
        self.board.assignments.set_entries(self.ana.id, [self.protesto.id, self.escrituras.id])

    def test_dashboard_and_overview(self):
        data = self.client.get("/api/dashboard").json()
        self.assertEqual(data, {
            "totalEmployees": 2,
            "totalPriorities": 3,
            "employeesWithPriorities": 1,
            "employeesWithoutPriorities": 1,
        })

        overview = self.client.get("/api/overview").json()
        self.assertEqual([len(row["priorities"]) for row in overview], [2, 0])

    def test_report_json(self):
        data = self.client.get("/api/report").json()
        self.assertEqual(len(data["sections"]), 2)
        self.assertIn("generatedAt", data)
        self.assertIsNone(data["employeeId"])

        data = self.client.get("/api/report", {"employee_id": "all"}).json()
        self.assertEqual(len(data["sections"]), 2)

        data = self.client.get("/api/report", {"employee_id": self.ana.id}).json()
        self.assertEqual([s["employee"]["fullName"] for s in data["sections"]], ["Ana Souza"])

    def test_report_printable_html(self):
        response = self.client.get("/api/report/pdf", {"format": "html", "employee_id": self.ana.id})

        self.assertEqual(response.status_code, 200)
        self.assertContains(response, "Gerenciamento de Prioridade")
        self.assertContains(response, "Nome: Ana Souza")
        self.assertContains(response, "1. Protesto")
        self.assertContains(response, "2. Escrituras")
        self.assertNotContains(response, "Bruno Lima")

    def test_backup_download_and_restore(self):
        response = self.client.get("/api/backup")
        self.assertEqual(response.status_code, 200)
        self.assertIn("attachment; filename=\"backup-prioridades-", response["Content-Disposition"])
        body = response.content

        self.board.employees.delete(self.ana.id)

        response = self.client.post("/api/backup", data=body, content_type="application/json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["employees"], 2)
        self.assertEqual(len(self.client.get("/api/employees").json()), 2)

    def test_backup_upload_file(self):
        body = self.client.get("/api/backup").content
        self.board.employees.delete(self.bruno.id)

        upload = SimpleUploadedFile("backup.json", body, content_type="application/json")
        response = self.client.post("/api/backup", {"file": upload})

        self.assertEqual(response.status_code, 200)
        self.assertIsNotNone(PriorityBoard().employees.get(self.bruno.id))

    def test_upload_without_file_field_rejected(self):
        self.board.employees.delete(self.bruno.id)

        response = self.client.post("/api/backup", {"other": "x"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"success": False, "message": "O arquivo selecionado não é um backup válido."})
        self.assertEqual([e["id"] for e in self.client.get("/api/employees").json()], [self.ana.id])

    def test_corrupt_backup_rejected(self):
        response = self.client.post(
            "/api/backup",
            data=json.dumps({"employees": "[]", "priorities": "[]"}),
            content_type="application/json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "O arquivo selecionado não é um backup válido.")
        self.assertEqual(len(self.client.get("/api/employees").json()), 2)
