from pathlib import Path
from django.core.management.base import BaseCommand, CommandError

from priorities.exceptions import CorruptBackupError
from priorities.services import PriorityBoard


class Command(BaseCommand):
    help = "Restore employees, priorities and assignments from a backup JSON file."

    def add_arguments(self, parser):
        parser.add_argument("path", help="Backup file produced by dump_backup or the /api/backup endpoint.")

    def handle(self, *args, **options):
        path = Path(options["path"]).resolve()
        if not path.exists():
            raise CommandError(f"{path} not found")

        self.stdout.write(f"Restoring backup from {path}…")
        try:
            counts = PriorityBoard().backup.import_json(path.read_text(encoding="utf-8"))
        except CorruptBackupError as exc:
            raise CommandError(exc.message) from exc

        self.stdout.write(self.style.SUCCESS(
            "Backup restored: {employees} employees, {priorities} priorities, {assignments} assignments".format(**counts)
        ))
