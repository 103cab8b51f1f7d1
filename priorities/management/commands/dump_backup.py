import json
from pathlib import Path
from django.core.management.base import BaseCommand

from priorities.services import PriorityBoard


class Command(BaseCommand):
    help = "Write employees, priorities and assignments to a backup JSON file."

    def add_arguments(self, parser):
        parser.add_argument(
            "--output",
            default=None,
            help="Target file (default: backup-prioridades-<date>.json in the current directory).",
        )
        # "stdout" is taken by BaseCommand for the output stream
        parser.add_argument(
            "--print",
            action="store_true",
            dest="print_only",
            help="Print the backup instead of writing a file.",
        )

    def handle(self, *args, **options):
        codec = PriorityBoard().backup
        body = json.dumps(codec.export(), ensure_ascii=False, indent=2)

        if options["print_only"]:
            self.stdout.write(body)
            return

        path = Path(options["output"] or codec.filename()).resolve()
        path.write_text(body, encoding="utf-8")
        self.stdout.write(self.style.SUCCESS(f"Backup written to {path}"))
