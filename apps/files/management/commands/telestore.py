from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from apps.files.exceptions import TelestoreError
from apps.files.services.file_service import build_file_service


class Command(BaseCommand):
    help = 'Stores, fetches and lists files kept in the configured Telegram chat'

    def add_arguments(self, parser):
        subparsers = parser.add_subparsers(dest='action', required=True)

        put = subparsers.add_parser('put', help='Upload a local file')
        put.add_argument('source', help='Local file to upload')
        put.add_argument('path', nargs='?', help='Logical path (defaults to the file name)')
        put.add_argument('--caption', default=None)

        get = subparsers.add_parser('get', help='Download a file')
        get.add_argument('path', help='Logical path or raw Telegram file_id')
        get.add_argument('-o', '--output', help='Local destination (defaults to the file name)')

        ls = subparsers.add_parser('ls', help='List tracked files')
        ls.add_argument('prefix', nargs='?', default='')

        info = subparsers.add_parser('info', help='Show the tracking record of a file')
        info.add_argument('path')

        rm = subparsers.add_parser('rm', help='Forget a file (uploads stay in the chat)')
        rm.add_argument('path')

        for name, help_text in (('cp', 'Copy a file'), ('mv', 'Move a file')):
            sub = subparsers.add_parser(name, help=help_text)
            sub.add_argument('source')
            sub.add_argument('destination')

    def handle(self, *args, **options):
        file_service = build_file_service()
        handler = getattr(self, f"_handle_{options['action']}")
        try:
            handler(file_service, options)
        except TelestoreError as e:
            raise CommandError(str(e)) from e

    def _handle_put(self, file_service, options):
        source = Path(options['source'])
        if not source.is_file():
            raise CommandError(f"No such file: {source}")
        path = options['path'] or source.name
        record = file_service.write(path, source.read_bytes(), caption=options['caption'])
        self.stdout.write(self.style.SUCCESS(
            f"Stored {path} ({record.original_size} bytes, {record.chunk_count} chunk(s))"
        ))
        for remote_id in record.remote_ids:
            self.stdout.write(f"  {remote_id}")

    def _handle_get(self, file_service, options):
        contents = file_service.read(options['path'])
        output = Path(options['output'] or Path(options['path']).name)
        output.write_bytes(contents)
        self.stdout.write(self.style.SUCCESS(f"Wrote {len(contents)} bytes to {output}"))

    def _handle_ls(self, file_service, options):
        records = sorted(file_service.list_files(options['prefix']), key=lambda record: record.path)
        if not records:
            self.stdout.write(self.style.WARNING('No tracked files.'))
            return
        for record in records:
            flags = ('C' if record.is_chunked else '-') + ('E' if record.is_encrypted else '-')
            self.stdout.write(f"{flags} {record.original_size:>12} {record.path}")

    def _handle_info(self, file_service, options):
        record = file_service.get_metadata(options['path'])
        if record is None:
            raise CommandError(f"Nothing tracked at {options['path']}")
        for key, value in record.to_dict().items():
            self.stdout.write(f"{key}: {value}")

    def _handle_rm(self, file_service, options):
        if file_service.delete(options['path']):
            self.stdout.write(self.style.SUCCESS(f"Forgot {options['path']}"))
        else:
            self.stdout.write(self.style.WARNING(f"Nothing tracked at {options['path']}"))

    def _handle_cp(self, file_service, options):
        file_service.copy(options['source'], options['destination'])
        self.stdout.write(self.style.SUCCESS(f"Copied {options['source']} to {options['destination']}"))

    def _handle_mv(self, file_service, options):
        file_service.move(options['source'], options['destination'])
        self.stdout.write(self.style.SUCCESS(f"Moved {options['source']} to {options['destination']}"))
