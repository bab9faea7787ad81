#!/usr/bin/env python3

"""
Command-line interface for OpenFiles Locker
"""

import argparse
import logging
import os
import sys

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .codec import decode_file
from .config import Config, default_config_path, remote_locations_from
from .core import OpenFilesLocker
from .errors import ConfigError, DecodeError
from .lock import is_file_locked
from .log import setup_logging

logger = logging.getLogger(__name__)

console = Console()


def settings_panel(settings: dict) -> Panel:
    table = Table(box=box.ROUNDED, show_header=False, border_style="bright_blue")
    table.add_column("Item", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("local share", settings['local_share'])
    table.add_row("working folder", settings['working_folder'])
    table.add_row("snapshot", settings['snapshot_filename'])
    table.add_row("remote locations", "\n".join(settings['remote_locations']) or "-")
    table.add_row("exceptions", ", ".join(settings['exceptions']) or "-")
    table.add_row("generation interval", f"{settings['generation_interval']:g} s")
    table.add_row("check interval", f"{settings['check_interval']:g} s")

    return Panel(
        table,
        title="[bold cyan]openfiles locker[/bold cyan]",
        border_style="bright_blue",
        padding=(1, 2)
    )


def report_table(report) -> Table:
    table = Table(box=box.ROUNDED, border_style="bright_blue")
    table.add_column("Result", style="cyan")
    table.add_column("Entries", style="green")

    table.add_row("checked locations", "\n".join(report.checked) or "-")
    table.add_row("skipped locations", f"[red]{chr(10).join(report.skipped)}[/red]" if report.skipped else "-")
    table.add_row("locked", "\n".join(report.locked) or "-")
    table.add_row("lock failed", f"[yellow]{chr(10).join(report.failed)}[/yellow]" if report.failed else "-")
    table.add_row("released", "\n".join(report.released) or "-")
    return table


def records_table(records) -> Table:
    table = Table(box=box.ROUNDED, border_style="bright_blue")
    for column in ("Host", "ID", "Accessed by", "Type", "Locks", "Mode", "File"):
        table.add_column(column)
    for r in records:
        table.add_row(r.hostname, r.lock_id, r.accessed_by, r.lock_type,
                      str(r.lock_count), r.open_mode.value, r.filename)
    return table


def cmd_run(locker: OpenFilesLocker, settings: dict) -> int:
    console.print(settings_panel(settings))
    console.print("[bold cyan]running, press Ctrl+C to exit[/bold cyan]")
    locker.run_forever()
    console.print("[bold cyan]stopped[/bold cyan]")
    return 0


def cmd_publish(locker: OpenFilesLocker, settings: dict) -> int:
    if not locker.publisher.publish():
        console.print("[bold red]publish failed[/bold red]")
        return 1
    console.print(f"[green]snapshot written to {locker.publisher.snapshot_path}[/green]")
    return 0


def cmd_check(locker: OpenFilesLocker, settings: dict) -> int:
    try:
        report = locker.reconciler.reconcile_once()
        console.print(report_table(report))
    finally:
        # a one-shot check does not keep its locks
        locker.lock_table.release_all()
    return 1 if report.skipped and not report.checked else 0


def cmd_probe(files) -> int:
    table = Table(box=box.ROUNDED, border_style="bright_blue")
    table.add_column("File", style="cyan")
    table.add_column("State")
    for filename in files:
        if not os.path.exists(filename):
            state = "[yellow]missing[/yellow]"
        elif is_file_locked(filename):
            state = "[red]locked[/red]"
        else:
            state = "[green]free[/green]"
        table.add_row(filename, state)
    console.print(table)
    return 0


def cmd_show_snapshot(path: str, local_share: str) -> int:
    try:
        records = decode_file(path, local_share)
    except DecodeError as e:
        console.print(f"[bold red]{e}[/bold red]")
        return 1
    console.print(records_table(records))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Distributed file locking over shared folders')
    parser.add_argument('--config', help=f'YAML config file (default: ./{Config.DEFAULT_CONFIG_FILE})')
    parser.add_argument('--local-share', dest='local_share', help='Local shared folder')
    parser.add_argument('--working-folder', dest='working_folder', help='Folder for staged peer snapshots')
    parser.add_argument('--remote-location', dest='remote_locations', action='append',
                        help='Peer location to read snapshots from (repeatable)')
    parser.add_argument('--snapshot-filename', dest='snapshot_filename', help='Snapshot file name')
    parser.add_argument('--exceptions', nargs='+', help='Filename suffixes never published')
    parser.add_argument('--generation-interval', dest='generation_interval', type=float,
                        help='Seconds between snapshot publications')
    parser.add_argument('--check-interval', dest='check_interval', type=float,
                        help='Seconds between reconciliation cycles')
    parser.add_argument('--enumerator', choices=['openfiles', 'psutil'], help='Open-file enumerator')
    parser.add_argument('--enumerate-timeout', dest='enumerate_timeout', type=float,
                        help='Seconds to wait for the enumerator')
    parser.add_argument('--endpoint-url', dest='endpoint_url', help='S3-compatible service endpoint URL')
    parser.add_argument('--access-key', dest='access_key', help='Access key ID')
    parser.add_argument('--secret-key', dest='secret_key', help='Secret access key')
    parser.add_argument('--region', help='Region name')
    parser.add_argument('-v', '--verbosity', dest='log_verbosity', type=int, choices=[1, 2, 3],
                        help='Log verbosity')
    parser.add_argument('--log-file', dest='log_file', help='Also log to this file')

    sub = parser.add_subparsers(dest='command', required=True)
    sub.add_parser('run', help='Run publish and check loops until interrupted')
    sub.add_parser('publish', help='Publish the snapshot once')
    sub.add_parser('check', help='Reconcile peer snapshots once')
    probe = sub.add_parser('probe', help='Report whether files are locked')
    probe.add_argument('files', nargs='+')
    show = sub.add_parser('show-snapshot', help='Decode a snapshot file')
    show.add_argument('path')
    return parser


def main(argv=None) -> int:
    """main"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == 'probe':
        setup_logging(args.log_verbosity or 1)
        return cmd_probe(args.files)

    cli_config = vars(args)
    cli_config['remote_locations'] = remote_locations_from(args.remote_locations)
    config_path = args.config or default_config_path()
    require_remotes = args.command in ('run', 'check')

    try:
        settings = Config.settings(config_path, cli_config, require_remotes)
    except ConfigError as e:
        console.print(f"[bold red]{e}[/bold red]")
        return 2

    setup_logging(settings['log_verbosity'], settings.get('log_file'))

    if args.command == 'show-snapshot':
        return cmd_show_snapshot(args.path, settings['local_share'])

    # Get credentials from environment variables if not provided in arguments
    settings['access_key'] = args.access_key or os.environ.get('AWS_ACCESS_KEY_ID')
    settings['secret_key'] = args.secret_key or os.environ.get('AWS_SECRET_ACCESS_KEY')

    locker = OpenFilesLocker.from_settings(settings)
    commands = {
        'run': cmd_run,
        'publish': cmd_publish,
        'check': cmd_check,
    }
    return commands[args.command](locker, settings)


if __name__ == '__main__':
    sys.exit(main())
