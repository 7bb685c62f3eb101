from __future__ import annotations

import io
import ipaddress
import os
import sys
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING

import click

from . import __version__
from .core.common import DB_FILE_ENV, DEFAULT_ADDR, DEFAULT_DB_FILE, EXPORT_CSV_FILE_ENV, TIMEZONE_ENV
from .core.error import InvalidArgument, OneHistoryError, StoreIO
from .core.logging import GLOBAL_LEVEL_ENV

if TYPE_CHECKING:
    from .backup import SourceReport


# use click.echo over print since it handles handles possible Unicode errors,
# strips colors if the output is a file
# https://click.palletsprojects.com/en/7.x/quickstart/#echoing
def eprint(x: str) -> None:
    # err=True prints to stderr
    click.echo(x, err=True)


OK = '✅'
FAIL = '❌'


def info(x: str) -> None:
    eprint(OK + ' ' + x)


def error(x: str) -> None:
    eprint(FAIL + ' ' + x)


def warning(x: str) -> None:
    eprint('❗ ' + x)


@contextmanager
def handle_errors() -> Iterator[None]:
    '''
    Turns fatal errors into a message and an exit code instead of a traceback
    '''
    try:
        yield
    except InvalidArgument as e:
        # exits with 2, same as click's own argument errors
        raise click.UsageError(str(e)) from e
    except OneHistoryError as e:
        error(str(e))
        sys.exit(1)


def parse_addr(addr: str) -> tuple[str, int]:
    host, sep, port_s = addr.rpartition(':')
    if sep == '' or host == '':
        raise InvalidArgument(f"address should look like HOST:PORT, got '{addr}'")
    try:
        port = int(port_s)
    except ValueError as e:
        raise InvalidArgument(f"bad port in '{addr}'") from e
    if not (0 < port < 65536):
        raise InvalidArgument(f"bad port in '{addr}'")

    bare = host.strip('[]')
    if bare != 'localhost':
        try:
            loopback = ipaddress.ip_address(bare).is_loopback
        except ValueError as e:
            raise InvalidArgument(f"'{host}' is not an IP address") from e
        # the dashboard has no authentication, so it must not be reachable from other machines
        if not loopback:
            raise InvalidArgument(f"refusing to listen on non-loopback address '{host}'")
    return bare, port


def print_summary(reports: Sequence[SourceReport], *, dry_run: bool) -> None:
    for r in reports:
        status = OK if r.ok else FAIL
        line = f'{status} {r.browser:<8} read {r.read:>8} new {r.inserted:>8}  {r.path}'
        if r.error is not None:
            line += f'\n      {r.error.diagnosis}'
            if r.error.detail:
                line += f': {r.error.detail}'
        click.echo(line)
    read = sum(r.read for r in reports)
    inserted = sum(r.inserted for r in reports)
    failed = sum(1 for r in reports if not r.ok)
    if dry_run:
        click.echo(f'Dry run. Sources: {len(reports)}, failed: {failed}, found: {read}')
    else:
        click.echo(f'Sources: {len(reports)}, failed: {failed}, found: {read}, imported: {inserted}, duplicated: {read - inserted}')


@click.group(context_settings={'help_option_names': ['-h', '--help']})
@click.option('-d',
              '--db-file',
              default=DEFAULT_DB_FILE,
              envvar=DB_FILE_ENV,
              show_default=True,
              type=click.Path(dir_okay=False),
              help=f'Consolidated history database [env: {DB_FILE_ENV}]')
@click.option('-v', '--verbose', is_flag=True, default=False, help='Show debug logs')
@click.version_option(__version__, '-V', '--version', prog_name='onehistory')
@click.pass_context
def main(ctx: click.Context, *, db_file: str, verbose: bool) -> None:
    '''
    Back up the history of all your browsers into one database, and browse it
    '''
    # should overwrite anything else in the env
    # modules are imported lazily in the commands, so their loggers pick it up
    if verbose:
        os.environ[GLOBAL_LEVEL_ENV] = 'debug'
    ctx.obj = db_file


@main.command(name='show', short_help='show history files found on this computer')
@click.pass_obj
def show_cmd(db_file: str) -> None:
    '''
    Print the database location and the browser history files in the default locations
    '''
    from .browser.detect import candidates

    info(f'local database: {db_file}')
    found = candidates()
    for c in found:
        click.echo(f'{c.browser}\t{c.path}')
    info(f'total: {len(found)}')


@main.command(name='backup', short_help='back up browser history')
@click.option('-d', '--disable-detect', is_flag=True, help="Don't look for history files in the default locations")
@click.option('-D', '--dry-run', is_flag=True, help='Read and count visits, but write nothing')
@click.option('-f',
              '--history-file',
              'history_files',
              multiple=True,
              type=click.Path(dir_okay=False),
              help='History (Chrome), places.sqlite (Firefox) or History.db (Safari) file, can be repeated')
@click.pass_obj
def backup_cmd(db_file: str, *, disable_detect: bool, dry_run: bool, history_files: Sequence[str]) -> None:
    '''
    Import visits from browser history files into the database

    Importing the same files again only adds visits which weren't there before.
    '''
    from .backup import gather_sources, iter_backup
    from .browser.detect import candidates
    from .store import Store

    reports: list[SourceReport] = []
    with handle_errors():
        if disable_detect and len(history_files) == 0:
            raise InvalidArgument('nothing to back up: detection is disabled and no --history-file was given')

        detected = [] if disable_detect else candidates()
        sources = gather_sources(detected, history_files)
        if len(sources) == 0:
            warning('no history files found, pass some with --history-file')
            return

        try:
            with Store(db_file) as store:
                for report in iter_backup(store, sources, dry_run=dry_run):
                    reports.append(report)
        except StoreIO:
            # sources before the failure are committed, so still show what made it
            if len(reports) > 0:
                print_summary(reports, dry_run=dry_run)
            raise

    print_summary(reports, dry_run=dry_run)
    if any(not r.ok for r in reports):
        sys.exit(1)


@main.command(name='export', short_help='export visits as csv')
@click.option('-o',
              '--output',
              default='-',
              envvar=EXPORT_CSV_FILE_ENV,
              type=click.Path(dir_okay=False, allow_dash=True),
              help=f'Output file, - for stdout [env: {EXPORT_CSV_FILE_ENV}]')
@click.pass_obj
def export_cmd(db_file: str, *, output: str) -> None:
    '''
    Write every visit, oldest first, as csv: url,title,domain,visit_time_ms,visit_type
    '''
    from .export import export_csv
    from .store import Store

    with handle_errors(), Store(db_file) as store:
        if output == '-':
            # newline='' so that \r\n isn't translated again, e.g. on windows
            stdout = io.TextIOWrapper(click.get_binary_stream('stdout'), encoding='utf-8', newline='')
            try:
                count = export_csv(store, stdout)
            finally:
                stdout.flush()
                # otherwise closing the wrapper would close stdout too
                stdout.detach()
        else:
            try:
                with open(output, 'w', encoding='utf-8', newline='') as fo:
                    count = export_csv(store, fo)
            except OSError as e:
                raise InvalidArgument(f"can't write to {output}: {e}") from e
    info(f'exported {count} visits to {"stdout" if output == "-" else output}')


@main.command(name='serve', short_help='serve the dashboard')
@click.option('-a', '--addr', default=DEFAULT_ADDR, show_default=True, help='Loopback address to listen on')
@click.option('--timezone',
              default=None,
              envvar=TIMEZONE_ENV,
              help=f'Timezone used to group visits into days, e.g. Europe/London. Local time if not set [env: {TIMEZONE_ENV}]')
@click.pass_obj
def serve_cmd(db_file: str, *, addr: str, timezone: str | None) -> None:
    '''
    Start a HTTP server on loopback to visualize the history
    '''
    from .store import Store
    from .web import create_app

    with handle_errors():
        host, port = parse_addr(addr)
        try:
            app = create_app(db_file, timezone=timezone)
        except ValueError as e:
            raise InvalidArgument(str(e)) from e
        # report a broken database now rather than on the first request
        Store(db_file).close()
        info(f'serving {db_file} on http://{host}:{port}')
        app.run(host=host, port=port)


if __name__ == '__main__':
    # prog_name is so that if this is invoked with python -m onehistory
    # this still shows onehistory in the help text
    main(prog_name='onehistory')
