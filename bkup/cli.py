"""Command-line interface for bkup."""

import logging
import sys
from typing import Optional

import click

from .config.config_manager import ConfigManager
from .core.errors import BkupError
from .core.manager import BACKUP_FOLDER_NAME, BackupManager
from .core.models import AppContext
from .utils.formatters import format_date, format_slot_table
from .utils.shell import open_subshell


def setup_logging(level: str, log_file: Optional[str] = None):
    """Set up logging configuration."""
    # Convert string level to logging constant
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f'Invalid log level: {level}')

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # stdout is reserved for paths printed by the commands
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            click.echo(f"Warning: Could not set up file logging: {e}", err=True)


def _fail(error: Exception):
    click.echo(f"bkup error: {error}", err=True)
    sys.exit(1)


def _manager(ctx) -> BackupManager:
    """Build a manager from ctx.obj; tests may pre-seed its "context" and "clock" keys."""
    return BackupManager(ctx.obj['context'], clock=ctx.obj.get('clock'))


def _enter(ctx, directory):
    click.echo(f"Entering subshell in: {directory}")
    click.echo("(exit to return)")
    try:
        open_subshell(directory, ctx.obj['context'].env)
    except OSError as e:
        _fail(e)


@click.group(invoke_without_command=True)
@click.option('--queue', '-q', 'queue_mode', is_flag=True,
              help='When all slots are used, overwrite the oldest backup instead of failing')
@click.option('--log-level', default='WARNING',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
              help='Logging level')
@click.option('--log-file',
              help='Log file path')
@click.version_option(package_name='bkup')
@click.pass_context
def cli(ctx, queue_mode: bool, log_level: str, log_file: Optional[str]):
    """bkup - versioned backups of the current directory under ~/.bkup.

    Run without a command to back up the current directory.
    \f
    ctx.obj may be pre-seeded with an AppContext under "context" and a
    clock callable under "clock"; otherwise the running process is used.
    """
    ctx.ensure_object(dict)

    setup_logging(log_level, log_file)

    if 'context' not in ctx.obj:
        ctx.obj['context'] = AppContext.from_process()
    ctx.obj['queue_mode'] = queue_mode

    if ctx.invoked_subcommand is None:
        try:
            result = _manager(ctx).backup(queue_mode=queue_mode)
        except BkupError as e:
            _fail(e)
        if result.evicted is not None:
            click.echo(f"Overwrote oldest backup (slot {result.evicted.slot_number}, "
                       f"{format_date(result.evicted.created_at)})", err=True)
        click.echo(str(result.path))


@cli.command()
@click.option('--print', 'print_only', is_flag=True,
              help='Print the backup directory instead of opening a subshell')
@click.pass_context
def go(ctx, print_only: bool):
    """Open a subshell in the newest backup, creating one if none exist."""
    try:
        target, created = _manager(ctx).go(queue_mode=ctx.obj['queue_mode'])
    except BkupError as e:
        _fail(e)

    if created is not None:
        click.echo(f"Created backup slot {created.slot_number}", err=True)

    if print_only:
        click.echo(str(target))
        return
    _enter(ctx, target)


@cli.command()
@click.option('--print', 'print_only', is_flag=True,
              help='Print the previous directory instead of opening a subshell')
@click.pass_context
def revert(ctx, print_only: bool):
    """Return to the directory recorded by the last `bkup go`."""
    try:
        prev = _manager(ctx).revert()
    except BkupError as e:
        _fail(e)

    if print_only:
        click.echo(str(prev))
        return
    _enter(ctx, prev)


@cli.command(name='list')
@click.option('--size', 'show_size', is_flag=True, help='Show the size of each backup')
@click.pass_context
def list_backups(ctx, show_size: bool):
    """List backups of the current directory by slot number."""
    try:
        manager = _manager(ctx)
        slots, newest = manager.list_backups()
    except BkupError as e:
        _fail(e)

    if not slots:
        click.echo("No backups yet")
        return

    for line in format_slot_table(slots, newest, show_size=show_size):
        click.echo(line)


@cli.command()
@click.argument('slot', type=click.IntRange(min=0))
@click.pass_context
def pull(ctx, slot: int):
    """Restore backup SLOT into the current directory.

    The current contents are backed up first.
    """
    try:
        result = _manager(ctx).pull(slot, queue_mode=ctx.obj['queue_mode'])
    except BkupError as e:
        _fail(e)

    safety = result.safety_backup
    click.echo(f"Restored slot {result.restored_slot} into {result.live_dir}")
    click.echo(f"Previous contents saved to slot {safety.slot_number}: {safety.path}")


@cli.command()
@click.option('--project', 'project_only', is_flag=True,
              help='Only delete backups of the current directory')
@click.pass_context
def clean(ctx, project_only: bool):
    """Delete backups, keeping config.json."""
    try:
        manager = _manager(ctx)
        source = manager.resolve_source() if project_only else None
        removed, kept_config = manager.clean(source)
    except BkupError as e:
        _fail(e)

    if kept_config:
        click.echo(f"Cleaned {removed} item(s). Kept {manager.config_manager.config_path}.")
    else:
        click.echo(f"Cleaned {removed} item(s). (No config.json present to keep.)")


@cli.command()
@click.option('--max-versions', type=int,
              help='Slots per project; 0 or less keeps every backup')
@click.option('--edit', is_flag=True, help='Open config.json in $EDITOR')
@click.pass_context
def config(ctx, max_versions: Optional[int], edit: bool):
    """Show or change the configuration."""
    try:
        if edit:
            # Opened before validation so a corrupt file can still be repaired
            backup_root = ctx.obj['context'].home_dir / BACKUP_FOLDER_NAME
            config_manager = ConfigManager(backup_root)
            if not config_manager.config_path.exists():
                config_manager.load_config()
                config_manager.save_config()
            click.edit(filename=str(config_manager.config_path),
                       editor=ctx.obj['context'].getenv('VISUAL') or ctx.obj['context'].getenv('EDITOR'))

        manager = _manager(ctx)
        if max_versions is not None:
            manager.set_max_versions(max_versions)
    except BkupError as e:
        _fail(e)

    config_manager = manager.config_manager
    limit = config_manager.get_max_versions()
    click.echo(f"Config file: {config_manager.config_path}")
    click.echo(f"max_versions: {limit}" + (" (unbounded)" if limit <= 0 else ""))
    click.echo(f"prev_path: {config_manager.get_prev_path() or '(not set)'}")


def main():
    """Main CLI entry point."""
    cli()


if __name__ == '__main__':
    main()
