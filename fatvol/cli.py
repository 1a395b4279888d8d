"""
Command-line interface for fatvol
"""

import dataclasses
import sys

import click
from tabulate import tabulate

from fatvol.config import FatVolConfig
from fatvol.drivers import VfatDriver
from fatvol.exceptions import ConfigurationException, FatVolException
from fatvol.lock_manager import DeviceLockManager
from fatvol.models import MountPolicy
from fatvol.utils import kernel
from fatvol.utils.logger import get_logger, setup_logging
from fatvol.utils.validators import (
    parse_octal_mask, validate_device_path, validate_mount_path
)

LOG = get_logger(__name__)


def _device_arg(ctx, param, value):
    if not validate_device_path(value):
        raise click.BadParameter(f"{value!r} is not an absolute device path")
    return value


def _mount_path_arg(ctx, param, value):
    if not validate_mount_path(value):
        raise click.BadParameter(f"{value!r} is not an absolute mount path")
    return value


def _mask_arg(ctx, param, value):
    try:
        return parse_octal_mask(value)
    except ValueError:
        raise click.BadParameter(f"{value!r} is not an octal mask between 0 and 0777")


def _run_locked(ctx, device, operation, *args):
    """Run a driver operation while holding the device lock"""
    locks = ctx.obj['locks']
    try:
        with locks.acquire_lock(device):
            operation(*args)
    except TimeoutError as e:
        click.secho(f"✗ {e}", fg='red', err=True)
        sys.exit(1)
    except FatVolException as e:
        click.secho(f"✗ {e} (errno {e.errno})", fg='red', err=True)
        sys.exit(1)
    except OSError as e:
        click.secho(f"✗ Unable to lock {device}: {e}", fg='red', err=True)
        sys.exit(1)


@click.group()
@click.option('--config', 'config_file', type=click.Path(dir_okay=False),
              help='Configuration file path')
@click.option('--log-level',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                                case_sensitive=False),
              help='Log level')
@click.option('--json-logs/--plain-logs', default=None, help='Emit JSON log records')
@click.pass_context
def cli(ctx, config_file, log_level, json_logs):
    """FAT volume check, mount and format tool"""
    ctx.ensure_object(dict)

    try:
        config = FatVolConfig.load(config_file)
        overrides = {}
        if log_level:
            overrides['log_level'] = log_level.upper()
        if json_logs is not None:
            overrides['log_json'] = json_logs
        config = dataclasses.replace(config, **overrides)
        config.validate()
    except ConfigurationException as e:
        click.secho(f"✗ Configuration error: {e}", fg='red', err=True)
        sys.exit(1)

    setup_logging(config.log_level, config.log_format, config.log_json)
    LOG.debug(f"Using configuration from {config_file or FatVolConfig.CONFIG_FILE}")

    ctx.obj['config'] = config
    ctx.obj.setdefault('driver', VfatDriver(config))
    ctx.obj.setdefault('locks', DeviceLockManager(config.lock_dir, config.lock_timeout))


@cli.command()
@click.pass_context
def supported(ctx):
    """Report whether vfat volumes can be handled on this host"""
    if ctx.obj['driver'].is_supported():
        click.secho("✓ vfat is supported", fg='green')
    else:
        click.secho("✗ vfat is not supported (tools missing or kernel lacks vfat)", fg='red')
        sys.exit(1)


@cli.command()
@click.argument('source', callback=_device_arg)
@click.pass_context
def check(ctx, source):
    """
    Check and repair the filesystem on SOURCE

    Example:
      fatvol-cli check /dev/sdb1
    """
    click.echo(f"Checking {source}...")
    _run_locked(ctx, source, ctx.obj['driver'].check, source)
    click.secho(f"✓ Filesystem on {source} is clean", fg='green')


@cli.command()
@click.argument('source', callback=_device_arg)
@click.argument('target', callback=_mount_path_arg)
@click.option('--read-only', is_flag=True, help='Mount read-only')
@click.option('--remount', is_flag=True, help='Change options of an existing mount')
@click.option('--executable', is_flag=True, help='Allow executing files')
@click.option('--uid', type=click.IntRange(min=0), default=0, show_default=True,
              help='Owner uid of all files')
@click.option('--gid', type=click.IntRange(min=0), default=0, show_default=True,
              help='Owner gid of all files')
@click.option('--mask', default='0007', show_default=True, callback=_mask_arg,
              help='Octal permission mask for files and directories')
@click.option('--create-lost/--no-create-lost', default=True, show_default=True,
              help='Create LOST.DIR at the volume root')
@click.pass_context
def mount(ctx, source, target, read_only, remount, executable, uid, gid, mask, create_lost):
    """
    Mount SOURCE at TARGET

    Examples:
      fatvol-cli mount /dev/sdb1 /mnt/media_rw/sdb1 --uid 1023 --gid 1023
      fatvol-cli mount /dev/sdb1 /mnt/media_rw/sdb1 --remount --read-only
    """
    policy = MountPolicy(
        read_only=read_only,
        remount=remount,
        executable=executable,
        owner_uid=uid,
        owner_gid=gid,
        permission_mask=mask,
        create_lost_dir=create_lost
    )
    click.echo(f"Mounting {source} at {target}...")
    _run_locked(ctx, source, ctx.obj['driver'].mount, source, target, policy)
    click.secho(f"✓ Mounted {source} at {target}", fg='green')


@cli.command('format')
@click.argument('source', callback=_device_arg)
@click.option('--sectors', type=click.IntRange(min=0), default=0, show_default=True,
              help='Filesystem size in sectors (0 = whole device)')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@click.pass_context
def format_cmd(ctx, source, sectors, yes):
    """
    Create a fresh FAT filesystem on SOURCE

    Examples:
      fatvol-cli format /dev/sdb1
      fatvol-cli format /dev/sdb1 --sectors 2048 --yes
    """
    if not yes:
        click.confirm(f"All data on {source} will be lost. Continue?", abort=True)

    click.echo(f"Formatting {source}...")
    _run_locked(ctx, source, ctx.obj['driver'].format, source, sectors)
    click.secho(f"✓ Formatted {source}", fg='green')


@cli.command()
@click.argument('target', callback=_mount_path_arg)
@click.pass_context
def status(ctx, target):
    """Show the mount entry of TARGET"""
    try:
        info = kernel.get_mount_info(target)
    except OSError as e:
        click.secho(f"✗ Unable to read mount table: {e}", fg='red', err=True)
        sys.exit(1)

    if not info:
        click.secho(f"✗ {target} is not mounted", fg='red')
        sys.exit(1)

    data = [[key, value] for key, value in info.items()]
    click.echo(tabulate(data, headers=['Field', 'Value'], tablefmt='grid'))


@cli.command('show-config')
@click.pass_context
def show_config(ctx):
    """Show the effective configuration"""
    data = [[key, value] for key, value in ctx.obj['config'].as_dict().items()]
    click.echo(tabulate(data, headers=['Key', 'Value'], tablefmt='grid'))


if __name__ == '__main__':
    cli()
