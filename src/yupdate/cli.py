import logging
import sys
from contextlib import contextmanager

import click

from . import __version__
from .errors import YupdateError

logger = logging.getLogger(__name__)


@contextmanager
def _handle_errors():
    try:
        yield
    except YupdateError as exc:
        raise click.ClickException(str(exc)) from exc


def _manager(ctx):
    from .overlay import OverlayManager

    if "manager" not in ctx.obj:
        ctx.obj["manager"] = OverlayManager(ctx.obj["settings"])
    return ctx.obj["manager"]


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Config file (defaults to $XDG_CONFIG_HOME/yupdate/config.yaml).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log executed commands.")
@click.pass_context
def cli(ctx, config_path, verbose):
    """
    Patch a read-only installation system using overlay mounts.
    """
    from .config import load_settings
    from .runtime import configure_logging, set_verbose_logging

    set_verbose_logging(verbose)
    configure_logging()

    ctx.ensure_object(dict)
    if "settings" not in ctx.obj:
        try:
            ctx.obj["settings"] = load_settings(config_path)
        except ValueError as exc:
            raise click.ClickException(f"Invalid config: {exc}") from exc


@cli.group("overlay")
def overlay_group():
    """Manage writable overlays."""


@overlay_group.command("create")
@click.argument("directory", required=False)
@click.pass_context
def overlay_create(ctx, directory):
    """
    Make DIRECTORY writable (default: the standard YaST directories).
    """
    manager = _manager(ctx)
    with _handle_errors():
        if directory:
            overlays = [manager.overlay(directory)]
        else:
            overlays = manager.default_overlay_set()
        for overlay in overlays:
            manager.create(overlay)


@overlay_group.command("list")
@click.pass_context
def overlay_list(ctx):
    """Print the active overlays."""
    with _handle_errors():
        for overlay in _manager(ctx).find_all():
            click.echo(overlay.resolved_path)


@overlay_group.command("reset")
@click.pass_context
def overlay_reset(ctx):
    """Remove all overlays, reverting every change."""
    manager = _manager(ctx)
    with _handle_errors():
        for overlay in manager.find_all():
            manager.delete(overlay)


@overlay_group.command("files")
@click.pass_context
def overlay_files(ctx):
    """Print the files changed in the overlays."""
    manager = _manager(ctx)
    with _handle_errors():
        for overlay in manager.find_all():
            for changed in manager.list_changed_files(overlay):
                click.echo(changed.system_path)


@overlay_group.command("diff")
@click.pass_context
def overlay_diff(ctx):
    """Print the diff of the files changed in the overlays."""
    manager = _manager(ctx)
    with _handle_errors():
        for overlay in manager.find_all():
            for line in manager.diff(overlay):
                click.echo(line, nl=False)


@cli.command("patch")
@click.argument("source", required=False, type=click.Path(file_okay=False))
@click.option(
    "--staged",
    "staged_dir",
    type=click.Path(exists=True, file_okay=False),
    help="Apply an already installed tree instead of building SOURCE.",
)
@click.pass_context
def patch_cmd(ctx, source, staged_dir):
    """
    Build SOURCE (a local checkout with a Rakefile) and apply it.
    """
    from .patch import LocalSourceStager, PatchEngine

    if bool(source) == bool(staged_dir):
        raise click.UsageError("Pass either SOURCE or --staged DIR.")

    settings = ctx.obj["settings"]
    engine = PatchEngine(
        _manager(ctx),
        system_root=settings.system_root,
        skip_patterns=settings.skip_patterns,
    )
    with _handle_errors():
        if staged_dir:
            result = engine.apply(staged_dir)
        else:
            with LocalSourceStager() as stager:
                result = engine.apply(stager.stage(source))
    click.echo(f"Changed files: {result.changed}")


@cli.command("version")
def version_cmd():
    """Print the version."""
    click.echo(__version__)


def main():
    try:
        cli()
    except Exception:
        logger.exception("Unexpected error")
        sys.exit(1)


if __name__ == "__main__":
    main()
