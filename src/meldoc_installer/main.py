"""Main CLI entry point for the meldoc installer.

Installs, inspects, and removes the meldoc CLI binary on Linux, macOS and
Windows from GitHub Releases.
"""

import asyncio
import signal
import sys
import traceback
from typing import Any, Dict, Optional

import click

from . import __version__
from .cli.utils import Console, confirm_action, print_rule
from .config.exceptions import ConfigurationError
from .config.logging import configure_logging, get_logger, sanitize_log_data
from .config.settings import InstallerSettings, InstallOptions, load_settings
from .installation.errors import InstallationError, UninstallationError
from .installation.path_integration import (
    ALREADY_CONFIGURED,
    ALREADY_ON_PATH,
    CONFIGURED,
    MANUAL,
)

logger = get_logger(__name__)

DOCS_URL = "https://public.meldoc.io/meldoc/cli"


class CLIError(Exception):
    """Base CLI error with user-friendly messages."""

    def __init__(self, message: str, suggestion: Optional[str] = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)


class CLIContext:
    """Global CLI context: verbosity and resolved settings."""

    def __init__(self, verbose: bool = False, config_file: Optional[str] = None):
        self.verbose = verbose
        self.config_file = config_file
        self._settings: Optional[InstallerSettings] = None

    @property
    def settings(self) -> InstallerSettings:
        if self._settings is None:
            try:
                self._settings = load_settings(self.config_file)
            except ConfigurationError as e:
                raise CLIError(str(e), "Check the configuration file and MELDOC_* environment variables")
            configure_logging(
                level="DEBUG" if self.verbose else self._settings.log_level,
                log_file=self._settings.log_file,
                json_logs=self._settings.json_logs,
            )
        return self._settings


def handle_cli_error(error: Exception, ctx: Optional[click.Context] = None):
    """Global CLI error handler."""
    if isinstance(error, CLIError):
        click.echo(f"Error: {error.message}", err=True)
        if error.suggestion:
            click.echo(f"Suggestion: {error.suggestion}", err=True)
    else:
        verbose = bool(ctx and ctx.obj and ctx.obj.get("verbose"))
        click.echo(f"Unexpected error: {error}", err=True)
        if verbose:
            click.echo(traceback.format_exc(), err=True)
        else:
            click.echo("Run with --verbose for detailed error information", err=True)

    sys.exit(1)


def _handle_installation_error(error: InstallationError, ctx: Optional[click.Context]):
    """Report a fatal installation error and exit non-zero."""
    verbose = bool(ctx and ctx.obj and ctx.obj.get("verbose"))
    console = Console()

    console.error(f"{error.message}")
    click.echo(f"  Step: {error.step}", err=True)

    for key, value in error.details.items():
        if key == "error" and not verbose:
            click.echo(f"  Reason: {value}", err=True)
        elif isinstance(value, list):
            if value:
                click.echo(f"  {key.capitalize()}:", err=True)
                for item in value if verbose else value[:10]:
                    click.echo(f"    - {item}", err=True)
        else:
            click.echo(f"  {key.capitalize()}: {value}", err=True)

    if error.suggestion:
        click.echo(f"\n  {error.suggestion}", err=True)

    sys.exit(1)


def _terminate(signum, frame):
    raise SystemExit(128 + signum)


@click.group()
@click.version_option(version=__version__, prog_name="meldoc-installer")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output with detailed logging",
)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file path (YAML format)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: Optional[str]):
    """Meldoc CLI installer

    Download the meldoc CLI from GitHub Releases, verify it, and install it
    into a directory on your PATH.

    \b
    Examples:
      meldoc-installer install                    # Install to ~/.local/bin
      meldoc-installer install --global           # Install system-wide
      meldoc-installer install --dir ~/bin        # Install to a specific directory
      meldoc-installer install --version v1.2.3   # Install a specific version
      meldoc-installer uninstall

    \b
    CI/CD usage:
      meldoc-installer install --quiet --force
    """
    ctx.ensure_object(dict)
    cli_context = CLIContext(verbose=verbose, config_file=config)
    ctx.obj["cli_context"] = cli_context
    ctx.obj["verbose"] = verbose

    configure_logging(level="DEBUG" if verbose else "WARNING")


@cli.command()
@click.option("--global", "global_install", is_flag=True,
              help="Install system-wide (may require sudo / administrator rights)")
@click.option("--dir", "target_dir", type=click.Path(file_okay=False),
              help="Install to a specific directory")
@click.option("--version", "version", default="latest", show_default=True,
              help="Version to install, e.g. v1.2.3")
@click.option("--force", "-f", is_flag=True,
              help="Overwrite an existing installation")
@click.option("--quiet", "-q", is_flag=True,
              help="Minimal output (for CI/CD); implies --no-path-hint")
@click.option("--no-path-hint", is_flag=True,
              help="Don't show PATH configuration hints")
@click.option("--setup-path/--no-path-setup", "path_setup", default=None,
              help="Add the install directory to PATH automatically "
                   "(default: on for Windows, off elsewhere)")
@click.pass_context
def install(
    ctx: click.Context,
    global_install: bool,
    target_dir: Optional[str],
    version: str,
    force: bool,
    quiet: bool,
    no_path_hint: bool,
    path_setup: Optional[bool],
):
    """Install the meldoc CLI.

    \b
    Steps:
      1. Detect OS and architecture
      2. Resolve the version (latest by default)
      3. Download the release archive and verify its SHA-256 checksum
      4. Extract and atomically install the binary
      5. Set up PATH or print instructions
    """
    from .installation import InstallationManager

    cli_context = ctx.obj["cli_context"]
    options = InstallOptions(
        global_install=global_install,
        target_dir=target_dir,
        version=version,
        force=force,
        quiet=quiet,
        path_hint=not no_path_hint,
        path_setup=path_setup,
    )
    console = Console(quiet=quiet)

    try:
        settings = cli_context.settings
        logger.debug("Settings loaded", **sanitize_log_data(settings.model_dump()))

        console.banner("Meldoc CLI Installer")
        console.info(f"Installing {settings.tool_name} ({version})...")

        previous_handler = signal.signal(signal.SIGTERM, _terminate)
        try:
            manager = InstallationManager(settings)
            result = asyncio.run(manager.perform_install(options))
        finally:
            signal.signal(signal.SIGTERM, previous_handler)

        _display_install_result(result, settings, options, console)

    except InstallationError as e:
        _handle_installation_error(e, ctx)
    except CLIError as e:
        handle_cli_error(e, ctx)
    except (KeyboardInterrupt, SystemExit):
        raise
    except Exception as e:
        handle_cli_error(e, ctx)


def _display_install_result(
    result: Dict[str, Any],
    settings: InstallerSettings,
    options: InstallOptions,
    console: Console,
):
    """Print the outcome of an install run."""
    for warning in result["warnings"]:
        console.warning(warning)

    if result["status"] == "already_installed":
        console.output("")
        console.warning(f"Already installed: {result['installed_version']}")
        console.output(f"  Location: {result['destination']}")
        console.output("")
        console.output("  Use --force to overwrite, or --version to install a different version")
        return

    if options.quiet:
        click.echo(result["destination"])
    else:
        console.output(f"  Platform: {result['platform']}")
        console.output(f"  Version: {result['version']}")
        console.output(f"  Install directory: {result['target_dir']}")
        console.output("")
        print_rule("green")
        click.secho("  ✓ Installation successful!", fg="green", bold=True)
        print_rule("green")
        console.output("")
        console.output(f"  Location: {result['destination']}")
        console.output(f"  Version:  {result['installed_version']}")
        console.output("")

    _display_path_result(result["path"], settings, console)

    if not options.quiet:
        print_rule("cyan")
        console.output("")
        console.output("  Get started:")
        console.output(f"     $ {settings.tool_name} --help")
        console.output(f"     $ {settings.tool_name} init")
        console.output("")
        console.output("  Documentation:")
        console.output(f"     {DOCS_URL}")
        console.output("")
        console.output("  Uninstall:")
        remove = "sudo rm" if result.get("elevated") else "rm"
        console.output(f"     {remove} {result['destination']}")
        console.output("")
        print_rule("cyan")


def _display_path_result(path_result, settings: InstallerSettings, console: Console):
    if path_result.status == ALREADY_ON_PATH:
        console.success(path_result.message)
        console.output("")
    elif path_result.status == CONFIGURED:
        console.success(path_result.message)
        console.output("")
        console.output("  To apply changes, run:")
        console.lines(path_result.instructions, indent="    ")
        console.output("")
        console.output("  Or open a new terminal.")
        console.output("")
    elif path_result.status == ALREADY_CONFIGURED:
        console.info(path_result.message)
        console.output("")
        console.output(f"  If {settings.tool_name} is not found, run:")
        console.lines(path_result.instructions, indent="    ")
        console.output("")
    elif path_result.status == MANUAL:
        console.warning(path_result.message)
        console.output("")
        console.output("  Run this command to configure PATH:")
        console.lines(path_result.instructions, indent="    ")
        console.output("")
        console.output("  Or use --setup-path to configure it automatically:")
        console.output("    meldoc-installer install --force --setup-path")
        console.output("")


@cli.command()
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation")
@click.option("--keep-data", is_flag=True,
              help="Keep .meldoc project directories (configuration and state)")
@click.option("--dry-run", is_flag=True, help="Show what would be removed and exit")
@click.pass_context
def uninstall(ctx: click.Context, yes: bool, keep_data: bool, dry_run: bool):
    """Remove the meldoc CLI and, optionally, its .meldoc directories."""
    from .installation import UninstallationManager

    cli_context = ctx.obj["cli_context"]
    console = Console()

    try:
        settings = cli_context.settings
        uninstaller = UninstallationManager(settings.tool_name)

        if dry_run:
            preview = uninstaller.get_uninstall_preview(keep_data=keep_data)
            _display_uninstall_preview(preview, console)
            return

        installation = uninstaller.find_installation()
        if installation is None:
            console.error(f"{settings.tool_name} is not installed or not found in PATH")
            click.echo("")
            click.echo("Searched in:")
            for directory in uninstaller.search_dirs:
                click.echo(f"  - {directory}")
            sys.exit(1)

        console.success(f"Found {settings.tool_name} installation")
        click.echo("")
        click.echo(f"  Location: {installation['path']}")
        click.echo(f"  Version:  {installation['version']}")
        click.echo("")

        if not yes and not confirm_action(f"Remove {settings.tool_name} binary?"):
            console.warning("Uninstallation cancelled")
            return

        state_dirs = uninstaller.find_state_directories()
        if state_dirs and not keep_data:
            console.info(f"Found {len(state_dirs)} .{settings.tool_name} directories:")
            for directory in state_dirs:
                click.echo(f"  {directory}")
            click.echo("")
            if not yes and not confirm_action(
                f"Remove all .{settings.tool_name} project directories? "
                "(This will delete project configuration and state)"
            ):
                keep_data = True
                console.info(f"Keeping .{settings.tool_name} directories")

        result = uninstaller.perform_uninstallation(keep_data=keep_data)

        for item in result["removed_items"]:
            console.success(f"Removed: {item}")
        for warning in result["warnings"]:
            console.warning(warning)

        click.echo("")
        click.secho("  ✓ Uninstallation complete", fg="green", bold=True)
        if any("still in PATH" in w for w in result["warnings"]):
            click.echo("  Try running: hash -r, or restart your terminal")
        click.echo("")

    except UninstallationError as e:
        console.error(e.message)
        for key, value in e.details.items():
            click.echo(f"  {key}: {value}", err=True)
        sys.exit(1)
    except CLIError as e:
        handle_cli_error(e, ctx)


def _display_uninstall_preview(preview: Dict[str, Any], console: Console):
    for warning in preview["warnings"]:
        console.warning(warning)
    if preview["will_remove"]:
        click.echo("Would remove:")
        for item in preview["will_remove"]:
            click.echo(f"  - {item}")
    if preview["will_preserve"]:
        click.echo("Would keep:")
        for item in preview["will_preserve"]:
            click.echo(f"  - {item}")


@cli.command()
@click.option("--global", "global_install", is_flag=True,
              help="Describe the system-wide location")
@click.option("--dir", "target_dir", type=click.Path(file_okay=False),
              help="Describe a specific directory")
@click.pass_context
def info(ctx: click.Context, global_install: bool, target_dir: Optional[str]):
    """Show the detected platform and where meldoc is (or would be) installed."""
    from .installation import InstallationManager

    cli_context = ctx.obj["cli_context"]
    try:
        manager = InstallationManager(cli_context.settings)
        details = manager.get_installation_info(
            InstallOptions(global_install=global_install, target_dir=target_dir)
        )
    except InstallationError as e:
        _handle_installation_error(e, ctx)
        return
    except CLIError as e:
        handle_cli_error(e, ctx)
        return

    for key, value in details.items():
        click.echo(f"{key.replace('_', ' ').capitalize()}: {value}")
    if not details["supported"]:
        sys.exit(1)


if __name__ == "__main__":
    cli()
