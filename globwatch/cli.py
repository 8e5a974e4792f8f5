import logging
from typing import Optional

import typer
from watchdog.version import VERSION_STRING as WATCHDOG_VERSION

from . import __version__
from .config import DEFAULT_OPTIONS, ConfigurationError, merge_options, watcher_options
from .observer import GlobWatcher
from .session import WatchSession


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_text() -> str:
    return f"globwatch: {__version__}\nwatchdog: {WATCHDOG_VERSION}"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(version_text())
        raise typer.Exit()


@app.command(epilog='Example: globwatch "**/*.py" "make test"  (run tests when any .py file changes)')
def main(
    pattern: str = typer.Argument(
        ...,
        help="Glob pattern of files to watch. Quote it to prevent shell globbing.",
    ),
    command: str = typer.Argument(
        ...,
        help="Command to run when a change is detected. Quote it when it contains spaces.",
    ),
    debounce: Optional[int] = typer.Option(
        None,
        "-d",
        "--debounce",
        help=f"Debounce timeout in ms for executing the command [default: {DEFAULT_OPTIONS['debounce']}]",
        envvar="GLOBWATCH_DEBOUNCE",
    ),
    follow_symlinks: bool = typer.Option(
        False,
        "-s",
        "--follow-symlinks",
        help="Follow symlinked directories instead of watching only the links themselves",
    ),
    ignore: Optional[str] = typer.Option(
        None,
        "-i",
        "--ignore",
        help="Glob of paths to ignore. The whole relative or absolute path is tested, not just the filename",
        envvar="GLOBWATCH_IGNORE",
    ),
    initial: bool = typer.Option(
        False, "--initial", help="Run the command once when watching starts"
    ),
    polling: bool = typer.Option(
        False,
        "-p",
        "--polling",
        help="Poll the filesystem instead of using native events (needed for network mounts; higher CPU)",
        envvar="GLOBWATCH_POLLING",
    ),
    poll_interval: Optional[int] = typer.Option(
        None,
        "--poll-interval",
        help=f"Polling interval in ms, with --polling [default: {DEFAULT_OPTIONS['poll_interval']}]",
        envvar="GLOBWATCH_POLL_INTERVAL",
    ),
    poll_interval_binary: Optional[int] = typer.Option(
        None,
        "--poll-interval-binary",
        help=f"Polling interval in ms for binary files, with --polling [default: {DEFAULT_OPTIONS['poll_interval_binary']}]",
        envvar="GLOBWATCH_POLL_INTERVAL_BINARY",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log every filesystem event"),
    loglevel: str = typer.Option(
        "INFO",
        "--loglevel",
        help="Logging level: DEBUG, INFO, WARNING, ERROR",
        envvar="GLOBWATCH_LOGLEVEL",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "-v",
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """Run COMMAND whenever files matching PATTERN change.

    Bursts of changes are coalesced: the command runs once the files have been
    quiet for the debounce interval. A failing command is logged and watching
    continues.
    """
    logging.basicConfig(
        level=getattr(logging, loglevel.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        config = merge_options(
            DEFAULT_OPTIONS,
            {
                "pattern": pattern,
                "command": command,
                "debounce": debounce,
                "follow_symlinks": follow_symlinks,
                "ignore": ignore,
                "initial": initial,
                "polling": polling,
                "poll_interval": poll_interval,
                "poll_interval_binary": poll_interval_binary,
                "verbose": verbose,
            },
        )
    except ConfigurationError as e:
        raise typer.BadParameter(str(e))

    session = WatchSession(config)
    watcher = GlobWatcher(
        config.pattern,
        watcher_options(config),
        on_event=session.on_event,
        on_ready=session.on_ready,
        on_error=session.on_error,
    )

    try:
        watcher.start()
        while not session.wait(1.0):
            watcher.check()
    except KeyboardInterrupt:
        logging.info("Stopping watcher...")
        session.stop()
    finally:
        watcher.stop()
        session.close()

    raise typer.Exit(code=session.exit_code)


if __name__ == "__main__":
    app()
