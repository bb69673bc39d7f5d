import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from gsr import git_ops
from gsr.compare import DEFAULT_COMMIT_LIMIT, compare_branch
from gsr.config import Settings, configure_logging
from gsr.models import Remote
from gsr.presenter import report_lines
from gsr.session import SessionState
from gsr.tui import run_tui

logger = logging.getLogger(__name__)


def _fail(message: str) -> NoReturn:
    click.echo(f"gsr: {message}", err=True)
    raise SystemExit(1)


def check_remote_count(remotes: list[Remote]) -> None:
    """Refuse to start unless one or two remotes are configured."""
    if not remotes:
        _fail(
            "No git remotes found\n"
            "You need at least one remote. Add one with:\n"
            "  git remote add origin <url>"
        )
    if len(remotes) > 2:
        listing = "\n".join(f"  - {remote.name}: {remote.url}" for remote in remotes)
        _fail(
            f"Found {len(remotes)} remotes\n"
            "gsr compares exactly two remotes; remove the extra ones first:\n"
            f"{listing}"
        )


def discover(branch: str | None) -> tuple[Path, Remote, Remote | None, str]:
    """Find the repository, its remotes and the branch to compare."""
    try:
        repo_root = git_ops.get_repo_root(Path.cwd())
    except git_ops.GitError:
        _fail("not inside a git repository")

    try:
        remotes = git_ops.list_remotes(repo_root)
    except git_ops.GitError as exc:
        _fail(f"failed to list remotes: {exc}")
    check_remote_count(remotes)

    if branch is None:
        try:
            branch = git_ops.get_current_branch(repo_root)
        except git_ops.GitError as exc:
            _fail(f"{exc.output}; pass --branch to choose one")

    remote_b = remotes[1] if len(remotes) > 1 else None
    return repo_root, remotes[0], remote_b, branch


def print_status(settings: Settings, branch: str | None, fetch: bool) -> None:
    repo_root, remote_a, remote_b, branch = discover(branch)
    if remote_b is None:
        _fail(f"only one remote configured ({remote_a.name}); add one with `git remote add`")

    try:
        if fetch:
            git_ops.fetch(repo_root, remote_a.name, timeout=settings.timeout)
            git_ops.fetch(repo_root, remote_b.name, timeout=settings.timeout)
        result = compare_branch(
            repo_root, remote_a.name, remote_b.name, branch, limit=settings.commit_limit
        )
    except git_ops.GitError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(f"Branch: {branch}")
    for line in report_lines(result, remote_a.name, remote_b.name):
        click.echo(line)


@click.group(context_settings={"help_option_names": ["-h", "--help"]}, invoke_without_command=True)
@click.option("--branch", "-b", default=None, help="Branch to compare (default: checked-out branch).")
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=30.0,
    show_default=True,
    envvar="GSR_TIMEOUT",
    help="Seconds before a fetch or push is abandoned.",
)
@click.option(
    "--limit",
    type=click.IntRange(min=1),
    default=DEFAULT_COMMIT_LIMIT,
    show_default=True,
    envvar="GSR_LIMIT",
    help="Maximum unique commits listed per remote.",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    envvar="GSR_LOG_FILE",
    help="Write a debug log here.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every git invocation.")
@click.pass_context
def main(
    ctx: click.Context,
    branch: str | None,
    timeout: float,
    limit: int,
    log_file: Path | None,
    verbose: bool,
) -> None:
    """gsr: compare and sync a branch between two git remotes."""
    settings = Settings(timeout=timeout, commit_limit=limit, log_file=log_file, verbose=verbose)
    configure_logging(settings)
    ctx.obj = settings
    if ctx.invoked_subcommand is not None:
        return

    if not sys.stdin.isatty() or not sys.stdout.isatty():
        print_status(settings, branch, fetch=False)
        return

    repo_root, remote_a, remote_b, branch = discover(branch)
    logger.info(
        "Starting session in %s: %s vs %s on %s",
        repo_root,
        remote_a.name,
        remote_b.name if remote_b else "-",
        branch,
    )

    run_tui(repo_root, SessionState.initial(remote_a, remote_b, branch), settings)


@main.command("status")
@click.option("--branch", "-b", default=None, help="Branch to compare (default: checked-out branch).")
@click.option("--fetch/--no-fetch", default=False, help="Fetch both remotes before comparing.")
@click.pass_obj
def status(settings: Settings, branch: str | None, fetch: bool) -> None:
    """Print how the branch compares between the two remotes."""
    print_status(settings, branch, fetch)


@main.command("remotes")
def remotes() -> None:
    """List configured remotes."""
    try:
        repo_root = git_ops.get_repo_root(Path.cwd())
    except git_ops.GitError:
        _fail("not inside a git repository")
    try:
        configured = git_ops.list_remotes(repo_root)
    except git_ops.GitError as exc:
        raise click.ClickException(str(exc)) from exc
    for remote in configured:
        click.echo(f"{remote.name}\t{remote.url}")


if __name__ == "__main__":
    main()
