"""Command-line interface for sbcli."""

import logging
import shutil
import sys
from typing import List, Optional, Tuple

import click

from sbcli import __version__
from sbcli.config import load_settings
from sbcli.coordinator import CoordinatorError, InstallCoordinator, RepoTags, TagSearchResult
from sbcli.disk import DiskSpaceError
from sbcli.dispatcher import PlaybookError, PlaybookInterrupted
from sbcli.executor import CommandInterrupted
from sbcli.repos import Repo
from sbcli.suggestions import BrokenInstallError, TagValidationError, format_suggestions

# Exit code for a user interrupt (128 + SIGINT).
EXIT_INTERRUPTED = 130


def configure_logging(verbosity: int) -> logging.Logger:
    """Set up the package logger for a command invocation.

    Args:
        verbosity: Number of ``-v`` flags given. Any is DEBUG, none is INFO.

    Returns:
        The configured ``sbcli`` logger.
    """
    logger = logging.getLogger("sbcli")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbosity > 0 else logging.INFO)
    return logger


def build_coordinator(verbosity: int = 0) -> InstallCoordinator:
    """Create a coordinator for the installed system."""
    return InstallCoordinator(settings=load_settings(), logger=configure_logging(verbosity))


def _split_skip_tags(values: Tuple[str, ...]) -> List[str]:
    skip_tags = []
    for value in values:
        skip_tags.extend(tag.strip() for tag in value.split(",") if tag.strip())
    return skip_tags


def _complete_tags(ctx, param, incomplete):
    try:
        tags = build_coordinator().completion_tags()
    except (CoordinatorError, CommandInterrupted):
        return []
    return [tag for tag in tags if tag.startswith(incomplete)]


def _interrupted():
    click.echo("\n\nExecution interrupted by user.", err=True)
    sys.exit(EXIT_INTERRUPTED)


@click.group()
@click.version_option(version=__version__, prog_name="sb")
def cli():
    """Saltbox command-line interface.

    Runs Saltbox, Sandbox and Saltbox-mod playbooks by tag, validating tags
    against a cache of what each repository declares.
    """
    pass


@cli.command()
@click.argument("tags", nargs=-1, required=True, shell_complete=_complete_tags)
@click.option(
    "--extra-vars",
    "-e",
    multiple=True,
    help="Extra variables to pass to Ansible. Can be repeated.",
)
@click.option(
    "--skip-tags",
    "-s",
    multiple=True,
    help="Tags to skip during Ansible playbook execution (comma separated).",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity level (can be used multiple times, e.g. -vvv).",
)
@click.option(
    "--no-cache",
    is_flag=True,
    help="Skip cache validation and always perform tag checks.",
)
def install(
    tags: Tuple[str, ...],
    extra_vars: Tuple[str, ...],
    skip_tags: Tuple[str, ...],
    verbose: int,
    no_cache: bool,
):
    """Run Ansible playbooks with the specified tags.

    Tags may be comma or space separated. Prefix a tag with "sandbox-" to run
    it from Sandbox or with "mod-" to run it from Saltbox-mod.
    """
    coordinator = build_coordinator(verbose)
    try:
        coordinator.run_install(
            tags,
            extra_vars=extra_vars,
            skip_tags=_split_skip_tags(skip_tags),
            verbosity=verbose,
            no_cache=no_cache,
        )
    except TagValidationError as e:
        click.echo(format_suggestions(e.suggestions), err=True)
        sys.exit(1)
    except (PlaybookInterrupted, CommandInterrupted, KeyboardInterrupt):
        _interrupted()
    except (BrokenInstallError, DiskSpaceError, PlaybookError, CoordinatorError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _print_in_columns(tags: List[str], padding: int = 2):
    if not tags:
        return
    width = shutil.get_terminal_size((80, 24)).columns
    column_width = max(len(tag) for tag in tags) + padding
    columns = max(width // column_width, 1)
    rows = (len(tags) + columns - 1) // columns

    for row in range(rows):
        line = ""
        for col in range(columns):
            index = row + col * rows
            if index < len(tags):
                line += tags[index].ljust(column_width)
        click.echo(line.rstrip())


def _listing_title(entry: RepoTags) -> str:
    title = f"{entry.repo.display_name} tags"
    if entry.repo.prefix:
        title += f" (prepend {entry.repo.prefix})"
    title += ":"
    if entry.from_cache:
        title += " (cached)"
    return title


def _print_search_results(query: str, results: List[TagSearchResult]):
    if not results:
        click.echo(f"No tags found matching '{query}'")
        return

    click.echo(f"Found {len(results)} matching tag(s) for '{query}':")
    for repo in (Repo.PRIMARY, Repo.SECONDARY, Repo.TERTIARY):
        matches = [result for result in results if result.repo is repo]
        if not matches:
            continue
        click.echo("")
        click.echo(click.style(repo.display_name, bold=True))
        for result in matches:
            click.echo(f"  {result.display_tag}")


@cli.command(name="list")
@click.argument("query", required=False)
@click.option(
    "--include-mod",
    "-m",
    is_flag=True,
    help="Include Saltbox-mod tags.",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity level (can be used multiple times, e.g. -vvv).",
)
@click.option(
    "--no-cache",
    is_flag=True,
    help="Always list tags from the playbooks instead of the cache.",
)
def list_command(query: Optional[str], include_mod: bool, verbose: int, no_cache: bool):
    """List available Saltbox, Sandbox or Saltbox-mod tags.

    Without arguments, displays all available tags. With a query, performs a
    fuzzy search across all tags.
    """
    coordinator = build_coordinator(verbose)
    try:
        if query:
            results = coordinator.search_tags(query, include_mod=include_mod, no_cache=no_cache)
            _print_search_results(query, results)
            return

        for index, entry in enumerate(
            coordinator.list_tags(include_mod=include_mod, no_cache=no_cache)
        ):
            if index:
                click.echo("")
            click.echo(_listing_title(entry))
            click.echo("")
            _print_in_columns(entry.tags)
    except (CommandInterrupted, KeyboardInterrupt):
        _interrupted()
    except CoordinatorError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def main():
    """Main entry point for the sb CLI."""
    cli()


if __name__ == "__main__":
    main()
