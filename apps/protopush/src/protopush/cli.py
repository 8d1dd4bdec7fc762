"""CLI for publishing prototype files to GitHub."""

import logging
import sys
from pathlib import Path

import click
import httpx
import pydantic

from ghsync import (
    FileToCommit,
    GitHubSync,
    GitHubSyncError,
    RepositoryCoordinates,
    Settings,
    TokenCipher,
    generate_key,
)

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Update prototype files"

# Failures reported as "Error: ..." with exit status 1
COMMAND_ERRORS = (GitHubSyncError, httpx.HTTPError, pydantic.ValidationError)


def setup_logging(verbose: int) -> None:
    """Setup logging."""
    level = logging.DEBUG if verbose >= 2 else logging.INFO if verbose == 1 else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    # httpx logs full URLs at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def collect_files(source: Path, prefix: str = "") -> list[FileToCommit]:
    """Read every regular file under ``source`` as a FileToCommit."""
    prefix = prefix.strip("/")
    files = []
    for path in sorted(p for p in source.rglob("*") if p.is_file()):
        rel = path.relative_to(source).as_posix()
        files.append(FileToCommit(path=f"{prefix}/{rel}" if prefix else rel, content=path.read_bytes()))
    return files


def fail(err: Exception) -> None:
    """Report an error and exit."""
    logger.debug("Command failed", exc_info=err)
    click.echo(f"Error: {err}", err=True)
    raise SystemExit(1)


# ============ CLI Group ============

@click.group()
@click.option("--token", envvar="GITHUB_ENCRYPTED_TOKEN", help="Encrypted access token (nonce:tag:ciphertext)")
@click.option("--retries", "-r", type=int, default=1, show_default=True, help="Attempts per request on network errors")
@click.option("-v", "--verbose", count=True, help="Verbosity (-v, -vv)")
@click.pass_context
def cli(ctx: click.Context, token: str | None, retries: int, verbose: int) -> None:
    """Publish prototype files to GitHub."""
    setup_logging(verbose)
    settings = Settings.from_env()
    ctx.ensure_object(dict)
    ctx.obj["token"] = token
    ctx.obj["cipher"] = TokenCipher.from_settings(settings)
    ctx.obj["sync"] = GitHubSync(ctx.obj["cipher"], settings=settings, max_retries=retries)


def require_token(ctx: click.Context) -> str:
    token = ctx.obj.get("token")
    if not token:
        click.echo("Error: --token or GITHUB_ENCRYPTED_TOKEN required", err=True)
        raise SystemExit(1)
    return token


# ============ Credential Commands ============

@cli.command()
def keygen():
    """Print a new random ENCRYPTION_KEY."""
    click.echo(generate_key())


@cli.command()
@click.pass_context
def encrypt(ctx):
    """Encrypt an access token read from stdin (or prompted)."""
    if sys.stdin.isatty():
        plaintext = click.prompt("Access token", hide_input=True)
    else:
        plaintext = sys.stdin.read().strip()
    try:
        click.echo(ctx.obj["cipher"].encrypt(plaintext))
    except COMMAND_ERRORS as e:
        fail(e)


# ============ Repository Commands ============

@cli.command()
@click.pass_context
def repos(ctx):
    """List repositories visible to the token."""
    token = require_token(ctx)
    try:
        items = ctx.obj["sync"].list_repositories(token)
    except COMMAND_ERRORS as e:
        fail(e)
    for repo in items:
        visibility = "private" if repo.private else "public"
        click.echo(f"{repo.full_name}  [{repo.default_branch}]  {visibility}")


@cli.command()
@click.argument("name")
@click.option("--owner", required=True)
@click.option("--repo", required=True)
@click.option("--from", "from_branch", default="main", show_default=True, help="Source branch")
@click.pass_context
def branch(ctx, name, owner, repo, from_branch):
    """Create branch NAME (no-op if it exists)."""
    token = require_token(ctx)
    try:
        created = ctx.obj["sync"].create_branch(token, owner, repo, name, from_branch)
    except COMMAND_ERRORS as e:
        fail(e)
    click.echo(f"Created {name}" if created else f"{name} already exists")


# ============ Publish Commands ============

@cli.command()
@click.argument("source", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--owner", required=True)
@click.option("--repo", required=True)
@click.option("--branch", "branch_name", required=True)
@click.option("--prefix", default="", help="Remote directory to publish into")
@click.option("-m", "--message", default=DEFAULT_MESSAGE, show_default=True)
@click.pass_context
def push(ctx, source, owner, repo, branch_name, prefix, message):
    """Publish every file under SOURCE as one commit."""
    token = require_token(ctx)
    files = collect_files(source, prefix)
    click.echo(f"Publishing {len(files)} file(s) to {owner}/{repo}@{branch_name}")
    try:
        coords = RepositoryCoordinates(owner=owner, repo=repo, branch=branch_name)
        result = ctx.obj["sync"].push_files(token, coords, files, message)
    except COMMAND_ERRORS as e:
        fail(e)
    click.echo(f"Commit {result.commit_sha}")
    click.echo(result.html_url)


@cli.command()
@click.argument("local", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("remote_path")
@click.option("--owner", required=True)
@click.option("--repo", required=True)
@click.option("--branch", "branch_name", required=True)
@click.option("-m", "--message", default=DEFAULT_MESSAGE, show_default=True)
@click.pass_context
def put(ctx, local, remote_path, owner, repo, branch_name, message):
    """Create or update a single file at REMOTE_PATH."""
    token = require_token(ctx)
    try:
        coords = RepositoryCoordinates(owner=owner, repo=repo, branch=branch_name)
        result = ctx.obj["sync"].push_file(token, coords, remote_path, local.read_bytes(), message)
    except COMMAND_ERRORS as e:
        fail(e)
    click.echo(f"Commit {result.commit_sha}")
    click.echo(result.html_url)


if __name__ == "__main__":
    cli()
