"""CLI for the Git Data API."""

import json
import logging
import os
from pathlib import Path

import click

from .client import GitDataClient
from .models import BlobMode, CreateGitTreeBlob, CreateTree

logger = logging.getLogger(__name__)


def setup_logging(verbose: int) -> None:
    """Setup logging."""
    level = logging.DEBUG if verbose >= 2 else logging.INFO if verbose == 1 else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def split_repo(value: str) -> tuple[str, str]:
    """Split ``owner/repo``."""
    owner, sep, repo = value.partition("/")
    if not sep or not owner or not repo or "/" in repo:
        raise click.BadParameter(f"expected OWNER/REPO, got {value!r}")
    return owner, repo


def blob_entry(path: Path, root: Path) -> CreateGitTreeBlob:
    """Inline-blob tree entry for a local file."""
    try:
        # Symlinks are not followed; a link is uploaded under its own path.
        entry_path = Path(os.path.abspath(path)).relative_to(os.path.abspath(root)).as_posix()
    except ValueError:
        raise click.BadParameter(f"{path} is not inside {root}") from None
    try:
        content = path.read_bytes().decode("utf-8")
    except UnicodeDecodeError:
        raise click.BadParameter(f"{path} is not utf-8 text") from None
    mode = BlobMode.EXECUTABLE if os.access(path, os.X_OK) else BlobMode.FILE
    return CreateGitTreeBlob(
        path=entry_path,
        content=content,
        mode=mode,
    )


# ============ CLI Group ============

@click.group()
@click.option("--token", envvar="GITHUB_TOKEN", help="GitHub token")
@click.option("--use-gh-cli", is_flag=True, help="Use gh cli credentials")
@click.option("--retries", "-r", type=int, default=3, help="Retry attempts")
@click.option("-v", "--verbose", count=True, help="Verbosity (-v, -vv)")
@click.pass_context
def cli(ctx: click.Context, token: str | None, use_gh_cli: bool, retries: int, verbose: int) -> None:
    """GitHub Git Data CLI."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj.setdefault("client_options", {"token": token, "use_gh_cli": use_gh_cli, "max_retries": retries})


def get_client(ctx: click.Context) -> GitDataClient:
    """Build the client lazily so offline commands never need a token."""
    if "client" not in ctx.obj:
        ctx.obj["client"] = GitDataClient(**ctx.obj["client_options"])
    return ctx.obj["client"]


# ============ Commands ============

@cli.command("ls-tree")
@click.argument("owner")
@click.argument("repo")
@click.argument("sha")
@click.option("--recursive", is_flag=True, help="List nested entries")
@click.option("--json", "as_json", is_flag=True, help="Print entries as JSON")
@click.pass_context
def ls_tree(ctx, owner, repo, sha, recursive, as_json):
    """List a tree."""
    tree = get_client(ctx).get_tree(owner, repo, sha, recursive=recursive)
    if as_json:
        entries = [entry.model_dump(mode="json", by_alias=True) for entry in tree.git_trees]
        click.echo(json.dumps(entries, indent=2))
    else:
        for entry in tree.git_trees:
            click.echo(f"{entry.mode.value} {entry.type.value} {entry.sha}\t{entry.path}")
    if tree.truncated:
        click.echo("warning: listing truncated by the server", err=True)


@cli.command("make-tree")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--root", type=click.Path(exists=True, file_okay=False, path_type=Path), default=".", show_default=True)
@click.option("--base-tree", help="SHA of the tree to build on")
@click.option("--submit", "submit_to", metavar="OWNER/REPO", help="Create the tree instead of printing it")
@click.pass_context
def make_tree(ctx, paths, root, base_tree, submit_to):
    """Build a tree from local files."""
    entries = [blob_entry(path, root) for path in paths]
    request = CreateTree(tree=entries, base_tree_sha=base_tree)

    if base_tree is None:
        click.echo("warning: no --base-tree, every other path will appear deleted", err=True)

    if not submit_to:
        click.echo(json.dumps(request.encode(), indent=2))
        return

    owner, repo = split_repo(submit_to)
    created = get_client(ctx).create_tree(owner, repo, request)
    click.echo(created.sha)


@cli.command("show-blob")
@click.argument("owner")
@click.argument("repo")
@click.argument("sha")
@click.pass_context
def show_blob(ctx, owner, repo, sha):
    """Write a blob's decoded content to stdout."""
    blob = get_client(ctx).get_blob(owner, repo, sha)
    stdout = click.get_binary_stream("stdout")
    stdout.write(blob.decoded_content())
    stdout.flush()


def main() -> None:
    cli(obj={}, prog_name="gitdata")


if __name__ == "__main__":
    main()
