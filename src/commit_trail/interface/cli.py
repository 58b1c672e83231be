import argparse
import asyncio
import sys
from pathlib import Path

from commit_trail.application.use_cases import (
    RepositoryCoordinator,
    clone_and_open,
    open_repository,
)
from commit_trail.config import Settings
from commit_trail.domain.errors import CommitTrailError
from commit_trail.domain.models import (
    Commit,
    DiffLine,
    DiffLineKind,
    DiffStats,
    FileTreeNode,
    Repository,
    Selection,
)
from commit_trail.infrastructure.workspace import Workspace, parse_repository_url
from commit_trail.logging_config import configure_logging


_KIND_MARKERS = {
    DiffLineKind.ADDED: "+",
    DiffLineKind.DELETED: "-",
    DiffLineKind.CONTEXT: " ",
}


def _error_exit(msg: str) -> None:
    """Print error message to stderr and exit with code 1."""
    print(f"Error: {msg}", file=sys.stderr)
    sys.exit(1)


def _print_commits(commits: list[Commit], reviewed: frozenset[str]) -> None:
    if not commits:
        print("No commits found.")
        return
    author_width = min(max(len(c.author_name) for c in commits), 20)
    for c in commits:
        mark = "x" if c.sha in reviewed else " "
        merge = "M" if c.is_merge else " "
        author = c.author_name[:author_width]
        print(
            f"[{mark}] {merge} {c.short_sha:<10}  {c.date.strftime('%Y-%m-%d %H:%M')}  "
            f"{author:<{author_width}}  {c.subject}"
        )


def _print_commit(commit: Commit, tags: list[str], stats: DiffStats | None = None) -> None:
    print(f"commit {commit.sha}")
    if tags:
        print(f"Tags:    {', '.join(tags)}")
    if commit.is_merge:
        print(f"Merge:   {' '.join(p[:8] for p in commit.parent_shas)}")
    print(f"Author:  {commit.author_name} <{commit.author_email}>")
    print(f"Date:    {commit.date.strftime('%Y-%m-%d %H:%M:%S %z')}")
    print()
    for line in commit.message.splitlines():
        print(f"    {line}")
    if stats is not None:
        print()
        _print_stats(stats)


def _print_stats(stats: DiffStats) -> None:
    print(f"Files changed: {stats.file_count}")
    print(f"Lines added:   {stats.lines_added}")
    print(f"Lines deleted: {stats.lines_deleted}")
    if stats.extensions:
        histogram = ", ".join(f"{ext or '(none)'}: {n}" for ext, n in stats.extensions.items())
        print(f"Extensions:    {histogram}")


def _print_tree(nodes: list[FileTreeNode], depth: int = 0) -> None:
    for node in nodes:
        status = node.effective_status
        marker = status.value if status else " "
        suffix = "/" if node.is_directory else ""
        print(f"{marker} {'  ' * depth}{node.name}{suffix}")
        if node.is_directory:
            _print_tree(node.children, depth + 1)


def _print_diff(lines: list[DiffLine]) -> None:
    if not lines:
        print("(no changes)")
        return
    for line in lines:
        number = f"{line.line_number:>5}" if line.line_number is not None else "     "
        marker = _KIND_MARKERS.get(line.kind)
        if marker is None:
            print(f"{number}  {line.content}")
        else:
            print(f"{number} {marker}{line.content}")


def _selection(rev: str, against: str | None) -> Selection:
    if against:
        return Selection(to_sha=rev, from_sha=against)
    return Selection(to_sha=rev)


def _print_repositories(repositories: list[Repository], workspace: Workspace) -> None:
    if not repositories:
        print("No stored repositories.")
        return
    width = max(len(r.display_name) for r in repositories)
    for r in repositories:
        print(
            f"{r.display_name:<{width}}  {r.cloned_at.strftime('%Y-%m-%d %H:%M')}  "
            f"{workspace.source_dir(r.owner, r.name)}"
        )


async def _clone(url: str, settings: Settings) -> tuple[str, int]:
    coordinator = await clone_and_open(url, settings)
    shas = await coordinator.synchronize_history()
    return coordinator.name, len(shas)


def _workspace_command(args: argparse.Namespace, settings: Settings) -> None:
    """--clone, --forget and --repos act on the workspace, not on repo_path."""
    workspace = Workspace(settings.home)
    try:
        if args.clone:
            owner, name = parse_repository_url(args.clone)
            if workspace.exists(owner, name):
                _error_exit(f"{owner}/{name} is already cloned at {workspace.source_dir(owner, name)}")
            display_name, count = asyncio.run(_clone(args.clone, settings))
            print(f"Cloned {display_name}: {count} commits cached.")

        if args.forget:
            owner, _, name = args.forget.partition("/")
            if not owner or not name or "/" in name:
                _error_exit("--forget expects OWNER/NAME")
            if not workspace.repository_dir(owner, name).is_dir():
                _error_exit(f"No stored repository {owner}/{name}")
            workspace.delete(owner, name)
            print(f"Removed {owner}/{name}.")

        if args.repos:
            _print_repositories(workspace.list_repositories(), workspace)
    except CommitTrailError as e:
        _error_exit(str(e))


async def _dispatch(args: argparse.Namespace, coordinator: RepositoryCoordinator) -> None:
    if args.refresh:
        new_shas = await coordinator.refresh_from_remote()
        print(f"Fetched {len(new_shas)} new commit(s).")

    if args.sync:
        shas = await coordinator.synchronize_history()
        print(f"History: {len(shas)} commits cached.")

    if args.toggle:
        record = await coordinator.toggle_reviewed(args.toggle)
        state = "reviewed" if record.is_reviewed(args.toggle) else "not reviewed"
        print(f"{args.toggle[:8]} marked {state}.")

    if args.checkout:
        await coordinator.checkout(args.checkout)
        print(f"Checked out {args.checkout[:8]}.")
    elif args.checkout_default:
        await coordinator.checkout_default()
        print("Checked out default branch.")

    if args.show:
        commit = await coordinator.commit(args.show)
        tags = await coordinator.reader.tags_at(commit.sha)
        _print_commit(commit, tags, await coordinator.diff_stats(commit.sha))

    if args.stats:
        _print_stats(await coordinator.diff_stats(args.stats))

    if args.tree:
        view = await coordinator.load_tree(_selection(args.tree, args.against))
        _print_tree(view.nodes)

    if args.diff:
        rev, path = args.diff
        view = await coordinator.select_file(_selection(rev, args.against), path)
        if view.status is None and not args.content:
            print(f"{path} is unchanged in this selection.")
        elif args.content:
            print(view.content if view.content is not None else "(no earlier revision)")
        else:
            _print_diff(view.diff_lines)

    if args.log is not None:
        progress = await coordinator.progress()
        commits = await coordinator.commit_page(args.offset, args.log)
        _print_commits(commits, progress.reviewed)
        if progress.checkout_sha:
            print(f"\nChecked out: {progress.checkout_sha[:8]}")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="commit-trail",
        description="Walk through a repository's history commit by commit",
    )
    parser.add_argument(
        "repo_path", nargs="?", default=None,
        help="Path to a local git working copy",
    )
    parser.add_argument("--sync", action="store_true", help="Synchronize the cached commit list")
    parser.add_argument(
        "--log", type=int, nargs="?", const=-1, default=None, metavar="N",
        help="List N commits, newest first (default: page size)",
    )
    parser.add_argument("--offset", type=int, default=0, help="Skip this many commits with --log")
    parser.add_argument("--show", metavar="SHA", help="Show one commit with its diff summary")
    parser.add_argument("--stats", metavar="SHA", help="Show the diff summary of a commit")
    parser.add_argument("--tree", metavar="REV", help="Show the file tree at REV with change status")
    parser.add_argument(
        "--diff", nargs=2, metavar=("REV", "PATH"),
        help="Show the diff of PATH in REV",
    )
    parser.add_argument(
        "--against", metavar="REV",
        help="Compare --tree/--diff against this earlier revision instead of the parent",
    )
    parser.add_argument("--content", action="store_true", help="With --diff, print the full file instead")
    parser.add_argument("--toggle", metavar="SHA", help="Toggle the reviewed mark of a commit")
    parser.add_argument("--checkout", metavar="SHA", help="Check out a commit for browsing")
    parser.add_argument(
        "--checkout-default", dest="checkout_default", action="store_true",
        help="Return the working copy to the default branch",
    )
    parser.add_argument(
        "--refresh", action="store_true",
        help="fetch, return to the default branch, pull and extend the cache",
    )
    parser.add_argument("--clone", metavar="URL", help="Clone a repository into the workspace and cache its history")
    parser.add_argument("--repos", action="store_true", help="List repositories cloned into the workspace")
    parser.add_argument("--forget", metavar="OWNER/NAME", help="Delete a cloned repository and its state")
    parser.add_argument("--batch-size", type=int, default=None, help="Commits per detail query")
    parser.add_argument("--home", default=None, metavar="PATH", help="State directory (default: ~/.commit-trail)")
    parser.add_argument("--serve", action="store_true", help="Serve the HTTP API for repo_path")
    parser.add_argument("--port", type=int, default=8000, metavar="PORT", help="API port for --serve")
    parser.add_argument("--log-level", default=None, help="Logging level (default: WARNING)")
    args = parser.parse_args()

    configure_logging(args.log_level)

    workspace_requested = bool(args.clone or args.repos or args.forget)
    if args.repo_path is None and not workspace_requested:
        _error_exit("repo_path is required")
    if args.checkout and args.checkout_default:
        _error_exit("--checkout cannot be combined with --checkout-default")
    if args.against and not (args.tree or args.diff):
        _error_exit("--against requires --tree or --diff")

    settings = Settings.from_env().with_overrides(
        home=Path(args.home).expanduser() if args.home else None,
        batch_size=args.batch_size,
    )
    if args.log == -1:
        args.log = settings.page_size

    if workspace_requested:
        _workspace_command(args, settings)
        if args.repo_path is None:
            return

    if args.serve:
        try:
            from commit_trail.web.server import launch
        except ImportError:
            _error_exit(
                "web dependencies not installed. "
                "Run: pip install commit-trail[web]"
            )
        try:
            launch(args.repo_path, settings=settings, api_port=args.port, log_level=args.log_level)
        except CommitTrailError as e:
            _error_exit(str(e))
        return

    try:
        coordinator = open_repository(args.repo_path, settings)
    except CommitTrailError as e:
        _error_exit(str(e))

    nothing_requested = not any([
        args.sync, args.refresh, args.toggle, args.checkout, args.checkout_default,
        args.show, args.stats, args.tree, args.diff, args.log is not None,
    ])
    if nothing_requested:
        args.log = settings.page_size

    try:
        asyncio.run(_dispatch(args, coordinator))
    except CommitTrailError as e:
        _error_exit(str(e))
