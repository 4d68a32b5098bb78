"""mindcontext command line interface."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .config import (
    ConfigError,
    ConfigStore,
    MindcontextSettings,
    NotInitializedError,
    PendingQueue,
    ProjectConfig,
    get_settings,
)
from .context import build_context, percentage, render_json, render_text
from .git import GitError, GitRepository
from .identity import GitEmailLookup, MachineIdentity, derive_identity
from .ledger import LedgerError, UpdateLedger, UpdateRecord
from .openspec import get_openspec_progress, has_task_structure

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging for mindcontext entry points."""

    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def load_git(settings: MindcontextSettings) -> GitRepository:
    return GitRepository(settings.repo_dir, settings.git_executable, timeout=settings.git_timeout)


def load_identity(settings: MindcontextSettings) -> MachineIdentity:
    return derive_identity(
        email_lookup=GitEmailLookup(settings.git_executable, timeout=settings.identity_timeout)
    )


def resolve_project(args: argparse.Namespace, store: ConfigStore) -> tuple[str, Path]:
    """Return (project name, project root) for the command's working path.

    A connected project registered at the same path wins over the directory
    name.
    """

    root = Path(getattr(args, "path", None) or Path.cwd()).resolve()
    explicit = getattr(args, "name", None)
    if explicit:
        return explicit, root

    config = store.read() if store.is_initialized() else None
    if config is not None:
        for name, project in config.projects.items():
            if Path(project.path) == root:
                return name, root
    return root.name, root


def _echo(args: argparse.Namespace, message: str = "") -> None:
    if not getattr(args, "quiet", False):
        print(message)


def cmd_init(args: argparse.Namespace, settings: MindcontextSettings) -> None:
    store = ConfigStore(settings)
    if store.is_initialized():
        _echo(args, f"mindcontext is already initialized at {settings.home}")
        return

    git = load_git(settings)
    if args.repo:
        git.clone(args.repo).check()
    else:
        git.init().check()

    config = store.create_default(load_identity(settings))
    config.dashboard_repo = args.repo or ""
    config.dashboard_url = args.dashboard_url or ""
    store.write(config)

    _echo(args, f"✓ Initialized mindcontext at {settings.home}")
    _echo(args, f"  Machine: {config.machine.name} ({config.machine.id})")
    _echo(args, "")
    _echo(args, 'Next: Run "mindcontext connect" inside a project.')


def cmd_connect(args: argparse.Namespace, settings: MindcontextSettings) -> None:
    store = ConfigStore(settings)
    config = store.require()
    name, root = resolve_project(args, store)

    existing = config.projects.get(name)
    if existing is not None:
        _echo(args, f'Project "{name}" is already connected.')
        _echo(args, f"  Path: {existing.path}")
        _echo(args, f"  Category: {existing.category}")
        _echo(args, f"  OpenSpec: {'Yes' if existing.openspec else 'No'}")
        return

    openspec = has_task_structure(root)
    config.projects[name] = ProjectConfig(
        path=str(root),
        category=args.category or "default",
        openspec=openspec,
    )
    store.write(config)
    store.ensure_project_dir(name)

    _echo(args, f'✓ Connected "{name}"')
    _echo(args, f"  Path: {root}")
    _echo(args, f"  Category: {args.category or 'default'}")
    _echo(args, f"  OpenSpec: {'Detected' if openspec else 'Not found'}")
    _echo(args, "")
    _echo(args, 'Next: Run "mindcontext sync" to create your first update.')


def _push_with_queue(git: GitRepository, pending: PendingQueue, message: str) -> bool:
    result = git.push()
    if result.ok:
        pending.clear()
        return True
    pending.add(message)
    logger.warning("Push failed; queued for retry", extra={"commit_message": message})
    return False


def cmd_sync(args: argparse.Namespace, settings: MindcontextSettings) -> None:
    store = ConfigStore(settings)
    config = store.require()
    name, root = resolve_project(args, store)
    if name not in config.projects:
        raise NotInitializedError(f'Project "{name}" is not connected. Run "mindcontext connect" first.')

    identity = load_identity(settings)
    progress = get_openspec_progress(root)
    record = UpdateRecord.create(
        identity,
        progress,
        status=args.status or "",
        notes=args.note,
        next=args.next,
    )

    updates_dir = store.ensure_project_dir(name)
    path = UpdateLedger(updates_dir).append(record, identity)

    git = load_git(settings)
    message = f"update: {name} from {identity.name}"
    # Stage the directory so files from an earlier failed commit are included.
    git.add([updates_dir.relative_to(settings.repo_dir)]).check()
    git.commit(message).check()

    pushed = False
    if not args.no_push:
        pushed = _push_with_queue(git, PendingQueue(settings.pending_file), message)

    _echo(args, f'✓ Synced "{name}"')
    _echo(args, f"  File: {path.name}")
    _echo(
        args,
        f"  Progress: {progress.tasks_done}/{progress.tasks_total} "
        f"({percentage(progress.tasks_done, progress.tasks_total)}%)",
    )
    if args.no_push:
        _echo(args, "  Push: skipped")
    elif not pushed:
        _echo(args, "  Push: failed, queued for retry")


def cmd_pull(args: argparse.Namespace, settings: MindcontextSettings) -> None:
    ConfigStore(settings).require()
    git = load_git(settings)
    git.pull().check()
    _echo(args, "✓ Pulled latest updates")

    pending = PendingQueue(settings.pending_file)
    queued = pending.read()
    if queued:
        if git.push().ok:
            pending.clear()
            _echo(args, f"✓ Pushed {len(queued)} queued update(s)")
        else:
            _echo(args, f"  {len(queued)} queued update(s) still pending")


def cmd_context(args: argparse.Namespace, settings: MindcontextSettings) -> None:
    store = ConfigStore(settings)
    name, root = resolve_project(args, store)
    config = store.read() if store.is_initialized() else None
    connected = config is not None and name in config.projects

    ledger = UpdateLedger(settings.updates_dir(name)) if connected else None
    output = build_context(name, root, connected, ledger)

    if args.json:
        print(render_json(output))
        return
    _echo(args, render_text(output))


def cmd_progress(args: argparse.Namespace, settings: MindcontextSettings) -> None:
    config = ConfigStore(settings).require()

    rows: list[dict[str, object]] = []
    for name, project in sorted(config.projects.items()):
        progress = get_openspec_progress(Path(project.path))
        latest = UpdateLedger(settings.updates_dir(name)).latest()
        rows.append(
            {
                "project": name,
                "category": project.category,
                **progress.model_dump(exclude_none=True),
                "percentage": percentage(progress.tasks_done, progress.tasks_total),
                "status": latest.context.status if latest else None,
                "updated": latest.timestamp if latest else None,
            }
        )

    if args.json:
        print(json.dumps(rows, indent=2))
        return

    if not rows:
        print('No projects connected. Run "mindcontext connect" inside a project.')
        return
    for row in rows:
        change = row.get("change") or "no active change"
        line = f"{row['project']}: {change} {row['tasks_done']}/{row['tasks_total']} ({row['percentage']}%)"
        if row["status"]:
            line += f" - {row['status']}"
        print(line)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mindcontext",
        description="Share development progress between machines",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", help="Override MINDCONTEXT_LOG_LEVEL")
    sub = parser.add_subparsers(dest="cmd")

    p_init = sub.add_parser("init", help="Create the mindcontext home and update repository")
    p_init.add_argument("--repo", help="Clone this dashboard repository instead of creating one")
    p_init.add_argument("--dashboard-url", help="URL where the dashboard is published")
    p_init.add_argument("--quiet", action="store_true")
    p_init.set_defaults(func=cmd_init)

    p_connect = sub.add_parser("connect", help="Connect the current project")
    p_connect.add_argument("--name", help="Project name (default: directory name)")
    p_connect.add_argument("--category", help="Project category (default: default)")
    p_connect.add_argument("--path", help="Project directory (default: current directory)")
    p_connect.add_argument("--quiet", action="store_true")
    p_connect.set_defaults(func=cmd_connect)

    p_sync = sub.add_parser("sync", help="Record and push a progress update")
    p_sync.add_argument("--status", help="Short status line")
    p_sync.add_argument("--note", action="append", default=[], help="Note (repeatable)")
    p_sync.add_argument("--next", action="append", default=[], help="Next step (repeatable)")
    p_sync.add_argument("--no-push", action="store_true", help="Commit locally without pushing")
    p_sync.add_argument("--name", help="Project name (default: connected project at path)")
    p_sync.add_argument("--path", help="Project directory (default: current directory)")
    p_sync.add_argument("--quiet", action="store_true")
    p_sync.set_defaults(func=cmd_sync)

    p_pull = sub.add_parser("pull", help="Fetch updates from other machines")
    p_pull.add_argument("--quiet", action="store_true")
    p_pull.set_defaults(func=cmd_pull)

    p_context = sub.add_parser("context", help="Show the current project context")
    p_context.add_argument("--json", action="store_true", help="Output JSON")
    p_context.add_argument("--quiet", action="store_true")
    p_context.add_argument("--name", help="Project name (default: connected project at path)")
    p_context.add_argument("--path", help="Project directory (default: current directory)")
    p_context.set_defaults(func=cmd_context)

    p_progress = sub.add_parser("progress", help="Summarize progress of all connected projects")
    p_progress.add_argument("--json", action="store_true", help="Output JSON")
    p_progress.set_defaults(func=cmd_progress)

    return parser


def main(argv: list[str] | None = None, settings: MindcontextSettings | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return

    settings = settings or get_settings()
    configure_logging((args.log_level or settings.log_level).upper())

    try:
        args.func(args, settings)
    except (NotInitializedError, ConfigError, LedgerError, GitError) as exc:
        print(str(exc), file=sys.stderr)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
