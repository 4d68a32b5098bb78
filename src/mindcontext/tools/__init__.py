"""Tool registration for the mindcontext MCP server."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from fastmcp import Context, FastMCP

from ..config import ConfigStore, MindcontextSettings
from ..context import build_context, percentage
from ..ledger import UpdateLedger, latest_by_machine, latest_of
from ..openspec import get_openspec_progress

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ToolHandles:
    get_context: Any
    list_projects: Any
    ledger_stats: Any


def register_tools(
    server: FastMCP,
    *,
    settings: MindcontextSettings,
    config_store: ConfigStore | None = None,
    ledger_factory: Callable[[str], UpdateLedger] | None = None,
) -> ToolHandles:
    """Register mindcontext's MCP tools on the server."""

    store = config_store or ConfigStore(settings)
    make_ledger = ledger_factory or (lambda project: UpdateLedger(settings.updates_dir(project)))

    def _connected_projects() -> dict[str, Any]:
        config = store.read() if store.is_initialized() else None
        return dict(config.projects) if config is not None else {}

    def _get_context(
        project: str,
        path: str | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Return the consolidated context for a project."""

        projects = _connected_projects()
        registered = projects.get(project)
        if path is None and registered is None:
            raise ValueError(f"Unknown project '{project}'; pass a path or connect it first")

        root = Path(path) if path is not None else Path(registered.path)
        connected = registered is not None
        output = build_context(project, root, connected, make_ledger(project) if connected else None)

        _emit_log(
            context,
            "debug",
            "Built project context",
            extra={"project": project, "connected": connected, "team_size": len(output.team)},
        )
        return output.to_dict()

    def _list_projects(context: Context | None = None) -> list[dict[str, Any]]:
        """List connected projects with their local progress."""

        catalog = []
        for name, project in sorted(_connected_projects().items()):
            progress = get_openspec_progress(Path(project.path))
            catalog.append(
                {
                    "project": name,
                    "path": project.path,
                    "category": project.category,
                    "openspec": project.openspec,
                    "progress": {
                        **progress.model_dump(exclude_none=True),
                        "percentage": percentage(progress.tasks_done, progress.tasks_total),
                    },
                }
            )

        _emit_log(context, "debug", "Listing connected projects", extra={"count": len(catalog)})
        return catalog

    def _ledger_stats(project: str, context: Context | None = None) -> dict[str, Any]:
        """Summarize the ledger of one project."""

        ledger = make_ledger(project)
        records = ledger.read_all()
        latest = latest_of(records)
        machines = latest_by_machine(records)
        _emit_log(
            context,
            "debug",
            "Summarized ledger",
            extra={"project": project, "record_count": len(records), "skipped_count": len(ledger.skipped)},
        )
        return {
            "project": project,
            "record_count": len(records),
            "machine_count": len(machines),
            "machines": sorted(record.machine for record in machines.values()),
            "latest_timestamp": latest.timestamp if latest else None,
            "skipped_files": [path.name for path in ledger.skipped],
        }

    tool_context = server.tool(
        name="get_context",
        description=(
            "Return progress, the latest update and team activity for a connected "
            "project. Pass path to inspect a project that is not connected."
        ),
    )(_get_context)

    tool_projects = server.tool(
        name="list_projects",
        description="List connected projects with category and current task progress.",
    )(_list_projects)

    tool_stats = server.tool(
        name="ledger_stats",
        description="Count update records and contributing machines for a project, including unparsable files.",
    )(_ledger_stats)

    return ToolHandles(
        get_context=tool_context,
        list_projects=tool_projects,
        ledger_stats=tool_stats,
    )


def _emit_log(
    context: Context | None,
    level: str,
    message: str,
    *,
    extra: dict[str, Any] | None = None,
) -> None:
    """Best-effort logging that prefers the MCP context logger when available."""

    payload = extra or {}

    if context is not None:
        ctx_logger = getattr(context, "logger", None)
        if ctx_logger is not None:
            log_method = getattr(ctx_logger, level, None)
            if callable(log_method):
                log_method(message, extra=payload)
                return

    fallback = getattr(logger, level, logger.info)
    fallback(message, extra=payload)


__all__ = ["ToolHandles", "register_tools"]
