"""FastMCP server exposing mindcontext project context to agent tooling."""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from fastmcp import Context, FastMCP

from . import __version__
from .cli import configure_logging
from .config import ConfigStore, MindcontextSettings, get_settings
from .tools import register_tools


def create_server(
    settings: Optional[MindcontextSettings] = None,
    config_store: ConfigStore | None = None,
) -> FastMCP:
    """Instantiate the FastMCP server with mindcontext tools and status resource."""

    settings = settings or get_settings()
    store = config_store or ConfigStore(settings)

    server = FastMCP(
        name="mindcontext",
        version=__version__,
        instructions=(
            "mindcontext reports development progress for connected projects and the "
            "latest updates shared by every machine working on them."
        ),
    )

    handles = register_tools(server, settings=settings, config_store=store)

    @server.resource(
        "resource://mindcontext/status",
        name="mindcontext_status",
        title="mindcontext Status",
        description="Reports whether mindcontext is initialized and which projects are connected.",
        mime_type="application/json",
        tags={"status", "health"},
    )
    def status_resource(context: Context) -> str:
        """Return a JSON string summarizing the local installation."""

        initialized = store.is_initialized()
        config = store.read() if initialized else None
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "server_version": __version__,
            "home": str(settings.home),
            "initialized": initialized,
            "machine": config.machine.model_dump() if config else None,
            "projects": {
                "count": len(config.projects) if config else 0,
                "names": sorted(config.projects) if config else [],
            },
            "request_id": getattr(context, "request_id", None),
        }
        return json.dumps(payload)

    setattr(server, "config_store", store)
    setattr(server, "tool_handles", handles)
    return server


def main() -> None:
    """Entry point for running the mindcontext MCP server."""

    settings = get_settings()
    configure_logging(settings.log_level)

    server = create_server(settings)
    logging.getLogger(__name__).info(
        "Launching mindcontext MCP server",
        extra={"version": __version__, "home": str(settings.home)},
    )
    server.run()


if __name__ == "__main__":
    main()
