"""
daybook server entry point.

Startup sequence:
1. Load settings from the environment (VAULT_ROOT is required)
2. Build the store, note managers, scheduler and dispatcher
3. Start the dispatcher worker thread
4. Start the polling VaultWatcher daemon thread
5. Start REST API server in background thread (if API_ENABLED)
6. Register all MCP tools and run the MCP server (stdio transport)
"""

import logging
import sys
import threading

from mcp.server.fastmcp import FastMCP

from daybook.api.tools import register_tools
from daybook.config import ConfigError, load_settings
from daybook.context import DaybookContext, build_context
from daybook.watcher.vault_watcher import VaultWatcher

log = logging.getLogger(__name__)


def _start_api_server(ctx: DaybookContext, port: int) -> None:
    """Run the FastAPI/uvicorn server in a daemon thread."""
    import uvicorn

    from daybook.api.app import create_app

    app = create_app(ctx)
    log.info("Starting REST API on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        settings = load_settings(require_vault=True)
    except ConfigError as e:
        log.error("%s", e)
        sys.exit(1)

    if not settings.vault_root.is_dir():
        log.error("VAULT_ROOT does not exist or is not a directory: %s", settings.vault_root)
        sys.exit(1)

    log.info("Vault root: %s", settings.vault_root)
    log.info("Target folders: %s", settings.target_folders)
    log.info("Excluded dirs: %s", settings.exclude_dirs)

    ctx = build_context(settings)
    ctx.dispatcher.start_worker()

    watcher = VaultWatcher(ctx.store, ctx.dispatcher, settings.poll_interval)
    watcher.start()

    if settings.api_enabled:
        api_thread = threading.Thread(
            target=_start_api_server, args=(ctx, settings.api_port), daemon=True
        )
        api_thread.start()

    mcp = FastMCP("daybook")
    register_tools(mcp, ctx)

    log.info("Starting daybook server")
    try:
        mcp.run(transport="stdio")
    finally:
        watcher.stop()
        ctx.dispatcher.stop()


if __name__ == "__main__":
    main()
