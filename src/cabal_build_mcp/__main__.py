"""Entry point for cabal-build-mcp server."""

import argparse
import asyncio
import logging
import os
import sys

from .build import BuildManager
from .server import create_server
from .utils.project import configure_project_root, find_cabal_project_root


def configure_logging() -> None:
    """Configure logging based on environment."""
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Cabal Build MCP Server - build Haskell packages and report GHC diagnostics via MCP"
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--project",
        type=str,
        default=None,
        help="Workspace root path. Builds run for the Cabal packages below it.",
    )
    group.add_argument(
        "--project-from-cwd",
        action="store_true",
        default=False,
        help="Auto-detect the workspace from the current working directory. "
        "Searches upward for cabal.project, *.cabal or .git markers.",
    )
    return parser.parse_args(argv)


async def main() -> None:
    """Main entry point."""
    configure_logging()
    logger = logging.getLogger(__name__)

    args = parse_args()

    startup_cwd = os.getcwd()
    if args.project_from_cwd:
        project_path = str(find_cabal_project_root())
        logger.info(f"Auto-detected project root: {project_path}")
    else:
        project_path = args.project or startup_cwd

    configure_project_root(
        use_project_from_cwd=args.project_from_cwd,
        explicit_project_path=args.project,
        startup_cwd=startup_cwd,
    )

    logger.info(f"Starting Cabal Build MCP Server (project: {project_path})...")

    mcp = create_server(project_path)

    try:
        await mcp.run_stdio_async()
    except Exception:
        logger.exception("Server error")
        raise
    finally:
        cancelled = await BuildManager().cancel_all()
        if cancelled:
            logger.info(f"Cancelled {cancelled} running builds")
        logger.info("Server stopped")


def run() -> None:
    """Run the server."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
