"""Workspace root detection utilities.

The workspace root is taken from, in order:
1. MCP Roots from the client (via Context.list_roots())
2. Environment variables (CABAL_BUILD_PROJECT_ROOT, MCP_PROJECT_ROOT)
3. The explicit --project path
4. The startup CWD, searched upward for Cabal markers (--project-from-cwd)
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlparse

if TYPE_CHECKING:
    from mcp.server.fastmcp import Context

logger = logging.getLogger(__name__)


@dataclass
class ProjectRootConfig:
    """Settings captured at startup that decide the workspace root."""

    startup_cwd: Path | None = None
    """CWD captured at server startup."""

    use_project_from_cwd: bool = False
    """Whether --project-from-cwd flag was provided."""

    explicit_project_path: Path | None = None
    """Explicit project path from --project flag."""

    env_var_names: tuple[str, ...] = field(
        default_factory=lambda: ("CABAL_BUILD_PROJECT_ROOT", "MCP_PROJECT_ROOT")
    )
    """Environment variable names to check for the workspace root."""


_config: ProjectRootConfig = ProjectRootConfig()


def configure_project_root(
    *,
    use_project_from_cwd: bool = False,
    explicit_project_path: str | Path | None = None,
    startup_cwd: str | Path | None = None,
) -> None:
    """Set the workspace root sources. Called once at startup."""
    global _config
    _config = ProjectRootConfig(
        use_project_from_cwd=use_project_from_cwd,
        explicit_project_path=Path(explicit_project_path) if explicit_project_path else None,
        startup_cwd=Path(startup_cwd) if startup_cwd else None,
    )
    logger.debug(
        f"Project root configured: use_cwd={use_project_from_cwd}, "
        f"explicit={explicit_project_path}, startup_cwd={startup_cwd}"
    )


def get_config() -> ProjectRootConfig:
    """Get current project root configuration."""
    return _config


def parse_file_uri(uri: str) -> Path | None:
    """Parse a file:// URI to a Path.

    Handles platform-specific path formats:
    - Unix: file:///home/user/pkg → /home/user/pkg
    - Windows: file:///C:/Users/pkg → C:\\Users\\pkg
    - Windows UNC: file://server/share → \\\\server\\share

    Args:
        uri: A file:// URI string

    Returns:
        Absolute Path, or None if the URI is not an absolute file URI
    """
    parsed = urlparse(str(uri))
    if parsed.scheme != "file":
        logger.warning(f"Not a file URI: {uri}")
        return None

    path_str = unquote(parsed.path)

    if sys.platform == "win32":
        # file:///C:/path → parsed.path = "/C:/path"
        if path_str.startswith("/") and len(path_str) > 2 and path_str[2] == ":":
            path_str = path_str[1:]
        if parsed.netloc:
            path_str = f"\\\\{parsed.netloc}{path_str}"

    path = Path(path_str)
    if not path.is_absolute():
        logger.warning(f"Parsed path is not absolute: {path}")
        return None
    return path


def find_cabal_project_root(start_dir: Path | None = None) -> Path:
    """Find the Cabal workspace root by walking up from a directory.

    Searches for markers in this order:
    1. cabal.project - multi-package workspace
    2. *.cabal - single package
    3. .git - repository root as fallback

    Falls back to start_dir if no marker is found.
    """
    current = (start_dir or Path.cwd()).resolve()

    def ancestors() -> Iterator[Path]:
        yield current
        yield from current.parents

    for directory in ancestors():
        if (directory / "cabal.project").is_file():
            return directory

    for directory in ancestors():
        if any(directory.glob("*.cabal")):
            return directory

    for directory in ancestors():
        # .git can be file (worktree) or dir
        if (directory / ".git").exists():
            return directory

    return current


def _root_from_environment(config: ProjectRootConfig) -> Path | None:
    for env_var in config.env_var_names:
        env_value = os.environ.get(env_var)
        if not env_value:
            continue
        path = Path(env_value)
        if path.is_dir():
            logger.info(f"Using project root from {env_var}: {path}")
            return path
        logger.warning(f"{env_var}={env_value} - path does not exist or is not a directory")
    return None


def get_project_root_sync() -> Path | None:
    """Determine the workspace root without MCP client roots.

    Returns:
        Path to workspace root, or None if not determinable
    """
    config = get_config()

    path = _root_from_environment(config)
    if path is not None:
        return path

    if config.explicit_project_path:
        if config.explicit_project_path.is_dir():
            return config.explicit_project_path
        logger.warning(f"Explicit project path not valid: {config.explicit_project_path}")

    if config.use_project_from_cwd and config.startup_cwd:
        return find_cabal_project_root(config.startup_cwd)

    if config.startup_cwd:
        return config.startup_cwd

    logger.warning("Could not determine project root from any source")
    return None


async def get_project_root(ctx: Context | None = None) -> Path | None:
    """Determine the workspace root, preferring roots sent by the MCP client.

    Args:
        ctx: MCP Context for accessing client-provided roots.
             Can be None if called outside of tool context.

    Returns:
        Path to workspace root, or None if not determinable
    """
    if ctx is not None:
        try:
            roots = await ctx.list_roots()
            if roots:
                uri = str(roots[0].uri)
                path = parse_file_uri(uri)
                if path and path.is_dir():
                    logger.info(f"Using project root from MCP client: {path}")
                    return path
                logger.warning(f"MCP root path invalid or not accessible: {path}")
            else:
                logger.info("MCP client did not provide any roots")
        except Exception as e:
            # Client may not support roots
            logger.info(f"Could not get roots from client: {e}")

    return get_project_root_sync()
