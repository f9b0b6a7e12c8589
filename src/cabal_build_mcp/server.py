"""MCP Server for Cabal builds."""

from __future__ import annotations

import logging

from mcp.server.fastmcp import Context, FastMCP
from pydantic import AnyUrl

from .build import BuildManager, Severity, WorkUnit, discover_work_units
from .build.session import DEFAULT_BUILD_TIMEOUT
from .resources import register_resources
from .utils.project import get_project_root, get_project_root_sync

logger = logging.getLogger(__name__)

_initial_project_path: str | None = None


def current_workspace() -> str | None:
    """Workspace root known without an MCP context."""
    root = get_project_root_sync()
    if root is not None:
        return str(root)
    return _initial_project_path


async def resolve_workspace(ctx: Context | None) -> str | None:
    """Resolve the workspace root, preferring roots sent by the client."""
    root = await get_project_root(ctx)
    if root is not None:
        return str(root)
    return _initial_project_path


def select_units(workspace_root: str, packages: list[str] | None) -> list[WorkUnit]:
    """Discover workspace packages, optionally restricted to the given names.

    Raises:
        ValueError: If a requested package does not exist
    """
    units = discover_work_units(workspace_root)
    if not packages:
        return units
    by_name = {unit.name: unit for unit in units}
    missing = [name for name in packages if name not in by_name]
    if missing:
        raise ValueError(f"Unknown packages: {', '.join(missing)}")
    return [by_name[name] for name in packages]


def create_server(project_path: str | None = None) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        project_path: Initial workspace root. Can be replaced by roots sent
            from the MCP client.
    """
    global _initial_project_path
    _initial_project_path = project_path
    mcp = FastMCP("cabal-build-mcp")
    manager = BuildManager()

    async def notify_state_changed(ctx: Context) -> None:
        """Notify client that build resources have changed."""
        try:
            if ctx.session:
                await ctx.session.send_resource_updated(AnyUrl("build://state"))
                await ctx.session.send_resource_updated(AnyUrl("build://diagnostics"))
        except Exception:
            pass  # Notification failure shouldn't break the tool

    # ============== Build Tools ==============

    @mcp.tool()
    async def build_project(
        ctx: Context,
        packages: list[str] | None = None,
        configure_args: list[str] | None = None,
        build_args: list[str] | None = None,
        timeout: float = DEFAULT_BUILD_TIMEOUT,
    ) -> dict:
        """
        Configure and build the Cabal packages of the workspace.

        Runs `cabal configure` then `cabal build` for each package, stopping at
        the first failure. Compiler errors are returned with absolute file
        paths, line and column.

        Args:
            packages: Package directory names to build (default: all packages)
            configure_args: Extra `cabal configure` arguments
                (e.g. ["--enable-tests", "-O0"])
            build_args: Extra `cabal build` arguments (e.g. ["-j4"])
            timeout: Timeout in seconds for the whole build
        """
        try:
            workspace_root = await resolve_workspace(ctx)
            if workspace_root is None:
                return {"success": False, "error": "Cannot determine workspace root"}

            units = select_units(workspace_root, packages)
            await ctx.report_progress(progress=0, total=100, message="Building...")
            result = await manager.build(
                workspace_root,
                units=units,
                configure_args=configure_args,
                build_args=build_args,
                timeout=timeout,
            )
            await ctx.report_progress(progress=100, total=100, message="Build finished")
            await notify_state_changed(ctx)
            return {
                "success": result.success,
                "summary": result.to_summary(),
                "data": result.to_dict(include_info=False),
            }
        except Exception as e:
            return {"success": False, "error": str(e)}

    @mcp.tool()
    async def cancel_build(ctx: Context) -> dict:
        """Cancel the running build of the workspace."""
        try:
            workspace_root = await resolve_workspace(ctx)
            if workspace_root is None:
                return {"success": False, "error": "Cannot determine workspace root"}
            cancelled = await manager.cancel(workspace_root)
            await notify_state_changed(ctx)
            return {"success": True, "data": {"cancelled": cancelled}}
        except Exception as e:
            return {"success": False, "error": str(e)}

    @mcp.tool()
    async def get_build_status(ctx: Context) -> dict:
        """Get the build state and last result summary of the workspace."""
        try:
            workspace_root = await resolve_workspace(ctx)
            if workspace_root is None:
                return {"success": False, "error": "Cannot determine workspace root"}
            state = manager.get_state(workspace_root)
            result = manager.get_last_result(workspace_root)
            return {
                "success": True,
                "data": {
                    "workspaceRoot": workspace_root,
                    "state": state.value if state else "idle",
                    "summary": result.to_summary() if result else None,
                },
            }
        except Exception as e:
            return {"success": False, "error": str(e)}

    @mcp.tool()
    async def get_build_diagnostics(
        ctx: Context,
        severity: str | None = None,
        include_info: bool = False,
    ) -> dict:
        """
        Get the diagnostics of the last build.

        Args:
            severity: Only return this severity ("error", "warning" or "info")
            include_info: Include raw tool output lines (ignored if severity is set)
        """
        try:
            workspace_root = await resolve_workspace(ctx)
            if workspace_root is None:
                return {"success": False, "error": "Cannot determine workspace root"}
            result = manager.get_last_result(workspace_root)
            if result is None:
                return {"success": False, "error": "No build has run in this workspace"}

            if severity is not None:
                wanted = Severity(severity.lower())
                diagnostics = [d for d in result.diagnostics if d.severity == wanted]
            elif include_info:
                diagnostics = result.diagnostics
            else:
                diagnostics = [d for d in result.diagnostics if d.severity != Severity.INFO]
            return {"success": True, "data": [d.to_dict() for d in diagnostics]}
        except Exception as e:
            return {"success": False, "error": str(e)}

    # ============== Prompts ==============

    @mcp.prompt(
        name="fix-build",
        description="Guide for fixing a failing Cabal build",
    )
    def fix_build_prompt() -> list[dict]:
        """Steps to fix build errors."""
        return [
            {
                "role": "user",
                "content": """## Fixing a Cabal Build

### 1. Build
```
build_project()
```

### 2. Read the Errors
```
get_build_diagnostics(severity="error")
```
Each error carries the absolute file, line and column reported by GHC.

### 3. Fix and Rebuild
Fix the first error first: later errors are often caused by it.
If the failure is "configure failed.", read the info output
(`get_build_diagnostics(include_info=True)`) for missing dependencies.
""",
            }
        ]

    # ============== Resources ==============

    register_resources(mcp, manager, current_workspace)

    logger.info("Cabal build MCP Server initialized")
    return mcp
