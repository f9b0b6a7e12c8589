"""MCP Resources for build state."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING

from .build.state import Severity

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from .build import BuildManager


def register_resources(
    server: FastMCP,
    manager: BuildManager,
    workspace: Callable[[], str | None],
) -> None:
    """Register MCP resources.

    Args:
        server: Server to register on
        manager: Build manager holding the sessions
        workspace: Returns the current workspace root
    """

    @server.resource("build://state", mime_type="application/json")
    async def build_state_resource() -> str:
        """Build state of every workspace (JSON).

        Contains: state and last result summary per workspace.
        Updates when: a build starts, finishes, fails or is cancelled.
        """
        return json.dumps(manager.to_dict(), indent=2)

    @server.resource("build://diagnostics", mime_type="application/json")
    async def build_diagnostics_resource() -> str:
        """Warnings and errors of the last build in the current workspace (JSON).

        Each diagnostic includes: severity, tool, text and, for compiler
        errors, file/line/column.
        """
        root = workspace()
        result = manager.get_last_result(root) if root else None
        if result is None:
            return json.dumps([], indent=2)
        diagnostics = [d.to_dict() for d in result.diagnostics if d.severity != Severity.INFO]
        return json.dumps(diagnostics, indent=2)
