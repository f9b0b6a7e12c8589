"""Utility modules for cabal-build-mcp."""

from .project import (
    ProjectRootConfig,
    configure_project_root,
    find_cabal_project_root,
    get_project_root,
    get_project_root_sync,
    parse_file_uri,
)

__all__ = [
    "ProjectRootConfig",
    "configure_project_root",
    "find_cabal_project_root",
    "get_project_root",
    "get_project_root_sync",
    "parse_file_uri",
]
