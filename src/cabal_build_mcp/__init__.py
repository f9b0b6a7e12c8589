"""Cabal build pipeline with structured GHC diagnostics, served over MCP."""

__version__ = "0.1.0"
