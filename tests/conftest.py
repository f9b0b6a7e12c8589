"""Pytest fixtures for cabal-build-mcp tests."""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


class FakeProcess:
    """Stand-in for ProcessHandle with canned output and exit code."""

    def __init__(self, lines=(), exit_code=0, pid=1234):
        self._lines = list(lines)
        self.exit_code = exit_code
        self.pid = pid
        self.killed = False
        self.closed = False
        self.waited = False

    def lines(self):
        for line in self._lines:
            if self.killed:
                return
            yield line

    def wait(self, timeout=None):
        self.waited = True
        return -9 if self.killed else self.exit_code

    def kill(self):
        self.killed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True


class FakeLauncher:
    """Launcher returning FakeProcess objects and recording each spawn."""

    def __init__(self, configure=None, build=None):
        self._configure = configure or {}
        self._build = build or {}
        self.calls = []
        self.processes = []

    def _spawn(self, phase, outputs, manifest_path):
        self.calls.append((phase, manifest_path))
        outcome = outputs.get(manifest_path, ([], 0))
        if isinstance(outcome, BaseException):
            raise outcome
        lines, exit_code = outcome
        process = FakeProcess(lines, exit_code)
        self.processes.append(process)
        return process

    def configure(self, manifest_path):
        return self._spawn("configure", self._configure, manifest_path)

    def build(self, manifest_path):
        return self._spawn("build", self._build, manifest_path)


@pytest.fixture
def fake_launcher_factory():
    """Build a FakeLauncher from {manifest: (lines, exit_code)} mappings."""
    return FakeLauncher


@pytest.fixture
def cabal_workspace(tmp_path):
    """Workspace with two packages, each holding a manifest."""
    for name in ("alpha", "beta"):
        package = tmp_path / name
        package.mkdir()
        (package / f"{name}.cabal").write_text(f"name: {name}\n")
    return tmp_path


@pytest.fixture
def sample_ghc_output():
    """Typical cabal build output with a warning and a type error."""
    return [
        "Resolving dependencies...",
        "Warning: The package list for 'hackage.haskell.org' is 31 days old.",
        "Run 'cabal update' to get the latest list of available packages.",
        "[1 of 2] Compiling Sub.Foo          ( src/Sub/Foo.hs, dist/build/Sub/Foo.o )",
        "src/Sub/Foo.hs:12:7: error:",
        "    • Couldn't match expected type ‘Int’ with actual type ‘Bool’",
        "    • In the expression: True",
        "",
        "cabal: Failed to build alpha-0.1.0.0.",
    ]
