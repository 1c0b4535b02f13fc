"""The CLI's semantic version and the ``version`` command."""

from __future__ import annotations

import argparse
import platform
import sys

__all__ = [
    "VERSION_CORE",
    "VERSION_PRE_RELEASE",
    "GIT_COMMIT",
    "version",
    "display_version",
    "truncate",
    "main",
]

VERSION_CORE = "0.6.0"
"""The core portion of the version per Semantic Versioning 2.0.0."""

VERSION_PRE_RELEASE = "alpha"
"""The pre-release portion of the version per Semantic Versioning 2.0.0."""

GIT_COMMIT = ""
"""The commit the tool was built from, if known."""


def truncate(s: str, max_len: int) -> str:
    """Return s cut to at most max_len characters."""
    if len(s) < max_len:
        return s
    return s[:max_len]


def version() -> str:
    """Return the semantic version of the CLI."""
    v = VERSION_CORE
    if VERSION_PRE_RELEASE:
        v += "-" + VERSION_PRE_RELEASE
        # build metadata is only added to pre-release versions
        if GIT_COMMIT:
            v += "+" + truncate(GIT_COMMIT, 14)
    return v


def display_version() -> str:
    """Return the version line printed by the version command."""
    runtime = "python" + platform.python_version()
    arch = platform.machine().lower() or "unknown"
    return f"kind v{version()} {runtime} {sys.platform}/{arch}"


def main(argv: list[str] | None = None) -> int:
    """Print the CLI version; with --quiet only the semantic version."""
    parser = argparse.ArgumentParser(prog="kind version", description="prints the kind CLI version")
    parser.add_argument("-q", "--quiet", action="store_true", help="only print the semantic version")
    args = parser.parse_args(argv)
    print(version() if args.quiet else display_version())
    return 0