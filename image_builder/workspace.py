"""Transient build artifacts and their guaranteed removal."""

import sys
from pathlib import Path
from typing import Callable

# Leftover Dockerfile variants written next to the real Dockerfile
STALE_BUILD_FILES = ["Dockerfile.build"]


class BuildWorkspace:
    """Tracks transient files and cleanup callbacks for one run.

    Use as a context manager: everything registered is released on exit,
    whether the block returns normally or raises.
    """

    def __init__(self, context: Path):
        self.context = context
        self._paths: list[Path] = [context / name for name in STALE_BUILD_FILES]
        self._callbacks: list[tuple[str, Callable[[], None]]] = []
        self.released = False

    def track(self, path: Path) -> Path:
        """Register a transient file for removal and return it."""
        self._paths.append(path)
        return path

    def on_release(self, description: str, callback: Callable[[], None]) -> None:
        """Register a cleanup action, run in reverse registration order."""
        self._callbacks.append((description, callback))

    def release(self) -> None:
        if self.released:
            return
        self.released = True

        for description, callback in reversed(self._callbacks):
            try:
                callback()
            except Exception as e:
                print(f"Warning: Cleanup step '{description}' failed: {e}", file=sys.stderr)

        for path in self._paths:
            if path.exists():
                try:
                    path.unlink()
                    print(f"Cleaned up temporary file: {path}")
                except OSError as e:
                    print(f"Warning: Could not remove {path}: {e}", file=sys.stderr)

    def __enter__(self) -> "BuildWorkspace":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
