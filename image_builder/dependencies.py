"""Preconditions for a build: engine, daemon, buildx builder and build context."""

import shutil
import subprocess
from pathlib import Path
from typing import Callable

import docker
from docker.errors import DockerException

from image_builder.command import ENGINE_BINARY
from image_builder.config import BuildConfig
from image_builder.engine import get_docker_client, get_engine_version


class DependencyError(RuntimeError):
    """A required tool or resource is missing. Carries remediation hints."""

    def __init__(self, message: str, hints: list[str] | None = None):
        super().__init__(message)
        self.hints = hints or []


def _run_engine(args: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run([ENGINE_BINARY, *args], capture_output=True, text=True)


def check_dependencies(
    config: BuildConfig,
    client_factory: Callable[[], docker.DockerClient] = get_docker_client,
) -> docker.DockerClient:
    """Verify the engine binary, daemon and (if needed) buildx are usable.

    Returns the connected Docker client.

    Raises:
        DependencyError: on any missing dependency
    """
    print("Checking build dependencies...")

    if shutil.which(ENGINE_BINARY) is None:
        raise DependencyError(
            "Docker is not installed or not in PATH",
            ["Install Docker: https://docs.docker.com/get-docker/"],
        )

    try:
        client = client_factory()
        client.ping()
    except DockerException as e:
        raise DependencyError(
            f"Docker daemon is not running: {e}",
            ["Start the Docker daemon and try again"],
        ) from e

    print(f"Docker version: {get_engine_version(client)}")

    if config.use_buildx:
        try:
            result = _run_engine(["buildx", "version"])
        except OSError as e:
            raise DependencyError(f"Could not run docker buildx: {e}") from e
        if result.returncode != 0:
            raise DependencyError(
                "Docker buildx is not available",
                ["Install the buildx plugin: https://docs.docker.com/build/install-buildx/"],
            )
        print(f"buildx available: {result.stdout.strip()}")

    print("Dependencies check passed")
    return client


def ensure_builder(name: str) -> None:
    """Create (or select) the named buildx builder and bootstrap it.

    Raises:
        DependencyError: if the builder can't be created, selected or bootstrapped
    """
    print(f"Setting up buildx builder '{name}'...")

    created = _run_engine(["buildx", "create", "--use", "--name", name])
    if created.returncode != 0:
        # Builder most likely exists already, just select it
        selected = _run_engine(["buildx", "use", name])
        if selected.returncode != 0:
            raise DependencyError(
                f"Failed to create or select buildx builder '{name}': {selected.stderr.strip()}",
                [f"Remove the builder with 'docker buildx rm {name}' and retry"],
            )

    inspected = _run_engine(["buildx", "inspect", "--bootstrap"])
    if inspected.returncode != 0:
        raise DependencyError(
            f"Failed to bootstrap buildx builder '{name}': {inspected.stderr.strip()}",
            [f"Remove the builder with 'docker buildx rm {name}' and retry"],
        )


def check_build_context(context: Path) -> None:
    """Verify the build context directory contains a Dockerfile.

    Raises:
        DependencyError: if the context or its Dockerfile is missing
    """
    if not context.is_dir():
        raise DependencyError(f"Build context not found: {context}")

    if not (context / "Dockerfile").exists():
        raise DependencyError(
            f"Dockerfile not found in: {context}",
            ["Run the build from the project root or set 'context' in .image-builder.yml"],
        )
