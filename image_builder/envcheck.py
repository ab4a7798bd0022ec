"""Build environment readiness check (check-build-env).

Builds and runs a throwaway alpine image to prove the daemon can build
and run containers before attempting the real build.
"""

import sys
from typing import Callable

import docker
from docker.errors import APIError, BuildError, ContainerError, DockerException, ImageNotFound

from image_builder.config import DEFAULT_IMAGE_NAME, load_settings
from image_builder.engine import get_docker_client
from image_builder.workspace import BuildWorkspace

TEST_DOCKERFILE = "Dockerfile.test"
TEST_MESSAGE = "Hello from the build environment test!"

TEST_DOCKERFILE_CONTENT = f"""\
FROM alpine:latest
RUN echo "{TEST_MESSAGE}" > /test.txt
CMD ["cat", "/test.txt"]
"""


def get_test_image_ref(name: str) -> str:
    return f"{name}-env-test:latest"


def _remove_image(client: docker.DockerClient, image_ref: str) -> None:
    try:
        client.images.remove(image_ref, force=True)
    except ImageNotFound:
        pass


def check_build_env(
    workspace: BuildWorkspace,
    name: str,
    client_factory: Callable[[], docker.DockerClient] = get_docker_client,
) -> int:
    """Build and run a minimal image inside `workspace.context`.

    Returns:
        Exit code (0 for success)
    """
    print("Testing Docker build infrastructure...")

    try:
        client = client_factory()
        client.ping()
    except DockerException as e:
        print(f"Error: Docker daemon not accessible: {e}", file=sys.stderr)
        print("  Check the Docker installation and daemon status", file=sys.stderr)
        return 1

    dockerfile = workspace.track(workspace.context / TEST_DOCKERFILE)
    dockerfile.write_text(TEST_DOCKERFILE_CONTENT)

    image_ref = get_test_image_ref(name)
    workspace.on_release(f"remove {image_ref}", lambda: _remove_image(client, image_ref))

    print("Building test image...")
    try:
        client.images.build(path=str(workspace.context), dockerfile=TEST_DOCKERFILE, tag=image_ref, rm=True)
    except (BuildError, APIError) as e:
        print(f"Error: Test image build failed: {e}", file=sys.stderr)
        print("  Check the Docker installation and daemon status", file=sys.stderr)
        return 1
    print("Test image built successfully")

    print("Running test container...")
    try:
        output = client.containers.run(image_ref, remove=True)
    except (ContainerError, ImageNotFound, APIError) as e:
        print(f"Error: Test container failed to run: {e}", file=sys.stderr)
        return 1
    print(output.decode(errors="replace").strip())
    print("Test container ran successfully")

    print()
    print("Build readiness check:")
    print("  [ok] Docker daemon accessible")
    print("  [ok] Docker build functionality working")
    print("  [ok] Container execution working")
    print()
    print("Ready to build. Run: build-image")
    return 0


def main() -> None:
    """CLI entrypoint for check-build-env command."""
    if len(sys.argv) > 1 and sys.argv[1] in ("-h", "--help"):
        print("Usage: check-build-env")
        print()
        print("Build and run a minimal test image to verify the Docker setup.")
        sys.exit(0)

    settings = load_settings()
    with BuildWorkspace(settings.context_path) as workspace:
        exit_code = check_build_env(workspace, settings.name or DEFAULT_IMAGE_NAME)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
