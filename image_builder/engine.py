"""Docker engine access through the Docker SDK."""

import sys

import docker
from docker.errors import APIError, DockerException, ImageNotFound

from image_builder.config import BuildConfig


def get_docker_client() -> docker.DockerClient:
    """Get Docker client for the host daemon."""
    return docker.from_env()


def get_engine_version(client: docker.DockerClient) -> str:
    """Get the daemon version, 'unknown' if it can't be determined."""
    try:
        return client.version().get("Version", "unknown")
    except (APIError, DockerException):
        return "unknown"


def describe_image(client: docker.DockerClient, image_ref: str) -> bool:
    """Print id, size and creation date of a local image.

    Returns True if the image was found.
    """
    try:
        image = client.images.get(image_ref)
    except ImageNotFound:
        print(f"Warning: Image not found in local engine: {image_ref}", file=sys.stderr)
        return False
    except (APIError, DockerException) as e:
        print(f"Warning: Could not inspect image {image_ref}: {e}", file=sys.stderr)
        return False

    size_mb = image.attrs.get("Size", 0) / (1024 * 1024)
    print("Image details:")
    print(f"  Reference: {image_ref}")
    print(f"  ID:        {image.short_id}")
    print(f"  Size:      {size_mb:.1f} MB")
    print(f"  Created:   {image.attrs.get('Created', 'unknown')}")
    return True


def push_image(client: docker.DockerClient, config: BuildConfig) -> bool:
    """Push a locally built image (plain docker build mode).

    Registry credentials come from the engine's own login state.
    """
    repository = config.image_ref.rsplit(":", 1)[0]
    print(f"Pushing image: {config.image_ref}")
    try:
        for line in client.images.push(repository, tag=config.tag, stream=True, decode=True):
            if "error" in line:
                print(f"Error: Push failed: {line['error']}", file=sys.stderr)
                return False
    except (APIError, DockerException) as e:
        print(f"Error: Push failed: {e}", file=sys.stderr)
        return False

    print(f"Pushed: {config.image_ref}")
    return True
