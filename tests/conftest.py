import pytest
from docker.errors import DockerException, ImageNotFound

from image_builder.config import clear_settings_cache


class FakeImage:
    def __init__(self, ref: str):
        self.ref = ref
        self.short_id = "sha256:abc123"
        self.attrs = {"Size": 52428800, "Created": "2026-01-01T00:00:00Z"}


class FakeImages:
    def __init__(self):
        self.local: set[str] = set()
        self.pushed: list[tuple[str, str]] = []
        self.built: list[str] = []
        self.removed: list[str] = []
        self.push_output: list[dict] = [{"status": "Pushed"}]

    def get(self, ref):
        if ref not in self.local:
            raise ImageNotFound(f"No such image: {ref}")
        return FakeImage(ref)

    def push(self, repository, tag=None, stream=False, decode=False):
        self.pushed.append((repository, tag))
        return iter(self.push_output)

    def build(self, path, dockerfile, tag, rm=True):
        self.built.append(tag)
        self.local.add(tag)
        return FakeImage(tag), iter([])

    def remove(self, ref, force=False):
        if ref not in self.local:
            raise ImageNotFound(f"No such image: {ref}")
        self.local.discard(ref)
        self.removed.append(ref)


class FakeContainer:
    def __init__(self, exit_code: int):
        self.exit_code = exit_code
        self.short_id = "c0ffee"
        self.removed = False

    def wait(self, timeout=None):
        return {"StatusCode": self.exit_code}

    def remove(self, force=False):
        self.removed = True


class FakeContainers:
    def __init__(self):
        # Exit code per probe argument, e.g. {"--help": 0}
        self.exit_codes: dict[str, int] = {}
        self.runs: list[tuple[str, list[str] | None]] = []
        self.started: list[FakeContainer] = []

    def run(self, image, command=None, detach=False, remove=False):
        self.runs.append((image, command))
        key = command[0] if command else ""
        exit_code = self.exit_codes.get(key, 1)
        if not detach:
            return b"Hello from the build environment test!\n"
        container = FakeContainer(exit_code)
        self.started.append(container)
        return container


class FakeDockerClient:
    def __init__(self, reachable: bool = True):
        self.reachable = reachable
        self.images = FakeImages()
        self.containers = FakeContainers()

    def ping(self):
        if not self.reachable:
            raise DockerException("Error while fetching server API version")
        return True

    def version(self):
        return {"Version": "27.3.1"}


@pytest.fixture
def fake_client():
    return FakeDockerClient()


@pytest.fixture
def unreachable_client():
    return FakeDockerClient(reachable=False)


@pytest.fixture(autouse=True)
def reset_settings_cache():
    clear_settings_cache()
    yield
    clear_settings_cache()
