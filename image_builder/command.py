"""Build command construction for docker build / docker buildx build."""

import shlex
from dataclasses import dataclass

from image_builder.config import BuildConfig

ENGINE_BINARY = "docker"


@dataclass(frozen=True)
class BuildCommand:
    """Argument vector for one build invocation, executed without a shell."""
    subcommand: tuple[str, ...]
    flags: tuple[str, ...]
    context: str = "."

    @property
    def argv(self) -> list[str]:
        return [ENGINE_BINARY, *self.subcommand, *self.flags, self.context]

    def render(self) -> str:
        """Shell-quoted form for display only."""
        return shlex.join(self.argv)

    def has_flag(self, flag: str) -> bool:
        return flag in self.flags


def build_command(config: BuildConfig) -> BuildCommand:
    """Derive the build command from a BuildConfig.

    Pure function: identical configs produce identical commands.
    """
    flags: list[str] = []

    if config.use_buildx:
        subcommand = ("buildx", "build")
        flags.extend(["--platform", config.platform])

        if config.cache_from:
            flags.extend(["--cache-from", config.cache_from])
        if config.cache_to:
            flags.extend(["--cache-to", config.cache_to])

        # --push publishes straight to the registry, --load imports into the local engine
        flags.append("--push" if config.push else "--load")
    else:
        subcommand = ("build",)

    flags.extend(["-t", config.image_ref])

    for build_arg in config.build_args:
        flags.extend(["--build-arg", build_arg])

    return BuildCommand(subcommand=subcommand, flags=tuple(flags))
