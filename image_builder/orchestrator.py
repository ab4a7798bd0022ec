"""Build pipeline: dependencies, preflight, build with retries, smoke test, report."""

import time
from functools import partial
from typing import Callable

import docker

from image_builder.command import BuildCommand, build_command
from image_builder.config import BuildConfig, ProjectSettings
from image_builder.dependencies import DependencyError, check_build_context, check_dependencies, ensure_builder
from image_builder.engine import describe_image, get_docker_client, push_image
from image_builder.executor import RetryExecutor, run_command
from image_builder.preflight import check_network_connectivity
from image_builder.reporting import render_banner, report_failure, report_success
from image_builder.validation import validate_image
from image_builder.workspace import BuildWorkspace


def run_build(
    config: BuildConfig,
    settings: ProjectSettings,
    client_factory: Callable[[], docker.DockerClient] = get_docker_client,
    run: Callable[[BuildCommand], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Run the whole build pipeline for one configuration.

    Transient artifacts are removed on every exit path.

    Returns:
        Exit code (0 for success)
    """
    context = settings.context_path
    command = build_command(config)

    print(render_banner(config, command.render()))

    with BuildWorkspace(context):
        try:
            client = check_dependencies(config, client_factory)
            if config.use_buildx:
                ensure_builder(settings.builder)
            check_network_connectivity(settings.preflight_url)
            check_build_context(context)
        except DependencyError as e:
            report_failure(str(e), hints=e.hints)
            return 1

        print(f"Building image: {config.image_ref}")
        executor = RetryExecutor(
            config.retry,
            run=run or partial(run_command, cwd=context),
            sleep=sleep,
        )
        result = executor.execute(command, config.image_ref)

        if not result.success:
            report_failure(f"no successful build after {result.attempts} attempts", attempts=result.attempts)
            return 1

        # buildx pushes as part of the build, plain docker build needs a separate push
        if config.push and not config.use_buildx and not push_image(client, config):
            report_failure(
                f"could not push {config.image_ref}",
                attempts=result.attempts,
                hints=["Log in to the registry with 'docker login' before pushing"],
            )
            return 1

        # buildx --push is the only mode that leaves nothing in the local engine
        if not (config.use_buildx and config.push):
            describe_image(client, config.image_ref)

        validation = validate_image(client, config)
        report_success(result, config, settings, validation)
        return 0
