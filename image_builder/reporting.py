"""Final build report and usage text."""

import sys

from jinja2 import Environment

from image_builder.config import (
    BuildConfig,
    ProjectSettings,
    DEFAULT_IMAGE_NAME,
    DEFAULT_PLATFORM,
    DEFAULT_RETRY_COUNT,
    DEFAULT_TAG,
    MULTI_ARCH_PLATFORMS,
)
from image_builder.executor import BuildResult
from image_builder.validation import ValidationOutcome

USAGE_TEMPLATE = """\
Usage: build-image [OPTIONS]

Build a container image with retries, optional multi-platform output and push.

Options:
  -h, --help               Show this help message
  -n, --name NAME          Image name (default: {{ default_name }})
  -t, --tag TAG            Image tag (default: {{ default_tag }})
  -p, --platform PLATFORM  Platform (default: {{ default_platform }})
  -r, --registry REGISTRY  Registry host (e.g. docker.io/user, ghcr.io/user)
  --multi-arch             Build for {{ multi_arch }}
  --push                   Push image to registry after build
  --retry COUNT            Number of build attempts (default: {{ default_retry }})
  --buildx                 Use docker buildx for the build
  --cache-from SOURCE      Import build cache from external source (implies --buildx)
  --cache-to DEST          Export build cache to external destination (implies --buildx)
  --build-arg ARG=VALUE    Pass a build argument (repeatable)

Defaults can be set in .image-builder.yml in the working directory.

Examples:
  build-image                                  # Basic build
  build-image -n myimage -t v1.0.0             # Custom name and tag
  build-image --multi-arch --push              # Multi-arch build with push
  build-image --buildx --platform linux/arm64  # ARM64 build with buildx
  build-image -r ghcr.io/user --push           # Push to GitHub Container Registry
  build-image --cache-from type=gha --cache-to type=gha
"""

BANNER_TEMPLATE = """\
Starting image build
  Image:       {{ config.image_ref }}
{%- if config.registry %}
  Registry:    {{ config.registry }}
{%- endif %}
  Platform:    {{ config.platform }}
  Push:        {{ "yes" if config.push else "no" }}
  Retry count: {{ config.retry }}
  Use buildx:  {{ "yes" if config.use_buildx else "no" }}
  Command:     {{ command }}
"""

SUCCESS_TEMPLATE = """\
Build completed successfully
  Image:    {{ result.image_ref }}
  Attempts: {{ result.attempts }} of {{ config.retry }}
  Time:     {{ "%.0f" | format(result.elapsed or 0) }}s
{%- if validation is not none %}
  Smoke test: {{ validation.value }}
{%- endif %}

Next steps:
{%- if config.push %}
  Image has been pushed to {{ config.registry or "the default registry" }}
{%- else %}
  To run the container:
    docker run -d -p {{ run_port }}:{{ run_port }} --name {{ config.name }} {{ result.image_ref }}
{%- endif %}
"""

FAILURE_TEMPLATE = """\
Build process failed: {{ reason }}
{%- if attempts %}
  Attempts made: {{ attempts }}
{%- endif %}

Troubleshooting tips:
{%- for hint in hints %}
  - {{ hint }}
{%- endfor %}
  - Check network connectivity to the package registry
  - Configure proxy settings if behind a corporate firewall
  - Try increasing the attempt count with --retry
  - Review the build output above for specific errors
"""

_env = Environment(keep_trailing_newline=True)


def render_usage() -> str:
    return _env.from_string(USAGE_TEMPLATE).render(
        default_name=DEFAULT_IMAGE_NAME,
        default_tag=DEFAULT_TAG,
        default_platform=DEFAULT_PLATFORM,
        default_retry=DEFAULT_RETRY_COUNT,
        multi_arch=MULTI_ARCH_PLATFORMS,
    )


def render_banner(config: BuildConfig, command: str) -> str:
    return _env.from_string(BANNER_TEMPLATE).render(config=config, command=command)


def render_success(
    result: BuildResult,
    config: BuildConfig,
    settings: ProjectSettings,
    validation: ValidationOutcome | None = None,
) -> str:
    return _env.from_string(SUCCESS_TEMPLATE).render(
        result=result,
        config=config,
        validation=validation,
        run_port=settings.run_port,
    )


def render_failure(reason: str, attempts: int = 0, hints: list[str] | None = None) -> str:
    return _env.from_string(FAILURE_TEMPLATE).render(reason=reason, attempts=attempts, hints=hints or [])


def print_usage() -> None:
    print(render_usage(), file=sys.stderr)


def report_success(
    result: BuildResult,
    config: BuildConfig,
    settings: ProjectSettings,
    validation: ValidationOutcome | None = None,
) -> None:
    print()
    print(render_success(result, config, settings, validation))


def report_failure(reason: str, attempts: int = 0, hints: list[str] | None = None) -> None:
    print(file=sys.stderr)
    print(f"Error: {render_failure(reason, attempts, hints)}", file=sys.stderr)
