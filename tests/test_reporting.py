from image_builder.config import BuildConfig, ProjectSettings
from image_builder.executor import BuildResult
from image_builder.reporting import render_banner, render_failure, render_success, render_usage
from image_builder.validation import ValidationOutcome


def test_usage_lists_options():
    usage = render_usage()
    for option in ["--name", "--tag", "--platform", "--registry", "--multi-arch", "--push",
                   "--retry", "--buildx", "--cache-from", "--cache-to", "--build-arg"]:
        assert option in usage


def test_banner_shows_registry_only_when_set():
    assert "Registry:" not in render_banner(BuildConfig(name="x"), "docker build -t x:latest .")
    banner = render_banner(BuildConfig(name="x", registry="ghcr.io/acme"), "docker build")
    assert "Registry:    ghcr.io/acme" in banner
    assert "Image:       ghcr.io/acme/x:latest" in banner


def test_success_local_build():
    config = BuildConfig(name="x", tag="v1")
    result = BuildResult(success=True, attempts=2, image_ref="x:v1", elapsed=42.4)
    report = render_success(result, config, ProjectSettings(run_port=9000), ValidationOutcome.VERSION)
    assert "Image:    x:v1" in report
    assert "Time:     42s" in report
    assert "Smoke test: version" in report
    assert "docker run -d -p 9000:9000 --name x x:v1" in report


def test_success_pushed_build():
    config = BuildConfig(name="x", registry="ghcr.io/acme", push=True)
    result = BuildResult(success=True, attempts=1, image_ref=config.image_ref, elapsed=3.0)
    report = render_success(result, config, ProjectSettings(), ValidationOutcome.SKIPPED)
    assert "Image has been pushed to ghcr.io/acme" in report
    assert "docker run" not in report


def test_failure_report():
    report = render_failure("no successful build after 3 attempts", attempts=3, hints=["Check the daemon"])
    assert "Attempts made: 3" in report
    assert "- Check the daemon" in report
    assert "--retry" in report


def test_failure_report_without_attempts():
    assert "Attempts made" not in render_failure("Docker is not installed")
