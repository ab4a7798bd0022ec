"""CLI for build-image."""

import sys

from image_builder.config import HelpRequested, UsageError, load_settings, parse_args
from image_builder.orchestrator import run_build
from image_builder.reporting import print_usage


def run(args: list[str]) -> int:
    """Parse options and run the build. Returns the process exit code."""
    settings = load_settings()

    try:
        config = parse_args(args, settings)
    except HelpRequested:
        print_usage()
        return 0
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        print_usage()
        return 1

    return run_build(config, settings)


def main() -> None:
    """CLI entrypoint for build-image command."""
    try:
        sys.exit(run(sys.argv[1:]))
    except (RuntimeError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
