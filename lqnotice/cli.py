"""Command-line entry point for the notice monitor."""

from __future__ import annotations

import argparse
import sys

from .monitor import load_config, run

DEFAULT_CONFIG_PATH = "config/settings.json"


def main(argv: list[str] | None = None) -> int:
    """Load the configuration and run the monitor; return the exit status."""
    parser = argparse.ArgumentParser(
        prog="lqnotice",
        description="Watch a notice feed and send alerts when keywords appear.",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"path of the JSON configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    args = parser.parse_args(argv)

    try:
        run(load_config(args.config))
    except Exception as exc:
        print(f"\n错误: {exc}", file=sys.stderr)
        print("程序异常终止", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())