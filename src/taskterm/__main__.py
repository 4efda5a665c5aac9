"""CLI entrypoint for TaskTerm."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from importlib import metadata
from pathlib import Path

from .app import TaskTermApp
from .config import ensure_config_dir, load_config
from .context import AppContext
from .logging_utils import configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskterm",
        description="TaskTerm - a single-screen terminal task list",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to an alternative config.toml",
    )
    parser.add_argument(
        "--memory",
        action="store_true",
        help="Keep tasks in memory only (nothing is written to disk)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Load configuration, handle CLI flags, and run the TUI."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version("taskterm")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"taskterm {version}")
        return

    if args.config is None:
        ensure_config_dir()
    config = load_config(config_path=args.config)
    if args.memory:
        config["storage"]["backend"] = "memory"
    configure_logging(config["logging"])

    app = TaskTermApp(AppContext.from_config(config))
    app.run()


if __name__ == "__main__":
    main()
