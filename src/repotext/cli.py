"""
CLI entrypoint for repotext package.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from colorama import Fore, Style, just_fix_windows_console

from . import __version__, create_instances
from .config import Options
from .core import RepoTextError

logger = logging.getLogger("repotext")


class ColorFormatter(logging.Formatter):
    """``[repotext] message`` coloured by level."""

    COLORS = {
        logging.DEBUG: Style.DIM,
        logging.INFO: Fore.GREEN,
        logging.WARNING: Fore.YELLOW,
        logging.ERROR: Fore.RED,
        logging.CRITICAL: Fore.RED + Style.BRIGHT,
    }

    def format(self, record: logging.LogRecord) -> str:
        msg = f"[repotext] {super().format(record)}"
        color = self.COLORS.get(record.levelno)
        return f"{color}{msg}{Style.RESET_ALL}" if color else msg


def _configure_logging(verbose: bool) -> None:
    just_fix_windows_console()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ColorFormatter("%(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="repotext",
        description="Dump repository file contents into a single annotated text file.",
    )
    p.add_argument("-c", "--config", help="Path to a JSON config file")
    p.add_argument("-o", "--output", help="Output file path")
    p.add_argument(
        "-w", "--watch", action="store_true", help="Watch for file changes and update output file"
    )
    p.add_argument(
        "-t", "--tree", action="store_true", help="Prepend a directory tree to the output"
    )
    p.add_argument(
        "-i", "--interactive", action="store_true", help="Pick files interactively with fzf"
    )
    p.add_argument("--root", type=Path, default=Path("."), help="Project root dir")
    p.add_argument(
        "--strict-config",
        action="store_true",
        help="Fail on an invalid config file instead of falling back to defaults",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    ns = p.parse_args(argv)
    if ns.watch and ns.interactive:
        p.error("--watch and --interactive cannot be combined")
    return ns


def main(argv: Optional[List[str]] = None) -> None:
    ns = _parse_args(argv)
    _configure_logging(ns.verbose)
    root = ns.root.resolve()
    options = Options(
        config=str(Path(ns.config).resolve()) if ns.config else None,
        output=str(Path(ns.output).resolve()) if ns.output else None,
        include_tree=ns.tree,
        strict_config=ns.strict_config,
    )
    instances = create_instances(root)
    watcher = instances["watcher"]

    try:
        if ns.watch:
            logger.info("Watching repository for changes... (Ctrl+C to stop)")
            try:
                watcher.watch(options)
            except KeyboardInterrupt:
                watcher.stop()
                logger.info("Stopped watching.")
        elif ns.interactive:
            instances["selector"].select_files(options)
        else:
            out_path = instances["text_dumper"].generate_text_dump(options)
            logger.info("Repository contents have been dumped to %s", out_path)

    except RepoTextError as e:
        logger.error("Error: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.error("Unexpected error: %s", e)
        sys.exit(1)

if __name__ == "__main__":
    main()
