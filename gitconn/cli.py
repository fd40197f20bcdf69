"""Command line entry point: report which repository config a URL resolves to."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .config import ConfigError, load_config
from .connections import HttpConnectionFactory
from .selector import Ambiguous, Resolution, Resolved
from .templates import MalformedTemplateError

LOG = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitconn",
        description="Show which configured repository URI template each URL resolves to.",
    )
    parser.add_argument("urls", nargs="+", metavar="URL", help="outbound URL to resolve")
    parser.add_argument("-c", "--config", type=Path, default=None, help="path to config.toml")
    parser.add_argument("-v", "--verbose", action="store_true", help="log resolution diagnostics")
    return parser


def describe(outcome: Resolution) -> str:
    """One-line summary of a resolution."""

    if isinstance(outcome, Resolved):
        return outcome.template
    if isinstance(outcome, Ambiguous):
        return "ambiguous: " + ", ".join(outcome.candidates)
    return "no match"


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.config is not None and not args.config.is_file():
        LOG.error("Config file not found: %s", args.config)
        return 2

    factory = HttpConnectionFactory()
    try:
        factory.add_configuration(load_config(args.config))
    except (ConfigError, MalformedTemplateError) as exc:
        LOG.error("%s", exc)
        return 2
    factory.selector.freeze()

    status = 0
    for url in args.urls:
        outcome = factory.selector.resolve(url)
        print(f"{url} -> {describe(outcome)}")
        if not isinstance(outcome, Resolved):
            status = 1
    return status


__all__ = ["describe", "main"]
