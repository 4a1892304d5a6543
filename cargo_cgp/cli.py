"""CLI entrypoints for cargo-cgp commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

from .config import MESSAGE_FORMATS, CgpConfig, ConfigError, load_config
from .logging import configure_logging
from .pipeline import CheckSession
from .runner import CargoInvocationError, CargoRunner

INTERRUPTED_EXIT = 130


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Log analysis decisions to stderr for troubleshooting.",
    }
    kwargs["default"] = argparse.SUPPRESS if suppress_default else False
    parser.add_argument("-v", "--verbose", **kwargs)


def _add_output_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--message-format",
        choices=MESSAGE_FORMATS,
        default=None,
        help="Write rendered text (human) or cargo JSON messages with CGP records (json).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a .cargo-cgp.yml file or the directory containing it.",
    )
    parser.add_argument(
        "--show-original",
        action="store_true",
        default=None,
        help="Append the compiler's original text beneath each rewritten diagnostic.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cargo-cgp",
        description="Run cargo check and rewrite CGP trait errors into their root causes.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write debug logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser(
        "check",
        help="Run `cargo check` and post-process its diagnostics.",
    )
    _add_verbose_option(check_parser, suppress_default=True)
    _add_output_options(check_parser)
    check_parser.add_argument(
        "cargo_args",
        nargs=argparse.REMAINDER,
        help="Arguments forwarded to `cargo check` (use -- to separate them).",
    )

    render_parser = subparsers.add_parser(
        "render",
        help="Post-process a saved `cargo check --message-format=json` stream.",
    )
    _add_verbose_option(render_parser, suppress_default=True)
    _add_output_options(render_parser)
    render_parser.add_argument(
        "file",
        nargs="?",
        default=None,
        help="File holding the JSON stream (defaults to stdin).",
    )
    return parser


def _strip_subcommand_token(argv: List[str]) -> List[str]:
    # `cargo cgp check` invokes us as `cargo-cgp cgp check`.
    if argv and argv[0] == "cgp":
        return argv[1:]
    return argv


def _resolve_config(args: argparse.Namespace) -> CgpConfig:
    config_path = Path(args.config) if args.config else Path.cwd()
    config = load_config(config_path)
    if args.message_format is not None:
        config.message_format = args.message_format
    if args.show_original is not None:
        config.show_original = bool(args.show_original)
    return config


def _cargo_args(config: CgpConfig, forwarded: List[str]) -> List[str]:
    if forwarded and forwarded[0] == "--":
        forwarded = forwarded[1:]
    return [*config.extra_args, *forwarded]


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for cargo-cgp commands."""
    parser = _build_parser()
    args = parser.parse_args(_strip_subcommand_token(list(sys.argv[1:] if argv is None else argv)))

    log_file = Path(args.log_file) if args.log_file else None
    configure_logging(verbose=bool(args.verbose), log_file=log_file)

    try:
        config = _resolve_config(args)
    except ConfigError as exc:
        parser.exit(2, f"cargo-cgp: {exc}\n")

    session = CheckSession(config)

    if args.command == "check":
        runner = CargoRunner(config.cargo_executable())
        try:
            status = runner.run(session, _cargo_args(config, list(args.cargo_args)))
        except CargoInvocationError as exc:
            parser.exit(1, f"cargo-cgp: {exc}\n")
        except KeyboardInterrupt:
            parser.exit(INTERRUPTED_EXIT)
        except OSError as exc:
            parser.exit(1, f"cargo-cgp: failed to write output: {exc}\n")
        parser.exit(status)
    elif args.command == "render":
        try:
            if args.file:
                with open(args.file, encoding="utf-8") as handle:
                    for line in handle:
                        session.feed(line)
            else:
                for line in sys.stdin:
                    session.feed(line)
            session.finish()
        except KeyboardInterrupt:
            parser.exit(INTERRUPTED_EXIT)
        except OSError as exc:
            parser.exit(1, f"cargo-cgp render failed: {exc}\n")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


if __name__ == "__main__":
    main(sys.argv[1:])
