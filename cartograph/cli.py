"""CLI entrypoints for cartograph commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from .config import ConfigError, load_config
from .coordinator import AnalysisCoordinator
from .logging import configure_logging, default_log_path
from .models import AnalysisOutcome


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the source tree root (defaults to current directory).",
    )


def _add_json_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON instead of a text summary.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cartograph",
        description="Derive a structural model of a source tree and project it into diagrams.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze a source tree and write snapshots to the output directory.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    _add_path_argument(analyze_parser)
    analyze_parser.add_argument(
        "--changed",
        nargs="+",
        default=[],
        metavar="PATH",
        help="Changed paths; a small set is re-analyzed after the initial full pass.",
    )
    _add_json_option(analyze_parser)

    diagrams_parser = subparsers.add_parser(
        "diagrams",
        help="Analyze a source tree and print the projected diagrams.",
    )
    _add_verbose_option(diagrams_parser, suppress_default=True)
    _add_path_argument(diagrams_parser)
    diagrams_parser.add_argument(
        "--show",
        metavar="ID",
        help="Print the markup of a single diagram.",
    )
    _add_json_option(diagrams_parser)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve the live model and diagrams over HTTP.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    _add_path_argument(serve_parser)
    serve_parser.add_argument("--host", help="Interface to bind (default from config).")
    serve_parser.add_argument("--port", type=int, help="Port to bind (default from config).")
    serve_parser.add_argument(
        "--log-file",
        default=str(default_log_path()),
        help="Also write logs to this file (default: %(default)s).",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for cartograph commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = getattr(args, "log_file", None)
    configure_logging(
        verbose=bool(args.verbose),
        quiet=bool(getattr(args, "json", False)),
        log_file=Path(log_file) if log_file else None,
    )

    root = Path(args.path)
    if not root.is_dir():
        parser.exit(1, f"Source root not found: {args.path}\n")

    if args.command == "analyze":
        with AnalysisCoordinator(root) as coordinator:
            outcome = _run_pass(parser, coordinator)
            if args.changed:
                outcome = _run_pass(parser, coordinator, args.changed)
            if args.json:
                _print_json(coordinator.model.to_dict())
                return
            model = coordinator.model
            print(
                f"Analyzed {len(model.files)} files ({outcome.mode}): "
                f"{len(model.edges)} edges, {len(model.domains)} domains, {outcome.skipped} skipped"
            )
            for layer, count in model.layer_counts().items():
                print(f"  {layer:<8} {count}")
            print(f"Snapshots written to {_relativize(coordinator.store.directory or root)}")
    elif args.command == "diagrams":
        with AnalysisCoordinator(root) as coordinator:
            _run_pass(parser, coordinator)
            diagram_set = coordinator.diagrams
            if args.show:
                record = diagram_set.get(args.show)
                if record is None:
                    parser.exit(1, f"Unknown diagram: {args.show}\n")
                print(record.markup, end="")
                return
            if args.json:
                _print_json(diagram_set.to_dict())
                return
            print(diagram_set.summary)
            for record in diagram_set.diagrams:
                print(f"  [{record.priority:>3}] {record.id:<24} {record.title}")
    elif args.command == "serve":
        from .service import run_service

        try:
            config = load_config(root)
        except ConfigError as exc:
            parser.exit(1, f"{exc}\n")
        run_service(
            root,
            host=args.host or config.service.host,
            port=args.port or config.service.port,
        )
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_pass(
    parser: argparse.ArgumentParser,
    coordinator: AnalysisCoordinator,
    changed: list[str] | None = None,
) -> AnalysisOutcome:
    outcome = coordinator.analyze(changed) if changed else coordinator.analyze_full()
    if not outcome.accepted:
        parser.exit(1, f"cartograph analysis rejected: {outcome.reason}\n")
    return outcome


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
