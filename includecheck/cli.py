"""CLI entrypoints for includecheck commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List

from .config import CheckerConfig, ConfigError, load_config
from .engine import FatalAnalysisError, IncludeChecker
from .logging import configure_logging
from .report import EXIT_FATAL, EXIT_OK, exit_code, render_json, render_text, write_xml
from .scanner import SourceScanner


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Show per-file, per-tag and per-include traces.",
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


def _add_config_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c",
        "--config",
        help="Configuration file or directory containing .includecheck.yml.",
    )
    parser.add_argument(
        "-I",
        "--include-path",
        dest="include_paths",
        action="append",
        default=[],
        metavar="DIR",
        help="Add an include search path (repeatable).",
    )
    parser.add_argument(
        "-t",
        "--type-alias-prefix",
        dest="prefixes",
        action="append",
        default=[],
        metavar="PREFIX",
        help="Treat PREFIX+Type as a use of Type (repeatable).",
    )
    parser.add_argument(
        "-T",
        "--type-alias-suffix",
        dest="suffixes",
        action="append",
        default=[],
        metavar="SUFFIX",
        help="Treat Type+SUFFIX as a use of Type (repeatable).",
    )
    parser.add_argument(
        "--cache",
        help="JSON file caching extracted tags between runs.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Worker threads per phase (1 disables the pool).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="includecheck",
        description="Report #include directives whose headers declare nothing the includer uses.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only log warnings and errors.",
    )
    parser.add_argument("--log-file", help="Also write a debug log to this file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser(
        "check",
        help="Check files or directories for unused includes.",
    )
    _add_verbose_option(check_parser, suppress_default=True)
    _add_config_options(check_parser)
    check_parser.add_argument(
        "paths",
        nargs="*",
        help="Files or directories to check (defaults to the configuration root).",
    )
    check_parser.add_argument(
        "-D",
        "--directory",
        dest="directories",
        action="append",
        default=[],
        help="Directory to check recursively (repeatable).",
    )
    check_parser.add_argument(
        "-E",
        "--exclude-path",
        dest="exclude_paths",
        action="append",
        default=[],
        help="File or directory to skip and never report (repeatable).",
    )
    check_parser.add_argument(
        "-i",
        "--interface-header",
        dest="interface_files",
        action="append",
        default=[],
        help="Mark a header as an interface header (repeatable).",
    )
    check_parser.add_argument(
        "-g",
        "--ignored-header",
        dest="ignored_files",
        action="append",
        default=[],
        help="Mark a header as ignored: including it is never reported (repeatable).",
    )
    check_parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Output format for diagnostics.",
    )
    check_parser.add_argument(
        "-x",
        "--xml-output",
        help="Also write unused includes to this XML file.",
    )

    tags_parser = subparsers.add_parser(
        "tags",
        help="List the names each file declares, derived aliases included.",
    )
    _add_verbose_option(tags_parser, suppress_default=True)
    _add_config_options(tags_parser)
    tags_parser.add_argument("paths", nargs="+", help="Files or directories to inspect.")
    tags_parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Output format for tags.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service (requires the 'service' extra).",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def _load(args: argparse.Namespace, parser: argparse.ArgumentParser) -> CheckerConfig:
    if args.config:
        config_path = Path(args.config).expanduser()
        if not config_path.exists():
            parser.exit(EXIT_FATAL, f"includecheck: configuration file {config_path} does not exist\n")
        config = load_config(config_path)
    else:
        config = load_config(Path.cwd())

    cwd = Path.cwd()
    config.search_paths.extend((cwd / path).resolve() for path in args.include_paths)
    config.type_alias_prefixes.extend(args.prefixes)
    config.type_alias_suffixes.extend(args.suffixes)
    config.exclude_paths.extend((cwd / path).resolve().as_posix() for path in getattr(args, "exclude_paths", []))
    config.interface_files.extend(getattr(args, "interface_files", []))
    config.ignored_files.extend(getattr(args, "ignored_files", []))
    if args.cache:
        config.cache_path = (cwd / args.cache).resolve()
    if args.workers is not None:
        if args.workers < 1:
            raise ConfigError("--workers must be a positive integer")
        config.workers = args.workers
    return config


def _collect(config: CheckerConfig, targets: List[str]) -> List[str]:
    scanner = SourceScanner(config.extensions, config.exclude_paths)
    return scanner.collect(targets or [str(config.root)])


def _run_check(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    try:
        config = _load(args, parser)
        files = _collect(config, list(args.paths) + list(args.directories))
        result = IncludeChecker(config).run(files)
    except FileNotFoundError as exc:
        parser.exit(EXIT_FATAL, f"includecheck: {exc}\n")
    except (ConfigError, FatalAnalysisError) as exc:
        parser.exit(EXIT_FATAL, f"includecheck: {exc}\n")

    base = Path.cwd()
    if args.format == "json":
        print(render_json(result.diagnostics))
    else:
        sys.stdout.write(render_text(result.diagnostics, base))
    if args.xml_output:
        write_xml(result.diagnostics, Path(args.xml_output), base)
    return exit_code(result.diagnostics)


def _run_tags(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    try:
        config = _load(args, parser)
        files = _collect(config, list(args.paths))
        checker = IncludeChecker(config)
        analyses = [checker.extract(path) for path in files]
    except FileNotFoundError as exc:
        parser.exit(EXIT_FATAL, f"includecheck: {exc}\n")
    except (ConfigError, FatalAnalysisError) as exc:
        parser.exit(EXIT_FATAL, f"includecheck: {exc}\n")

    tags = [tag for analysis in analyses if analysis is not None for tag in analysis.tags]
    if args.format == "json":
        print(json.dumps([tag.to_dict() for tag in tags], indent=2))
        return EXIT_OK
    for tag in tags:
        line = f"{tag.qualified_name}\t{tag.kind.value}\t{tag.path}:{tag.line}"
        if tag.derived:
            line += f"\t{tag.derivation_rule}({tag.base_name})"
        print(line)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint for includecheck commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        quiet=bool(args.quiet),
        log_file=Path(args.log_file) if args.log_file else None,
    )

    if args.command == "check":
        return _run_check(args, parser)
    if args.command == "tags":
        return _run_tags(args, parser)
    if args.command == "serve":
        try:
            from .service.app import run_service

            run_service(host=args.host, port=args.port)
        except (ModuleNotFoundError, RuntimeError) as exc:
            parser.exit(EXIT_FATAL, f"includecheck: {exc}\n")
        return EXIT_OK
    parser.exit(EXIT_FATAL, "Unknown command\n")  # pragma: no cover - argparse enforces choices
    return EXIT_FATAL  # pragma: no cover


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
