"""CLI entry point and argument parsing."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from implgen.internals.version import print_banner


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="implgen",
        description="Expand declarations annotated with #[implgen(T -> A, B)] into one copy per type.",
    )
    ap.add_argument("--version", action="store_true", help="Show version and exit")
    sub = ap.add_subparsers(dest="command")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("source", help="Path to the source file")
    common.add_argument("--config", metavar="PATH",
                        help="implgen.toml or pyproject.toml to read (default: search upwards from the source)")
    common.add_argument("--attribute", metavar="NAME",
                        help="Name of the expansion attribute (default: implgen)")
    common.add_argument("--override-attribute", metavar="NAME",
                        help="Name of the per-member override attribute (default: implgen_override)")
    common.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")

    exp = sub.add_parser("expand", parents=[common], help="Write the expanded source")
    exp.add_argument("-o", "--out", metavar="OUT", help="Output path (default: stdout)")
    exp.add_argument("--no-template-comments", action="store_true",
                     help="Leave ${T} markers in comments untouched")
    exp.add_argument("--no-template-strings", action="store_true",
                     help="Leave ${T} markers in string literals untouched")
    exp.add_argument("--no-template-macros", action="store_true",
                     help="Leave ${T} markers in macro bodies untouched")

    sub.add_parser("check", parents=[common], help="Validate bindings and override markers only")
    return ap


def main(argv: list[str] | None = None) -> int:
    """Main entry point; returns 0 (clean), 1 (warnings only) or 2 (errors)."""
    ap = _build_parser()
    args = ap.parse_args(argv)

    if args.version:
        print_banner()
        return 0

    if args.command is None:
        ap.print_usage(sys.stderr)
        print("error: a command is required (expand or check)", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        stream=sys.stderr,
    )

    from implgen.compiler.config import ConfigError, load_config
    from implgen.compiler.host import expand_source
    from implgen.internals.report import Reporter

    src_path = Path(args.source).resolve()
    try:
        src = src_path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"error: cannot read {src_path}: {e}", file=sys.stderr)
        return 2

    try:
        config = load_config(Path(args.config) if args.config else None, start=src_path)
        overrides = dict(attribute=args.attribute, override_attribute=args.override_attribute)
        if args.command == "expand":
            overrides.update(
                template_comments=False if args.no_template_comments else None,
                template_strings=False if args.no_template_strings else None,
                template_macros=False if args.no_template_macros else None,
            )
        config = config.with_overrides(**overrides)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    if config.source:
        logging.getLogger(__name__).debug("settings from %s", config.source)

    reporter = Reporter(source=src, filename=str(src_path))
    result = expand_source(src, reporter, config, check_only=args.command == "check")
    reporter.print()

    # declarations that failed are written unchanged
    if args.command == "expand":
        if args.out:
            Path(args.out).write_text(result, encoding="utf-8")
        else:
            sys.stdout.write(result)
    return reporter.exit_code()


if __name__ == "__main__":
    raise SystemExit(main())
