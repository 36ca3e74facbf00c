#!/usr/bin/env python3
"""
cfgview CLI - control flow graphs and layered layouts from source files.

Usage:
    cfgview cfg <file>                  Control flow graph as JSON
    cfgview layout <file>               Positioned blocks, edges and back edges
    cfgview kinds                       Node-kind classification tables
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .languages import SUPPORTED_LANGUAGES, detect_language_with_default


def _read_source(path: str) -> str:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if not p.is_file():
        raise FileNotFoundError(f"Not a file: {path}")
    return p.read_text(encoding="utf-8", errors="replace")


def _add_source_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("file", help="Source file")
    p.add_argument(
        "--lang",
        default=None,
        choices=SUPPORTED_LANGUAGES,
        help="Language (auto-detected from extension if not specified)",
    )


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog="cfgview",
        description="Control flow graphs and layered layouts from source code",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    cfgview cfg src/main.py             # CFG for a whole file
    cfgview layout src/lib.rs           # Block positions for rendering
    cfgview kinds                       # Which node kinds are branches, loops, ...

Configuration:
    .cfgview/config.json (or $CFGVIEW_CONFIG) may set "summary_max" and
    "layout" sizing keys (padding_x, min_width, gap_y, ...).
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    # Shell completion support
    try:
        import shtab

        shtab.add_argument_to(parser, ["--print-completion", "-s"])
    except ImportError:
        pass  # shtab is optional

    subparsers = parser.add_subparsers(dest="command", required=True)

    # cfgview cfg <file>
    cfg_p = subparsers.add_parser(
        "cfg",
        help="Control flow graph",
        description="Build a control flow graph for a source file, showing branches, loops and matches.",
        epilog="Example: cfgview cfg src/processor.py",
    )
    _add_source_args(cfg_p)

    # cfgview layout <file>
    layout_p = subparsers.add_parser(
        "layout",
        help="Layered layout of the control flow graph",
        description="Lay out the control flow graph in layers and report block coordinates and back edges.",
        epilog="Example: cfgview layout src/processor.py",
    )
    _add_source_args(layout_p)

    # cfgview kinds
    subparsers.add_parser("kinds", help="Show node-kind classification tables")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Import here to avoid slow startup for --help
    from .cfg_builder import build_cfg
    from .config import layout_config_from, load_config
    from .layout import find_back_edges, layout_bounds, layout_cfg
    from .node_kinds import DEFAULT_KINDS
    from .parsing import parse_source

    try:
        if args.command == "kinds":
            print(json.dumps(DEFAULT_KINDS.to_dict(), indent=2))
            return

        source = _read_source(args.file)
        lang = args.lang or detect_language_with_default(args.file)
        config = load_config()

        root = parse_source(source, lang)
        cfg = build_cfg(root, source, summary_max=config["summary_max"])

        if args.command == "cfg":
            print(json.dumps(cfg.to_dict(), indent=2, ensure_ascii=False))

        elif args.command == "layout":
            blocks = layout_cfg(cfg, config=layout_config_from(config))
            width, height = layout_bounds(blocks)
            result = {
                "blocks": [lb.to_dict() for lb in blocks],
                "edges": [e.to_dict() for e in cfg.edges],
                "back_edges": sorted(find_back_edges(cfg, blocks)),
                "bounds": {"width": width, "height": height},
            }
            print(json.dumps(result, indent=2, ensure_ascii=False))

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ImportError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
