"""``prfbench expand|grid --config <yaml>``: runs a repository script in this process."""

from __future__ import annotations

import argparse
import runpy
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

SCRIPTS_DIR = Path(__file__).resolve().parents[1] / "scripts"

COMMANDS: Dict[str, Tuple[str, str]] = {
    "expand": ("run_expand_queries.py", "RM3 expansion of one topic set"),
    "grid": ("run_rm3_grid.py", "RM3 grid over fb_docs, fb_terms and original_query_weight"),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prfbench",
        description="RM3 query expansion. Arguments after the command go to its script.",
    )
    commands = parser.add_subparsers(dest="command", metavar="command")
    for name, (script, help_text) in COMMANDS.items():
        # the script parses its own options, including --help
        commands.add_parser(name, help=f"{help_text} ({script})", add_help=False)
    return parser


def run_script(script: Path, args: List[str]) -> int:
    saved_argv = sys.argv
    sys.argv = [str(script), *args]
    try:
        runpy.run_path(str(script), run_name="__main__")
    except SystemExit as exc:
        if exc.code is None or isinstance(exc.code, int):
            return exc.code or 0
        print(exc.code, file=sys.stderr)
        return 1
    finally:
        sys.argv = saved_argv
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args, passthru = parser.parse_known_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    script = SCRIPTS_DIR / COMMANDS[args.command][0]
    if not script.is_file():
        print(f"Error: script not found: {script}", file=sys.stderr)
        return 1
    return run_script(script, passthru)


if __name__ == "__main__":
    raise SystemExit(main())
