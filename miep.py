"""MIEP entry point."""

from __future__ import annotations
import argparse
import sys
import time
from typing import List, Optional

from console import Console
from interpreter import ExitSignal, Interpreter, MiepRuntimeError, MiepSyntaxError, TracebackFormatter, read_program

USAGE = "Usage: miep file"


def run_cli(argv: Optional[List[str]] = None, console: Optional[Console] = None) -> int:
    parser = argparse.ArgumentParser(description="MIEP line-numbered interpreter")
    parser.add_argument("program", nargs="?", help="Source file path or literal source with -source")
    parser.add_argument("-source", "--source", dest="source_mode", action="store_true", help="Treat program argument as literal source text")
    parser.add_argument("-verbose", "--verbose", dest="verbose", action="store_true", help="Print a traceback with variable snapshots on fatal errors")
    parser.add_argument("--traceback-json", action="store_true", help="Also emit JSON traceback")
    parser.add_argument("-seed", "--seed", type=int, default=None, help="Seed for the random number generator")
    args = parser.parse_args(argv)

    if args.program is None:
        print(USAGE)
        return 0

    if args.source_mode:
        source_text = args.program
        filename = "<string>"
    else:
        filename = args.program
        try:
            source_text = read_program(filename)
        except OSError as exc:
            print(f"Error loading file: {exc}", file=sys.stderr)
            return 1

    seed = args.seed if args.seed is not None else time.time_ns()
    interpreter = Interpreter(source=source_text, filename=filename, verbose=args.verbose, console=console, seed=seed)
    try:
        interpreter.run()
    except ExitSignal as sig:
        return sig.code
    except MiepSyntaxError as error:
        # The message is already on stdout; the run just stops.
        if args.verbose or args.traceback_json:
            _print_traceback(interpreter, error, args.verbose, args.traceback_json)
        return 0
    except MiepRuntimeError as error:
        _print_traceback(interpreter, error, args.verbose, args.traceback_json)
        return 1
    return 0


def _print_traceback(interpreter: Interpreter, error: MiepRuntimeError, verbose: bool, as_json: bool) -> None:
    formatter = TracebackFormatter(interpreter)
    print(file=sys.stderr)
    print(formatter.format_text(error, verbose=verbose), file=sys.stderr)
    if as_json:
        print(formatter.to_json(error), file=sys.stderr)


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
