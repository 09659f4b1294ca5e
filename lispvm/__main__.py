"""Runs the lispvm interpreter: evaluates the given files, then starts the interactive loop."""

import argparse
import sys

from lispvm.errors import LispError
from lispvm.interpreter import Interpreter
from lispvm.repl import BANNER, Repl
from lispvm.types.value import to_lisp_string


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lispvm", description="Bytecode-compiled Lisp interpreter")
    parser.add_argument("files", help="files to evaluate before the interactive loop", nargs="*")
    parser.add_argument("--no-repl", help="exit after evaluating the files", action="store_true")
    parser.add_argument("--no-prelude", help="do not load the core prelude", action="store_true")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    interp = Interpreter(prelude=None if args.no_prelude else 'auto')

    for path in args.files:
        try:
            result = interp.eval_file(path)
        except (LispError, OSError) as ex:
            print(f"{path}: {ex}", file=sys.stderr)
            return 1
        print(to_lisp_string(result))

    if not args.no_repl:
        print(BANNER)
        Repl(interp).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
