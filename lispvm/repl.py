"""
Line-oriented interactive loop.

Lines accumulate in a buffer until they read as complete forms; a form cut off
mid-way (LispEndOfInput) keeps the buffer and switches to the continuation
prompt. Every other LispError is reported and the buffer is dropped.
"""

from __future__ import annotations

from typing import Callable, Optional

from lispvm.errors import LispEndOfInput, LispError
from lispvm.interpreter import Interpreter
from lispvm.types.value import to_lisp_string

BANNER = "Rust Lisp!"
PROMPT = "> "
QUIT = "quit"
PRINT_STACK = ",print-stack"


class Repl:
    def __init__(self, interp: Interpreter):
        self.interp = interp
        self.pending: list[str] = []
        self.done = False

    @property
    def prompt(self) -> str:
        return "" if self.pending else PROMPT

    def feed(self, line: str) -> Optional[str]:
        """Handle one input line; returns the text to print, if any."""
        command = line.strip()
        if command == QUIT:
            self.pending.clear()
            self.done = True
            return None
        if command == PRINT_STACK:
            return self.interp.print_stack().rstrip("\n")
        if not command and not self.pending:
            return None
        self.pending.append(line)
        try:
            result = self.interp.eval("\n".join(self.pending))
        except LispEndOfInput:
            return None
        except LispError as ex:
            self.pending.clear()
            return f"Error in evaluation: {ex}"
        self.pending.clear()
        return to_lisp_string(result)

    def run(
        self,
        input_fn: Optional[Callable[[str], str]] = None,
        write: Optional[Callable[[str], object]] = None,
    ) -> None:
        input_fn = input_fn or input
        write = write or print
        while not self.done:
            try:
                line = input_fn(self.prompt)
            except EOFError:
                write("Exiting...")
                return
            out = self.feed(line)
            if out is not None:
                write(out)
