from __future__ import annotations

from pathlib import Path
from typing import Literal

from lispvm import LispValue
from lispvm.builtin.env_builtin import register
from lispvm.compiler.compiler import compile_toplevel
from lispvm.compiler.disasm import disassemble_chunk
from lispvm.compiler.vm import VM
from lispvm.config import disasm_enabled, get_prelude_root
from lispvm.errors import LispCompileError, LispEndOfInput, LispRuntimeError, LispSyntaxError
from lispvm.reader.parser import read_all
from lispvm.types.environment import Environment


def load_prelude(itp: Interpreter) -> None:
    core = get_prelude_root() / 'core.lisp'
    if not core.exists():
        raise FileNotFoundError(f"Cannot find prelude at {core}")
    itp.eval_prelude(core.read_text(encoding='utf-8'))


class Interpreter:
    """
    Orchestrates reading, compiling and running lispvm code.
    Maintains one global Environment and one VM across calls.
    """

    def __init__(
        self,
        prelude: str | None | Literal['auto'] = 'auto',
        *,
        max_frames: int | None = None,
    ):
        self.env: Environment = Environment()
        register(self.env)
        self.vm = VM(self.env, max_frames=max_frames)

        if prelude is None:
            pass  # explicit: no prelude
        elif prelude == 'auto':
            load_prelude(self)
        elif prelude:
            self.eval_prelude(prelude)

    def _run_form(self, form) -> LispValue:
        try:
            chunk = compile_toplevel(form)
        except RecursionError as ex:
            raise LispCompileError("Form is nested too deeply to compile") from ex
        if disasm_enabled():
            print("=== DISASM ===")
            print(disassemble_chunk(chunk))
            print("=== END DISASM ===")
        try:
            return self.vm.run(chunk)
        except RecursionError as ex:
            raise LispRuntimeError("Value is nested too deeply to evaluate") from ex

    def eval_prelude(self, code: str) -> None:
        for form in read_all(code):
            self._run_form(form)

    def eval(self, code: str) -> LispValue:
        """Evaluate every form in `code` and return the last value, () when there is none.

        LispEndOfInput propagates when `code` stops inside a form, so interactive
        callers can append more input and retry.
        """
        result: LispValue = []
        for form in read_all(code):
            result = self._run_form(form)
        return result

    def eval_file(self, path: str | Path) -> LispValue:
        code = Path(path).read_text(encoding='utf-8')
        try:
            return self.eval(code)
        except LispEndOfInput as ex:
            # Nothing further will arrive: an incomplete trailing form is malformed
            raise LispSyntaxError(f"{path}: {ex}") from ex

    def print_stack(self) -> str:
        return self.vm.format_stack()
