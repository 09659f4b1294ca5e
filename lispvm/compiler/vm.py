from __future__ import annotations

from dataclasses import dataclass
from io import StringIO
from typing import Any, Callable, List, Tuple

from lispvm import LispValue
from lispvm.compiler.chunk import Chunk
from lispvm.compiler.function import Closure, Function
from lispvm.compiler.opcodes import Opcode
from lispvm.config import get_max_frames
from lispvm.errors import LispArityError, LispNotCallable, LispRuntimeError, LispStackOverflow, LispTypeError
from lispvm.types.environment import Environment
from lispvm.types.native import Native
from lispvm.types.symbol import Symbol
from lispvm.types.value import is_truthy, kind_of, to_lisp_string


@dataclass
class Frame:
    chunk: Chunk
    ip: int
    base: int  # start of this frame's region of the operand stack
    scope: Environment


class VM:
    class RunSignal:
        NORMAL = 0
        RETURN = 1

    def __init__(self, env: Environment, max_frames: int | None = None):
        self.env = env
        self.max_frames = max_frames if max_frames is not None else get_max_frames()
        self.stack: List[Any] = []
        self.frames: List[Frame] = []
        # Opcode dispatch table
        self._dispatch: dict[int, Callable[[Frame], Tuple[int, Any | None]]] = {}
        self._init_dispatch()

    def _init_dispatch(self) -> None:
        d = self._dispatch
        # Stack and constants
        d[Opcode.PUSH_CONST] = self.op_push_const
        d[Opcode.PUSH_NIL] = self.op_push_nil
        d[Opcode.DUP] = self.op_dup
        d[Opcode.POP] = self.op_pop
        # Scope chain
        d[Opcode.LOAD_VAR] = self.op_load_var
        d[Opcode.LOAD_GLOBAL] = self.op_load_global
        d[Opcode.DEFINE] = self.op_define
        d[Opcode.SET] = self.op_set
        d[Opcode.ENTER_SCOPE] = self.op_enter_scope
        d[Opcode.EXIT_SCOPE] = self.op_exit_scope
        # Control flow
        d[Opcode.JUMP] = self.op_jump
        d[Opcode.JUMP_IF_TRUE] = self.op_jump_if_true
        d[Opcode.JUMP_IF_FALSE] = self.op_jump_if_false
        d[Opcode.RETURN] = self.op_return
        # Functions / closures / calls
        d[Opcode.MAKE_CLOSURE] = self.op_make_closure
        d[Opcode.CALL] = self.op_call
        d[Opcode.TAIL_CALL] = self.op_tail_call
        # Lists
        d[Opcode.LIST] = self.op_list
        d[Opcode.APPEND] = self.op_append

    # --- Operand decoding ---
    def _read_u8(self, frame: Frame) -> int:
        v = frame.chunk.code[frame.ip]
        frame.ip += 1
        return v

    def _read_u16(self, frame: Frame) -> int:
        code = frame.chunk.code
        v = (code[frame.ip] << 8) | code[frame.ip + 1]
        frame.ip += 2
        return v

    def _read_rel16(self, frame: Frame) -> int:
        rel = self._read_u16(frame)
        if rel & 0x8000:
            rel = rel - (1 << 16)
        return rel

    def _read_symbol(self, frame: Frame) -> Symbol:
        sym = frame.chunk.constants[self._read_u16(frame)]
        assert isinstance(sym, Symbol)
        return sym

    # --- Per-op handlers ---
    # Stack and constants
    def op_push_const(self, frame: Frame) -> Tuple[int, Any | None]:
        self.push(frame.chunk.constants[self._read_u16(frame)])
        return VM.RunSignal.NORMAL, None

    def op_push_nil(self, frame: Frame) -> Tuple[int, Any | None]:
        self.push([])
        return VM.RunSignal.NORMAL, None

    def op_dup(self, frame: Frame) -> Tuple[int, Any | None]:
        self.push(self.peek())
        return VM.RunSignal.NORMAL, None

    def op_pop(self, frame: Frame) -> Tuple[int, Any | None]:
        self.pop()
        return VM.RunSignal.NORMAL, None

    # Scope chain
    def op_load_var(self, frame: Frame) -> Tuple[int, Any | None]:
        self.push(frame.scope.lookup(self._read_symbol(frame)))
        return VM.RunSignal.NORMAL, None

    def op_load_global(self, frame: Frame) -> Tuple[int, Any | None]:
        self.push(self.env.lookup(self._read_symbol(frame)))
        return VM.RunSignal.NORMAL, None

    def op_define(self, frame: Frame) -> Tuple[int, Any | None]:
        # The value stays on the stack as the result of the define form
        frame.scope.define(self._read_symbol(frame), self.peek())
        return VM.RunSignal.NORMAL, None

    def op_set(self, frame: Frame) -> Tuple[int, Any | None]:
        frame.scope.set(self._read_symbol(frame), self.peek())
        return VM.RunSignal.NORMAL, None

    def op_enter_scope(self, frame: Frame) -> Tuple[int, Any | None]:
        count = self._read_u8(frame)
        scope = Environment(outer=frame.scope)
        values = self.stack[len(self.stack) - count:]
        del self.stack[len(self.stack) - count:]
        for val in values:
            scope.define(self._read_symbol(frame), val)
        frame.scope = scope
        return VM.RunSignal.NORMAL, None

    def op_exit_scope(self, frame: Frame) -> Tuple[int, Any | None]:
        assert frame.scope.outer is not None
        frame.scope = frame.scope.outer
        return VM.RunSignal.NORMAL, None

    # Control flow
    def op_jump(self, frame: Frame) -> Tuple[int, Any | None]:
        rel = self._read_rel16(frame)
        frame.ip += rel
        return VM.RunSignal.NORMAL, None

    def op_jump_if_true(self, frame: Frame) -> Tuple[int, Any | None]:
        rel = self._read_rel16(frame)
        if is_truthy(self.pop()):
            frame.ip += rel
        return VM.RunSignal.NORMAL, None

    def op_jump_if_false(self, frame: Frame) -> Tuple[int, Any | None]:
        rel = self._read_rel16(frame)
        if not is_truthy(self.pop()):
            frame.ip += rel
        return VM.RunSignal.NORMAL, None

    def op_return(self, frame: Frame) -> Tuple[int, Any | None]:
        ret = self.pop()
        self.frames.pop()
        del self.stack[frame.base:]
        if not self.frames:
            return VM.RunSignal.RETURN, ret
        self.push(ret)
        return VM.RunSignal.NORMAL, None

    # Functions / closures / calls
    def op_make_closure(self, frame: Frame) -> Tuple[int, Any | None]:
        fn = frame.chunk.constants[self._read_u16(frame)]
        assert isinstance(fn, Function)
        self.push(Closure(fn=fn, scope=frame.scope))
        return VM.RunSignal.NORMAL, None

    def _collect_args(self, frame: Frame) -> list[Any]:
        argc = self._read_u8(frame)
        args = self.stack[len(self.stack) - argc:]
        del self.stack[len(self.stack) - argc:]
        return args

    def _bind_arguments(self, callee: Closure, args: list[Any]) -> Environment:
        fn = callee.fn
        if len(args) < fn.arity or (fn.rest is None and len(args) > fn.arity):
            expected = f"at least {fn.arity}" if fn.rest is not None else f"{fn.arity}"
            raise LispArityError(
                f"{to_lisp_string(callee)} expects {expected} argument(s), got {len(args)}"
            )
        scope = Environment(outer=callee.scope)
        for name, val in zip(fn.params, args):
            scope.define(name, val)
        if fn.rest is not None:
            scope.define(fn.rest, list(args[fn.arity:]))
        return scope

    def _call_closure(self, frame: Frame, callee: Closure, args: list[Any], tail: bool) -> Tuple[int, Any | None]:
        scope = self._bind_arguments(callee, args)
        if tail:
            # Reuse the current frame: drop its operands and restart on the callee's code
            del self.stack[frame.base:]
            frame.chunk = callee.fn.chunk
            frame.ip = 0
            frame.scope = scope
            return VM.RunSignal.NORMAL, None
        if len(self.frames) >= self.max_frames:
            raise LispStackOverflow(f"Call stack exceeded {self.max_frames} frames")
        self.frames.append(Frame(chunk=callee.fn.chunk, ip=0, base=len(self.stack), scope=scope))
        return VM.RunSignal.NORMAL, None

    def _call_native(self, frame: Frame, callee: Native, args: list[Any], tail: bool) -> Tuple[int, Any | None]:
        result = callee(self.env, args)
        if tail:
            # A native in tail position returns straight to our caller
            self.frames.pop()
            del self.stack[frame.base:]
            if not self.frames:
                return VM.RunSignal.RETURN, result
        self.push(result)
        return VM.RunSignal.NORMAL, None

    def _do_call(self, frame: Frame, tail: bool) -> Tuple[int, Any | None]:
        args = self._collect_args(frame)
        callee = self.pop()
        if isinstance(callee, Closure):
            return self._call_closure(frame, callee, args, tail)
        if isinstance(callee, Native):
            return self._call_native(frame, callee, args, tail)
        raise LispNotCallable(f"Cannot call {kind_of(callee)} {to_lisp_string(callee)}")

    def op_call(self, frame: Frame) -> Tuple[int, Any | None]:
        return self._do_call(frame, tail=False)

    def op_tail_call(self, frame: Frame) -> Tuple[int, Any | None]:
        return self._do_call(frame, tail=True)

    # Lists
    def op_list(self, frame: Frame) -> Tuple[int, Any | None]:
        n = self._read_u8(frame)
        items = self.stack[len(self.stack) - n:]
        del self.stack[len(self.stack) - n:]
        self.push(items)
        return VM.RunSignal.NORMAL, None

    def op_append(self, frame: Frame) -> Tuple[int, Any | None]:
        b = self.pop()
        a = self.pop()
        if not isinstance(b, list):
            raise LispTypeError(f"~@ expects a list, got {kind_of(b)} {to_lisp_string(b)}")
        self.push(a + b)
        return VM.RunSignal.NORMAL, None

    # --- Stack helpers ---
    def push(self, v: Any) -> None:
        self.stack.append(v)

    def pop(self) -> Any:
        return self.stack.pop()

    def peek(self, n: int = 0) -> Any:
        return self.stack[-1 - n]

    # --- Execution ---
    def run(self, chunk: Chunk, scope: Environment | None = None) -> LispValue:
        """Execute `chunk` until the outermost frame returns.

        State from a previous failed run is discarded here rather than on failure,
        so it can still be inspected with `format_stack` after an error.
        """
        self.stack = []
        self.frames = [Frame(chunk=chunk, ip=0, base=0, scope=scope if scope is not None else self.env)]

        while True:
            frame = self.frames[-1]
            code = frame.chunk.code
            if frame.ip >= len(code):
                raise LispRuntimeError(f"Instruction pointer ran past the end of its chunk ({frame.ip})")
            op = code[frame.ip]
            frame.ip += 1

            handler = self._dispatch.get(op)
            if handler is None:
                raise LispRuntimeError(f"Unknown opcode: {op}")
            signal, value = handler(frame)
            if signal == VM.RunSignal.RETURN:
                return value

    def format_stack(self) -> str:
        """Operand stack and active frames, innermost last."""
        with StringIO() as buffer:
            buffer.write(f"operand stack ({len(self.stack)}):\n")
            for i, v in enumerate(self.stack):
                buffer.write(f"  [{i}] {to_lisp_string(v)}\n")
            buffer.write(f"frames ({len(self.frames)}):\n")
            for i, f in enumerate(self.frames):
                buffer.write(f"  #{i} ip={f.ip} base={f.base}\n")
            return buffer.getvalue()


def run_chunk(chunk: Chunk, env: Environment) -> LispValue:
    vm = VM(env)
    return vm.run(chunk)
