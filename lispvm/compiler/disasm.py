from __future__ import annotations

from .chunk import Chunk
from .function import Function
from .opcodes import Opcode
from ..types.value import to_lisp_string

# Opcodes whose single u16 operand indexes the constant pool
_CONST_OPS = (
    Opcode.PUSH_CONST,
    Opcode.LOAD_VAR,
    Opcode.LOAD_GLOBAL,
    Opcode.DEFINE,
    Opcode.SET,
    Opcode.MAKE_CLOSURE,
)
_JUMP_OPS = (Opcode.JUMP, Opcode.JUMP_IF_TRUE, Opcode.JUMP_IF_FALSE)
_COUNT_OPS = (Opcode.CALL, Opcode.TAIL_CALL, Opcode.LIST)


def _describe_const(value) -> str:
    if isinstance(value, Function):
        return f"<fn {value.name or 'lambda'}>"
    return to_lisp_string(value) if not isinstance(value, str) else repr(value)


def disassemble_chunk(chunk: Chunk) -> str:
    code = chunk.code
    consts = chunk.constants
    out = []
    i = 0

    def u8(ix):
        return code[ix]

    def u16(ix):
        return (code[ix] << 8) | code[ix + 1]

    def s16(ix):
        v = u16(ix)
        return v - (1 << 16) if v & 0x8000 else v

    while i < len(code):
        op = code[i]
        try:
            opname = Opcode(op).name
        except ValueError:
            opname = f"OP_{op:02X}"
        line = f"{i:04d}: {opname}"
        i += 1
        if op in _CONST_OPS:
            idx = u16(i); i += 2
            line += f" {idx} ({_describe_const(consts[idx])})"
        elif op in _JUMP_OPS:
            rel = s16(i); i += 2
            line += f" {rel:+d} -> {i + rel}"
        elif op in _COUNT_OPS:
            argc = u8(i); i += 1
            line += f" argc={argc}" if op != Opcode.LIST else f" n={argc}"
        elif op == Opcode.ENTER_SCOPE:
            count = u8(i); i += 1
            names = []
            for _ in range(count):
                names.append(str(consts[u16(i)])); i += 2
            line += f" {count} [{' '.join(names)}]"
        out.append(line)
    # Append constants info
    out.append("-- constants --")
    for idx, c in enumerate(consts):
        if isinstance(c, Function):
            out.append(f"[{idx}] <Function {c.name or 'lambda'} arity={c.arity} rest={c.rest}>")
            out.append(disassemble_chunk(c.chunk))
        else:
            out.append(f"[{idx}] {_describe_const(c)}")
    return "\n".join(out)
