from __future__ import annotations

from enum import IntEnum


class Opcode(IntEnum):
    # Stack and constants
    PUSH_CONST = 0x01  # u16 index
    PUSH_NIL = 0x02
    DUP = 0x03
    POP = 0x04

    # Scope chain
    LOAD_VAR = 0x10  # u16 (symbol constant index), innermost scope outward
    LOAD_GLOBAL = 0x11  # u16 (symbol constant index), global scope only
    DEFINE = 0x12  # u16, bind in the current scope
    SET = 0x13  # u16, mutate the nearest existing binding
    ENTER_SCOPE = 0x14  # u8 count, then count * u16 symbol constant index
    EXIT_SCOPE = 0x15

    # Control flow
    JUMP = 0x20  # s16
    JUMP_IF_TRUE = 0x21  # s16
    JUMP_IF_FALSE = 0x22  # s16
    RETURN = 0x23

    # Functions / closures
    MAKE_CLOSURE = 0x30  # u16 fidx

    # Calls
    CALL = 0x40  # u8 argc
    TAIL_CALL = 0x41  # u8 argc

    # Lists (quasiquote construction)
    LIST = 0x50  # u8 count
    APPEND = 0x51
