from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List

from lispvm import LispValue


@dataclass(frozen=True)
class Native:
    """A built-in procedure: `fn(env, args)` bound under `name` in the global scope."""

    name: str
    fn: Callable[..., LispValue]

    def __call__(self, env, args: List[LispValue]) -> LispValue:
        return self.fn(env, args)

    def __repr__(self) -> str:
        return f"#<native {self.name}>"
