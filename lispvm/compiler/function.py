from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(eq=False)
class Function:
    """Compiled lambda body: its chunk plus the parameter list it binds."""

    chunk: Any  # Chunk
    params: List[Any] = field(default_factory=list)  # list[Symbol]
    rest: Optional[Any] = None  # Symbol collecting surplus arguments
    name: str | None = None

    @property
    def arity(self) -> int:
        return len(self.params)


@dataclass(eq=False)
class Closure:
    fn: Function
    scope: Any  # Environment captured at creation time

    def __repr__(self) -> str:
        return f"#<closure {self.fn.name}>" if self.fn.name else "#<closure>"
