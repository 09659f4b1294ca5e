# Core type aliases for the lispvm data model.
# Runtime values are plain Python types where one fits (int, float, str, bool, list)
# plus Symbol, Closure and Native for the kinds Python has no direct counterpart for.
#
# Naming guidance:
# - SExpression: literal data built from quoted syntax (code-as-data).
# - LispValue:  values produced and consumed by the VM and the built-ins.
# Both aliases resolve to `Any`; the closed set of kinds lives in lispvm.types.value.

from typing import Any

__version__ = "0.3.0"

LispValue = Any
SExpression = LispValue
