from __future__ import annotations
import os
from pathlib import Path


# Resolve installation dir (lispvm package directory)
_LISPVM_DIR = Path(__file__).resolve().parent

# Defaults
_DEFAULT_PRELUDE_DIR = _LISPVM_DIR / 'prelude'
DEFAULT_MAX_FRAMES = 10_000


def flag_from_env(var: str) -> bool:
    raw = os.environ.get(var, '')
    return raw.strip().lower() not in ('', '0', 'false', 'no', 'off')


def int_from_env(var: str, default: int) -> int:
    raw = os.environ.get(var)
    if not raw or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValueError(f"{var} must be an integer, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{var} must be positive, got {value}")
    return value


def disasm_enabled() -> bool:
    return flag_from_env('LISPVM_DISASM')


def get_max_frames() -> int:
    return int_from_env('LISPVM_MAX_FRAMES', DEFAULT_MAX_FRAMES)


def get_prelude_root() -> Path:
    raw = os.environ.get('LISPVM_PRELUDE_PATH')
    p = Path(raw.strip()) if raw and raw.strip() else _DEFAULT_PRELUDE_DIR
    # treat as single directory; if a file path is set, return its parent
    return p if p.is_dir() else p.parent
