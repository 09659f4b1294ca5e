import pytest

from lispvm.builtin import env_builtin
from lispvm.interpreter import Interpreter
from lispvm.types.environment import Environment


# Most tests only need the built-ins; `itp` skips the prelude so each test
# starts from a known global scope. `full` loads lispvm/prelude/core.lisp.


@pytest.fixture
def itp():
    return Interpreter(prelude=None)


@pytest.fixture
def full():
    return Interpreter()


@pytest.fixture
def env():
    """Return a fresh global environment with the built-ins registered."""
    e = Environment()
    env_builtin.register(e)
    return e


@pytest.fixture(autouse=True)
def _clean_config_env(monkeypatch):
    # Keep a developer's shell settings from leaking into the tests
    for var in ("LISPVM_DISASM", "LISPVM_MAX_FRAMES", "LISPVM_PRELUDE_PATH"):
        monkeypatch.delenv(var, raising=False)
