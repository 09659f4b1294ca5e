from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from lispvm.compiler.chunk import Chunk
from lispvm.compiler.function import Function
from lispvm.compiler.opcodes import Opcode
from lispvm.errors import LispCompileError
from lispvm.reader.syntax import (
    AtomNode,
    Form,
    ListNode,
    QuasiQuoted,
    Quoted,
    Spliced,
    SyntaxNode,
    Unquoted,
    as_node,
    node_to_value,
    syntax_to_value,
)
from lispvm.types.symbol import Symbol

MAX_ARGS = 0xFF
REST_MARKER = "&rest"


@dataclass
class ScopeShape:
    """Compile-time image of one runtime scope: the names it can hold."""

    names: set[Symbol] = field(default_factory=set)
    parent: Optional[ScopeShape] = None

    def binds(self, sym: Symbol) -> bool:
        shape: Optional[ScopeShape] = self
        while shape is not None:
            if sym in shape.names:
                return True
            shape = shape.parent
        return False


@dataclass
class CompileCtx:
    in_tail: bool = False
    # None at top level, where the current scope is the global scope
    shape: ScopeShape | None = None
    # name a lambda is being defined under, for printing closures
    name: str | None = None

    def sub(self, in_tail: bool = False) -> CompileCtx:
        return CompileCtx(in_tail=in_tail, shape=self.shape)


def compile_toplevel(form: SyntaxNode) -> Chunk:
    """Compile a single top-level form into a chunk that returns its value."""
    chunk = Chunk()
    compile_expr(form, chunk, CompileCtx(in_tail=False))
    chunk.emit_op(Opcode.RETURN)
    return chunk


# --- syntax helpers ---
def _symbol_of(form: SyntaxNode) -> Symbol | None:
    if isinstance(form, Form) and isinstance(form.node, AtomNode) and isinstance(form.node.value, Symbol):
        return form.node.value
    return None


def _list_of(form: SyntaxNode) -> list[SyntaxNode] | None:
    if isinstance(form, Form) and isinstance(form.node, ListNode):
        return form.node.children
    return None


def _head_id(form: SyntaxNode) -> str | None:
    children = _list_of(form)
    if not children:
        return None
    head = _symbol_of(children[0])
    return head.id if head is not None else None


def compile_expr(form: SyntaxNode, chunk: Chunk, ctx: CompileCtx) -> None:
    match form:
        case Quoted(node=node):
            chunk.emit_const(node_to_value(node))
        case QuasiQuoted(node=node):
            _compile_template(Form(node), chunk, ctx)
        case Unquoted() | Spliced():
            raise LispCompileError(f"{form.prefix} used outside of a quasiquote: {form}")
        case Form(node=AtomNode(value=Symbol() as sym)):
            _emit_load(sym, chunk, ctx)
        case Form(node=AtomNode(value=value)):
            chunk.emit_const(value)
        case Form(node=ListNode(children=[])):
            chunk.emit_op(Opcode.PUSH_NIL)
        case Form(node=ListNode(children=children)):
            head = _symbol_of(children[0])
            special = SPECIAL_FORMS.get(head.id) if head is not None else None
            if special is not None:
                special(children[1:], chunk, ctx)
            else:
                _compile_application(children, chunk, ctx)
        case _:
            raise LispCompileError(f"Cannot compile {form!r}")


def _emit_load(sym: Symbol, chunk: Chunk, ctx: CompileCtx) -> None:
    idx = chunk.add_const(sym)
    # Names bound in no enclosing shape can only live in the global scope
    if ctx.shape is not None and ctx.shape.binds(sym):
        chunk.emit_op(Opcode.LOAD_VAR)
    else:
        chunk.emit_op(Opcode.LOAD_GLOBAL)
    chunk.emit_u16(idx)


def _emit_call(argc: int, chunk: Chunk, ctx: CompileCtx) -> None:
    if argc > MAX_ARGS:
        raise LispCompileError(f"Too many arguments in call: {argc} (max {MAX_ARGS})")
    chunk.emit_op(Opcode.TAIL_CALL if ctx.in_tail else Opcode.CALL)
    chunk.emit_u8(argc)


def _compile_application(children: list[SyntaxNode], chunk: Chunk, ctx: CompileCtx) -> None:
    # Callee first, then arguments left to right
    for sub in children:
        compile_expr(sub, chunk, ctx.sub())
    _emit_call(len(children) - 1, chunk, ctx)


def _compile_body(forms: list[SyntaxNode], chunk: Chunk, ctx: CompileCtx) -> None:
    """Compile forms in sequence; only the last value stays on the stack."""
    if not forms:
        chunk.emit_op(Opcode.PUSH_NIL)
        return
    for i, sub in enumerate(forms):
        last = i == len(forms) - 1
        compile_expr(sub, chunk, ctx.sub(in_tail=ctx.in_tail and last))
        if not last:
            chunk.emit_op(Opcode.POP)


def _collect_defines(forms: list[SyntaxNode]) -> set[Symbol]:
    """Names a body can `define` into its own scope, without entering nested scopes."""
    found: set[Symbol] = set()
    pending = list(forms)
    while pending:
        children = _list_of(pending.pop())
        if not children:
            continue
        head = _symbol_of(children[0])
        head_id = head.id if head is not None else None
        if head_id in ("lambda", "quote", "quasiquote"):
            continue
        if head_id == "let":
            # initializers run in the enclosing scope; the body does not
            bindings = _list_of(children[1]) if len(children) > 1 else None
            for b in bindings or []:
                pair = _list_of(b)
                if pair and len(pair) == 2:
                    pending.append(pair[1])
            continue
        if head_id == "define" and len(children) > 1:
            target = _symbol_of(children[1])
            if target is not None:
                found.add(target)
                pending.extend(children[2:])
            else:
                signature = _list_of(children[1])
                if signature and _symbol_of(signature[0]) is not None:
                    found.add(_symbol_of(signature[0]))
            continue
        pending.extend(children)
    return found


# --- special forms ---
def _quote_form(args: list[SyntaxNode], chunk: Chunk, ctx: CompileCtx) -> None:
    if len(args) != 1:
        raise LispCompileError("quote takes exactly one argument")
    chunk.emit_const(syntax_to_value(args[0]))


def _quasiquote_form(args: list[SyntaxNode], chunk: Chunk, ctx: CompileCtx) -> None:
    if len(args) != 1:
        raise LispCompileError("quasiquote takes exactly one argument")
    _compile_template(args[0], chunk, ctx)


def _unquote_target(form: SyntaxNode) -> tuple[str, SyntaxNode] | None:
    """("unquote" | "splice", expression) if `form` escapes a quasiquote template."""
    if isinstance(form, Unquoted):
        return "unquote", Form(form.node)
    if isinstance(form, Spliced):
        return "splice", Form(form.node)
    head_id = _head_id(form)
    if head_id in ("unquote", "unquote-splicing"):
        children = _list_of(form)
        if len(children) != 2:
            raise LispCompileError(f"{head_id} takes exactly one argument")
        return ("unquote" if head_id == "unquote" else "splice"), children[1]
    return None


def _has_unquote(form: SyntaxNode) -> bool:
    if _unquote_target(form) is not None:
        return True
    if isinstance(form, QuasiQuoted) or _head_id(form) == "quasiquote":
        # nested templates stay literal
        return False
    node = as_node(form)
    return isinstance(node, ListNode) and any(_has_unquote(c) for c in node.children)


def _compile_template(form: SyntaxNode, chunk: Chunk, ctx: CompileCtx) -> None:
    target = _unquote_target(form)
    if target is not None:
        kind, expr = target
        if kind == "splice":
            raise LispCompileError(f"~@ must appear inside a list: {form}")
        compile_expr(expr, chunk, ctx.sub())
        return
    if not _has_unquote(form):
        chunk.emit_const(syntax_to_value(form))
        return
    # A list with escapes: build it as an accumulator extended by LIST/APPEND
    node = as_node(form)
    chunk.emit_op(Opcode.PUSH_NIL)
    pending = 0

    def flush() -> None:
        nonlocal pending
        if pending:
            chunk.emit_op(Opcode.LIST)
            chunk.emit_u8(pending)
            chunk.emit_op(Opcode.APPEND)
            pending = 0

    for child in node.children:
        target = _unquote_target(child)
        if target is not None and target[0] == "splice":
            flush()
            compile_expr(target[1], chunk, ctx.sub())
            chunk.emit_op(Opcode.APPEND)
        else:
            _compile_template(child, chunk, ctx)
            pending += 1
            if pending == MAX_ARGS:
                flush()
    flush()


def _if_form(args: list[SyntaxNode], chunk: Chunk, ctx: CompileCtx) -> None:
    if len(args) not in (2, 3):
        raise LispCompileError("if requires a test, a consequent and an optional alternative")
    compile_expr(args[0], chunk, ctx.sub())
    jfalse_pos = chunk.emit_jump(Opcode.JUMP_IF_FALSE)
    # then branch
    compile_expr(args[1], chunk, ctx.sub(in_tail=ctx.in_tail))
    jend_pos = chunk.emit_jump(Opcode.JUMP)
    # else branch
    chunk.patch_jump(jfalse_pos)
    if len(args) == 3:
        compile_expr(args[2], chunk, ctx.sub(in_tail=ctx.in_tail))
    else:
        chunk.emit_op(Opcode.PUSH_NIL)
    chunk.patch_jump(jend_pos)


def _define_form(args: list[SyntaxNode], chunk: Chunk, ctx: CompileCtx) -> None:
    if len(args) < 2:
        raise LispCompileError("define syntax: (define <symbol> <expr>) or (define (<name> <params>...) <body>...)")
    name = _symbol_of(args[0])
    if name is not None:
        if len(args) != 2:
            raise LispCompileError("define syntax: (define <symbol> <expr>)")
        compile_expr(args[1], chunk, CompileCtx(in_tail=False, shape=ctx.shape, name=name.id))
    else:
        signature = _list_of(args[0])
        name = _symbol_of(signature[0]) if signature else None
        if name is None:
            raise LispCompileError("define target must be a symbol or (<name> <params>...)")
        params = Form(ListNode(signature[1:]))
        _lambda_form([params, *args[1:]], chunk, CompileCtx(in_tail=False, shape=ctx.shape, name=name.id))
    chunk.emit_op(Opcode.DEFINE)
    chunk.emit_u16(chunk.add_const(name))


def _parse_params(form: SyntaxNode) -> tuple[list[Symbol], Symbol | None]:
    items = _list_of(form)
    if items is None:
        raise LispCompileError("lambda parameter list must be a list")
    params: list[Symbol] = []
    rest: Symbol | None = None
    i = 0
    while i < len(items):
        p = _symbol_of(items[i])
        if p is None:
            raise LispCompileError(f"lambda params must be symbols, got {items[i]}")
        if p.id == REST_MARKER:
            if i + 2 != len(items) or _symbol_of(items[i + 1]) is None:
                raise LispCompileError("&rest must be followed by exactly one parameter name")
            rest = _symbol_of(items[i + 1])
            break
        params.append(p)
        i += 1
    names = params + ([rest] if rest is not None else [])
    if len(set(names)) != len(names):
        raise LispCompileError(f"Duplicate parameter in {form}")
    return params, rest


def _lambda_form(args: list[SyntaxNode], chunk: Chunk, ctx: CompileCtx) -> None:
    if not args:
        raise LispCompileError("lambda requires a parameter list and a body")
    params, rest = _parse_params(args[0])
    body = args[1:]
    names = set(params)
    if rest is not None:
        names.add(rest)
    shape = ScopeShape(names | _collect_defines(body), parent=ctx.shape)
    fn_chunk = Chunk()
    _compile_body(body, fn_chunk, CompileCtx(in_tail=True, shape=shape))
    fn_chunk.emit_op(Opcode.RETURN)
    fn = Function(chunk=fn_chunk, params=params, rest=rest, name=ctx.name)
    chunk.emit_op(Opcode.MAKE_CLOSURE)
    chunk.emit_u16(chunk.add_const(fn))


def _let_form(args: list[SyntaxNode], chunk: Chunk, ctx: CompileCtx) -> None:
    # (let ((v1 e1) (v2 e2) ...) body...)
    bindings = _list_of(args[0]) if args else None
    if bindings is None:
        raise LispCompileError("let requires a bindings list and body")
    names: list[Symbol] = []
    for b in bindings:
        pair = _list_of(b)
        if pair is None or len(pair) != 2 or _symbol_of(pair[0]) is None:
            raise LispCompileError(f"let binding must be (name value), got {b}")
        names.append(_symbol_of(pair[0]))
        # initializers see the enclosing scope only
        compile_expr(pair[1], chunk, ctx.sub())
    if len(set(names)) != len(names):
        raise LispCompileError(f"Duplicate binding in let: {args[0]}")
    if len(names) > MAX_ARGS:
        raise LispCompileError(f"Too many let bindings: {len(names)} (max {MAX_ARGS})")
    chunk.emit_op(Opcode.ENTER_SCOPE)
    chunk.emit_u8(len(names))
    for name in names:
        chunk.emit_u16(chunk.add_const(name))
    body = args[1:]
    shape = ScopeShape(set(names) | _collect_defines(body), parent=ctx.shape)
    _compile_body(body, chunk, CompileCtx(in_tail=ctx.in_tail, shape=shape))
    chunk.emit_op(Opcode.EXIT_SCOPE)


def _begin_form(args: list[SyntaxNode], chunk: Chunk, ctx: CompileCtx) -> None:
    _compile_body(args, chunk, ctx.sub(in_tail=ctx.in_tail))


def _set_form(args: list[SyntaxNode], chunk: Chunk, ctx: CompileCtx) -> None:
    name = _symbol_of(args[0]) if len(args) == 2 else None
    if name is None:
        raise LispCompileError("set! syntax: (set! <symbol> <expr>)")
    compile_expr(args[1], chunk, ctx.sub())
    # An unbound target is reported by the VM when SET runs
    chunk.emit_op(Opcode.SET)
    chunk.emit_u16(chunk.add_const(name))


def _cond_form(args: list[SyntaxNode], chunk: Chunk, ctx: CompileCtx) -> None:
    # (cond (test body...) ... (else body...))
    end_jumps: list[int] = []
    has_else = False
    for i, clause in enumerate(args):
        parts = _list_of(clause)
        if not parts:
            raise LispCompileError("cond clause must be a non-empty list")
        test, body = parts[0], parts[1:]
        test_sym = _symbol_of(test)
        if test_sym is not None and test_sym.id == "else":
            if i != len(args) - 1:
                raise LispCompileError("else must be the last cond clause")
            _compile_body(body, chunk, ctx.sub(in_tail=ctx.in_tail))
            has_else = True
            break
        compile_expr(test, chunk, ctx.sub())
        if not body:
            # (cond (test)) yields the test value itself
            chunk.emit_op(Opcode.DUP)
            end_jumps.append(chunk.emit_jump(Opcode.JUMP_IF_TRUE))
            chunk.emit_op(Opcode.POP)
            continue
        jnext = chunk.emit_jump(Opcode.JUMP_IF_FALSE)
        _compile_body(body, chunk, ctx.sub(in_tail=ctx.in_tail))
        end_jumps.append(chunk.emit_jump(Opcode.JUMP))
        chunk.patch_jump(jnext)
    if not has_else:
        chunk.emit_op(Opcode.PUSH_NIL)
    for pos in end_jumps:
        chunk.patch_jump(pos)


def _short_circuit(args: list[SyntaxNode], chunk: Chunk, ctx: CompileCtx, exit_op: Opcode) -> None:
    # Every operand but the last keeps its value and exits early when `exit_op` fires
    jumps: list[int] = []
    for sub in args[:-1]:
        compile_expr(sub, chunk, ctx.sub())
        chunk.emit_op(Opcode.DUP)
        jumps.append(chunk.emit_jump(exit_op))
        chunk.emit_op(Opcode.POP)
    compile_expr(args[-1], chunk, ctx.sub(in_tail=ctx.in_tail))
    for pos in jumps:
        chunk.patch_jump(pos)


def _and_form(args: list[SyntaxNode], chunk: Chunk, ctx: CompileCtx) -> None:
    if not args:
        chunk.emit_const(True)
        return
    _short_circuit(args, chunk, ctx, Opcode.JUMP_IF_FALSE)


def _or_form(args: list[SyntaxNode], chunk: Chunk, ctx: CompileCtx) -> None:
    if not args:
        chunk.emit_const(False)
        return
    _short_circuit(args, chunk, ctx, Opcode.JUMP_IF_TRUE)


SPECIAL_FORMS: dict[str, Callable[[list[SyntaxNode], Chunk, CompileCtx], None]] = {
    "quote": _quote_form,
    "quasiquote": _quasiquote_form,
    "if": _if_form,
    "define": _define_form,
    "lambda": _lambda_form,
    "let": _let_form,
    "begin": _begin_form,
    "set!": _set_form,
    "cond": _cond_form,
    "and": _and_form,
    "or": _or_form,
}
