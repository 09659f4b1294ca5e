import pytest

from lispvm.repl import BANNER, Repl


@pytest.fixture
def repl(itp):
    return Repl(itp)


def _scripted(lines):
    it = iter(lines)

    def read_line(prompt):
        try:
            return next(it)
        except StopIteration:
            raise EOFError

    return read_line


def test_complete_form_prints_value(repl):
    assert repl.feed("(+ 1 2)") == "3"
    assert repl.prompt == "> "


def test_incomplete_form_waits_for_more_input(repl):
    assert repl.feed("(+ 1") is None
    assert repl.prompt == ""
    assert repl.feed(" 2)") == "3"
    assert repl.prompt == "> "


def test_pending_lines_are_joined_with_newlines(repl):
    assert repl.feed("(list 1 ; first line comment") is None
    assert repl.feed("2)") == "(1 2)"


def test_several_forms_print_last_value(repl):
    assert repl.feed("(define a 1) (+ a 1) (+") is None
    assert repl.feed("a 10)") == "11"


def test_errors_are_reported_and_clear_the_buffer(repl):
    assert repl.feed("(car '())") == "Error in evaluation: car of empty list"
    assert repl.feed("undefined") == "Error in evaluation: Cannot lookup unbound symbol undefined"
    assert repl.feed(")") == "Error in evaluation: Unmatched ')'"
    assert repl.prompt == "> "
    assert repl.feed("1") == "1"


def test_unterminated_string_is_an_error_not_a_continuation(repl):
    out = repl.feed('(print "abc')
    assert out.startswith("Error in evaluation: Unterminated string")
    assert repl.prompt == "> "


def test_blank_lines_are_ignored(repl):
    assert repl.feed("") is None
    assert repl.feed("   ") is None
    assert repl.prompt == "> "


def test_quit_ends_session(repl):
    assert repl.feed("quit") is None
    assert repl.done


def test_print_stack_command(repl):
    assert repl.feed("(car '())").startswith("Error in evaluation")
    out = repl.feed(",print-stack")
    assert out.startswith("operand stack (0)")
    assert "frames (1)" in out


def test_run_loop_until_end_of_input(repl):
    written = []
    repl.run(_scripted(["(define x 2)", "(* x", "21)"]), written.append)
    assert written == ["2", "42", "Exiting..."]


def test_run_loop_stops_on_quit(repl):
    written = []
    repl.run(_scripted(["1", "quit", "2"]), written.append)
    assert written == ["1"]


def test_run_loop_passes_prompt(repl):
    prompts = []
    lines = iter(["(+ 1", "1)"])

    def read_line(prompt):
        prompts.append(prompt)
        try:
            return next(lines)
        except StopIteration:
            raise EOFError

    repl.run(read_line, lambda text: None)
    assert prompts == ["> ", "", "> "]


def test_banner():
    assert BANNER == "Rust Lisp!"


def test_quit_ends_session_mid_form(repl):
    assert repl.feed("(+ 1") is None
    assert repl.feed("quit") is None
    assert repl.done
    assert repl.pending == []


def test_print_stack_mid_form_keeps_the_buffer(repl):
    assert repl.feed("(+ 1") is None
    assert repl.feed(",print-stack").startswith("operand stack")
    assert repl.feed("2)") == "3"


def test_blank_line_inside_a_form_continues_it(repl):
    assert repl.feed("(+ 1") is None
    assert repl.feed("") is None
    assert repl.prompt == ""
    assert repl.feed("2)") == "3"


def test_deeply_nested_quote_prints(repl):
    depth = 3000
    assert repl.feed("'" + "(" * depth + ")" * depth) == "(" * depth + ")" * depth


def test_deeply_nested_call_is_reported(repl):
    depth = 5000
    out = repl.feed("(list " * depth + ")" * depth)
    assert out.startswith("Error in evaluation: ")
    assert repl.prompt == "> "
    assert repl.feed("1") == "1"
