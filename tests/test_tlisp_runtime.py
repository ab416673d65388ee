import pytest
from tlisp.tlisp_runtime import ScriptRunner, ExecutionResult
from tlisp.tlisp_datatypes import Environment, Number, Bool, Closure


@pytest.fixture
def runner():
    return ScriptRunner()


def test_single_form(runner):
    result = runner.handle_script("(+ 1 2)")
    assert result.status == 'success'
    assert result.value == Number(3)
    assert result.error_message is None
    assert result.format_error() == ""


def test_multiple_forms_return_last_value(runner):
    result = runner.handle_script("(define x 2)\n(* x 21)")
    assert result.value == Number(42)


def test_definitions_accumulate_across_runs(runner):
    assert runner.handle_script("(define fact (lambda (n) (if (= n 0) 1 (* n (fact (- n 1))))))").value is None
    assert runner.handle_script("(fact 5)").value == Number(120)
    assert isinstance(runner.root_env.lookup("fact"), Closure)


def test_empty_script(runner):
    result = runner.handle_script("   ")
    assert result.status == 'success'
    assert result.value is None


def test_supplied_environment(runner):
    env = Environment(bindings={"answer": Number(42)})
    custom = ScriptRunner(environment=env)
    assert custom.root_env is env
    assert custom.handle_script("(= answer 42)").value == Bool(True)


def test_runners_do_not_share_environments():
    a, b = ScriptRunner(), ScriptRunner()
    a.handle_script("(define x 1)")
    result = b.handle_script("x")
    assert result.status == 'error'
    assert result.error_kind == 'UnboundNameError'


def test_reader_error(runner):
    result = runner.handle_script("(+ 1 2")
    assert result.status == 'error'
    assert result.error_kind == 'UnexpectedEOF'
    assert result.error_message.startswith("SyntaxError: unbalanced parentheses")
    assert result.error_token == {'line': 1, 'col': 1, 'text': '('}
    assert result.format_error().startswith("Error on line 1, col 1: SyntaxError:")


def test_builder_error(runner):
    result = runner.handle_script("(if #t 1)")
    assert result.error_kind == 'TlispSyntaxError'
    assert "SyntaxError: if requires exactly three sub-expressions, got 2" in result.error_message


def test_error_source_context(runner):
    result = runner.handle_script("(define a 1)\n(+ a\n   missing)")
    assert result.error_kind == 'UnboundNameError'
    assert result.error_token['line'] == 3
    assert result.error_token['col'] == 4
    assert "UnboundNameError: 'missing' is not bound" in result.error_message
    assert "> 3 |    missing)" in result.error_message
    assert "  1 | (define a 1)" in result.error_message
    assert "    |    ^" in result.error_message


def test_bindings_before_failure_remain(runner):
    result = runner.handle_script("(define a 1) (define b oops) (define c 3)")
    assert result.status == 'error'
    assert "a" in runner.root_env
    assert "b" not in runner.root_env
    assert "c" not in runner.root_env


def test_stacktrace_in_error(runner):
    runner.handle_script("(define f (lambda (n) (g (+ n 1))))\n(define g (lambda (m) (+ m #t)))")
    result = runner.handle_script("(f 3)")
    assert result.error_kind == 'TypeMismatchError'
    assert "TypeMismatchError: (+) expects numbers, got boolean" in result.error_message
    assert "tlisp stacktrace: (f 3) (g 4)" in result.error_message


def test_stack_cleared_between_runs(runner):
    runner.handle_script("(define f (lambda (n) (+ n #t)))")
    assert runner.handle_script("(f 1)").status == 'error'
    result = runner.handle_script("undefined")
    assert "stacktrace" not in result.error_message


@pytest.mark.parametrize("source, kind, prefix", [
    ("(1 2)", "TypeMismatchError", "TypeMismatchError: cannot apply number"),
    ("((lambda (x) x))", "ArityError", "ArityError: lambda expects 1 argument, got 0"),
    (")", "TlispSyntaxError", "SyntaxError: unexpected ')'"),
])
def test_error_kinds(runner, source, kind, prefix):
    result = runner.handle_script(source)
    assert result.error_kind == kind
    assert result.error_message.startswith(prefix)


def test_runaway_recursion_is_reported(runner):
    result = runner.handle_script("(define loop (lambda (n) (loop n)))\n(loop 1)")
    assert result.status == 'error'
    assert result.error_kind == 'RecursionError'
    assert result.error_message == "ResourceError: maximum recursion depth exceeded"
    # The session keeps working afterwards.
    assert runner.handle_script("(+ 1 1)").value == Number(2)


def test_deep_recursion_within_limit(runner):
    result = runner.handle_script(
        "(define count-up (lambda (i n acc) (if (> i n) acc (count-up (+ i 1) n (+ acc i)))))\n"
        "(count-up 1 1000 0)"
    )
    assert result.status == 'success'
    assert result.value == Number(500500)


def test_out_of_range_literal_is_a_syntax_error(runner):
    result = runner.handle_script("(+ 1\n   1e999)")
    assert result.error_kind == 'TlispSyntaxError'
    assert result.error_message.startswith("SyntaxError: number literal 1e999 is out of range")
    assert result.error_token == {'line': 2, 'col': 4, 'text': '1e999'}


def test_internal_errors_are_wrapped(runner, monkeypatch):
    def boom(node, env):
        raise RuntimeError("boom")
    monkeypatch.setattr(runner.evaluator, "eval", boom)
    result = runner.handle_script("1")
    assert result.error_message == "InternalError: boom"
    assert result.error_kind == 'RuntimeError'


def test_format_error_without_location():
    result = ExecutionResult(status='error', error_message="ArityError: nope")
    assert result.format_error() == "ArityError: nope"
    located = ExecutionResult(status='error', error_message="x", error_token={'line': 2, 'col': None})
    assert located.format_error() == "Error on line 2: x"
