import pytest
from tlisp.tlisp_reader import read
from tlisp.tlisp_transformer import TlispTransformer, build
from tlisp.tlisp_datatypes import (
    Atom, SList,
    Number, Bool, Variable, Define, If, Lambda, Call, BuiltinOp,
    TlispSyntaxError
)


def b(text):
    return build(read(text))


# Test cases: (id, source, expected_ast)
BUILD_TEST_CASES = [
    ("integer", "42", Number(42)),
    ("negative_float", "-2.5", Number(-2.5)),
    ("exponent", "1e3", Number(1000)),
    ("leading_dot", ".5", Number(0.5)),
    ("underflow_to_zero", "1e-999", Number(0)),
    ("largest_finite", "1.7976931348623157e308", Number(1.7976931348623157e308)),
    ("true", "#t", Bool(True)),
    ("false", "#f", Bool(False)),
    ("variable", "x", Variable("x")),
    ("nan_is_a_name", "nan", Variable("nan")),
    ("dashed_name", "make-adder", Variable("make-adder")),
    ("builtin_op", "(+ 1 2)", BuiltinOp("+", [Number(1), Number(2)])),
    ("builtin_op_no_args", "(*)", BuiltinOp("*", [])),
    ("if", "(if #t 1 0)", If(Bool(True), Number(1), Number(0))),
    ("define", "(define x 3)", Define("x", Number(3))),
    (
        "lambda",
        "(lambda (x y) (+ x y))",
        Lambda(["x", "y"], BuiltinOp("+", [Variable("x"), Variable("y")])),
    ),
    ("lambda_no_params", "(lambda () 1)", Lambda([], Number(1))),
    ("call_by_name", "(f 1 x)", Call(Variable("f"), [Number(1), Variable("x")])),
    ("call_no_args", "(f)", Call(Variable("f"), [])),
    (
        "immediate_application",
        "((lambda (x) x) 3)",
        Call(Lambda(["x"], Variable("x")), [Number(3)]),
    ),
    (
        "curried_application",
        "((f 1) 2)",
        Call(Call(Variable("f"), [Number(1)]), [Number(2)]),
    ),
    ("number_in_head_position", "(1 2)", Call(Number(1), [Number(2)])),
]


@pytest.mark.parametrize("test_id, source, expected", BUILD_TEST_CASES, ids=[t[0] for t in BUILD_TEST_CASES])
def test_build(test_id, source, expected):
    assert b(source) == expected


def test_build_factorial():
    ast = b("(define fact (lambda (n) (if (= n 0) 1 (* n (fact (- n 1))))))")
    assert isinstance(ast, Define)
    assert ast.name == "fact"
    fn = ast.value
    assert isinstance(fn, Lambda) and fn.params == ("n",)
    assert fn.body.else_branch == BuiltinOp("*", [
        Variable("n"),
        Call(Variable("fact"), [BuiltinOp("-", [Variable("n"), Number(1)])]),
    ])


@pytest.mark.parametrize("source, message", [
    ("()", "empty application"),
    ("(if #t 1)", "if requires exactly three sub-expressions"),
    ("(if #t 1 2 3)", "if requires exactly three sub-expressions"),
    ("(lambda x x)", "parenthesized list of names"),
    ("(lambda (x))", "lambda requires a parameter list"),
    ("(lambda (x) x x)", "lambda requires a parameter list"),
    ("(lambda ((x)) x)", "lambda parameter must be a name"),
    ("(lambda (1) 1)", "lambda parameter must be a name"),
    ("(lambda (x x) x)", "duplicate lambda parameter 'x'"),
    ("(lambda (if) 1)", "reserved word 'if'"),
    ("(define x)", "define requires a name"),
    ("(define x 1 2)", "define requires a name"),
    ("(define (f) 1)", "define target must be a name"),
    ("(define #t 1)", "define target must be a name"),
    ("(define + 1)", "reserved word '+'"),
    ("(define lambda 1)", "reserved word 'lambda'"),
    ("if", "'if' is reserved"),
    ("+", "'+' is reserved"),
    ("(f define)", "'define' is reserved"),
    ("1e999", "number literal 1e999 is out of range"),
    ("(+ 1 -1e400)", "number literal -1e400 is out of range"),
])
def test_build_errors(source, message):
    with pytest.raises(TlispSyntaxError) as excinfo:
        b(source)
    assert message in str(excinfo.value)


def test_build_error_carries_location():
    with pytest.raises(TlispSyntaxError) as excinfo:
        b("(define f\n  (if #t 1))")
    assert excinfo.value.loc["line"] == 2
    assert excinfo.value.loc["col"] == 3


def test_built_nodes_carry_location_but_compare_without_it():
    ast = b("(+ 1\n   x)")
    assert ast.loc["line"] == 1
    assert ast.args[1].loc == {"line": 2, "col": 4, "text": "x"}
    assert ast == BuiltinOp("+", [Number(1), Variable("x")])


def test_transformer_on_hand_built_tree():
    tree = SList([Atom("if"), Atom("#f"), Atom("a"), Atom("b")])
    assert TlispTransformer().transform(tree) == If(Bool(False), Variable("a"), Variable("b"))


def test_transformer_rejects_unknown_input():
    with pytest.raises(TypeError):
        TlispTransformer().transform("(+ 1 2)")


def test_out_of_range_literal_location():
    with pytest.raises(TlispSyntaxError) as excinfo:
        b("(* 2\n   1e999)")
    assert excinfo.value.loc == {"line": 2, "col": 4, "text": "1e999"}


def test_build_deeply_nested_expression():
    ast = b("(+ " * 400 + "1" + ")" * 400)
    depth = 0
    while isinstance(ast, BuiltinOp):
        depth += 1
        ast = ast.args[0]
    assert depth == 400
    assert ast == Number(1)
