"""
tlisp: a small parenthesized expression language.

text -> read -> s-expression tree -> build -> AST -> evaluate(ast, env) -> value
"""

from tlisp.tlisp_datatypes import (
    Environment, Closure,
    Number, Bool, Variable, Define, If, Lambda, Call, BuiltinOp,
    TlispError, TlispSyntaxError, UnexpectedEOF,
    UnboundNameError, TypeMismatchError, ArityError,
)
from tlisp.tlisp_reader import read, read_all
from tlisp.tlisp_transformer import build
from tlisp.tlisp_interpreter import Evaluator, evaluate
from tlisp.tlisp_runtime import ScriptRunner, ExecutionResult
