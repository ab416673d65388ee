"""
The core tlisp interpreter: an Evaluator visitor over the AST.
"""
import math
import os
import sys
from typing import Any, List, Optional

from tlisp.tlisp_datatypes import (
    Node, Visitor, Environment, Closure,
    Number, Bool, Variable, Define, If, Lambda, Call, BuiltinOp,
    TlispError, UnboundNameError, TypeMismatchError, ArityError,
    raise_recursion_limit
)


def _kind(value: Any) -> str:
    match value:
        case Number():
            return "number"
        case Bool():
            return "boolean"
        case Closure():
            return "closure"
        case None:
            return "no value"
    return type(value).__name__


def _divide(a: float, b: float) -> float:
    # IEEE-754 semantics instead of ZeroDivisionError
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


_ARITHMETIC = {
    '+': lambda a, b: a + b,
    '-': lambda a, b: a - b,
    '*': lambda a, b: a * b,
    '/': _divide,
}
_IDENTITIES = {'+': 0.0, '*': 1.0}
_COMPARISONS = {
    '<': lambda a, b: a < b,
    '>': lambda a, b: a > b,
    '=': lambda a, b: a == b,
}


class Evaluator(Visitor):
    """The tlisp execution engine."""

    def __init__(self):
        self.call_stack: List[dict] = []
        raise_recursion_limit()

    def _push_frame(self, name, args):
        self.call_stack.append({'name': name, 'args': args})

    def _pop_frame(self):
        if self.call_stack:
            self.call_stack.pop()

    def _dbg(self, *parts):
        if os.environ.get("TLISP_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    def eval(self, node: Node, env: Environment) -> Any:
        """Public entry point for evaluation."""
        try:
            # Direct dispatch: one Python frame per node instead of two via accept.
            return getattr(self, f"visit_{node.kind}")(node, env)
        except TlispError as e:
            # Innermost node wins; outer frames leave an existing loc alone.
            if e.loc is None and node.loc is not None:
                e.loc = node.loc
                e.node = node
            raise

    # --- Literals and names ---

    def visit_number(self, node: Number, env: Environment):
        return node

    def visit_bool(self, node: Bool, env: Environment):
        return node

    def visit_variable(self, node: Variable, env: Environment):
        try:
            return env.lookup(node.name)
        except UnboundNameError as e:
            e.node, e.loc = node, node.loc
            raise

    # --- Special forms ---

    def visit_define(self, node: Define, env: Environment):
        value = self.eval(node.value, env)
        if isinstance(value, Closure) and value.name is None:
            value.name = node.name
        self._dbg("define", node.name, "in", repr(env))
        env.bind(node.name, value)
        return None

    def visit_if(self, node: If, env: Environment):
        test = self.eval(node.test, env)
        if not isinstance(test, Bool):
            raise TypeMismatchError(f"if test must be a boolean, got {_kind(test)}", node.test)
        branch = node.then_branch if test.value else node.else_branch
        return self.eval(branch, env)

    def visit_lambda(self, node: Lambda, env: Environment):
        return Closure(node, env)

    # --- Application ---

    def visit_builtin_op(self, node: BuiltinOp, env: Environment):
        op = node.op
        if op in _COMPARISONS:
            return self._compare(node, env)

        if not node.args and op not in _IDENTITIES:
            raise ArityError(f"({op}) requires at least one argument", node)
        fn = _ARITHMETIC[op]
        acc = _IDENTITIES.get(op)
        for arg in node.args:
            value = self._number(op, self.eval(arg, env), arg)
            acc = value if acc is None else fn(acc, value)
        return Number(acc, loc=node.loc)

    def _number(self, op: str, value: Any, arg_node: Node) -> float:
        if not isinstance(value, Number):
            raise TypeMismatchError(f"({op}) expects numbers, got {_kind(value)}", arg_node)
        return value.value

    def _compare(self, node: BuiltinOp, env: Environment) -> Bool:
        op = node.op
        values = []
        for arg in node.args:
            value = self.eval(arg, env)
            if op == '=':
                if not isinstance(value, (Number, Bool)):
                    raise TypeMismatchError(f"(=) expects numbers or booleans, got {_kind(value)}", arg)
                if values and type(value) is not type(values[0]):
                    raise TypeMismatchError(f"(=) cannot compare {_kind(values[0])} with {_kind(value)}", arg)
            else:
                self._number(op, value, arg)
            values.append(value)
        cmp = _COMPARISONS[op]
        result = all(cmp(a.value, b.value) for a, b in zip(values, values[1:]))
        return Bool(result, loc=node.loc)

    def visit_call(self, node: Call, env: Environment):
        func = self.eval(node.callee, env)
        if not isinstance(func, Closure):
            raise TypeMismatchError(f"cannot apply {_kind(func)}: not a function", node.callee)
        args = [self.eval(arg, env) for arg in node.args]
        return self.call(func, args, node)

    def call(self, func: Closure, args: List[Any], call_site: Optional[Node] = None):
        """Applies a closure to already-evaluated arguments.

        A frame is pushed onto call_stack for the duration of the call and is
        left there if evaluation of the body raises, so the stack at the point
        of failure can be reported. Callers that reuse an Evaluator after an
        error must clear call_stack themselves; ScriptRunner does so before
        each script.
        """
        params = func.params
        if len(args) != len(params):
            name = func.name or 'lambda'
            raise ArityError(
                f"{name} expects {len(params)} argument{'s' if len(params) != 1 else ''}, got {len(args)}",
                call_site,
            )
        self._dbg("call", func.name or "<lambda>", "argc", len(args))
        local_env = func.env.extend(zip(params, args))
        self._push_frame(func.name or 'lambda', args)
        result = self.eval(func.body, local_env)
        self._pop_frame()
        return result


def evaluate(node: Node, env: Environment) -> Any:
    """Evaluates an AST node in env with a fresh evaluator."""
    return Evaluator().eval(node, env)
