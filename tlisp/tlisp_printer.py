"""
A pretty-printer for tlisp ASTs and values.
"""
import math

from tlisp.tlisp_datatypes import (
    Visitor, Node, SExpr, Environment, Closure, raise_recursion_limit,
    Number, Bool, Variable, Define, If, Lambda, Call, BuiltinOp
)
from tlisp.tlisp_reader import dumps


def format_number(value: float) -> str:
    if math.isnan(value) or math.isinf(value):
        return str(value)
    if value == 0 and math.copysign(1.0, value) < 0:
        return "-0"
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


class Printer(Visitor):
    """Formats tlisp nodes and values into readable, re-readable source strings."""

    def __init__(self, indent_width=2):
        self._indent_char = " " * indent_width
        raise_recursion_limit()

    def pformat(self, obj, level=0):
        """Public entry point to format an object."""
        match obj:
            case Node():
                return obj.accept(self, level)
            case Closure():
                return f"#<closure {self.pformat(obj.function, level)}>"
            case None:
                return ""
            case SExpr():
                return dumps(obj)
            case Environment():
                return repr(obj)
        # Default to Python's repr for unknown types
        return repr(obj)

    def _inline(self, head, parts, level):
        return "(" + " ".join([head] + [self.pformat(p, level) for p in parts]) + ")"

    def visit_number(self, node: Number, level=0):
        return format_number(node.value)

    def visit_bool(self, node: Bool, level=0):
        return '#t' if node.value else '#f'

    def visit_variable(self, node: Variable, level=0):
        return node.name

    def visit_define(self, node: Define, level=0):
        return f"(define {node.name} {self.pformat(node.value, level)})"

    def visit_if(self, node: If, level=0):
        parts = [self.pformat(p, level + 1) for p in (node.test, node.then_branch, node.else_branch)]
        flat = f"(if {' '.join(parts)})"
        if '\n' not in flat and len(flat) <= 60:
            return flat
        indent = self._indent_char * (level + 1)
        return "(if " + parts[0] + "".join(f"\n{indent}{p}" for p in parts[1:]) + ")"

    def visit_lambda(self, node: Lambda, level=0):
        params = "(" + " ".join(node.params) + ")"
        return f"(lambda {params} {self.pformat(node.body, level)})"

    def visit_call(self, node: Call, level=0):
        return self._inline(self.pformat(node.callee, level), node.args, level)

    def visit_builtin_op(self, node: BuiltinOp, level=0):
        return self._inline(node.op, node.args, level)
