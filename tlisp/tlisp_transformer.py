"""
Transforms the reader's s-expression tree into the typed tlisp AST.

All syntactic validation happens here: special-form arity, parameter
lists and the use of reserved words. The evaluator can assume every node
it receives is well formed.
"""
import math
import re

from tlisp.tlisp_datatypes import (
    Atom, SList, SExpr, Node,
    Number, Bool, Variable, Define, If, Lambda, Call, BuiltinOp,
    OPERATORS, RESERVED, TlispSyntaxError, raise_recursion_limit
)

_NUMBER_RE = re.compile(r'[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\Z')
_BOOLEANS = {'#t': True, '#f': False}


class TlispTransformer:
    def __init__(self):
        raise_recursion_limit()

    def _attach_loc(self, node: SExpr) -> dict | None:
        loc = getattr(node, 'loc', None)
        return dict(loc) if loc else None

    def _error(self, message: str, node: SExpr) -> TlispSyntaxError:
        err = TlispSyntaxError(message)
        err.loc = self._attach_loc(node)
        return err

    def transform(self, node: SExpr) -> Node:
        match node:
            case Atom():
                return self._transform_atom(node)
            case SList():
                return self._transform_list(node)
            case _:
                raise TypeError(f"No transformer for {type(node).__name__}")

    # --- Atoms ---

    def _literal(self, atom: Atom) -> Node | None:
        loc = self._attach_loc(atom)
        if _NUMBER_RE.match(atom.token):
            value = float(atom.token)
            if math.isinf(value):
                raise self._error(f"number literal {atom.token} is out of range", atom)
            return Number(value, loc=loc)
        if atom.token in _BOOLEANS:
            return Bool(_BOOLEANS[atom.token], loc=loc)
        return None

    def _transform_atom(self, atom: Atom) -> Node:
        literal = self._literal(atom)
        if literal is not None:
            return literal
        if atom.token in RESERVED:
            raise self._error(f"'{atom.token}' is reserved and cannot be used as a variable", atom)
        return Variable(atom.token, loc=self._attach_loc(atom))

    def _name(self, node: SExpr, what: str) -> str:
        """Validates a binding name (a define target or a lambda parameter)."""
        if not isinstance(node, Atom):
            raise self._error(f"{what} must be a name, not a list", node)
        if self._literal(node) is not None:
            raise self._error(f"{what} must be a name, not the literal {node.token}", node)
        if node.token in RESERVED:
            raise self._error(f"{what} cannot be the reserved word '{node.token}'", node)
        return node.token

    # --- Lists ---

    def _transform_list(self, lst: SList) -> Node:
        if not lst.items:
            raise self._error("empty application: () is not an expression", lst)

        head, rest = lst.items[0], lst.items[1:]
        loc = self._attach_loc(lst)

        if isinstance(head, SList):
            return Call(self.transform(head), [self.transform(x) for x in rest], loc=loc)

        match head.token:
            case op if op in OPERATORS:
                return BuiltinOp(op, [self.transform(x) for x in rest], loc=loc)
            case 'lambda':
                return self._transform_lambda(lst, rest)
            case 'if':
                if len(rest) != 3:
                    raise self._error(f"if requires exactly three sub-expressions, got {len(rest)}", lst)
                test, then_branch, else_branch = (self.transform(x) for x in rest)
                return If(test, then_branch, else_branch, loc=loc)
            case 'define':
                if len(rest) != 2:
                    raise self._error(f"define requires a name and exactly one value expression, got {len(rest)} sub-expressions", lst)
                name = self._name(rest[0], "define target")
                return Define(name, self.transform(rest[1]), loc=loc)
            case _:
                # Numbers and booleans in head position still build a Call so
                # that applying them fails at evaluation like any non-closure.
                callee = self._literal(head)
                if callee is None:
                    callee = Variable(self._name(head, "function name"), loc=self._attach_loc(head))
                return Call(callee, [self.transform(x) for x in rest], loc=loc)

    def _transform_lambda(self, lst: SList, rest: list) -> Lambda:
        if len(rest) != 2:
            raise self._error(f"lambda requires a parameter list and exactly one body expression, got {len(rest)} sub-expressions", lst)
        params_node, body = rest
        if not isinstance(params_node, SList):
            raise self._error("lambda parameters must be a parenthesized list of names", params_node)
        params = []
        for p in params_node.items:
            name = self._name(p, "lambda parameter")
            if name in params:
                raise self._error(f"duplicate lambda parameter '{name}'", p)
            params.append(name)
        return Lambda(params, self.transform(body), loc=self._attach_loc(lst))


_transformer = TlispTransformer()


def build(node: SExpr) -> Node:
    """Build the AST for one s-expression tree."""
    return _transformer.transform(node)
