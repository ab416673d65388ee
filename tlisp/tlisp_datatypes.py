"""
Defines the core data types for the tlisp language runtime.

This module provides the s-expression nodes produced by the reader, the
typed AST produced by the transformer, the runtime values (closures and
environments) the evaluator works with, and the error taxonomy shared by
every stage.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, Iterable, Mapping, Tuple
import collections.abc
import sys


# Every tlisp call and every level of list nesting costs a few Python frames.
RECURSION_LIMIT = 10000


def raise_recursion_limit(limit: int = RECURSION_LIMIT):
    """Raises the host recursion limit to at least limit; never lowers it."""
    if sys.getrecursionlimit() < limit:
        sys.setrecursionlimit(limit)


# =================================================================
# Errors
# =================================================================

class TlispError(Exception):
    """Base class for every error raised by the tlisp core."""
    def __init__(self, message: str, node: Any = None):
        super().__init__(message)
        self.message = message
        self.node = node
        self.loc: Optional[Dict[str, Any]] = getattr(node, 'loc', None)


class TlispSyntaxError(TlispError, SyntaxError):
    """Malformed text or an ill-formed special form."""
    def __str__(self) -> str:
        return self.message


class UnexpectedEOF(TlispSyntaxError):
    """Input ended while one or more lists were still open."""
    pass


class UnboundNameError(TlispError):
    def __init__(self, name: str, node: Any = None):
        super().__init__(f"'{name}' is not bound", node)
        self.name = name


class TypeMismatchError(TlispError, TypeError):
    pass


class ArityError(TlispError, TypeError):
    pass


# =================================================================
# S-expressions (reader output)
# =================================================================

class SExpr(ABC):
    """Abstract base class for the untyped reader tree."""
    loc: Optional[Dict[str, Any]] = None


class Atom(SExpr):
    """A single raw token."""
    def __init__(self, token: str):
        self.token = token

    def __repr__(self) -> str:
        return f"Atom({self.token!r})"

    def __eq__(self, other):
        return isinstance(other, Atom) and self.token == other.token

    def __hash__(self):
        return hash(('atom', self.token))


class SList(SExpr, collections.abc.MutableSequence):
    """A parenthesized list of s-expressions."""
    def __init__(self, items: Iterable[SExpr] = ()):
        self.items = list(items)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return SList(self.items[index])
        return self.items[index]

    def __setitem__(self, index, value):
        self.items[index] = value

    def __delitem__(self, index):
        del self.items[index]

    def __len__(self) -> int:
        return len(self.items)

    def insert(self, index, value):
        self.items.insert(index, value)

    def __repr__(self) -> str:
        return f"SList({self.items!r})"

    def __eq__(self, other):
        return isinstance(other, SList) and self.items == other.items

    __hash__ = None


# =================================================================
# AST
# =================================================================

class Node(ABC):
    """Base class for the closed set of AST variants.

    Nodes are immutable once built. `kind` names the visitor method that
    handles the variant, and `_fields` lists the attributes that take part
    in equality and hashing. Source locations are carried in `loc` but are
    never compared.
    """
    kind: str = ''
    _fields: Tuple[str, ...] = ()

    def __init__(self, loc: Optional[Dict[str, Any]] = None, **fields):
        for name in self._fields:
            object.__setattr__(self, name, fields[name])
        object.__setattr__(self, 'loc', loc)

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} nodes are immutable")

    def __delattr__(self, name):
        raise AttributeError(f"{type(self).__name__} nodes are immutable")

    def accept(self, visitor: 'Visitor', *args):
        return getattr(visitor, f"visit_{self.kind}")(self, *args)

    def _key(self):
        return tuple(getattr(self, name) for name in self._fields)

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash((type(self).__name__,) + self._key())

    def __repr__(self) -> str:
        inner = ", ".join(repr(getattr(self, name)) for name in self._fields)
        return f"{type(self).__name__}({inner})"


class Number(Node):
    """A double-precision number literal; also the runtime number value."""
    kind = 'number'
    _fields = ('value',)

    def __init__(self, value: float, loc=None):
        if isinstance(value, bool):
            raise TypeError("Number value must be numeric, not bool")
        super().__init__(loc, value=float(value))


class Bool(Node):
    """A boolean literal; also the runtime boolean value."""
    kind = 'bool'
    _fields = ('value',)

    def __init__(self, value: bool, loc=None):
        super().__init__(loc, value=bool(value))


class Variable(Node):
    kind = 'variable'
    _fields = ('name',)

    def __init__(self, name: str, loc=None):
        super().__init__(loc, name=name)


class Define(Node):
    kind = 'define'
    _fields = ('name', 'value')

    def __init__(self, name: str, value: Node, loc=None):
        super().__init__(loc, name=name, value=value)


class If(Node):
    kind = 'if'
    _fields = ('test', 'then_branch', 'else_branch')

    def __init__(self, test: Node, then_branch: Node, else_branch: Node, loc=None):
        super().__init__(loc, test=test, then_branch=then_branch, else_branch=else_branch)


class Lambda(Node):
    """An anonymous function literal: parameter names plus a body."""
    kind = 'lambda'
    _fields = ('params', 'body')

    def __init__(self, params: Iterable[str], body: Node, loc=None):
        super().__init__(loc, params=tuple(params), body=body)


class Call(Node):
    kind = 'call'
    _fields = ('callee', 'args')

    def __init__(self, callee: Node, args: Iterable[Node], loc=None):
        super().__init__(loc, callee=callee, args=tuple(args))


# Operator symbols recognised in head position; these names are reserved.
OPERATORS = ('+', '-', '*', '/', '<', '>', '=')
KEYWORDS = ('lambda', 'if', 'define')
RESERVED = frozenset(OPERATORS + KEYWORDS)


class BuiltinOp(Node):
    kind = 'builtin_op'
    _fields = ('op', 'args')

    def __init__(self, op: str, args: Iterable[Node], loc=None):
        if op not in OPERATORS:
            raise ValueError(f"Unknown operator {op!r}")
        super().__init__(loc, op=op, args=tuple(args))


class Visitor(ABC):
    """A traversal over the AST variants.

    Subclasses must handle every variant; a traversal missing one cannot be
    instantiated.
    """

    def visit(self, node: Node, *args):
        return node.accept(self, *args)

    @abstractmethod
    def visit_number(self, node: Number, *args): ...

    @abstractmethod
    def visit_bool(self, node: Bool, *args): ...

    @abstractmethod
    def visit_variable(self, node: Variable, *args): ...

    @abstractmethod
    def visit_define(self, node: Define, *args): ...

    @abstractmethod
    def visit_if(self, node: If, *args): ...

    @abstractmethod
    def visit_lambda(self, node: Lambda, *args): ...

    @abstractmethod
    def visit_call(self, node: Call, *args): ...

    @abstractmethod
    def visit_builtin_op(self, node: BuiltinOp, *args): ...


# =================================================================
# Core Runtime Types
# =================================================================

class Environment:
    """A lexical scope: local bindings plus a link to the enclosing scope.

    `extend` creates a child and never touches the receiver, so sibling
    calls of the same closure each get their own parameter bindings.
    `bind` writes to this instance only; closures holding a reference to
    it observe the new binding, which is what makes recursive `define`
    work.
    """
    def __init__(self, parent: Optional['Environment'] = None, bindings: Optional[Mapping[str, Any]] = None):
        self.bindings: Dict[str, Any] = dict(bindings or {})
        self._parent = parent

    @property
    def parent(self) -> Optional['Environment']:
        return self._parent

    def find_owner(self, name: str) -> Optional['Environment']:
        """Finds the environment in the chain that binds name."""
        env = self
        while env is not None:
            if name in env.bindings:
                return env
            env = env._parent
        return None

    def lookup(self, name: str) -> Any:
        owner = self.find_owner(name)
        if owner is None:
            raise UnboundNameError(name)
        return owner.bindings[name]

    def extend(self, bindings: Mapping[str, Any] | Iterable[Tuple[str, Any]]) -> 'Environment':
        return Environment(parent=self, bindings=dict(bindings))

    def bind(self, name: str, value: Any):
        if not isinstance(name, str):
            raise TypeError(f"Environment key must be a str, not {type(name)}")
        self.bindings[name] = value

    def get(self, name: str, default: Any = None) -> Any:
        owner = self.find_owner(name)
        if owner is None:
            return default
        return owner.bindings[name]

    def __getitem__(self, name: str) -> Any:
        return self.lookup(name)

    def __setitem__(self, name: str, value: Any):
        self.bind(name, value)

    def __contains__(self, name: Any) -> bool:
        return isinstance(name, str) and self.find_owner(name) is not None

    def __repr__(self) -> str:
        keys = ', '.join(self.bindings.keys())
        parent_id = f", parent=#{id(self._parent)}" if self._parent else ""
        return f"<Environment bindings=[{keys}]{parent_id}>"


class Closure:
    """A function value: a Lambda paired with the environment it was evaluated in.

    The environment is held by reference, never copied.
    """
    def __init__(self, function: Lambda, env: Environment, name: Optional[str] = None):
        self.function = function
        self.env = env
        # Set by `define` the first time the closure is bound; used in stacktraces.
        self.name = name

    @property
    def params(self) -> Tuple[str, ...]:
        return self.function.params

    @property
    def body(self) -> Node:
        return self.function.body

    def __repr__(self) -> str:
        from tlisp.tlisp_printer import Printer
        return Printer().pformat(self)

    def __eq__(self, other):
        if not isinstance(other, Closure):
            return NotImplemented
        return self.function is other.function and self.env is other.env

    def __hash__(self):
        return hash((id(self.function), id(self.env)))


Value = Number | Bool | Closure
