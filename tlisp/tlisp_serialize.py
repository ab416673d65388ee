"""
Converts tlisp ASTs to and from plain data, and that data to JSON or YAML.

The data shape mirrors a grammar parse tree: every node is a dict with a
'tag', leaves carry 'value' or 'text', branches carry 'children'.
"""
from __future__ import annotations

import json
from typing import Any, Optional

import yaml

from tlisp.tlisp_datatypes import (
    Visitor, Node,
    Number, Bool, Variable, Define, If, Lambda, Call, BuiltinOp,
    OPERATORS, TlispSyntaxError
)


class ASTSerializer(Visitor):
    def visit_number(self, node: Number):
        return {'tag': 'number', 'value': node.value}

    def visit_bool(self, node: Bool):
        return {'tag': 'boolean', 'value': node.value}

    def visit_variable(self, node: Variable):
        return {'tag': 'variable', 'text': node.name}

    def visit_define(self, node: Define):
        return {'tag': 'define', 'text': node.name, 'children': [self.visit(node.value)]}

    def visit_if(self, node: If):
        return {'tag': 'if', 'children': [self.visit(n) for n in (node.test, node.then_branch, node.else_branch)]}

    def visit_lambda(self, node: Lambda):
        return {'tag': 'lambda', 'params': list(node.params), 'children': [self.visit(node.body)]}

    def visit_call(self, node: Call):
        return {'tag': 'call', 'children': [self.visit(node.callee)] + [self.visit(a) for a in node.args]}

    def visit_builtin_op(self, node: BuiltinOp):
        return {'tag': 'builtin-op', 'text': node.op, 'children': [self.visit(a) for a in node.args]}


def to_data(node: Node) -> dict:
    return ASTSerializer().visit(node)


def _children(data: dict, count: Optional[int] = None) -> list:
    children = data.get('children')
    if not isinstance(children, list):
        raise TlispSyntaxError(f"'{data.get('tag')}' node requires a children list")
    if count is not None and len(children) != count:
        raise TlispSyntaxError(f"'{data.get('tag')}' node requires {count} children, got {len(children)}")
    return [from_data(c) for c in children]


def _text(data: dict) -> str:
    text = data.get('text')
    if not isinstance(text, str):
        raise TlispSyntaxError(f"'{data.get('tag')}' node requires a text field")
    return text


def from_data(data: Any) -> Node:
    """Rebuild an AST from the output of to_data."""
    if not isinstance(data, dict) or 'tag' not in data:
        raise TlispSyntaxError(f"Not an AST node: {data!r}")

    match data['tag']:
        case 'number':
            value = data.get('value')
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TlispSyntaxError(f"number node requires a numeric value, got {value!r}")
            return Number(value)
        case 'boolean':
            value = data.get('value')
            if not isinstance(value, bool):
                raise TlispSyntaxError(f"boolean node requires a boolean value, got {value!r}")
            return Bool(value)
        case 'variable':
            return Variable(_text(data))
        case 'define':
            (value,) = _children(data, 1)
            return Define(_text(data), value)
        case 'if':
            test, then_branch, else_branch = _children(data, 3)
            return If(test, then_branch, else_branch)
        case 'lambda':
            params = data.get('params')
            if not isinstance(params, list) or not all(isinstance(p, str) for p in params):
                raise TlispSyntaxError("lambda node requires a list of parameter names")
            if len(set(params)) != len(params):
                raise TlispSyntaxError("lambda node has duplicate parameter names")
            (body,) = _children(data, 1)
            return Lambda(params, body)
        case 'call':
            children = _children(data)
            if not children:
                raise TlispSyntaxError("call node requires a callee")
            return Call(children[0], children[1:])
        case 'builtin-op':
            op = _text(data)
            if op not in OPERATORS:
                raise TlispSyntaxError(f"Unknown operator {op!r}")
            return BuiltinOp(op, _children(data))
        case tag:
            raise TlispSyntaxError(f"No AST node for tag {tag!r}")


def detect_format(text: str) -> str:
    """Returns 'json' for text that looks like JSON, otherwise 'yaml'."""
    s = text.lstrip()
    if s.startswith('{') or s.startswith('['):
        return 'json'
    return 'yaml'


def serialize(node: Node, *, fmt: str = 'json', pretty: bool = True) -> str:
    """
    Convert an AST into text.
    - fmt: 'json' | 'yaml'
    """
    f = (fmt or '').lower()
    built = to_data(node)
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def deserialize(text: str, *, fmt: Optional[str] = None) -> Node:
    """Parse JSON or YAML text produced by serialize back into an AST."""
    f = (fmt or detect_format(text)).lower()
    if f == 'json':
        return from_data(json.loads(text))
    if f == 'yaml':
        return from_data(yaml.safe_load(text))
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


__all__ = [
    "ASTSerializer",
    "to_data",
    "from_data",
    "serialize",
    "deserialize",
    "detect_format",
]
