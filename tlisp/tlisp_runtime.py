# tlisp_runtime.py

from dataclasses import dataclass
from typing import Any, Optional, Literal, Dict

from tlisp.tlisp_reader import read_all
from tlisp.tlisp_transformer import TlispTransformer
from tlisp.tlisp_interpreter import Evaluator
from tlisp.tlisp_datatypes import (
    Environment, TlispSyntaxError, UnboundNameError, TypeMismatchError, ArityError
)

# ===================================================================
# Script Execution
# ===================================================================

Token = Dict[str, Any]


@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Any = None
    error_message: Optional[str] = None
    error_token: Optional[Token] = None
    error_kind: Optional[str] = None

    def format_error(self) -> str:
        """Formats an error message with line and column if available."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")

        if self.error_token and 'line' in self.error_token:
            line = self.error_token.get('line')
            col = self.error_token.get('col')
            if not msg.startswith("Error on line "):
                col_info = f", col {col}" if col is not None else ""
                return f"Error on line {line}{col_info}: {msg}"
        return msg


class ScriptRunner:
    """Reads, builds and evaluates tlisp code against a persistent top-level environment."""

    _transformer: Optional[TlispTransformer] = None

    def __init__(self, environment: Optional[Environment] = None):
        if ScriptRunner._transformer is None:
            ScriptRunner._transformer = TlispTransformer()
        self.transformer = ScriptRunner._transformer
        self.evaluator = Evaluator()
        self.root_env = environment if environment is not None else Environment()

    def _format_runtime_error(self, e: BaseException, source: str) -> tuple[str, Optional[dict]]:
        match e:
            case TlispSyntaxError():
                msg = f"SyntaxError: {e}"
            case UnboundNameError() | TypeMismatchError() | ArityError():
                msg = f"{type(e).__name__}: {e}"
            case RecursionError():
                msg = "ResourceError: maximum recursion depth exceeded"
            case _:
                msg = f"InternalError: {e}"

        token = None
        loc = getattr(e, 'loc', None)
        if loc and isinstance(loc, dict):
            line = loc.get('line'); col = loc.get('col')
            token = {'line': line, 'col': col, 'text': loc.get('text')}
            if line is not None and col is not None:
                context = self._source_context(source, line, col)
                if context:
                    msg = f"{msg}\n{context}"

        # Deep recursion would make the trace unreadable
        if not isinstance(e, RecursionError):
            st = self._format_stacktrace()
            if st:
                msg += "\n" + st

        return msg, token

    def _source_context(self, source: str, line: int, col: Optional[int], radius: int = 2) -> str:
        lines = source.splitlines()
        if not line or line < 1 or line > len(lines):
            return ""
        start = max(1, line - radius)
        end = min(len(lines), line + radius)
        width = len(str(end))
        out = []
        for i in range(start, end + 1):
            prefix = ">" if i == line else " "
            ln = str(i).rjust(width)
            content = lines[i - 1]
            out.append(f"{prefix} {ln} | {content}")
            if i == line and col is not None:
                caret = " " * max(col - 1, 0)
                out.append(f"  {' ' * width} | {caret}^")
        return "\n".join(out)

    def _format_stacktrace(self) -> str:
        stack = self.evaluator.call_stack
        if not stack:
            return ""
        from tlisp.tlisp_printer import Printer
        pf = Printer().pformat

        frames = []
        for frame in stack:
            name = frame.get('name') or 'lambda'
            args_s = " ".join(pf(a) for a in frame.get('args') or [])
            frames.append(f"({name} {args_s})" if args_s else f"({name})")
        return "tlisp stacktrace: " + " ".join(frames)

    def handle_script(self, source_code: str) -> ExecutionResult:
        """The main entry point to execute one or more top-level forms."""
        self.evaluator.call_stack.clear()
        try:
            forms = read_all(source_code)
            result = None
            for form in forms:
                node = self.transformer.transform(form)
                result = self.evaluator.eval(node, self.root_env)
            return ExecutionResult(status='success', value=result)
        except Exception as e:
            err_msg, err_token = self._format_runtime_error(e, source_code)
            return ExecutionResult(
                status='error',
                error_message=err_msg,
                error_token=err_token,
                error_kind=type(e).__name__,
            )
