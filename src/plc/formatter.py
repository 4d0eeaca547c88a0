"""AST-walking pretty-printer for Plc source code.

Produces canonical formatting for .plc files. Parentheses only come from
Group nodes, so the printed text parses back into the same tree.
"""

from __future__ import annotations

from plc.ast_nodes import (
    AccessExpr,
    Assignment,
    BinaryExpr,
    BooleanLit,
    CallExpr,
    CharLit,
    DecimalLit,
    Declaration,
    Expr,
    ExprStmt,
    Field,
    ForStmt,
    Group,
    IfStmt,
    IntegerLit,
    Method,
    NilLit,
    ReturnStmt,
    Source,
    Stmt,
    StringLit,
    WhileStmt,
)

_ESCAPES: dict[str, str] = {
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\\": "\\\\",
}


def _quote(text: str, quote: str) -> str:
    body = "".join(
        _ESCAPES.get(ch, "\\" + ch if ch == quote else ch) for ch in text
    )
    return f"{quote}{body}{quote}"


class PlcFormatter:
    """Format a parsed Plc Source back to canonical source text."""

    # ── Public API ─────────────────────────────────────────────

    def format(self, source: Source) -> str:
        """Format a source tree to canonical source text."""
        parts: list[str] = []
        if source.fields:
            parts.append("\n".join(self._format_field(f) for f in source.fields))
        for method in source.methods:
            parts.append(self._format_method(method))
        result = "\n\n".join(parts)
        if not result.endswith("\n"):
            result += "\n"
        return result

    # ── Declarations ───────────────────────────────────────────

    def _format_field(self, fld: Field) -> str:
        return f"LET {self._format_declaration(fld.name, fld.type_name, fld.value)};"

    def _format_declaration(
        self, name: str, type_name: str | None, value: Expr | None,
    ) -> str:
        text = name
        if type_name is not None:
            text += f": {type_name}"
        if value is not None:
            text += f" = {self._format_expr(value)}"
        return text

    def _format_method(self, method: Method) -> str:
        params = ", ".join(
            f"{name}: {ty}"
            for name, ty in zip(method.parameters, method.parameter_type_names)
        )
        sig = f"DEF {method.name}({params})"
        if method.return_type_name is not None:
            sig += f": {method.return_type_name}"
        lines = [f"{sig} DO"]
        lines.extend(self._format_body(method.statements))
        lines.append("END")
        return "\n".join(lines)

    # ── Statements ─────────────────────────────────────────────

    def _format_body(self, statements: list[Stmt]) -> list[str]:
        return [self._indent(self._format_stmt(s), 1) for s in statements]

    def _format_stmt(self, stmt: Stmt) -> str:
        match stmt:
            case ExprStmt(expr=expr):
                return f"{self._format_expr(expr)};"
            case Declaration(name=name, type_name=type_name, value=value):
                return f"LET {self._format_declaration(name, type_name, value)};"
            case Assignment(receiver=receiver, value=value):
                return f"{self._format_expr(receiver)} = {self._format_expr(value)};"
            case IfStmt(condition=condition, then_statements=then, else_statements=orelse):
                lines = [f"IF {self._format_expr(condition)} DO"]
                lines.extend(self._format_body(then))
                if orelse:
                    lines.append("ELSE")
                    lines.extend(self._format_body(orelse))
                lines.append("END")
                return "\n".join(lines)
            case ForStmt(name=name, value=value, statements=body):
                lines = [f"FOR {name} IN {self._format_expr(value)} DO"]
                lines.extend(self._format_body(body))
                lines.append("END")
                return "\n".join(lines)
            case WhileStmt(condition=condition, statements=body):
                lines = [f"WHILE {self._format_expr(condition)} DO"]
                lines.extend(self._format_body(body))
                lines.append("END")
                return "\n".join(lines)
            case ReturnStmt(value=value):
                return f"RETURN {self._format_expr(value)};"
        return ""

    # ── Expressions ────────────────────────────────────────────

    def _format_expr(self, expr: Expr) -> str:
        match expr:
            case NilLit():
                return "NIL"
            case BooleanLit(value=flag):
                return "TRUE" if flag else "FALSE"
            case IntegerLit(value=number):
                return str(number)
            case DecimalLit(value=number):
                return format(number, "f")
            case CharLit(value=text):
                return _quote(text, "'")
            case StringLit(value=text):
                return _quote(text, '"')
            case Group(expr=inner):
                return f"({self._format_expr(inner)})"
            case BinaryExpr(op=op, left=left, right=right):
                return f"{self._format_expr(left)} {op} {self._format_expr(right)}"
            case AccessExpr(receiver=None, name=name):
                return name
            case AccessExpr(receiver=receiver, name=name):
                return f"{self._format_expr(receiver)}.{name}"
            case CallExpr(receiver=receiver, name=name, arguments=arguments):
                args = ", ".join(self._format_expr(a) for a in arguments)
                if receiver is None:
                    return f"{name}({args})"
                return f"{self._format_expr(receiver)}.{name}({args})"
        return "???"

    # ── Helpers ────────────────────────────────────────────────

    @staticmethod
    def _indent(text: str, levels: int) -> str:
        prefix = "    " * levels
        return "\n".join(prefix + line if line else line for line in text.splitlines())
