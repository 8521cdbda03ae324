"""
A pretty-printer for twik values and AST nodes.
"""
import math

from twik.twik_ast import Int, Float, String, Symbol, List, Root
from twik.twik_datatypes import TwikCallable, Closure

_QUOTE_ESCAPES = {
    "\a": "\\a", "\b": "\\b", "\f": "\\f", "\n": "\\n", "\r": "\\r",
    "\t": "\\t", "\v": "\\v", "\\": "\\\\", '"': '\\"',
}


def quote(text: str) -> str:
    """Returns text as a double-quoted twik string literal."""
    out = []
    for c in text:
        if c in _QUOTE_ESCAPES:
            out.append(_QUOTE_ESCAPES[c])
        elif c.isprintable():
            out.append(c)
        elif ord(c) < 0x80:
            out.append(f"\\x{ord(c):02x}")
        elif ord(c) <= 0xFFFF:
            out.append(f"\\u{ord(c):04x}")
        else:
            out.append(f"\\U{ord(c):08x}")
    return '"' + "".join(out) + '"'


class Printer:
    """Formats twik values and nodes into readable twik source strings."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj) -> str:
        """Public entry point to format an object."""
        handler = self._handlers.get(type(obj))
        if handler is not None:
            return handler(obj)
        if isinstance(obj, TwikCallable):
            return "#func"
        # Default to Python's repr for foreign host objects
        return repr(obj)

    def _create_handlers(self):
        return {
            type(None): lambda o: "nil",
            bool: lambda o: "true" if o else "false",
            int: str,
            float: self._pformat_float,
            str: quote,
            list: self._pformat_list,
            Int: lambda n: n.input,
            Float: lambda n: n.input,
            String: lambda n: n.input,
            Symbol: lambda n: n.name,
            List: self._pformat_list_node,
            Root: lambda n: "\n".join(self.pformat(c) for c in n.nodes),
        }

    def _pformat_float(self, obj: float) -> str:
        if math.isnan(obj):
            return "NaN"
        if math.isinf(obj):
            return "+Inf" if obj > 0 else "-Inf"
        return repr(obj)

    def _pformat_list(self, obj: list) -> str:
        if not obj:
            return "()"
        return "(list " + " ".join(self.pformat(e) for e in obj) + ")"

    def _pformat_list_node(self, node: List) -> str:
        return "(" + " ".join(self.pformat(c) for c in node.nodes) + ")"

    def pformat_function(self, fn: Closure) -> str:
        """Renders a closure as the func form that would define it."""
        parts = ["func"]
        if fn.name:
            parts.append(fn.name)
        parts.append("(" + " ".join(fn.params) + ")")
        parts.extend(self.pformat(node) for node in fn.body)
        return "(" + " ".join(parts) + ")"
