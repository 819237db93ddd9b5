"""Token-level JSON writer used by the message encoder.

Output rules:
  * UTF-8 output; non-ASCII characters are written raw.
  * Strings escape quotation mark, reverse solidus and control characters
    (U+0000..U+001F). ``\\b \\f \\n \\r \\t`` use their short forms, the rest
    use ``\\u00xx`` with lowercase hex. Solidus '/' is not escaped.
  * Numbers: integers in decimal; floats use the shortest digits that
    round-trip at the given bit width, plain notation for magnitudes in
    [1e-6, 1e21) and exponent notation (``1e+21``, ``1e-7``) outside it.
    NaN and the infinities are written as the strings ``"NaN"``,
    ``"Infinity"`` and ``"-Infinity"``.
  * Compact output has no insignificant whitespace. With an indent unit,
    each member of a non-empty object or array goes on its own line and
    names are followed by ``": "``.
"""
from __future__ import annotations

import enum
import math
from decimal import Decimal

from .errors import WriterError
from .reflect.descriptor import to_float32

_SHORT_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


class _Token(enum.IntFlag):
    NONE = 0
    NAME = 1
    SCALAR = 2
    OBJECT_OPEN = 4
    OBJECT_CLOSE = 8
    ARRAY_OPEN = 16
    ARRAY_CLOSE = 32


_OPENERS = _Token.OBJECT_OPEN | _Token.ARRAY_OPEN
_CLOSERS = _Token.OBJECT_CLOSE | _Token.ARRAY_CLOSE
_VALUES = _Token.SCALAR | _Token.NAME | _OPENERS


def _escape_string(s: str) -> str:
    try:
        s.encode("utf-8")
    except UnicodeEncodeError as e:
        raise WriterError(f"invalid UTF-8 in string: {e.reason}") from e
    out_chars = []
    for ch in s:
        esc = _SHORT_ESCAPES.get(ch)
        if esc is not None:
            out_chars.append(esc)
        elif ord(ch) < 0x20:
            out_chars.append(f"\\u{ord(ch):04x}")
        else:
            out_chars.append(ch)
    return '"' + "".join(out_chars) + '"'


def _shortest_float32(n: float) -> str:
    for precision in range(1, 10):
        s = f"{n:.{precision}g}"
        if to_float32(float(s)) == n:
            return s
    return repr(n)


_PLAIN_RANGE = {
    32: (to_float32(1e-6), to_float32(1e21)),
    64: (1e-6, 1e21),
}


def _format_float(n: float, bit_size: int) -> str:
    if bit_size == 32:
        n = to_float32(n)
    if math.isnan(n):
        return '"NaN"'
    if math.isinf(n):
        return '"Infinity"' if n > 0 else '"-Infinity"'
    if n == 0:
        # Keep the sign of negative zero.
        return "-0" if math.copysign(1.0, n) < 0 else "0"
    digits = _shortest_float32(n) if bit_size == 32 else repr(n)
    dec = Decimal(digits).normalize()
    low, high = _PLAIN_RANGE[bit_size]
    if low <= abs(n) < high:
        return format(dec, "f")
    sign, digs, exp = dec.as_tuple()
    mantissa = str(digs[0])
    if len(digs) > 1:
        mantissa += "." + "".join(str(d) for d in digs[1:])
    e = exp + len(digs) - 1
    suffix = f"e-{-e}" if e < 0 else f"e+{e:02d}"
    return ("-" if sign else "") + mantissa + suffix


class JSONWriter:
    """Append-only JSON token sink; one instance per encode call."""

    def __init__(self, indent: str = ""):
        if indent.strip(" \t"):
            raise WriterError("indent may only be composed of space or tab characters")
        self._indent = indent
        self._indents = ""
        self._last = _Token.NONE
        self._out: list[str] = []

    def _prepare_next(self, nxt: _Token) -> None:
        last, self._last = self._last, nxt
        if not self._indent:
            if last & (_Token.SCALAR | _CLOSERS) and nxt & _VALUES:
                self._out.append(",")
            return
        if last & _OPENERS:
            if not nxt & _CLOSERS:
                self._indents += self._indent
                self._out.append("\n" + self._indents)
        elif last & (_Token.SCALAR | _CLOSERS):
            if nxt & _VALUES:
                self._out.append(",\n")
            elif nxt & _CLOSERS:
                self._indents = self._indents[: len(self._indents) - len(self._indent)]
                self._out.append("\n")
            self._out.append(self._indents)
        elif last & _Token.NAME:
            self._out.append(" ")

    def start_object(self) -> None:
        self._prepare_next(_Token.OBJECT_OPEN)
        self._out.append("{")

    def end_object(self) -> None:
        self._prepare_next(_Token.OBJECT_CLOSE)
        self._out.append("}")

    def start_array(self) -> None:
        self._prepare_next(_Token.ARRAY_OPEN)
        self._out.append("[")

    def end_array(self) -> None:
        self._prepare_next(_Token.ARRAY_CLOSE)
        self._out.append("]")

    def write_name(self, name: str) -> None:
        escaped = _escape_string(name)
        self._prepare_next(_Token.NAME)
        self._out.append(escaped + ":")

    def _write_scalar(self, text: str) -> None:
        self._prepare_next(_Token.SCALAR)
        self._out.append(text)

    def write_null(self) -> None:
        self._write_scalar("null")

    def write_bool(self, value: bool) -> None:
        self._write_scalar("true" if value else "false")

    def write_int(self, value: int) -> None:
        self._write_scalar(str(int(value)))

    def write_uint(self, value: int) -> None:
        if value < 0:
            raise WriterError(f"negative value {value} written as unsigned")
        self._write_scalar(str(int(value)))

    def write_string(self, value: str) -> None:
        self._write_scalar(_escape_string(value))

    def write_float(self, value: float, bit_size: int = 64) -> None:
        self._write_scalar(_format_float(float(value), bit_size))

    def getvalue(self) -> bytes:
        return "".join(self._out).encode("utf-8")


__all__ = ["JSONWriter"]
