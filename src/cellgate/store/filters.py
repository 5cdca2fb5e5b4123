"""
Filter expression language evaluated by the in-memory store.

Supported filters::

    PrefixFilter('row-prefix')
    ColumnPrefixFilter('qualifier-prefix')
    ColumnRangeFilter('min', true, 'max', false)
    KeyOnlyFilter() / KeyOnlyFilter(true)
    FirstKeyOnlyFilter()
    QualifierFilter(>=, 'binary:abc')
    ValueFilter(=, 'substring:abc')

combined with ``AND`` / ``OR`` and parentheses (``AND`` binds tighter).
Quoted arguments are byte strings; a quote inside one is written ``''``.
"""

from __future__ import annotations

import operator
import re
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Sequence, Tuple, Union

from cellgate.core.errors import FilterSyntaxError
from cellgate.store.base import StoredCell

_TOKEN_RE = re.compile(
    rb"""
    \s*(?:
        (?P<quoted>'(?:[^']|'')*')
      | (?P<op><=|>=|!=|=|<|>)
      | (?P<punct>[(),])
      | (?P<number>-?[0-9]+)
      | (?P<word>[A-Za-z_][A-Za-z0-9_]*)
    )
    """,
    re.VERBOSE,
)

_COMPARE_OPS: Dict[bytes, Callable[[bytes, bytes], bool]] = {
    b"<": operator.lt,
    b"<=": operator.le,
    b"=": operator.eq,
    b"!=": operator.ne,
    b">=": operator.ge,
    b">": operator.gt,
}

Token = Tuple[str, bytes]
Arg = Union[bytes, bool, int, "CompareOp"]


@dataclass(frozen=True)
class CompareOp:
    symbol: bytes

    def __call__(self, left: bytes, right: bytes) -> bool:
        return _COMPARE_OPS[self.symbol](left, right)


class RowFilter(ABC):
    """Filter applied to the cells of one row."""

    @abstractmethod
    def apply(self, row: bytes, cells: List[StoredCell]) -> List[StoredCell]:
        pass


@dataclass(frozen=True)
class PrefixFilter(RowFilter):
    prefix: bytes

    def apply(self, row: bytes, cells: List[StoredCell]) -> List[StoredCell]:
        return cells if row.startswith(self.prefix) else []


@dataclass(frozen=True)
class ColumnPrefixFilter(RowFilter):
    prefix: bytes

    def apply(self, row: bytes, cells: List[StoredCell]) -> List[StoredCell]:
        return [c for c in cells if c.qualifier.startswith(self.prefix)]


@dataclass(frozen=True)
class ColumnRangeFilter(RowFilter):
    """Qualifiers between two bounds; an empty bound is open."""

    min_column: bytes
    min_inclusive: bool
    max_column: bytes
    max_inclusive: bool

    def _in_range(self, qualifier: bytes) -> bool:
        if self.min_column:
            if qualifier < self.min_column:
                return False
            if qualifier == self.min_column and not self.min_inclusive:
                return False
        if self.max_column:
            if qualifier > self.max_column:
                return False
            if qualifier == self.max_column and not self.max_inclusive:
                return False
        return True

    def apply(self, row: bytes, cells: List[StoredCell]) -> List[StoredCell]:
        return [c for c in cells if self._in_range(c.qualifier)]


@dataclass(frozen=True)
class KeyOnlyFilter(RowFilter):
    """Strip values; with ``len_as_value`` the value becomes its 4-byte length."""

    len_as_value: bool = False

    def apply(self, row: bytes, cells: List[StoredCell]) -> List[StoredCell]:
        if self.len_as_value:
            return [replace(c, value=struct.pack(">i", len(c.value))) for c in cells]
        return [replace(c, value=b"") for c in cells]


@dataclass(frozen=True)
class FirstKeyOnlyFilter(RowFilter):
    def apply(self, row: bytes, cells: List[StoredCell]) -> List[StoredCell]:
        return cells[:1]


@dataclass(frozen=True)
class Comparator:
    """``binary:``, ``binaryprefix:`` or ``substring:`` comparator."""

    kind: bytes
    value: bytes

    @classmethod
    def parse(cls, raw: bytes) -> "Comparator":
        kind, sep, value = raw.partition(b":")
        kind = kind.lower()
        if not sep or kind not in (b"binary", b"binaryprefix", b"substring"):
            raise FilterSyntaxError(f"Unknown comparator: {raw!r}")
        return cls(kind, value)

    def matches(self, op: CompareOp, data: bytes) -> bool:
        if self.kind == b"binary":
            return op(data, self.value)
        if self.kind == b"binaryprefix":
            return op(data[: len(self.value)], self.value)
        found = self.value.lower() in data.lower()
        if op.symbol == b"=":
            return found
        if op.symbol == b"!=":
            return not found
        raise FilterSyntaxError("substring comparator only supports = and !=")


@dataclass(frozen=True)
class QualifierFilter(RowFilter):
    op: CompareOp
    comparator: Comparator

    def apply(self, row: bytes, cells: List[StoredCell]) -> List[StoredCell]:
        return [c for c in cells if self.comparator.matches(self.op, c.qualifier)]


@dataclass(frozen=True)
class ValueFilter(RowFilter):
    op: CompareOp
    comparator: Comparator

    def apply(self, row: bytes, cells: List[StoredCell]) -> List[StoredCell]:
        return [c for c in cells if self.comparator.matches(self.op, c.value)]


@dataclass(frozen=True)
class AndFilter(RowFilter):
    filters: Tuple[RowFilter, ...]

    def apply(self, row: bytes, cells: List[StoredCell]) -> List[StoredCell]:
        for row_filter in self.filters:
            cells = row_filter.apply(row, cells)
            if not cells:
                break
        return cells


@dataclass(frozen=True)
class OrFilter(RowFilter):
    filters: Tuple[RowFilter, ...]

    def apply(self, row: bytes, cells: List[StoredCell]) -> List[StoredCell]:
        kept: Dict[Tuple[bytes, bytes, int], StoredCell] = {}
        for row_filter in self.filters:
            for cell in row_filter.apply(row, cells):
                kept.setdefault((cell.family, cell.qualifier, cell.timestamp), cell)
        order = {(c.family, c.qualifier, c.timestamp): i for i, c in enumerate(cells)}
        return sorted(kept.values(), key=lambda c: order[(c.family, c.qualifier, c.timestamp)])


def _expect_args(name: str, args: Sequence[Arg], *types: type) -> None:
    if len(args) != len(types) or not all(
        isinstance(arg, t) and not (t is int and isinstance(arg, bool))
        for arg, t in zip(args, types)
    ):
        expected = ", ".join(t.__name__ for t in types)
        raise FilterSyntaxError(f"{name} expects ({expected}), got {len(args)} argument(s)")


def _build_prefix(args: Sequence[Arg]) -> RowFilter:
    _expect_args("PrefixFilter", args, bytes)
    return PrefixFilter(args[0])


def _build_column_prefix(args: Sequence[Arg]) -> RowFilter:
    _expect_args("ColumnPrefixFilter", args, bytes)
    return ColumnPrefixFilter(args[0])


def _build_column_range(args: Sequence[Arg]) -> RowFilter:
    _expect_args("ColumnRangeFilter", args, bytes, bool, bytes, bool)
    return ColumnRangeFilter(*args)


def _build_key_only(args: Sequence[Arg]) -> RowFilter:
    if args:
        _expect_args("KeyOnlyFilter", args, bool)
        return KeyOnlyFilter(args[0])
    return KeyOnlyFilter()


def _build_first_key_only(args: Sequence[Arg]) -> RowFilter:
    _expect_args("FirstKeyOnlyFilter", args)
    return FirstKeyOnlyFilter()


def _compare_builder(name: str, cls: type) -> Callable[[Sequence[Arg]], RowFilter]:
    def build(args: Sequence[Arg]) -> RowFilter:
        _expect_args(name, args, CompareOp, bytes)
        comparator = Comparator.parse(args[1])
        if comparator.kind == b"substring" and args[0].symbol not in (b"=", b"!="):
            raise FilterSyntaxError("substring comparator only supports = and !=")
        return cls(args[0], comparator)

    return build


_BUILDERS: Dict[bytes, Callable[[Sequence[Arg]], RowFilter]] = {
    b"PrefixFilter": _build_prefix,
    b"ColumnPrefixFilter": _build_column_prefix,
    b"ColumnRangeFilter": _build_column_range,
    b"KeyOnlyFilter": _build_key_only,
    b"FirstKeyOnlyFilter": _build_first_key_only,
    b"QualifierFilter": _compare_builder("QualifierFilter", QualifierFilter),
    b"ValueFilter": _compare_builder("ValueFilter", ValueFilter),
}


def _tokenize(expression: bytes) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    end = len(expression.rstrip())
    while pos < end:
        match = _TOKEN_RE.match(expression, pos)
        if match is None or match.end() == pos:
            raise FilterSyntaxError(f"Unexpected input at offset {pos}: {expression[pos:pos + 16]!r}")
        kind = match.lastgroup
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


MAX_NESTING_DEPTH = 64


class _Parser:
    def __init__(self, tokens: List[Token]) -> None:
        self.tokens = tokens
        self.pos = 0
        self.depth = 0

    def peek(self) -> Token:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return ("eof", b"")

    def take(self, kind: str, value: bytes = b"") -> bytes:
        token_kind, token_value = self.peek()
        if token_kind != kind or (value and token_value != value):
            wanted = value.decode() if value else kind
            raise FilterSyntaxError(f"Expected {wanted}, got {token_value!r}")
        self.pos += 1
        return token_value

    def parse(self) -> RowFilter:
        result = self.expression()
        if self.peek()[0] != "eof":
            raise FilterSyntaxError(f"Unexpected trailing input: {self.peek()[1]!r}")
        return result

    def expression(self) -> RowFilter:
        terms = [self.term()]
        while self.peek() == ("word", b"OR"):
            self.pos += 1
            terms.append(self.term())
        return terms[0] if len(terms) == 1 else OrFilter(tuple(terms))

    def term(self) -> RowFilter:
        factors = [self.factor()]
        while self.peek() == ("word", b"AND"):
            self.pos += 1
            factors.append(self.factor())
        return factors[0] if len(factors) == 1 else AndFilter(tuple(factors))

    def factor(self) -> RowFilter:
        if self.peek() == ("punct", b"("):
            self.pos += 1
            self.depth += 1
            if self.depth > MAX_NESTING_DEPTH:
                raise FilterSyntaxError(
                    f"Filter nested deeper than {MAX_NESTING_DEPTH} levels"
                )
            inner = self.expression()
            self.take("punct", b")")
            self.depth -= 1
            return inner
        name = self.take("word")
        builder = _BUILDERS.get(name)
        if builder is None:
            raise FilterSyntaxError(f"Unknown filter: {name.decode('utf-8', 'replace')}")
        self.take("punct", b"(")
        args: List[Arg] = []
        if self.peek() != ("punct", b")"):
            args.append(self.argument())
            while self.peek() == ("punct", b","):
                self.pos += 1
                args.append(self.argument())
        self.take("punct", b")")
        return builder(args)

    def argument(self) -> Arg:
        kind, value = self.peek()
        self.pos += 1
        if kind == "quoted":
            return value[1:-1].replace(b"''", b"'")
        if kind == "number":
            return int(value)
        if kind == "op":
            return CompareOp(value)
        if kind == "word" and value.lower() in (b"true", b"false"):
            return value.lower() == b"true"
        raise FilterSyntaxError(f"Unexpected argument: {value!r}")


def parse_filter(expression: Union[str, bytes]) -> RowFilter:
    """
    Parse a filter expression.

    Raises:
        FilterSyntaxError: if the expression is empty or malformed
    """
    raw = expression.encode("utf-8") if isinstance(expression, str) else bytes(expression)
    tokens = _tokenize(raw)
    if not tokens:
        raise FilterSyntaxError("Empty filter expression")
    try:
        return _Parser(tokens).parse()
    except RecursionError as exc:
        raise FilterSyntaxError("Filter expression nested too deeply") from exc


__all__ = [
    "RowFilter",
    "PrefixFilter",
    "ColumnPrefixFilter",
    "ColumnRangeFilter",
    "KeyOnlyFilter",
    "FirstKeyOnlyFilter",
    "QualifierFilter",
    "ValueFilter",
    "AndFilter",
    "OrFilter",
    "Comparator",
    "CompareOp",
    "parse_filter",
    "MAX_NESTING_DEPTH",
]
