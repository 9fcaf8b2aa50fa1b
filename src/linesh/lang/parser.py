"""Error-tolerant recursive descent parser.

``parse_chunk`` always returns a tree, even for half-typed input such as
``obj.`` or ``for []{b``; problems are collected as ``(span, message)`` pairs
next to it. Completion relies on this to reason about what is being typed.
"""

from __future__ import annotations

from linesh.lang.ast import (
    AbsolutePathLiteral,
    Assignment,
    AssertionStatement,
    BinaryExpression,
    Block,
    BooleanLiteral,
    BreakStatement,
    CallExpression,
    Chunk,
    ContinueStatement,
    FloatLiteral,
    ForStatement,
    GlobalVariable,
    HostLiteral,
    IdentifierLiteral,
    IdentifierMemberExpression,
    IfStatement,
    IntLiteral,
    ListLiteral,
    MemberExpression,
    NilLiteral,
    Node,
    ObjectLiteral,
    ObjectProperty,
    PatternIdentifierLiteral,
    PatternNamespaceIdentifierLiteral,
    PatternNamespaceMemberExpression,
    PruneStatement,
    RelativePathLiteral,
    ReturnStatement,
    SchemeLiteral,
    Span,
    StringLiteral,
    URLLiteral,
    Variable,
    WalkStatement,
)
from linesh.lang.tokens import WORD_OPERATORS, Token, decode_string, tokenize

_HORIZONTAL_SPACE = " \t"
_CLOSERS = frozenset(")]},;:")


def parse_chunk(source: str) -> tuple[Chunk, list[tuple[Span, str]]]:
    """Parse *source* into a ``Chunk`` and the list of syntax errors."""
    parser = _Parser(source)
    chunk = parser.parse()
    return chunk, parser.errors


class _Parser:
    def __init__(self, source: str) -> None:
        self._source = source
        self._tokens = [t for t in tokenize(source) if t.kind != "comment"]
        self._pos = 0
        self.errors: list[tuple[Span, str]] = [
            (t.span, t.error) for t in self._tokens if t.error is not None
        ]

    # -- token helpers ------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token | None:
        index = self._pos + offset
        if index < len(self._tokens):
            return self._tokens[index]
        return None

    def _advance(self) -> Token:
        tok = self._tokens[self._pos]
        self._pos += 1
        return tok

    def _is_punct(self, text: str, offset: int = 0) -> bool:
        tok = self._peek(offset)
        return tok is not None and tok.kind == "punct" and tok.text == text

    def _is_keyword(self, text: str) -> bool:
        tok = self._peek()
        return tok is not None and tok.kind == "keyword" and tok.text == text

    def _error(self, span: Span, message: str) -> None:
        self.errors.append((span, message))

    def _error_here(self, message: str) -> None:
        tok = self._peek()
        if tok is None:
            end = len(self._source)
            self._error(Span(end, end), message)
        else:
            self._error(tok.span, message)

    def _skip_newlines(self) -> None:
        while (tok := self._peek()) is not None and tok.kind == "newline":
            self._pos += 1

    def _at_statement_end(self) -> bool:
        tok = self._peek()
        if tok is None or tok.kind == "newline":
            return True
        return tok.kind == "punct" and tok.text in (";", "}")

    def _statement_end_offset(self) -> int:
        tok = self._peek()
        return len(self._source) if tok is None else tok.start

    # -- statements ---------------------------------------------------------

    def parse(self) -> Chunk:
        statements = self._parse_statements(closing=False)
        return Chunk(Span(0, len(self._source)), statements, self._source)

    def _parse_statements(self, closing: bool) -> list[Node]:
        statements: list[Node] = []
        while True:
            tok = self._peek()
            if tok is None:
                if closing:
                    end = len(self._source)
                    self._error(Span(end, end), "unterminated block, missing '}'")
                break
            if tok.kind == "newline" or (tok.kind == "punct" and tok.text == ";"):
                self._advance()
                continue
            if tok.kind == "punct" and tok.text == "}":
                if closing:
                    break
                self._error(tok.span, "unexpected '}'")
                self._advance()
                continue

            before = self._pos
            stmt = self._parse_statement()
            if stmt is not None:
                statements.append(stmt)
            if self._pos == before:
                self._advance()
            elif not self._at_statement_end():
                self._error_here("expected end of statement")
                # resynchronize on the next statement boundary
                while not self._at_statement_end():
                    self._advance()
        return statements

    def _parse_block(self) -> Block | None:
        if not self._is_punct("{"):
            self._error_here("expected '{'")
            return None
        opening = self._advance()
        statements = self._parse_statements(closing=True)
        end = len(self._source)
        if self._is_punct("}"):
            end = self._advance().end
        return Block(Span(opening.start, end), statements)

    def _parse_statement(self) -> Node | None:  # noqa: C901
        tok = self._peek()
        assert tok is not None

        if tok.kind == "keyword":
            match tok.text:
                case "if":
                    return self._parse_if()
                case "for":
                    return self._parse_for()
                case "walk":
                    return self._parse_walk()
                case "break":
                    return BreakStatement(self._advance().span)
                case "continue":
                    return ContinueStatement(self._advance().span)
                case "prune":
                    return PruneStatement(self._advance().span)
                case "return":
                    self._advance()
                    if self._at_statement_end():
                        return ReturnStatement(tok.span, None)
                    value = self._parse_expression()
                    end = value.span.end if value is not None else tok.end
                    return ReturnStatement(Span(tok.start, end), value)
                case "assert":
                    self._advance()
                    expr = self._parse_expression()
                    if expr is None:
                        return AssertionStatement(tok.span, None)
                    source = self._source[expr.span.start : expr.span.end]
                    return AssertionStatement(Span(tok.start, expr.span.end), expr, source)

        nxt = self._peek(1)
        if (
            tok.kind in ("identifier", "local-var", "global-var")
            and nxt is not None
            and nxt.kind == "operator"
            and nxt.text == "="
        ):
            return self._parse_assignment()

        if tok.kind == "identifier":
            return self._parse_identifier_statement()

        return self._parse_expression()

    def _parse_assignment(self) -> Assignment:
        tok = self._advance()
        left: IdentifierLiteral | Variable | GlobalVariable
        if tok.kind == "identifier":
            left = IdentifierLiteral(tok.span, tok.text)
        elif tok.kind == "local-var":
            left = Variable(tok.span, tok.text[1:])
        else:
            left = GlobalVariable(tok.span, tok.text[2:])
        equal = self._advance()
        right = self._parse_expression()
        end = right.span.end if right is not None else equal.end
        return Assignment(Span(tok.start, end), left, right)

    def _parse_identifier_statement(self) -> Node | None:
        head = self._parse_identifier_chain()
        end = head.span.end
        if end < len(self._source) and self._source[end] in _HORIZONTAL_SPACE:
            # command-like call: arguments run to the end of the line
            arguments: list[Node] = []
            while not self._at_statement_end():
                before = self._pos
                arg = self._parse_expression()
                if arg is not None:
                    arguments.append(arg)
                if self._pos == before:
                    self._advance()
            span = Span(head.span.start, self._statement_end_offset())
            return CallExpression(span, head, arguments, command_like=True)
        return self._parse_postfix(head)

    def _parse_if(self) -> IfStatement:
        keyword = self._advance()
        test = self._parse_expression()
        consequent = self._parse_block()
        alternate: Block | None = None
        end = _last_end(keyword.end, test, consequent)
        if self._is_keyword("else"):
            else_tok = self._advance()
            if self._is_keyword("if"):
                nested = self._parse_if()
                alternate = Block(nested.span, [nested])
            else:
                alternate = self._parse_block()
            end = _last_end(else_tok.end, alternate)
        return IfStatement(Span(keyword.start, end), test, consequent, alternate)

    def _parse_for(self) -> ForStatement:
        keyword = self._advance()
        key_ident: IdentifierLiteral | None = None
        value_ident: IdentifierLiteral | None = None

        first = self._peek()
        second = self._peek(1)
        if (
            first is not None
            and first.kind == "identifier"
            and second is not None
            and (
                (second.kind == "punct" and second.text == ",")
                or (second.kind == "keyword" and second.text == "in")
            )
        ):
            self._advance()
            value_ident = IdentifierLiteral(first.span, first.text)
            if self._is_punct(","):
                self._advance()
                tok = self._peek()
                if tok is not None and tok.kind == "identifier":
                    self._advance()
                    key_ident = value_ident
                    value_ident = IdentifierLiteral(tok.span, tok.text)
                else:
                    self._error_here("expected value variable name")
            if self._is_keyword("in"):
                self._advance()
            else:
                self._error_here("expected 'in'")

        iterated = self._parse_expression()
        body = self._parse_block()
        end = _last_end(keyword.end, iterated, body)
        return ForStatement(Span(keyword.start, end), key_ident, value_ident, iterated, body)

    def _parse_walk(self) -> WalkStatement:
        keyword = self._advance()
        walked = self._parse_expression()
        entry_ident: IdentifierLiteral | None = None
        tok = self._peek()
        if tok is not None and tok.kind == "identifier":
            self._advance()
            entry_ident = IdentifierLiteral(tok.span, tok.text)
        body = self._parse_block()
        end = _last_end(keyword.end, walked, entry_ident, body)
        return WalkStatement(Span(keyword.start, end), walked, entry_ident, body)

    # -- expressions --------------------------------------------------------

    def _parse_expression(self) -> Node | None:
        return self._parse_postfix(self._parse_primary())

    def _parse_identifier_chain(self) -> IdentifierLiteral | IdentifierMemberExpression:
        tok = self._advance()
        left = IdentifierLiteral(tok.span, tok.text)
        properties: list[IdentifierLiteral] = []
        unterminated = False
        end = tok.end

        while self._is_punct(".") and self._peek().start == end:  # type: ignore[union-attr]
            dot = self._advance()
            end = dot.end
            nxt = self._peek()
            if nxt is not None and nxt.kind in ("identifier", "keyword") and nxt.start == end:
                self._advance()
                properties.append(IdentifierLiteral(nxt.span, nxt.text))
                end = nxt.end
            else:
                unterminated = True
                self._error(dot.span, "unterminated member expression")
                break

        if not properties and not unterminated:
            return left
        return IdentifierMemberExpression(Span(left.span.start, end), left, properties, unterminated)

    def _parse_primary(self) -> Node | None:  # noqa: C901
        tok = self._peek()
        if tok is None:
            self._error_here("expected expression")
            return None
        if tok.kind == "newline" or (tok.kind == "punct" and tok.text in _CLOSERS):
            self._error(tok.span, "expected expression")
            return None

        span = tok.span
        match tok.kind:
            case "identifier":
                return self._parse_identifier_chain()
            case "punct":
                match tok.text:
                    case "[":
                        return self._parse_list()
                    case "{":
                        return self._parse_object()
                    case "(":
                        return self._parse_parenthesized()
            case "error":
                # already reported by the tokenizer
                self._advance()
                return None

        self._advance()
        match tok.kind:
            case "int":
                return IntLiteral(span, int(tok.text))
            case "float":
                return FloatLiteral(span, float(tok.text))
            case "string":
                return StringLiteral(span, decode_string(tok.text), tok.text)
            case "local-var":
                return Variable(span, tok.text[1:])
            case "global-var":
                return GlobalVariable(span, tok.text[2:])
            case "pattern":
                return PatternIdentifierLiteral(span, tok.text[1:])
            case "pattern-namespace":
                return PatternNamespaceIdentifierLiteral(span, tok.text[1:-1])
            case "pattern-member":
                namespace_name, member_name = tok.text[1:].split(".", 1)
                dot_end = span.start + len(namespace_name) + 2
                return PatternNamespaceMemberExpression(
                    span,
                    PatternNamespaceIdentifierLiteral(Span(span.start, dot_end), namespace_name),
                    IdentifierLiteral(Span(dot_end, span.end), member_name),
                )
            case "path":
                if tok.text.startswith("/"):
                    return AbsolutePathLiteral(span, tok.text)
                return RelativePathLiteral(span, tok.text)
            case "url":
                return URLLiteral(span, tok.text)
            case "host":
                return HostLiteral(span, tok.text)
            case "scheme":
                return SchemeLiteral(span, tok.text[: -len("://")])
            case "keyword":
                match tok.text:
                    case "true":
                        return BooleanLiteral(span, True)
                    case "false":
                        return BooleanLiteral(span, False)
                    case "nil":
                        return NilLiteral(span)
                self._error(span, f"unexpected keyword '{tok.text}'")
                return None

        self._error(span, f"unexpected token '{tok.text}'")
        return None

    def _parse_postfix(self, node: Node | None) -> Node | None:
        while node is not None:
            tok = self._peek()
            if tok is None or tok.kind != "punct" or tok.start != node.span.end:
                break
            if tok.text == "." and not isinstance(node, (IdentifierLiteral, IdentifierMemberExpression)):
                self._advance()
                nxt = self._peek()
                if nxt is not None and nxt.kind in ("identifier", "keyword") and nxt.start == tok.end:
                    self._advance()
                    prop = IdentifierLiteral(nxt.span, nxt.text)
                    node = MemberExpression(Span(node.span.start, nxt.end), node, prop)
                else:
                    self._error(tok.span, "unterminated member expression")
                    return MemberExpression(Span(node.span.start, tok.end), node, None)
            elif tok.text == "(":
                node = self._parse_call(node)
            else:
                break
        return node

    def _parse_sequence(self, closing: str, parse_item) -> tuple[list, int]:
        """Parse comma or newline separated items up to *closing*.

        Returns the items and the end offset (after the closing token, or the
        end of the source when it is missing).
        """
        items = []
        while True:
            self._skip_newlines()
            tok = self._peek()
            if tok is None:
                end = len(self._source)
                self._error(Span(end, end), f"missing '{closing}'")
                return items, end
            if tok.kind == "punct" and tok.text == closing:
                return items, self._advance().end
            before = self._pos
            item = parse_item()
            if item is not None:
                items.append(item)
            if self._pos == before:
                self._advance()
            if self._is_punct(","):
                self._advance()

    def _parse_call(self, callee: Node) -> CallExpression:
        self._advance()
        arguments, end = self._parse_sequence(")", self._parse_expression)
        return CallExpression(Span(callee.span.start, end), callee, arguments)

    def _parse_list(self) -> ListLiteral:
        opening = self._advance()
        elements, end = self._parse_sequence("]", self._parse_expression)
        return ListLiteral(Span(opening.start, end), elements)

    def _parse_object(self) -> ObjectLiteral:
        opening = self._advance()
        properties, end = self._parse_sequence("}", self._parse_property)
        return ObjectLiteral(Span(opening.start, end), properties)

    def _parse_property(self) -> ObjectProperty | None:
        tok = self._peek()
        assert tok is not None
        key: IdentifierLiteral | StringLiteral
        if tok.kind in ("identifier", "keyword"):
            key = IdentifierLiteral(tok.span, tok.text)
        elif tok.kind == "string":
            key = StringLiteral(tok.span, decode_string(tok.text), tok.text)
        else:
            self._error(tok.span, "expected property name")
            return None
        self._advance()
        if not self._is_punct(":"):
            self._error_here("expected ':' after property name")
            return ObjectProperty(key.span, key, None)
        colon = self._advance()
        value = self._parse_expression()
        end = value.span.end if value is not None else colon.end
        return ObjectProperty(Span(key.span.start, end), key, value)

    def _parse_parenthesized(self) -> Node | None:
        opening = self._advance()
        self._skip_newlines()
        left = self._parse_expression()
        self._skip_newlines()

        tok = self._peek()
        is_operator = tok is not None and (
            (tok.kind == "operator" and tok.text != "=")
            or (tok.kind == "keyword" and tok.text in WORD_OPERATORS)
        )
        if not is_operator:
            if self._is_punct(")"):
                self._advance()
            else:
                self._error_here("missing ')'")
            return left

        operator = self._advance()
        self._skip_newlines()
        right = self._parse_expression()
        self._skip_newlines()
        end = len(self._source)
        if self._is_punct(")"):
            end = self._advance().end
        else:
            self._error_here("missing ')'")
        if left is None:
            return None
        return BinaryExpression(Span(opening.start, end), operator.text, left, right)  # type: ignore[arg-type]


def _last_end(default: int, *nodes: Node | None) -> int:
    end = default
    for node in nodes:
        if node is not None:
            end = max(end, node.span.end)
    return end
