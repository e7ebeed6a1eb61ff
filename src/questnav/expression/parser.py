"""Recursive-descent parser for the visibility expression language.

Grammar, lowest precedence first::

    expr       := orExpr
    orExpr     := andExpr ("or" andExpr)*
    andExpr    := notExpr ("and" notExpr)*
    notExpr    := "not"? comparison
    comparison := operand (("=" | "!=" | "<" | ">" | "<=" | ">=") operand)?
    operand    := literal | identifier | functionCall | "(" expr ")"

    functionCall := "answer-of" "(" id ")"
                  | "exists" "(" ref ")" | "count" "(" ref ")"
                  | "memberOf" "(" ref "," literal ")"
    ref          := id | "answer-of" "(" id ")"

The grammar is LL(1): a single left-to-right pass with one token of
lookahead, no backtracking.  Any deviation raises ``ParseError`` carrying
the offending token's position and a description of what was expected.
"""

from __future__ import annotations

from questnav.constants import MAX_EXPRESSION_DEPTH, MAX_EXPRESSION_LENGTH
from questnav.errors import ParseError
from questnav.expression.ast import (
    AnswerRef,
    BooleanOp,
    Comparison,
    FunctionCall,
    Literal,
    Node,
    Not,
)
from questnav.expression.lexer import Token, tokenize

_ANSWER_OF = "answer-of"
_KNOWN_FUNCTIONS = ("answer-of", "exists", "count", "memberOf")


class Parser:
    """Parses one expression source string into an AST."""

    def __init__(self, source: str) -> None:
        self._source = source
        self._tokens: list[Token] = tokenize(source)
        self._i = 0
        self._depth = 0

    def parse(self) -> Node:
        node = self._or_expr()
        tok = self._peek()
        if tok.kind != "EOF":
            raise ParseError(
                f"unexpected {tok.describe()} after complete expression",
                position=tok.position,
                expected="end of input",
            )
        return node

    # ------------------------------------------------------------------
    # Token helpers
    # ------------------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        idx = min(self._i + offset, len(self._tokens) - 1)
        return self._tokens[idx]

    def _advance(self) -> Token:
        tok = self._tokens[self._i]
        if tok.kind != "EOF":
            self._i += 1
        return tok

    def _is_keyword(self, word: str) -> bool:
        tok = self._peek()
        return tok.kind == "KEYWORD" and tok.value == word

    def _expect(self, kind: str, expected: str) -> Token:
        tok = self._peek()
        if tok.kind != kind:
            raise ParseError(
                f"unexpected {tok.describe()}", position=tok.position, expected=expected,
            )
        return self._advance()

    # ------------------------------------------------------------------
    # Grammar rules
    # ------------------------------------------------------------------

    def _or_expr(self) -> Node:
        operands = [self._and_expr()]
        while self._is_keyword("or"):
            self._advance()
            operands.append(self._and_expr())
        if len(operands) == 1:
            return operands[0]
        return BooleanOp("or", tuple(operands))

    def _and_expr(self) -> Node:
        operands = [self._not_expr()]
        while self._is_keyword("and"):
            self._advance()
            operands.append(self._not_expr())
        if len(operands) == 1:
            return operands[0]
        return BooleanOp("and", tuple(operands))

    def _not_expr(self) -> Node:
        if self._is_keyword("not"):
            self._advance()
            return Not(self._comparison())
        return self._comparison()

    def _comparison(self) -> Node:
        left = self._operand()
        tok = self._peek()
        if tok.kind != "OP":
            return left
        self._advance()
        right = self._operand()
        return Comparison(tok.value, left, right)

    def _operand(self) -> Node:
        tok = self._peek()

        if tok.kind in ("STRING", "NUMBER", "DATE") or (
            tok.kind == "KEYWORD" and tok.value in ("true", "false")
        ):
            return self._literal()

        if tok.kind == "LPAREN":
            if self._depth >= MAX_EXPRESSION_DEPTH:
                raise ParseError(
                    f"expression nested deeper than {MAX_EXPRESSION_DEPTH} levels",
                    position=tok.position,
                )
            self._advance()
            self._depth += 1
            node = self._or_expr()
            self._depth -= 1
            self._expect("RPAREN", "')'")
            return node

        if tok.kind == "IDENT":
            if self._peek(1).kind == "LPAREN":
                return self._call()
            self._advance()
            return AnswerRef(tok.value)

        raise ParseError(
            f"unexpected {tok.describe()}",
            position=tok.position,
            expected="an operand (literal, identifier or function call)",
        )

    def _literal(self) -> Literal:
        tok = self._peek()
        if tok.kind == "STRING":
            self._advance()
            return Literal(tok.value, "string")
        if tok.kind == "NUMBER":
            self._advance()
            return Literal(tok.value, "integer" if isinstance(tok.value, int) else "decimal")
        if tok.kind == "DATE":
            self._advance()
            return Literal(tok.value, "date")
        if tok.kind == "KEYWORD" and tok.value in ("true", "false"):
            self._advance()
            return Literal(tok.value == "true", "boolean")
        raise ParseError(
            f"unexpected {tok.describe()}", position=tok.position, expected="a literal",
        )

    def _call(self) -> Node:
        name_tok = self._advance()
        name = name_tok.value
        if name not in _KNOWN_FUNCTIONS:
            raise ParseError(
                f"unknown function '{name}'",
                position=name_tok.position,
                expected="one of " + ", ".join(_KNOWN_FUNCTIONS),
            )
        self._expect("LPAREN", "'('")

        if name == _ANSWER_OF:
            node: Node = AnswerRef(self._question_id())
        elif name == "memberOf":
            ref = self._ref()
            self._expect("COMMA", "','")
            node = FunctionCall(name, (ref, self._literal()))
        else:
            node = FunctionCall(name, (self._ref(),))

        self._expect("RPAREN", "')'")
        return node

    def _ref(self) -> AnswerRef:
        tok = self._peek()
        if tok.kind == "IDENT" and tok.value == _ANSWER_OF and self._peek(1).kind == "LPAREN":
            self._advance()
            self._advance()
            ref = AnswerRef(self._question_id())
            self._expect("RPAREN", "')'")
            return ref
        return AnswerRef(self._question_id())

    def _question_id(self) -> str:
        tok = self._peek()
        if tok.kind in ("IDENT", "NUMBER"):
            self._advance()
            return tok.text
        if tok.kind == "STRING":
            self._advance()
            return tok.value
        raise ParseError(
            f"unexpected {tok.describe()}",
            position=tok.position,
            expected="a question identifier",
        )


def parse(source: str) -> Node:
    """Parse ``source`` into an expression AST.

    Raises:
        ParseError: on any lexical or syntactic error.
    """
    if not source or not source.strip():
        raise ParseError("empty expression", position=0, expected="an expression")
    if len(source) > MAX_EXPRESSION_LENGTH:
        raise ParseError(
            f"expression longer than {MAX_EXPRESSION_LENGTH} characters",
            position=MAX_EXPRESSION_LENGTH,
        )
    return Parser(source).parse()
