"""Expression lexer and parser tests.

Covers the grammar (precedence, grouping, function forms, literal kinds)
and the error contract: every malformed input raises ``ParseError`` with the
character position of the offending token and a description of what the
parser expected there.
"""

from datetime import date
from decimal import Decimal

import pytest

from questnav.constants import MAX_EXPRESSION_DEPTH, MAX_EXPRESSION_LENGTH
from questnav.errors import CompileError, ParseError
from questnav.expression import (
    AnswerRef,
    BooleanOp,
    Comparison,
    FunctionCall,
    Literal,
    Not,
    parse,
    referenced_ids,
    to_source,
    tokenize,
)


def _eq(link_id, value, type_):
    """Shorthand for ``answer-of(link_id) = literal``."""
    return Comparison("=", AnswerRef(link_id), Literal(value, type_))


# =====================================================================
# Lexer
# =====================================================================


class TestLexer:
    """Token kinds and positions."""

    def test_token_kinds(self):
        """A typical expression yields the expected token sequence."""
        kinds = [t.kind for t in tokenize("answer-of(q1) >= 3 and not exists(q2)")]
        assert kinds == [
            "IDENT", "LPAREN", "IDENT", "RPAREN", "OP", "NUMBER",
            "KEYWORD", "KEYWORD", "IDENT", "LPAREN", "IDENT", "RPAREN", "EOF",
        ]

    def test_positions(self):
        """Each token records the offset where it starts."""
        tokens = tokenize("a != 'x'")
        assert [(t.kind, t.position) for t in tokens] == [
            ("IDENT", 0), ("OP", 2), ("STRING", 5), ("EOF", 8),
        ]

    def test_operators_without_spaces(self):
        ops = [t.value for t in tokenize("a<=1") if t.kind == "OP"]
        assert ops == ["<="]
        ops = [t.value for t in tokenize("a!=1") if t.kind == "OP"]
        assert ops == ["!="]

    def test_dotted_numeric_link_id_is_identifier(self):
        """FHIR-style link ids such as 1.2.3 lex as one identifier."""
        tok = tokenize("1.2.3")[0]
        assert tok.kind == "IDENT"
        assert tok.value == "1.2.3"

    def test_string_escapes(self):
        tok = tokenize(r"'it\'s'")[0]
        assert tok.kind == "STRING"
        assert tok.value == "it's"


# =====================================================================
# Grammar
# =====================================================================


class TestGrammar:
    """Shapes produced by the recursive-descent parser."""

    def test_simple_comparison(self):
        assert parse("answer-of(q1) = 'Yes'") == _eq("q1", "Yes", "string")

    def test_bare_identifier_is_answer_ref(self):
        assert parse("q1 = 3") == _eq("q1", 3, "integer")

    def test_and_binds_tighter_than_or(self):
        """a or b and c parses as a or (b and c)."""
        node = parse("a = 1 or b = 2 and c = 3")
        assert node == BooleanOp(
            "or",
            (
                _eq("a", 1, "integer"),
                BooleanOp("and", (_eq("b", 2, "integer"), _eq("c", 3, "integer"))),
            ),
        )

    def test_chained_operands_are_flattened(self):
        node = parse("a = 1 and b = 2 and c = 3")
        assert isinstance(node, BooleanOp)
        assert len(node.operands) == 3, "and-chains should produce one n-ary node"

    def test_not_applies_to_one_comparison(self):
        node = parse("not a = 1 and b = 2")
        assert node == BooleanOp("and", (Not(_eq("a", 1, "integer")), _eq("b", 2, "integer")))

    def test_parentheses_group(self):
        node = parse("not (a = 1 or b = 2)")
        assert node == Not(BooleanOp("or", (_eq("a", 1, "integer"), _eq("b", 2, "integer"))))

    def test_function_forms(self):
        assert parse("exists(q1)") == FunctionCall("exists", (AnswerRef("q1"),))
        assert parse("exists(answer-of(q1))") == FunctionCall("exists", (AnswerRef("q1"),))
        assert parse("count(q1) >= 2") == Comparison(
            ">=", FunctionCall("count", (AnswerRef("q1"),)), Literal(2, "integer"),
        )
        assert parse("memberOf(q1, 'fever')") == FunctionCall(
            "memberOf", (AnswerRef("q1"), Literal("fever", "string")),
        )

    def test_literal_kinds(self):
        """Each literal carries its declared type."""
        assert parse("a = true").right == Literal(True, "boolean")
        assert parse("a = false").right == Literal(False, "boolean")
        assert parse("a = -3.5").right == Literal(Decimal("-3.5"), "decimal")
        assert parse("a = 42").right == Literal(42, "integer")
        assert parse('a = "x y"').right == Literal("x y", "string")
        assert parse("a < @2021-08-31").right == Literal(date(2021, 8, 31), "date")

    def test_partial_dates_pad_to_first_day(self):
        assert parse("a > @2021").right == Literal(date(2021, 1, 1), "date")
        assert parse("a > @2021-08").right == Literal(date(2021, 8, 1), "date")

    def test_dotted_link_id_in_answer_of(self):
        assert parse("answer-of(1.2.3) = true") == _eq("1.2.3", True, "boolean")

    def test_referenced_ids(self):
        node = parse("answer-of(a) = 1 and (exists(b) or memberOf(a, 'x'))")
        assert referenced_ids(node) == ["a", "b"], "ids in first-occurrence order, no duplicates"


# =====================================================================
# Errors
# =====================================================================


class TestParseErrors:
    """Malformed input raises ParseError with position and expectation."""

    def test_missing_right_operand(self):
        """A comparison with no right-hand side."""
        with pytest.raises(ParseError) as exc:
            parse("answer-of(q1) =")
        assert exc.value.position == 15
        assert "operand" in exc.value.expected

    def test_unterminated_string(self):
        with pytest.raises(ParseError) as exc:
            parse("answer-of(q1) = 'Yes")
        assert exc.value.position == 16
        assert "unterminated" in str(exc.value)

    def test_unknown_operator(self):
        with pytest.raises(ParseError) as exc:
            parse("a ! b")
        assert exc.value.position == 2

    def test_unexpected_character(self):
        with pytest.raises(ParseError) as exc:
            parse("a # 1")
        assert exc.value.position == 2

    def test_trailing_tokens(self):
        with pytest.raises(ParseError) as exc:
            parse("a = 1 b")
        assert exc.value.position == 6
        assert exc.value.expected == "end of input"

    def test_missing_closing_paren(self):
        with pytest.raises(ParseError) as exc:
            parse("(a = 1")
        assert exc.value.expected == "')'"

    def test_unknown_function(self):
        with pytest.raises(ParseError) as exc:
            parse("foo(q1)")
        assert exc.value.position == 0

    def test_dangling_boolean_operator(self):
        with pytest.raises(ParseError):
            parse("exists(a) and")

    def test_malformed_date_literal(self):
        with pytest.raises(ParseError):
            parse("a = @2021-13-01")

    def test_empty_expression(self):
        with pytest.raises(ParseError):
            parse("   ")

    def test_parse_error_is_compile_error(self):
        """Callers catching CompileError also see parse failures."""
        with pytest.raises(CompileError):
            parse("=")

    def test_with_item_names_owner(self):
        with pytest.raises(ParseError) as exc:
            parse("a =")
        attributed = exc.value.with_item("q9")
        assert attributed.item_id == "q9"
        assert attributed.position == exc.value.position
        assert "q9" in str(attributed)

    def test_deep_nesting_is_a_parse_error(self):
        """Hundreds of parentheses are rejected cleanly, well under the length cap."""
        source = "(" * 300 + "true" + ")" * 300
        assert len(source) < MAX_EXPRESSION_LENGTH
        with pytest.raises(ParseError) as exc:
            parse(source)
        assert exc.value.position == MAX_EXPRESSION_DEPTH
        assert "nested" in str(exc.value)

    def test_nesting_at_the_limit_parses(self):
        depth = MAX_EXPRESSION_DEPTH
        node = parse("(" * depth + "exists(a)" + ")" * depth)
        assert node == FunctionCall("exists", (AnswerRef("a"),))


# =====================================================================
# Rendering
# =====================================================================


class TestToSource:
    """to_source output parses back to the same tree."""

    @pytest.mark.parametrize("source", [
        "answer-of(q1) = 'Yes' and answer-of(q2) = 'green'",
        "not (a = 1 or b = 2)",
        "count(q1) >= 2 or not exists(q2)",
        "memberOf(q1, 'it\\'s')",
        "a < @2021-08-01 and b != 2.50",
    ])
    def test_round_trip(self, source):
        node = parse(source)
        assert parse(to_source(node)) == node
