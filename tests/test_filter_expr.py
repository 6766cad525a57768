import unittest

from app.core.errors import InvalidRequestError
from app.services.filter_expr import (
    parse_condition,
    parse_filter_expr,
    parse_order_expr,
    split_top_level,
    strip_outer_parens,
)


def _shape(filters):
    return [(f.field, f.operator, f.value, f.join) for f in filters]


class FilterExpressionTests(unittest.TestCase):
    def test_empty_expression_has_no_filters(self):
        self.assertEqual(parse_filter_expr(None), [])
        self.assertEqual(parse_filter_expr("   "), [])

    def test_flat_and_sequence(self):
        filters = parse_filter_expr("name eq 'foo' and status eq ENABLE")
        self.assertEqual(
            _shape(filters),
            [("name", "eq", "foo", "AND"), ("status", "eq", "ENABLE", "AND")],
        )

    def test_or_join_is_recorded_on_the_second_leaf(self):
        filters = parse_filter_expr("a eq 1 or b eq 2")
        self.assertEqual([f.join for f in filters], ["AND", "OR"])

    def test_keywords_and_operators_are_case_insensitive(self):
        filters = parse_filter_expr("name EQ foo AND path Like bar")
        self.assertEqual(_shape(filters), [("name", "eq", "foo", "AND"), ("path", "like", "bar", "AND")])

    def test_group_in_parentheses(self):
        filters = parse_filter_expr("(a eq 1 or b eq 2) and c eq 3")
        self.assertEqual(
            _shape(filters),
            [("a", "eq", "1", "AND"), ("b", "eq", "2", "OR"), ("c", "eq", "3", "AND")],
        )

    def test_first_leaf_of_group_carries_outer_join(self):
        filters = parse_filter_expr("a eq 1 or (b eq 2 and c eq 3)")
        self.assertEqual([f.join for f in filters], ["AND", "OR", "AND"])

    def test_quoted_values_keep_keywords(self):
        single = parse_filter_expr("name eq 'x and y'")
        self.assertEqual(_shape(single), [("name", "eq", "x and y", "AND")])

        double = parse_filter_expr('name eq "a or (b)" and status eq ENABLE')
        self.assertEqual(double[0].value, "a or (b)")
        self.assertEqual(len(double), 2)

    def test_parenthesized_value_is_unwrapped(self):
        self.assertEqual(parse_condition("name eq (foo)").value, "foo")
        self.assertEqual(parse_condition("name eq ('foo')").value, "foo")

    def test_parsing_is_deterministic(self):
        raw = "(a eq 1 or b eq 2) and c like x"
        self.assertEqual(parse_filter_expr(raw), parse_filter_expr(raw))

    def test_invalid_leaf_is_rejected(self):
        with self.assertRaises(InvalidRequestError) as ctx:
            parse_filter_expr("name equals foo")
        self.assertEqual(ctx.exception.message, "invalid filter expression")
        self.assertEqual(ctx.exception.field, "filter")

    def test_third_nesting_level_is_not_supported(self):
        with self.assertRaises(InvalidRequestError):
            parse_filter_expr("a eq 1 and (b eq 2 or (c eq 3 and d eq 4))")

    def test_split_top_level_ignores_nested_and_quoted_keywords(self):
        parts, joins = split_top_level("a eq 1 and (b eq 2 or c eq 3) or d eq 'x and y'")
        self.assertEqual(parts, ["a eq 1", "(b eq 2 or c eq 3)", "d eq 'x and y'"])
        self.assertEqual(joins, ["AND", "OR"])

    def test_strip_outer_parens_only_strips_enclosing_pair(self):
        self.assertEqual(strip_outer_parens("(a eq 1)"), "a eq 1")
        self.assertEqual(strip_outer_parens("(a eq 1) and (b eq 2)"), "(a eq 1) and (b eq 2)")
        self.assertEqual(strip_outer_parens("(a eq ')')"), "a eq ')'")


class OrderExpressionTests(unittest.TestCase):
    def test_default_direction_is_desc(self):
        orders = parse_order_expr("name asc, updated_at")
        self.assertEqual([(o.field, o.direction) for o in orders], [("name", "ASC"), ("updated_at", "DESC")])

    def test_empty_order(self):
        self.assertEqual(parse_order_expr(None), [])
        self.assertEqual(parse_order_expr(" , "), [])

    def test_invalid_direction(self):
        with self.assertRaises(InvalidRequestError) as ctx:
            parse_order_expr("name up")
        self.assertEqual(ctx.exception.message, "invalid order direction: up")

    def test_too_many_tokens(self):
        with self.assertRaises(InvalidRequestError):
            parse_order_expr("name asc extra")
