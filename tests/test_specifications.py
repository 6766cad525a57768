import os
import unittest
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Query, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.schema import CreateTable
from sqlalchemy.sql import operators

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from app.core.errors import InvalidRequestError
from app.db.conditions import Condition
from app.db.session import Base
from app.models.parameter import Parameter, ParameterField
from app.models.profile import Profile
from app.schemas.query import FilterExpr, OrderExpr
from app.services.filter_expr import parse_filter_expr
from app.services.query_builder import PROFILE_QUERY, parse_query_options
from app.services.specifications import (
    CompositeSpecification,
    ConditionSpecification,
    FilterSpecification,
    OrderSpecification,
    PaginationSpecification,
    build_condition,
    group_filters_by_join,
    resolve_column,
)


def _sql(query: Query) -> str:
    return str(query.statement.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))


def _where(clause) -> str:
    return str(clause.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))


class GroupingTests(unittest.TestCase):
    def test_or_extends_group_and_and_starts_new_one(self):
        a = FilterExpr(field="a", operator="eq", value="1", join="AND")
        b = FilterExpr(field="b", operator="eq", value="2", join="OR")
        c = FilterExpr(field="c", operator="eq", value="3", join="AND")
        self.assertEqual(group_filters_by_join([a, b, c]), [[a, b], [c]])

    def test_leading_or_starts_first_group(self):
        a = FilterExpr(field="a", operator="eq", value="1", join="OR")
        self.assertEqual(group_filters_by_join([a]), [[a]])

    def test_empty_filters(self):
        self.assertEqual(group_filters_by_join([]), [])


class FilterSqlTests(unittest.TestCase):
    def test_groups_render_as_ands_of_ors(self):
        filters = parse_filter_expr("path eq a or data_type eq b and path eq c")
        sql = _sql(FilterSpecification(Parameter, filters).apply(Query(Parameter)))
        self.assertIn("(parameters.path = 'a' OR parameters.data_type = 'b')", sql)
        self.assertIn("AND parameters.path = 'c'", sql)

    def test_groups_form_an_and_of_or_clauses(self):
        filters = parse_filter_expr("path eq a or data_type eq b and path eq c")
        where = FilterSpecification(Parameter, filters).apply(Query(Parameter)).whereclause
        self.assertIs(where.operator, operators.and_)
        self.assertEqual(len(where.clauses), 2)

        first, second = where.clauses
        first = getattr(first, "element", first)
        self.assertIs(first.operator, operators.or_)
        self.assertEqual(
            sorted(str(c.left) for c in first.clauses),
            ["parameters.data_type", "parameters.path"],
        )
        self.assertEqual(str(second.left), "parameters.path")
        self.assertEqual(second.right.value, "c")

    def test_nested_or_regroups_with_following_and(self):
        filters = parse_filter_expr("path eq a or (path eq b and path eq c)")
        sql = _sql(FilterSpecification(Parameter, filters).apply(Query(Parameter)))
        self.assertIn("(parameters.path = 'a' OR parameters.path = 'b') AND parameters.path = 'c'", sql)

    def test_like_wraps_value_in_wildcards(self):
        clause = build_condition(Parameter.__table__.c.path, "like", "Info")
        self.assertEqual(_where(clause), "parameters.path LIKE '%Info%'")

    def test_date_only_equality_covers_whole_day(self):
        clause = build_condition(Parameter.__table__.c.created_at, "eq", "2026-03-01")
        sql = str(clause.compile(dialect=sqlite.dialect()))
        self.assertIn("parameters.created_at >=", sql)
        self.assertIn("parameters.created_at <", sql)
        bounds = [v for v in clause.compile().params.values()]
        self.assertEqual(
            sorted(bounds),
            [datetime(2026, 3, 1, tzinfo=timezone.utc), datetime(2026, 3, 2, tzinfo=timezone.utc)],
        )

    def test_unknown_column_is_rejected(self):
        with self.assertRaises(InvalidRequestError) as ctx:
            resolve_column(Parameter, "secret")
        self.assertEqual(ctx.exception.message, "invalid filter field: secret")
        with self.assertRaises(InvalidRequestError) as ctx:
            resolve_column(Parameter, "secret", kind="order")
        self.assertEqual(ctx.exception.message, "invalid order field: secret")

    def test_alias_resolves_to_storage_column(self):
        column = resolve_column(Parameter, "parameter_path", {"parameter_path": "path"})
        self.assertIs(column, Parameter.__table__.c.path)

    def test_order_and_pagination(self):
        spec = CompositeSpecification(
            OrderSpecification(Parameter, [OrderExpr(field="path", direction="ASC")]),
            PaginationSpecification(5, 10),
        )
        sql = _sql(spec.apply(Query(Parameter)))
        self.assertIn("ORDER BY parameters.path ASC", sql)
        self.assertIn("LIMIT 5 OFFSET 10", sql)

    def test_zero_limit_means_no_pagination(self):
        sql = _sql(PaginationSpecification(0, 10).apply(Query(Parameter)))
        self.assertNotIn("LIMIT", sql)


class SpecificationQueryTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autocommit=False, autoflush=False)
        Base.metadata.create_all(bind=cls.engine, tables=[Parameter.__table__])
        with cls.SessionLocal() as db:
            db.add_all(
                [
                    Parameter(path="Device.A", data_type="string"),
                    Parameter(path="Device.B", data_type="int"),
                    Parameter(path="Device.C", data_type="int", status="DISABLE"),
                    Parameter(path="Device.D", data_type="int", status="DELETE"),
                ]
            )
            db.commit()

    @classmethod
    def tearDownClass(cls):
        Parameter.__table__.drop(bind=cls.engine)
        cls.engine.dispose()

    def _paths(self, *specs) -> list[str]:
        spec = CompositeSpecification(*specs, OrderSpecification(Parameter, [OrderExpr(field="path", direction="ASC")]))
        with self.SessionLocal() as db:
            return [row.path for row in spec.apply(db.query(Parameter)).all()]

    def test_or_group_matches_either_leaf(self):
        filters = parse_filter_expr("path eq Device.A or data_type eq int")
        self.assertEqual(self._paths(FilterSpecification(Parameter, filters)), ["Device.A", "Device.B", "Device.C", "Device.D"])

    def test_condition_membership(self):
        visible = ConditionSpecification(Parameter, [Condition(ParameterField.STATUS, ("ENABLE", "DISABLE"))])
        self.assertEqual(self._paths(visible), ["Device.A", "Device.B", "Device.C"])

    def test_condition_with_none_value_is_skipped(self):
        spec = ConditionSpecification(Parameter, [Condition(ParameterField.PATH, None)])
        self.assertEqual(len(self._paths(spec)), 4)

    def test_ne_and_like(self):
        filters = parse_filter_expr("data_type ne string and path like Device")
        self.assertEqual(self._paths(FilterSpecification(Parameter, filters)), ["Device.B", "Device.C", "Device.D"])


class ProfileTagsColumnTests(unittest.TestCase):
    def test_tags_are_a_text_array_on_postgresql(self):
        ddl = str(CreateTable(Profile.__table__).compile(dialect=postgresql.dialect()))
        self.assertIn("tags VARCHAR[] NOT NULL", ddl)

    def test_order_by_tags_compiles_against_the_array_column(self):
        prepared = PROFILE_QUERY.prepare(parse_query_options(None, "tags asc", 10, 0))
        statement = prepared.listing.apply(Query(Profile)).statement
        sql = str(statement.compile(dialect=postgresql.dialect()))
        self.assertIn("ORDER BY profiles.tags ASC", sql)

    def test_tags_match_only_with_like(self):
        column = Profile.__table__.c.tags
        self.assertEqual(_where(build_condition(column, "like", "lab")), "CAST(profiles.tags AS VARCHAR) LIKE '%lab%'")
        for op in ("eq", "ne", "gt"):
            with self.subTest(op=op):
                with self.assertRaises(InvalidRequestError) as ctx:
                    build_condition(column, op, "lab")
                self.assertEqual(ctx.exception.message, f"unsupported filter operator for field tags: {op}")
                self.assertEqual(ctx.exception.field, "tags")
