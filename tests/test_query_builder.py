import os
import unittest

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from app.core.errors import InvalidRequestError
from app.db.conditions import Condition
from app.models.common import VISIBLE_STATUSES
from app.models.device import DeviceField
from app.models.parameter import ParameterField
from app.services.query_builder import (
    DEFAULT_ORDER,
    DEVICE_QUERY,
    PARAMETER_QUERY,
    PROFILE_QUERY,
    parse_query_options,
)


class EntityQueryBuilderTests(unittest.TestCase):
    def _options(self, raw_filter=None, raw_order=None, limit=10, offset=0):
        return parse_query_options(raw_filter, raw_order, limit, offset)

    def test_fields_outside_allow_list_are_rejected(self):
        with self.assertRaises(InvalidRequestError) as ctx:
            PARAMETER_QUERY.prepare(self._options("secret eq 1"))
        self.assertEqual(ctx.exception.message, "invalid filter field: secret")

        with self.assertRaises(InvalidRequestError) as ctx:
            PARAMETER_QUERY.prepare(self._options(raw_order="secret asc"))
        self.assertEqual(ctx.exception.message, "invalid order field: secret")

    def test_pagination_bounds(self):
        for limit, offset in ((0, 0), (101, 0), (10, -1)):
            with self.subTest(limit=limit, offset=offset):
                with self.assertRaises(InvalidRequestError):
                    PARAMETER_QUERY.prepare(self._options(limit=limit, offset=offset))
        PARAMETER_QUERY.prepare(self._options(limit=100, offset=0))
        PARAMETER_QUERY.prepare(self._options(limit=1, offset=500))

    def test_export_skips_pagination_but_checks_fields(self):
        PARAMETER_QUERY.prepare(self._options(limit=0), paginate=False)
        with self.assertRaises(InvalidRequestError):
            PARAMETER_QUERY.prepare(self._options("secret eq 1", limit=0), paginate=False)

    def test_visible_statuses_are_injected_by_default(self):
        conditions = PARAMETER_QUERY.status_conditions(self._options("path eq x"))
        self.assertEqual(conditions, [Condition(ParameterField.STATUS, VISIBLE_STATUSES)])

    def test_explicit_status_filter_disables_injection(self):
        self.assertEqual(PARAMETER_QUERY.status_conditions(self._options("status eq DISABLE")), [])
        self.assertEqual(PARAMETER_QUERY.status_conditions(self._options("status ne ENABLE")), [])

    def test_delete_status_cannot_be_listed(self):
        for raw in ("status eq DELETE", "status eq delete", "path eq x and status eq 'DELETE'"):
            with self.subTest(raw=raw):
                with self.assertRaises(InvalidRequestError) as ctx:
                    PARAMETER_QUERY.prepare(self._options(raw))
                self.assertEqual(ctx.exception.message, "cannot list items with DELETE status")

    def test_profile_name_alias_is_allowed(self):
        PROFILE_QUERY.prepare(self._options("profile_name eq Telemetry", "profile_name asc"))

    def test_default_order_is_most_recently_updated(self):
        prepared = PARAMETER_QUERY.prepare(self._options())
        self.assertEqual(prepared.ordering.orders, [DEFAULT_ORDER])
        self.assertEqual((DEFAULT_ORDER.field, DEFAULT_ORDER.direction), ("updated_at", "DESC"))

    def test_scope_conditions_are_kept(self):
        scope = Condition(DeviceField.MODEL_ID, "0b5cbb5e-7b0a-4a51-9c8e-1d5a2d0f2c11")
        prepared = DEVICE_QUERY.prepare(self._options(), scope)
        condition_spec = prepared.filtering.specs[0]
        self.assertEqual(condition_spec.conditions[0], scope)
        self.assertEqual(len(condition_spec.conditions), 2)

    def test_query_options_carry_parsed_values(self):
        options = self._options("path eq a or path eq b", "path asc", 25, 50)
        self.assertEqual(options.limit, 25)
        self.assertEqual(options.offset, 50)
        self.assertEqual([f.join for f in options.filters], ["AND", "OR"])
        self.assertEqual(options.orders[0].direction, "ASC")
