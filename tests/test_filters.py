"""
Tests for filter rule evaluation and AND-combination.
"""
import pytest

from report_engine import FilterEvaluator, resolve_path, strict_equals
from report_models import ConfigurationInvalid, FieldType, FilterOperator, FilterRule, LogicalOperator


@pytest.fixture
def evaluator():
    return FilterEvaluator()


def rule(field, operator, value=None, field_type=None, **kwargs):
    return FilterRule(field=field, operator=FilterOperator(operator), value=value, field_type=field_type, **kwargs)


class TestResolvePath:
    def test_nested_path(self):
        record = {"financial": {"agreedPrice": 100}}
        assert resolve_path(record, "financial.agreedPrice") == 100

    def test_missing_intermediate_key_is_none(self):
        assert resolve_path({"financial": None}, "financial.agreedPrice") is None
        assert resolve_path({}, "financial.agreedPrice") is None

    def test_scalar_intermediate_is_none(self):
        assert resolve_path({"title": "Villa"}, "title.length") is None

    def test_list_index(self):
        assert resolve_path({"tags": ["a", "b"]}, "tags.1") == "b"
        assert resolve_path({"tags": ["a"]}, "tags.3") is None


class TestOperators:
    @pytest.mark.parametrize("operator, value, inside, outside", [
        ("equals", "active", "active", "closed"),
        ("not-equals", "active", "closed", "active"),
        ("contains", "MAIN", "maintenance", "utility"),
        ("not-contains", "main", "utility", "Maintenance"),
        ("starts-with", "util", "Utility", "maintenance"),
        ("ends-with", "ANCE", "maintenance", "legal"),
        ("in", ["rent", "tax"], "tax", "legal"),
    ])
    def test_text_operators(self, evaluator, operator, value, inside, outside):
        r = rule("category", operator, value, FieldType.TEXT)
        assert evaluator.evaluate({"category": inside}, r) is True
        assert evaluator.evaluate({"category": outside}, r) is False

    @pytest.mark.parametrize("operator, value, inside, outside", [
        ("greater-than", 1000, 1001, 1000),
        ("less-than", 1000, 999, 1000),
        ("greater-or-equal", 1000, 1000, 999),
        ("less-or-equal", 1000, 1000, 1001),
        ("equals", 1000, 1000.0, 1001),
        ("not-equals", 1000, 5, 1000),
    ])
    def test_numeric_operators(self, evaluator, operator, value, inside, outside):
        r = rule("amount", operator, value, FieldType.NUMBER)
        assert evaluator.evaluate({"amount": inside}, r) is True
        assert evaluator.evaluate({"amount": outside}, r) is False

    def test_between_is_inclusive(self, evaluator):
        r = rule("amount", "between", (1000, 5000), FieldType.CURRENCY)
        assert evaluator.evaluate({"amount": 1000}, r) is True
        assert evaluator.evaluate({"amount": 5000}, r) is True
        assert evaluator.evaluate({"amount": 999}, r) is False
        assert evaluator.evaluate({"amount": 5001}, r) is False

    def test_between_without_pair_is_false(self, evaluator):
        r = rule("amount", "between", 1000)
        assert evaluator.evaluate({"amount": 1000}, r) is False

    def test_numeric_operators_coerce_numeric_text(self, evaluator):
        r = rule("amount", "greater-than", "1000")
        assert evaluator.evaluate({"amount": "2000"}, r) is True
        assert evaluator.evaluate({"amount": "abc"}, r) is False

    def test_is_null_and_is_not_null(self, evaluator):
        is_null = rule("notes", "is-null")
        is_not_null = rule("notes", "is-not-null")
        assert evaluator.evaluate({}, is_null) is True
        assert evaluator.evaluate({"notes": None}, is_null) is True
        assert evaluator.evaluate({"notes": "x"}, is_null) is False
        assert evaluator.evaluate({"notes": "x"}, is_not_null) is True
        assert evaluator.evaluate({}, is_not_null) is False

    @pytest.mark.parametrize("operator, value", [
        ("equals", "x"),
        ("not-equals", "x"),
        ("contains", "x"),
        ("not-contains", "x"),
        ("starts-with", "x"),
        ("ends-with", "x"),
        ("greater-than", 0),
        ("less-than", 0),
        ("greater-or-equal", 0),
        ("less-or-equal", 0),
        ("between", (0, 10)),
        ("in", ["x"]),
    ])
    def test_missing_value_fails_every_comparison(self, evaluator, operator, value):
        assert evaluator.evaluate({"other": 1}, rule("financial.agreedPrice", operator, value)) is False

    def test_in_uses_strict_equality(self, evaluator):
        r = rule("code", "in", ["5", "6"])
        assert evaluator.evaluate({"code": 5}, r) is False
        assert evaluator.evaluate({"code": "5"}, r) is True

    def test_in_requires_a_collection(self, evaluator):
        assert evaluator.evaluate({"code": "5"}, rule("code", "in", "5")) is False

    def test_date_comparisons(self, evaluator):
        after = rule("date", "greater-than", "2024-02-01", FieldType.DATE)
        assert evaluator.evaluate({"date": "2024-02-11"}, after) is True
        assert evaluator.evaluate({"date": "2024-01-20"}, after) is False

        within = rule("date", "between", ("2024-01-01", "2024-01-31"), FieldType.DATE)
        assert evaluator.evaluate({"date": "2024-01-31"}, within) is True
        assert evaluator.evaluate({"date": "2024-02-01"}, within) is False

    @pytest.mark.parametrize("operator", ["contains", "not-contains", "starts-with", "ends-with"])
    def test_null_target_never_matches(self, evaluator, operator):
        assert evaluator.evaluate({"category": "rent"}, rule("category", operator, None)) is False

    def test_integers_beyond_float_range(self, evaluator):
        huge = {"amount": 10 ** 400}
        assert evaluator.evaluate(huge, rule("amount", "greater-than", 1)) is True
        assert evaluator.evaluate(huge, rule("amount", "less-than", 1)) is False
        assert evaluator.evaluate(huge, rule("amount", "between", (0, 10))) is False


class TestStrictEquals:
    def test_no_cross_type_equality(self):
        assert strict_equals("5", 5) is False
        assert strict_equals(True, 1) is False
        assert strict_equals(1, 1.0) is True
        assert strict_equals(None, None) is True


class TestRuleConstruction:
    def test_operator_invalid_for_type_is_configuration_error(self):
        with pytest.raises(ConfigurationInvalid):
            FilterRule(field="amount", operator=FilterOperator.CONTAINS, value="1", field_type=FieldType.NUMBER)

    def test_boolean_only_supports_equality(self):
        with pytest.raises(ConfigurationInvalid):
            FilterRule(field="active", operator="greater-than", value=1, field_type="boolean")

    def test_unknown_operator_is_configuration_error(self):
        with pytest.raises(ConfigurationInvalid):
            FilterRule(field="amount", operator="roughly")

    def test_raw_strings_are_coerced(self):
        r = FilterRule(field="amount", operator="between", value=(1, 2), field_type="currency",
                       logical_operator="or")
        assert r.operator == FilterOperator.BETWEEN
        assert r.field_type == FieldType.CURRENCY
        assert r.logical_operator == LogicalOperator.OR


class TestApplyFilters:
    def test_rules_are_and_combined(self, evaluator):
        records = [
            {"status": "active", "amount": 500},
            {"status": "active", "amount": 2000},
            {"status": "closed", "amount": 2000},
        ]
        rules = [
            rule("status", "equals", "active", FieldType.TEXT),
            rule("amount", "greater-than", 1000, FieldType.NUMBER),
        ]
        assert evaluator.apply_filters(records, rules) == [{"status": "active", "amount": 2000}]

    def test_or_logical_operator_is_reserved(self, evaluator, caplog):
        records = [{"status": "active", "amount": 500}, {"status": "closed", "amount": 2000}]
        rules = [
            rule("status", "equals", "active"),
            rule("amount", "greater-than", 1000, logical_operator=LogicalOperator.OR),
        ]
        assert evaluator.apply_filters(records, rules) == []
        assert "OR logical operator" in caplog.text

    def test_no_rules_keeps_everything(self, evaluator):
        records = [{"a": 1}, {"a": 2}]
        result = evaluator.apply_filters(records, [])
        assert result == records
        assert result is not records
