"""
Ad-hoc Report Generation Engine

Turns a declarative ReportConfiguration into a GeneratedReport:
- Fetches and tags records from every configured data source
- Applies filter rules (AND-combined)
- Groups and aggregates, or projects and formats the selected fields
- Sorts on one or more keys
- Derives column metadata from the selected fields

Author: Agency Report Engine
Date: 2025-11-19
"""

import logging
import math
import time
import uuid
from collections.abc import Hashable
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from data_sources import SOURCE_TAG, DataSourceConnector
from field_catalog import FieldCatalog
from report_formatting import FieldFormatter, to_number, to_text, to_timestamp
from report_models import (
    AggregationFunction,
    ConfigurationInvalid,
    FieldType,
    FilterOperator,
    FilterRule,
    GeneratedReport,
    GroupingConfig,
    LogicalOperator,
    ReportColumn,
    ReportConfiguration,
    ReportRow,
    SelectedField,
    SortOrder,
    SortRule,
    ValidationResult,
)

logger = logging.getLogger(__name__)

RIGHT_ALIGNED_TYPES = (FieldType.NUMBER, FieldType.CURRENCY)

_COLLECTION_TYPES = (list, tuple, set, frozenset)

_TEXT_MATCH_OPERATORS = (
    FilterOperator.CONTAINS,
    FilterOperator.NOT_CONTAINS,
    FilterOperator.STARTS_WITH,
    FilterOperator.ENDS_WITH,
)


def resolve_path(record: Any, path: str) -> Any:
    """
    Resolve a dotted path such as 'financial.agreedPrice' against a record

    Returns:
        The value, or None when any segment is missing
    """
    value = record
    for key in path.split('.'):
        if isinstance(value, dict):
            value = value.get(key)
        elif isinstance(value, (list, tuple)) and key.isdigit():
            index = int(key)
            value = value[index] if index < len(value) else None
        else:
            return None
    return value


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and math.isnan(value))


def strict_equals(left: Any, right: Any) -> bool:
    """Equality without cross-type coercion ('5' != 5, True != 1)"""
    if _is_number(left) and _is_number(right):
        return left == right
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    return type(left) is type(right) and left == right


class FilterEvaluator:
    """Evaluates filter rules against raw records"""

    def evaluate(self, record: Dict, rule: FilterRule) -> bool:
        """
        Evaluate one filter rule against one record

        A missing value satisfies only 'is-null'.
        """
        value = resolve_path(record, rule.field)
        operator = rule.operator

        if operator == FilterOperator.IS_NULL:
            return value is None
        if operator == FilterOperator.IS_NOT_NULL:
            return value is not None
        if value is None:
            return False

        target = rule.value

        if operator in _TEXT_MATCH_OPERATORS and target is None:
            return False

        if operator == FilterOperator.EQUALS:
            return strict_equals(value, target)
        if operator == FilterOperator.NOT_EQUALS:
            return not strict_equals(value, target)

        if operator == FilterOperator.CONTAINS:
            return to_text(target).lower() in to_text(value).lower()
        if operator == FilterOperator.NOT_CONTAINS:
            return to_text(target).lower() not in to_text(value).lower()
        if operator == FilterOperator.STARTS_WITH:
            return to_text(value).lower().startswith(to_text(target).lower())
        if operator == FilterOperator.ENDS_WITH:
            return to_text(value).lower().endswith(to_text(target).lower())

        if operator == FilterOperator.IN:
            if not isinstance(target, _COLLECTION_TYPES):
                return False
            return any(strict_equals(value, candidate) for candidate in target)

        if operator == FilterOperator.BETWEEN:
            if not isinstance(target, (list, tuple)) or len(target) != 2:
                return False
            current = self._comparable(value, rule)
            low = self._comparable(target[0], rule)
            high = self._comparable(target[1], rule)
            if current is None or low is None or high is None:
                return False
            return low <= current <= high

        current = self._comparable(value, rule)
        expected = self._comparable(target, rule)
        if current is None or expected is None:
            return False

        if operator == FilterOperator.GREATER_THAN:
            return current > expected
        if operator == FilterOperator.LESS_THAN:
            return current < expected
        if operator == FilterOperator.GREATER_OR_EQUAL:
            return current >= expected
        if operator == FilterOperator.LESS_OR_EQUAL:
            return current <= expected

        raise NotImplementedError(f"Unhandled filter operator: {operator}")

    def _comparable(self, value: Any, rule: FilterRule) -> Optional[float]:
        """Numeric form of a value; dates compare as epoch nanoseconds"""
        if rule.field_type == FieldType.DATE:
            ts = to_timestamp(value)
            if ts is None:
                return None
            if ts.tzinfo is not None:
                ts = ts.tz_convert(None)
            return float(ts.value)
        return to_number(value)

    def apply_filters(self, records: List[Dict], rules: Optional[List[FilterRule]]) -> List[Dict]:
        """
        Keep the records that satisfy every rule

        Rules are always combined with AND; a rule's logical_operator is
        reserved and does not change the result.
        """
        if not rules:
            return list(records)

        if any(rule.logical_operator == LogicalOperator.OR for rule in rules):
            logger.warning("OR logical operator on filter rules is not supported; rules are combined with AND")

        return [record for record in records if all(self.evaluate(record, rule) for rule in rules)]


def _as_float(value) -> float:
    try:
        return float(value)
    except OverflowError:
        return math.inf if value > 0 else -math.inf


def _total(numbers: List[Any]):
    try:
        return sum(numbers)
    except OverflowError:
        # an integer beyond float range mixed with floats
        return sum(_as_float(n) for n in numbers)


def aggregate(values: List[Any], function: AggregationFunction):
    """
    Reduce a bucket's values

    Non-numeric values are ignored by sum/avg/min/max; avg, min and max of
    a bucket without numeric values are 0. count counts every value.
    """
    if function == AggregationFunction.COUNT:
        return len(values)

    numbers = [v for v in values if _is_number(v)]

    if function == AggregationFunction.SUM:
        return _total(numbers)
    if function == AggregationFunction.AVG:
        if not numbers:
            return 0
        total = _total(numbers)
        try:
            return total / len(numbers)
        except OverflowError:
            return _as_float(total) / len(numbers)
    if function == AggregationFunction.MIN:
        return min(numbers) if numbers else 0
    if function == AggregationFunction.MAX:
        return max(numbers) if numbers else 0

    raise NotImplementedError(f"Unhandled aggregation function: {function}")


def _reducer(function: AggregationFunction):
    def reduce(series: pd.Series):
        return aggregate(series.tolist(), function)
    return reduce


class GroupingEngine:
    """Partitions records by group-by values and aggregates each partition"""

    def group(self, records: List[Dict], config: GroupingConfig,
              fields: Optional[List[SelectedField]] = None) -> List[ReportRow]:
        """
        Group records and compute aggregations

        Args:
            records: Filtered records
            config: Group-by paths and aggregation specs
            fields: Selected fields (row shape is driven by config, not fields)

        Returns:
            One row per distinct group key, in first-seen order
        """
        if not config.group_by:
            raise ConfigurationInvalid("Group by field must be selected when grouping is enabled")
        if not records:
            return []

        # positional column names; paths and labels may collide
        key_columns = [f'key_{i}' for i in range(len(config.group_by))]
        value_columns = [f'value_{i}' for i in range(len(config.aggregations))]

        data = {}
        for column, path in zip(key_columns, config.group_by):
            data[column] = [to_text(resolve_path(record, path)) for record in records]
        for column, agg in zip(value_columns, config.aggregations):
            data[column] = [resolve_path(record, agg.field) for record in records]
        df = pd.DataFrame(data, dtype=object)

        grouped = df.groupby(key_columns, sort=False, dropna=False, as_index=False)
        if value_columns:
            summary = grouped.agg({
                column: _reducer(agg.function)
                for column, agg in zip(value_columns, config.aggregations)
            })
        else:
            summary = grouped.size()[key_columns]

        rows = []
        for values in summary.to_dict('records'):
            row = ReportRow()
            for column, path in zip(key_columns, config.group_by):
                row[path] = values[column]
            for column, agg in zip(value_columns, config.aggregations):
                row[agg.label] = values[column]
            row.sort_values = dict(row)
            rows.append(row)

        logger.debug(f"Grouped {len(records)} record(s) into {len(rows)} group(s)")
        return rows


def project(records: List[Dict], fields: List[SelectedField], formatter: FieldFormatter) -> List[ReportRow]:
    """Select and format the chosen fields from each record"""
    rows = []
    for record in records:
        raw = {}
        formatted = {}
        for selected in fields:
            value = resolve_path(record, selected.path)
            raw[selected.id] = value
            formatted[selected.id] = formatter.format(value, selected.type)
        rows.append(ReportRow(formatted, sort_values=raw))
    return rows


def _value_kind(value: Any):
    if value is None or not isinstance(value, Hashable):
        return None
    if isinstance(value, bool) or _is_number(value):
        return 'number'
    if isinstance(value, float):
        return None
    return type(value)


def _orderable(column: pd.Series) -> pd.Series:
    """Keep values of the column's leading kind; the rest become NA and sort last"""
    kinds = [_value_kind(v) for v in column]
    leading = next((kind for kind in kinds if kind is not None), None)
    return pd.Series(
        [v if kind is not None and kind == leading else None for v, kind in zip(column, kinds)],
        index=column.index,
        dtype=object,
    )


def sort_rows(rows: List[ReportRow], sort_rules: Optional[List[SortRule]]) -> List[ReportRow]:
    """
    Stable multi-key sort

    The first rule whose values differ decides the order; rows equal on
    every key keep their relative order. Missing values, and values that
    cannot be ordered against the rest of their column, sort last.
    """
    if not sort_rules or not rows:
        return list(rows)

    def lookup(row, key):
        sort_values = getattr(row, 'sort_values', None)
        if sort_values is not None and key in sort_values:
            return sort_values[key]
        return row.get(key)

    columns = [f'sort_{i}' for i in range(len(sort_rules))]
    df = pd.DataFrame({
        column: [lookup(row, rule.field) for row in rows]
        for column, rule in zip(columns, sort_rules)
    }, dtype=object)

    df = df.sort_values(
        by=columns,
        ascending=[rule.direction == SortOrder.ASC for rule in sort_rules],
        kind='stable',
        na_position='last',
        key=_orderable,
    )
    return [rows[i] for i in df.index]


def build_columns(fields: List[SelectedField]) -> List[ReportColumn]:
    """Column metadata in selected-field order"""
    return [
        ReportColumn(
            id=selected.id,
            label=selected.label,
            type=selected.type,
            align='right' if selected.type in RIGHT_ALIGNED_TYPES else 'left',
        )
        for selected in fields
    ]


def validate_config(config: ReportConfiguration, catalog: Optional[FieldCatalog] = None) -> ValidationResult:
    """
    Validate a report configuration

    Args:
        config: Configuration to check
        catalog: When given, selected-field and group-by paths of known
            sources are checked against it

    Returns:
        ValidationResult with every problem found
    """
    errors = []

    if not config.data_sources:
        errors.append('At least one data source must be selected')

    if not config.fields:
        errors.append('At least one field must be selected')

    if config.grouping is not None:
        if not config.grouping.group_by:
            errors.append('Group by field must be selected when grouping is enabled')
        for agg in config.grouping.aggregations:
            if not agg.label:
                errors.append(f"Aggregation on '{agg.field}' needs a label")

    for rule in config.filters or []:
        if rule.operator == FilterOperator.BETWEEN:
            if not isinstance(rule.value, (list, tuple)) or len(rule.value) != 2:
                errors.append(f"Filter on '{rule.field}' with 'between' needs a [low, high] pair")
        elif rule.operator == FilterOperator.IN:
            if not isinstance(rule.value, _COLLECTION_TYPES):
                errors.append(f"Filter on '{rule.field}' with 'in' needs a list of values")
        elif rule.operator in _TEXT_MATCH_OPERATORS and rule.value is None:
            errors.append(f"Filter on '{rule.field}' with '{rule.operator.value}' needs a value")

    if catalog is not None:
        for selected in config.fields:
            if catalog.knows_source(selected.source) and not catalog.find_by_path(selected.source, selected.path):
                errors.append(f"Field '{selected.path}' is not available on source '{selected.source}'")

        known_sources = [s for s in config.data_sources if catalog.knows_source(s)]
        if config.grouping is not None and known_sources:
            for path in config.grouping.group_by:
                if path == SOURCE_TAG:
                    continue
                if not any(catalog.find_by_path(source, path) for source in known_sources):
                    errors.append(f"Group by field '{path}' is not available on the selected sources")

    return ValidationResult(is_valid=not errors, errors=errors)


def generate_report_id() -> str:
    return f"report_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class ReportEngine:
    """
    Main report engine

    Holds its collaborators only; every generate() call is independent.
    """

    def __init__(self,
                 connector: DataSourceConnector,
                 catalog: Optional[FieldCatalog] = None,
                 formatter: Optional[FieldFormatter] = None):
        """
        Initialize the engine

        Args:
            connector: Data source connector supplying raw records
            catalog: Field catalog used for validation
            formatter: Value formatter for ungrouped reports
        """
        self.connector = connector
        self.catalog = catalog or FieldCatalog.default()
        self.formatter = formatter or FieldFormatter()
        self.filter_evaluator = FilterEvaluator()
        self.grouping_engine = GroupingEngine()

    def validate(self, config: ReportConfiguration) -> ValidationResult:
        return validate_config(config, self.catalog)

    def generate(self,
                 config: ReportConfiguration,
                 acting_user_id: str,
                 acting_role: str,
                 validate_first: bool = True,
                 template_id: str = '',
                 template_name: str = 'Custom Report') -> GeneratedReport:
        """
        Generate a report from a configuration

        Args:
            config: Report configuration
            acting_user_id: User the report is generated for
            acting_role: 'admin' or 'agent'; scopes the records fetched
            validate_first: Reject an invalid configuration before fetching data
            template_id: Saved template the configuration came from, if any
            template_name: Display name of the report

        Returns:
            GeneratedReport snapshot

        Raises:
            ConfigurationInvalid: If validate_first and the configuration is invalid
        """
        if validate_first:
            self.validate(config).raise_if_invalid()

        records = self.connector.fetch_all(config.data_sources, acting_user_id, acting_role)
        logger.debug(f"Fetched {len(records)} record(s) from {len(config.data_sources)} source(s)")

        records = self.filter_evaluator.apply_filters(records, config.filters)
        logger.debug(f"{len(records)} record(s) after filtering")

        if config.grouping is not None:
            rows = self.grouping_engine.group(records, config.grouping, config.fields)
        else:
            rows = project(records, config.fields, self.formatter)

        if config.sorting:
            rows = sort_rows(rows, config.sorting)

        columns = build_columns(config.fields)

        report = GeneratedReport(
            id=generate_report_id(),
            template_id=template_id,
            template_name=template_name,
            config=config,
            data=rows,
            columns=columns,
            generated_at=datetime.now().isoformat(),
            generated_by=acting_user_id,
            row_count=len(rows),
        )
        logger.info(f"Generated report {report.id} with {report.row_count} row(s) for {acting_user_id}")
        return report
