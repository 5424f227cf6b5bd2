"""
Data Model for the Agency Report Engine

Declarative report configuration (sources, selected fields, filters,
grouping, sorting) and the generated report snapshot.

Author: Agency Report Engine
Date: 2025-11-19
"""

import json
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ConfigurationInvalid(ValueError):
    """Raised when a report configuration violates its invariants"""

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid report configuration")


class DataSource(Enum):
    """Built-in data sources"""
    DEALS = "deals"
    PROPERTIES = "properties"
    EXPENSES = "expenses"
    COMMISSIONS = "commissions"


class FieldType(Enum):
    """Semantic type of a report field"""
    TEXT = "text"
    NUMBER = "number"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    DATE = "date"
    BOOLEAN = "boolean"


class FilterOperator(Enum):
    """Filter predicate operators"""
    EQUALS = "equals"
    NOT_EQUALS = "not-equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not-contains"
    STARTS_WITH = "starts-with"
    ENDS_WITH = "ends-with"
    GREATER_THAN = "greater-than"
    LESS_THAN = "less-than"
    GREATER_OR_EQUAL = "greater-or-equal"
    LESS_OR_EQUAL = "less-or-equal"
    BETWEEN = "between"
    IN = "in"
    IS_NULL = "is-null"
    IS_NOT_NULL = "is-not-null"


class LogicalOperator(Enum):
    """Per-rule connective. Reserved: rules are always combined with AND."""
    AND = "AND"
    OR = "OR"


class AggregationFunction(Enum):
    """Reductions applied to a field within a group"""
    SUM = "sum"
    AVG = "avg"
    COUNT = "count"
    MIN = "min"
    MAX = "max"


class SortOrder(Enum):
    """Sort order options"""
    ASC = "asc"
    DESC = "desc"


_NUMERIC_OPERATORS = [
    FilterOperator.EQUALS,
    FilterOperator.NOT_EQUALS,
    FilterOperator.GREATER_THAN,
    FilterOperator.LESS_THAN,
    FilterOperator.GREATER_OR_EQUAL,
    FilterOperator.LESS_OR_EQUAL,
    FilterOperator.BETWEEN,
    FilterOperator.IN,
    FilterOperator.IS_NULL,
    FilterOperator.IS_NOT_NULL,
]

OPERATORS_BY_TYPE: Dict[FieldType, Tuple[FilterOperator, ...]] = {
    FieldType.TEXT: (
        FilterOperator.EQUALS,
        FilterOperator.NOT_EQUALS,
        FilterOperator.CONTAINS,
        FilterOperator.NOT_CONTAINS,
        FilterOperator.STARTS_WITH,
        FilterOperator.ENDS_WITH,
        FilterOperator.IN,
        FilterOperator.IS_NULL,
        FilterOperator.IS_NOT_NULL,
    ),
    FieldType.NUMBER: tuple(_NUMERIC_OPERATORS),
    FieldType.CURRENCY: tuple(_NUMERIC_OPERATORS),
    FieldType.PERCENTAGE: tuple(_NUMERIC_OPERATORS),
    FieldType.DATE: tuple(_NUMERIC_OPERATORS),
    FieldType.BOOLEAN: (
        FilterOperator.EQUALS,
        FilterOperator.NOT_EQUALS,
        FilterOperator.IS_NULL,
        FilterOperator.IS_NOT_NULL,
    ),
}


def _enum_value(enum_cls, value, what: str):
    """Coerce a raw string (or enum member) into ``enum_cls``"""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ConfigurationInvalid(f"Unknown {what}: {value!r}")


@dataclass(frozen=True)
class AvailableField:
    """Catalog entry describing a field a data source exposes"""
    id: str
    source: str
    path: str
    label: str
    type: FieldType
    allow_grouping: bool = False
    allow_aggregation: bool = False


@dataclass(frozen=True)
class SelectedField:
    """A field chosen for output. List position is column position."""
    id: str
    source: str
    path: str
    label: str
    type: FieldType = FieldType.TEXT

    @classmethod
    def from_available(cls, available: AvailableField) -> "SelectedField":
        return cls(
            id=available.id,
            source=available.source,
            path=available.path,
            label=available.label,
            type=available.type,
        )


@dataclass(frozen=True)
class FilterRule:
    """
    One boolean predicate over a record field

    ``value`` is a scalar, a 2-element pair for ``between`` or a
    collection for ``in``. ``logical_operator`` is stored but rules are
    always AND-combined.
    """
    field: str
    operator: FilterOperator
    value: Any = None
    field_type: Optional[FieldType] = None
    id: str = ""
    logical_operator: LogicalOperator = LogicalOperator.AND

    def __post_init__(self):
        if not isinstance(self.operator, FilterOperator):
            object.__setattr__(self, 'operator', _enum_value(FilterOperator, self.operator, "filter operator"))
        if self.field_type is not None and not isinstance(self.field_type, FieldType):
            object.__setattr__(self, 'field_type', _enum_value(FieldType, self.field_type, "field type"))
        if not isinstance(self.logical_operator, LogicalOperator):
            object.__setattr__(
                self, 'logical_operator',
                _enum_value(LogicalOperator, str(self.logical_operator).upper(), "logical operator")
            )

        if self.field_type is not None and self.operator not in OPERATORS_BY_TYPE[self.field_type]:
            raise ConfigurationInvalid(
                f"Operator '{self.operator.value}' is not valid for {self.field_type.value} field '{self.field}'"
            )


@dataclass(frozen=True)
class AggregationSpec:
    """Aggregation applied to ``field`` within each group, output under ``label``"""
    field: str
    function: AggregationFunction
    label: str

    def __post_init__(self):
        if not isinstance(self.function, AggregationFunction):
            object.__setattr__(
                self, 'function', _enum_value(AggregationFunction, self.function, "aggregation function")
            )


@dataclass(frozen=True)
class GroupingConfig:
    """Group-by paths and the aggregations computed per group"""
    group_by: List[str] = field(default_factory=list)
    aggregations: List[AggregationSpec] = field(default_factory=list)


@dataclass(frozen=True)
class SortRule:
    """Sort configuration for one key"""
    field: str
    direction: SortOrder = SortOrder.ASC

    def __post_init__(self):
        if not isinstance(self.direction, SortOrder):
            object.__setattr__(self, 'direction', _enum_value(SortOrder, self.direction, "sort direction"))


@dataclass(frozen=True)
class ReportConfiguration:
    """Full declarative input to report generation"""
    data_sources: List[str] = field(default_factory=list)
    fields: List[SelectedField] = field(default_factory=list)
    filters: List[FilterRule] = field(default_factory=list)
    grouping: Optional[GroupingConfig] = None
    sorting: Optional[List[SortRule]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReportConfiguration":
        """
        Build a configuration from plain JSON-like data

        Args:
            data: Dictionary with data_sources, fields, filters, grouping, sorting

        Returns:
            ReportConfiguration instance

        Raises:
            ConfigurationInvalid: If an entry is malformed
        """
        if not isinstance(data, dict):
            raise ConfigurationInvalid("Report configuration must be an object")

        raw_sources = data.get('data_sources') or []
        if not isinstance(raw_sources, list):
            raise ConfigurationInvalid("data_sources must be a list of source names")

        try:
            sources = [
                s['source'] if isinstance(s, dict) else s
                for s in raw_sources
            ]

            fields = [
                SelectedField(
                    id=f['id'],
                    source=f.get('source', ''),
                    path=f.get('path') or f.get('field') or f['id'],
                    label=f.get('label', f['id']),
                    type=_enum_value(FieldType, f.get('type', 'text'), "field type"),
                )
                for f in data.get('fields') or []
            ]

            filters = []
            for index, rule in enumerate(data.get('filters') or []):
                value = rule.get('value')
                if isinstance(value, list) and rule.get('operator') == FilterOperator.BETWEEN.value:
                    value = tuple(value)
                filters.append(FilterRule(
                    id=rule.get('id') or f"filter_{index + 1}",
                    field=rule['field'],
                    field_type=rule.get('field_type'),
                    operator=rule['operator'],
                    value=value,
                    logical_operator=rule.get('logical_operator') or 'AND',
                ))

            grouping = None
            if data.get('grouping') is not None:
                raw_grouping = data['grouping']
                grouping = GroupingConfig(
                    group_by=list(raw_grouping.get('group_by') or []),
                    aggregations=[
                        AggregationSpec(
                            field=agg['field'],
                            function=agg['function'],
                            label=agg.get('label') or f"{agg['function']}_{agg['field']}",
                        )
                        for agg in raw_grouping.get('aggregations') or []
                    ],
                )

            sorting = None
            if data.get('sorting') is not None:
                sorting = [
                    SortRule(field=s['field'], direction=s.get('direction', 'asc'))
                    for s in data['sorting']
                ]
        except (KeyError, TypeError, AttributeError) as e:
            raise ConfigurationInvalid(f"Malformed report configuration: {e!r}")

        return cls(
            data_sources=sources,
            fields=fields,
            filters=filters,
            grouping=grouping,
            sorting=sorting,
        )


@dataclass
class ValidationResult:
    """Outcome of configuration validation"""
    is_valid: bool
    errors: List[str] = field(default_factory=list)

    def raise_if_invalid(self):
        if not self.is_valid:
            raise ConfigurationInvalid(self.errors)


class ReportRow(dict):
    """
    One output row: output key -> formatted value

    ``sort_values`` holds the unformatted values behind each key and is
    what the sorter compares. It is not part of the mapping.
    """

    def __init__(self, *args, sort_values: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.sort_values = dict(sort_values) if sort_values is not None else dict(self)


@dataclass(frozen=True)
class ReportColumn:
    """Display metadata for one output field"""
    id: str
    label: str
    type: FieldType
    align: str


def _jsonable(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


@dataclass(frozen=True)
class GeneratedReport:
    """Snapshot produced by one generation call"""
    id: str
    config: ReportConfiguration
    data: List[ReportRow]
    columns: List[ReportColumn]
    generated_at: str
    generated_by: str
    row_count: int
    template_id: str = ""
    template_name: str = "Custom Report"

    def to_dict(self) -> Dict:
        """Convert report to dictionary"""
        return {
            'id': self.id,
            'template_id': self.template_id,
            'template_name': self.template_name,
            'config': _jsonable(asdict(self.config)),
            'data': [dict(row) for row in self.data],
            'columns': [_jsonable(asdict(col)) for col in self.columns],
            'generated_at': self.generated_at,
            'generated_by': self.generated_by,
            'row_count': self.row_count,
        }

    def to_json(self) -> str:
        """Convert report to JSON string"""
        return json.dumps(self.to_dict(), indent=2, default=str)

    def display_columns(self) -> List[Tuple[str, str]]:
        """
        (row key, header) pairs for rendering

        Grouped rows are keyed by group-by paths and aggregation labels
        rather than by the selected fields the columns describe; when no
        column id appears in the rows, the row keys are used instead.
        """
        pairs = [(col.id, col.label) for col in self.columns]
        if self.data and not any(key in self.data[0] for key, _ in pairs):
            pairs = [(key, key) for key in self.data[0].keys()]
        return pairs

    def print_summary(self):
        """Print the report as a console table"""
        pairs = self.display_columns()
        keys = [key for key, _ in pairs]
        labels = [label for _, label in pairs]

        widths = []
        for key, label in zip(keys, labels):
            cell_width = max([len(str(row.get(key, ''))) for row in self.data] + [len(label)])
            widths.append(min(cell_width, 30))
        total_width = max(sum(widths) + 2 * len(widths), 40)

        print("\n" + "="*total_width)
        print(f"{self.template_name.upper()}")
        print(f"Generated: {self.generated_at} by {self.generated_by}")
        print("="*total_width)

        print("  ".join(f"{label[:w]:<{w}}" for label, w in zip(labels, widths)))
        print("-"*total_width)
        for row in self.data:
            print("  ".join(f"{str(row.get(key, ''))[:w]:<{w}}" for key, w in zip(keys, widths)))

        print("-"*total_width)
        print(f"{self.row_count} row(s)")
        print("="*total_width + "\n")
