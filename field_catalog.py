"""
Field Catalog

Read-only registry of the fields each data source exposes to reports.
"""

from typing import Dict, Iterable, List, Optional

from report_models import AvailableField, DataSource, FieldType


def _field(source: DataSource, field_id: str, path: str, label: str, field_type: FieldType,
           grouping: bool = False, aggregation: bool = False) -> AvailableField:
    return AvailableField(
        id=field_id,
        source=source.value,
        path=path,
        label=label,
        type=field_type,
        allow_grouping=grouping,
        allow_aggregation=aggregation,
    )


DEFAULT_FIELDS: List[AvailableField] = [
    # Deals
    _field(DataSource.DEALS, 'deal_id', 'id', 'Deal ID', FieldType.TEXT),
    _field(DataSource.DEALS, 'deal_title', 'title', 'Deal Title', FieldType.TEXT),
    _field(DataSource.DEALS, 'deal_price', 'financial.agreedPrice', 'Deal Price', FieldType.CURRENCY,
           aggregation=True),
    _field(DataSource.DEALS, 'deal_status', 'lifecycle.status', 'Status', FieldType.TEXT, grouping=True),
    _field(DataSource.DEALS, 'deal_date', 'metadata.createdAt', 'Created Date', FieldType.DATE),
    _field(DataSource.DEALS, 'deal_agent', 'participants.agentId', 'Agent ID', FieldType.TEXT, grouping=True),

    # Properties
    _field(DataSource.PROPERTIES, 'property_id', 'id', 'Property ID', FieldType.TEXT),
    _field(DataSource.PROPERTIES, 'property_title', 'title', 'Property Title', FieldType.TEXT),
    _field(DataSource.PROPERTIES, 'property_price', 'price', 'Price', FieldType.CURRENCY, aggregation=True),
    _field(DataSource.PROPERTIES, 'property_area', 'area', 'Area (sq yd)', FieldType.NUMBER, aggregation=True),
    _field(DataSource.PROPERTIES, 'property_type', 'type', 'Type', FieldType.TEXT, grouping=True),
    _field(DataSource.PROPERTIES, 'property_status', 'status', 'Status', FieldType.TEXT, grouping=True),

    # Expenses
    _field(DataSource.EXPENSES, 'expense_id', 'id', 'Expense ID', FieldType.TEXT),
    _field(DataSource.EXPENSES, 'expense_amount', 'amount', 'Amount', FieldType.CURRENCY, aggregation=True),
    _field(DataSource.EXPENSES, 'expense_category', 'category', 'Category', FieldType.TEXT, grouping=True),
    _field(DataSource.EXPENSES, 'expense_date', 'date', 'Date', FieldType.DATE),
    _field(DataSource.EXPENSES, 'expense_status', 'status', 'Status', FieldType.TEXT, grouping=True),

    # Commissions
    _field(DataSource.COMMISSIONS, 'commission_id', 'id', 'Commission ID', FieldType.TEXT),
    _field(DataSource.COMMISSIONS, 'commission_amount', 'amount', 'Amount', FieldType.CURRENCY,
           aggregation=True),
    _field(DataSource.COMMISSIONS, 'commission_category', 'category', 'Category', FieldType.TEXT,
           grouping=True),
    _field(DataSource.COMMISSIONS, 'commission_date', 'date', 'Date', FieldType.DATE),
    _field(DataSource.COMMISSIONS, 'commission_status', 'status', 'Status', FieldType.TEXT, grouping=True),
]


class FieldCatalog:
    """
    Registry mapping a data source name to its available fields

    Unknown sources are not an error: they simply expose no fields, so
    configurations for new sources keep working.
    """

    def __init__(self, fields: Iterable[AvailableField]):
        """
        Initialize the catalog

        Args:
            fields: Catalog entries, in display order
        """
        self._by_source: Dict[str, List[AvailableField]] = {}
        self._by_id: Dict[str, AvailableField] = {}
        for available in fields:
            self._by_source.setdefault(available.source, []).append(available)
            self._by_id[available.id] = available

    @classmethod
    def default(cls) -> "FieldCatalog":
        """Catalog with the built-in deals, properties, expenses and commissions fields"""
        return cls(DEFAULT_FIELDS)

    def sources(self) -> List[str]:
        return list(self._by_source.keys())

    def list_fields(self, source: str) -> List[AvailableField]:
        """Fields available on ``source``; empty for unknown sources"""
        return list(self._by_source.get(source, []))

    def get_field(self, field_id: str) -> Optional[AvailableField]:
        return self._by_id.get(field_id)

    def find_by_path(self, source: str, path: str) -> Optional[AvailableField]:
        for available in self._by_source.get(source, []):
            if available.path == path:
                return available
        return None

    def knows_source(self, source: str) -> bool:
        return source in self._by_source

    def groupable_fields(self, source: str) -> List[AvailableField]:
        return [f for f in self.list_fields(source) if f.allow_grouping]

    def aggregatable_fields(self, source: str) -> List[AvailableField]:
        return [f for f in self.list_fields(source) if f.allow_aggregation]
