"""
Example usage of the Agency Report Engine

This script demonstrates how to build report configurations in code and
generate them against the sample agency data snapshot.

Usage:
    python example_reports.py

Author: Agency Report Engine
Date: 2025-11-19
"""

import os
from dotenv import load_dotenv
from data_sources import AgencyDataStore
from field_catalog import FieldCatalog
from report_engine import ReportEngine
from report_models import (
    AggregationFunction,
    AggregationSpec,
    FieldType,
    FilterOperator,
    FilterRule,
    GroupingConfig,
    ReportConfiguration,
    SelectedField,
    SortOrder,
    SortRule
)


def build_engine() -> ReportEngine:
    load_dotenv()
    store = AgencyDataStore.from_json_file(os.getenv('AGENCY_DATA_FILE', 'data/sample_agency_data.json'))
    return ReportEngine(store.connector(), catalog=FieldCatalog.default())


def example_expense_listing(engine: ReportEngine):
    """Example: Non-legal expenses, largest first"""
    print("\n" + "="*80)
    print("EXAMPLE 1: Expense Listing (excluding legal)")
    print("="*80)

    config = ReportConfiguration(
        data_sources=['expenses'],
        fields=[
            SelectedField('amount', 'expenses', 'amount', 'Amount', FieldType.CURRENCY),
            SelectedField('category', 'expenses', 'category', 'Category', FieldType.TEXT),
            SelectedField('date', 'expenses', 'date', 'Date', FieldType.DATE),
        ],
        filters=[
            FilterRule('category', FilterOperator.NOT_EQUALS, 'legal', field_type=FieldType.TEXT),
        ],
        sorting=[SortRule('amount', SortOrder.DESC)],
    )

    report = engine.generate(config, 'admin', 'admin', template_name='Expense Listing')
    report.print_summary()


def example_commissions_by_status(engine: ReportEngine):
    """Example: Commission totals and averages per status"""
    print("\n" + "="*80)
    print("EXAMPLE 2: Commissions by Status")
    print("="*80)

    catalog = engine.catalog
    config = ReportConfiguration(
        data_sources=['commissions'],
        fields=[
            SelectedField.from_available(catalog.get_field('commission_status')),
            SelectedField.from_available(catalog.get_field('commission_amount')),
        ],
        grouping=GroupingConfig(
            group_by=['status'],
            aggregations=[
                AggregationSpec('amount', AggregationFunction.SUM, 'Total'),
                AggregationSpec('amount', AggregationFunction.AVG, 'Average'),
                AggregationSpec('amount', AggregationFunction.COUNT, 'Count'),
            ],
        ),
        sorting=[SortRule('Total', SortOrder.DESC)],
    )

    report = engine.generate(config, 'admin', 'admin', template_name='Commissions by Status')
    report.print_summary()


def example_agent_deals(engine: ReportEngine):
    """Example: Deals visible to one agent, priced between 5M and 50M"""
    print("\n" + "="*80)
    print("EXAMPLE 3: Deals for agent-1")
    print("="*80)

    catalog = engine.catalog
    config = ReportConfiguration(
        data_sources=['deals'],
        fields=[SelectedField.from_available(f) for f in catalog.list_fields('deals')],
        filters=[
            FilterRule('financial.agreedPrice', FilterOperator.BETWEEN, (5_000_000, 50_000_000),
                       field_type=FieldType.CURRENCY),
        ],
        sorting=[SortRule('deal_date', SortOrder.ASC)],
    )

    report = engine.generate(config, 'agent-1', 'agent', template_name='Agent Deals')
    report.print_summary()


def main():
    """Run all examples"""
    engine = build_engine()
    example_expense_listing(engine)
    example_commissions_by_status(engine)
    example_agent_deals(engine)


if __name__ == '__main__':
    main()
