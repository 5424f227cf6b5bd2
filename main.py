#!/usr/bin/env python3
"""
Agency Report Engine CLI
Main entry point for generating ad-hoc reports from an agency data snapshot
"""

import argparse
import json
import logging
import os
import sys
from dotenv import load_dotenv

from data_sources import AgencyDataStore
from field_catalog import FieldCatalog
from report_engine import ReportEngine
from report_export import export_to_csv, export_to_excel_csv, export_to_json
from report_formatting import DEFAULT_CURRENCY_CODE, FieldFormatter
from report_models import ConfigurationInvalid, ReportConfiguration

DEFAULT_DATA_FILE = 'data/sample_agency_data.json'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Generate ad-hoc reports from agency data',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List the fields available on the expenses source
  python main.py --list-fields expenses

  # Validate a report configuration without generating it
  python main.py --config examples/expenses_by_category.json --validate-only

  # Generate a report as an admin and export it to CSV
  python main.py --config examples/expenses_by_category.json --role admin --output expenses.csv

  # Generate a report scoped to one agent and export JSON
  python main.py --config examples/open_deals.json --role agent --user agent-1 --format json --pretty
        """
    )

    input_group = parser.add_argument_group('input')
    input_group.add_argument(
        '--data',
        help=f'Agency data JSON file (or set AGENCY_DATA_FILE env var, default {DEFAULT_DATA_FILE})'
    )
    input_group.add_argument(
        '--config',
        help='Report configuration JSON file'
    )

    user_group = parser.add_argument_group('acting user')
    user_group.add_argument(
        '--user',
        default='cli',
        help='Acting user ID (default: cli)'
    )
    user_group.add_argument(
        '--role',
        choices=['admin', 'agent'],
        default='admin',
        help='Acting role, scopes the records a report sees (default: admin)'
    )

    output_group = parser.add_argument_group('output')
    output_group.add_argument(
        '--output',
        help='Output filename (auto-generated if not specified)'
    )
    output_group.add_argument(
        '--format',
        choices=['csv', 'excel', 'json'],
        default='csv',
        help='Output format (default: csv)'
    )
    output_group.add_argument(
        '--pretty',
        action='store_true',
        help='Pretty print JSON output'
    )
    output_group.add_argument(
        '--no-summary',
        action='store_true',
        help='Do not print the report to the console'
    )

    action_group = parser.add_argument_group('actions')
    action_group.add_argument(
        '--list-fields',
        metavar='SOURCE',
        help='List the fields available on a data source and exit'
    )
    action_group.add_argument(
        '--validate-only',
        action='store_true',
        help='Validate the configuration and exit'
    )
    return parser


def main(argv=None):
    """Main CLI entry point"""

    # Load environment variables
    load_dotenv()

    logging.basicConfig(
        level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    args = build_parser().parse_args(argv)

    try:
        exit_code = run_commands(args)
    except ConfigurationInvalid as e:
        print("ERROR: Invalid report configuration:")
        for error in e.errors:
            print(f"  - {error}")
        sys.exit(1)
    except (ValueError, OSError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.")
        sys.exit(0)
    except Exception as e:
        print(f"ERROR: An unexpected error occurred: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


def run_commands(args) -> int:
    """Execute the requested commands"""
    catalog = FieldCatalog.default()

    # Handle list fields action
    if args.list_fields:
        fields = catalog.list_fields(args.list_fields)
        if not fields:
            print(f"No fields available for source '{args.list_fields}'.")
            return 0
        print(f"\nFound {len(fields)} field(s) on {args.list_fields}:")
        for available in fields:
            flags = []
            if available.allow_grouping:
                flags.append('groupable')
            if available.allow_aggregation:
                flags.append('aggregatable')
            suffix = f" [{', '.join(flags)}]" if flags else ''
            print(f"  - {available.label} (ID: {available.id}, path: {available.path}, "
                  f"type: {available.type.value}){suffix}")
        return 0

    if not args.config:
        print("ERROR: --config is required to generate a report.")
        return 2

    with open(args.config, 'r') as f:
        config = ReportConfiguration.from_dict(json.load(f))

    data_file = args.data or os.getenv('AGENCY_DATA_FILE', DEFAULT_DATA_FILE)
    store = AgencyDataStore.from_json_file(data_file)
    formatter = FieldFormatter(currency_code=os.getenv('REPORT_CURRENCY_CODE', DEFAULT_CURRENCY_CODE))
    engine = ReportEngine(store.connector(), catalog=catalog, formatter=formatter)

    result = engine.validate(config)
    if args.validate_only:
        if result.is_valid:
            print("Configuration is valid.")
            return 0
        print("Configuration is invalid:")
        for error in result.errors:
            print(f"  - {error}")
        return 1
    result.raise_if_invalid()

    report = engine.generate(config, args.user, args.role, validate_first=False)

    if not args.no_summary:
        report.print_summary()

    if args.format == 'csv':
        output_file = export_to_csv(report, args.output)
    elif args.format == 'excel':
        output_file = export_to_excel_csv(report, args.output)
    else:  # json
        output_file = export_to_json(report, args.output, pretty=args.pretty)

    print(f"\nSuccess! Report saved to: {output_file}")
    return 0


if __name__ == '__main__':
    main()
