#!/usr/bin/env python
# run_low_stock_alert.py - Script to run the daily low-stock alert batch

import sys
import logging
import argparse
from datetime import datetime

from tabulate import tabulate

from inventory_engine.batch.low_stock_alert import run_low_stock_alert
from inventory_engine.db import db
from inventory_engine.logging_setup import get_logger

HEADERS = ['SKU', 'Name', 'Available', 'On Order', 'Velocity/day', 'Days Left', 'Lead', 'Suggested Qty']


def _rows(items):
    rows = []
    for item in items:
        days = item.days_remaining
        rows.append([
            item.sku,
            item.name,
            item.available,
            item.on_order,
            f"{item.velocity:.2f}",
            f"{days:.1f}" if days is not None else '-',
            item.lead_time,
            item.suggested_order_qty
        ])
    return rows


def print_report(report):
    """Print the report partitions as tables."""
    sections = (
        ('OUT OF STOCK', report.out_of_stock_items),
        ('CRITICAL', report.critical_items),
        ('WARNING', report.warning_items),
    )
    for title, items in sections:
        if not items:
            continue
        print(f"\n{title} ({len(items)})")
        print(tabulate(_rows(items), headers=HEADERS))

    if report.data_quality_warnings:
        print(f"\nDATA QUALITY WARNINGS ({len(report.data_quality_warnings)})")
        print(tabulate(
            [[w['code'], w['sku'], w['events'], w['units']] for w in report.data_quality_warnings],
            headers=['Code', 'SKU', 'Events', 'Units Excluded']
        ))

    print(f"\nTotal low-stock items: {report.total_low_stock_items}")


def main():
    """Run the low-stock alert batch."""
    parser = argparse.ArgumentParser(description='Run the daily low-stock alert batch')
    parser.add_argument('--date', '-d', help='Report date (YYYY-MM-DD), defaults to today')
    parser.add_argument('--db-url', help='Database URL, overrides settings.ini')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose logging')

    args = parser.parse_args()

    logger = get_logger('low_stock_alert_runner')
    if args.verbose:
        logger.setLevel(logging.DEBUG)

    as_of = None
    if args.date:
        try:
            as_of = datetime.strptime(args.date, '%Y-%m-%d').date()
        except ValueError:
            parser.error(f"Invalid date: {args.date}")

    if args.db_url:
        db.initialize(args.db_url)

    logger.info(f"Starting low-stock alert runner for {as_of or 'today'}")

    results = run_low_stock_alert(as_of)

    if not results.get('success', False):
        logger.error(f"Low-stock alert failed: {results.get('error', 'Unknown error')}")
        return 1

    logger.info(f"Low-stock alert completed in {results.get('duration')}")
    print_report(results['report'])

    on_order_check = results.get('on_order_check') or {}
    if on_order_check and not on_order_check.get('consistent', True):
        print(f"\non_order drift on {len(on_order_check['drifts'])} component(s)")
        print(tabulate(
            [[d['sku'], d['on_order'], d['expected'], d['difference']] for d in on_order_check['drifts']],
            headers=['SKU', 'On Order', 'Open PO Lines', 'Difference']
        ))

    mapping_check = results.get('mapping_check') or {}
    if mapping_check.get('cycles'):
        print(f"\nSKU mapping cycles ({len(mapping_check['cycles'])})")
        print(tabulate(
            [[c['old_sku'], c['error']] for c in mapping_check['cycles']],
            headers=['Old SKU', 'Error']
        ))

    return 0


if __name__ == "__main__":
    sys.exit(main())
