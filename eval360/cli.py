#!/usr/bin/env python3
"""
Evaluación 360° CLI — parse an evaluation workbook (plus an optional user
segmentation workbook), print a validation report and export or serve
the results.

Usage:
    eval360 evaluaciones.xlsx                                 # Report only
    eval360 evaluaciones.xlsx -g usuarios.xlsx --serve        # Launch API server
    eval360 evaluaciones.xlsx -g usuarios.xlsx --json out.json
    eval360 evaluaciones.xlsx --csv out_dir/                  # CSV table kit
"""

import argparse
import logging
import os
import sys

from eval360.analytics import generate_analytics
from eval360.parser import process_files


def _print_diagnostics(title, diagnostics, stream):
    if not diagnostics:
        return
    print(f"\n  {title}:", file=stream)
    for d in diagnostics:
        print(f"    - [{d['field']}] {d['message']}", file=stream)


def main(argv=None):
    ap = argparse.ArgumentParser(
        description='Evaluación 360° — parse evaluation workbooks and compute performance analytics'
    )
    ap.add_argument(
        'file',
        nargs='?',
        help='Path to the .xlsx, .xls or .csv evaluation workbook'
    )
    ap.add_argument(
        '--segmentation', '-g',
        default=None,
        metavar='USERS.xlsx',
        help='User segmentation workbook (area, sub-area, location)'
    )
    ap.add_argument(
        '--json', '-j',
        default=None,
        metavar='OUTPUT.json',
        help='Export parsed data and analytics as JSON'
    )
    ap.add_argument(
        '--csv',
        default=None,
        metavar='OUTPUT_DIR',
        help='Export CSV tables (employees, evaluations, analytics)'
    )
    ap.add_argument(
        '--serve',
        action='store_true',
        help='Start the API server with the parsed data loaded'
    )
    ap.add_argument(
        '--port', '-p',
        type=int,
        default=int(os.environ.get('PORT', 8080)),
        help='Server port (default: 8080)'
    )
    ap.add_argument(
        '--host',
        default=os.environ.get('HOST', '127.0.0.1'),
        help='Server host (default: 127.0.0.1)'
    )
    ap.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Log sheet detection details'
    )

    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    if not args.file:
        ap.print_help()
        return 0

    for path in (args.file, args.segmentation):
        if path and not os.path.exists(path):
            print(f"Error: File not found: {path}", file=sys.stderr)
            return 1

    print(f"Parsing: {args.file}")
    if args.segmentation:
        print(f"Segmentation: {args.segmentation}")
    result = process_files(args.file, args.segmentation)

    _print_diagnostics('Warnings', result['warnings'], sys.stdout)
    if not result['success']:
        _print_diagnostics('Errors', result['errors'], sys.stderr)
        return 1
    _print_diagnostics('Errors', result['errors'], sys.stderr)

    data = result['data']
    meta = data['metadata']
    analytics = generate_analytics(data)
    overall = analytics['completion_metrics']['overall']

    print(f"\n  Employees:    {meta['total_employees']}")
    print(f"  Evaluations:  {meta['total_evaluations']}")
    print(f"  Types:        {', '.join(meta['evaluation_types'])}")
    print(f"  Areas:        {len(meta['areas'])}")
    print(f"  Competencies: {len(meta['competency_names'])}")
    print(f"  Completion:   {overall['completion_rate']:.1f}% "
          f"({overall['completed']}/{overall['total']})")

    print("\n  Detected sheets:")
    for s in data['sheet_structures']:
        print(f"    {s['name']!r:30s} → {s['type']} (header row {s['header_row'] + 1})")

    if analytics['insights']:
        print("\n  Insights:")
        for line in analytics['insights']:
            print(f"    - {line}")

    if args.json:
        from eval360.export import export_json
        export_json(result, analytics, args.json)
        print(f"\n  JSON exported to: {args.json}")

    if args.csv:
        from eval360.export import export_csv
        files = export_csv(data, analytics, args.csv)
        print(f"\n  CSV tables exported to: {args.csv}/")
        for fp in files:
            print(f"    - {os.path.basename(fp)}")

    if args.serve:
        from eval360.server import run_server
        print(f"\n  Starting API server at http://{args.host}:{args.port}")
        print("  Press Ctrl+C to stop\n")
        run_server(result, host=args.host, port=args.port)

    return 0


if __name__ == '__main__':
    sys.exit(main())
