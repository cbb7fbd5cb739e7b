#!/usr/bin/env python3
"""
Retry Report Summary

Prints how many tests were retried in a result bundle, read from its
retryable-retries.json.

Run with: python scripts/report_retries.py [BUNDLE_DIR] [--json]
Without BUNDLE_DIR the bundle is resolved from RETRYABLE_RESULT_BUNDLE /
RETRYABLE_TEST_CONFIGURATION_PATH.
"""

import os
import sys
import json
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from retryable import config
from retryable.report.summary import summarize_report, format_summary


def main(argv):
    as_json = "--json" in argv
    args = [a for a in argv if a != "--json"]

    if args:
        report_path = os.path.join(args[0], config.REPORT_FILENAME)
    else:
        report_path = config.report_path()
        if report_path is None:
            print("No result bundle found (set RETRYABLE_RESULT_BUNDLE)", file=sys.stderr)
            return 1

    summary = summarize_report(report_path)
    if as_json:
        print(json.dumps(summary, indent=2))
    else:
        print(format_summary(summary))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
