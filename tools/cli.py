#!/usr/bin/env python3
# =============================================================================
# CLI Tool for the Network Worker
# =============================================================================
# Runs one bus message through the same engine the Lambda uses.
#
# Usage:
#   python tools/cli.py network.create.aws --file request.json
#   python tools/cli.py network.delete.aws --json '{"vpc_id": "vpc-1", ...}'
#   python tools/cli.py network.create.aws --file request.json --publish
#   python tools/cli.py --list-subjects
# =============================================================================

import argparse
import json
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from handlers.base import configure_logging, subscribed_subjects
from network_worker.runtime.bus import RecordingBus
from network_worker.runtime.deps import create_deps
from network_worker.runtime.dispatch import process_message


def main():
    parser = argparse.ArgumentParser(
        description="AWS network worker CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s network.create.aws --file request.json
  %(prog)s network.delete.aws --json '{"vpc_id": "vpc-1", "network_aws_id": "subnet-1"}'
  %(prog)s network.create.aws --file request.json --publish
  %(prog)s --list-subjects
        """
    )

    parser.add_argument("subject", nargs="?", help="Inbound subject, e.g. network.create.aws")
    parser.add_argument("--json", "-j", help="Request payload as JSON text")
    parser.add_argument("--file", "-f", help="File to load the request payload from")
    parser.add_argument("--publish", action="store_true",
                        help="Publish replies to the SNS bus instead of printing them")
    parser.add_argument("--pretty", "-p", action="store_true", help="Pretty print output")
    parser.add_argument("--list-subjects", action="store_true", help="Show subscribed subjects")
    parser.add_argument("--log-level", default=None, help="Log level (default LOG_LEVEL or INFO)")

    args = parser.parse_args()
    configure_logging(args.log_level)

    if args.list_subjects:
        for subject in subscribed_subjects():
            print(f"listening for {subject}")
        return

    if not args.subject:
        parser.print_help()
        sys.exit(1)

    # Raw bytes, so malformed payloads take the same path as on the bus
    if args.file:
        with open(args.file, "rb") as f:
            body = f.read()
    elif args.json:
        body = args.json.encode("utf-8")
    else:
        body = sys.stdin.buffer.read()

    recorder = None if args.publish else RecordingBus()
    deps = create_deps(bus=recorder)

    result = process_message(args.subject, body, deps)

    if recorder is not None:
        for subject, data in recorder.published:
            try:
                payload = json.loads(data)
            except ValueError:
                payload = data.decode("utf-8", errors="replace")
            output = {"subject": subject, "payload": payload}
            if args.pretty:
                print(json.dumps(output, indent=2, ensure_ascii=False))
            else:
                print(json.dumps(output, ensure_ascii=False))
    else:
        print(json.dumps({
            "subject": result.subject,
            "outcome": result.outcome,
            "error": result.error,
            "delivered": result.delivered,
        }))

    # Exit with appropriate code
    if not result.ok or not result.delivered:
        sys.exit(1)


if __name__ == "__main__":
    main()
