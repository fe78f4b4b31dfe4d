# ============================================================================
# src/case_ingestion/__main__.py
# ============================================================================
"""
Command-line entry point.

    python -m case_ingestion convert message.hl7 --mode ecr --output bundle.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import logging_settings
from .converter import CaseConverter, EcrConverter
from .intake import ReceivedMessage
from .utils.exceptions import CaseIngestionError, ConfigurationError
from .utils.logging import setup_logging

logger = logging.getLogger("case_ingestion")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="case_ingestion",
        description="Convert HL7 v2 ORU_R01 case notifications to FHIR R4"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    convert = subparsers.add_parser("convert", help="Convert one HL7 v2 message")
    convert.add_argument("input", type=Path, help="Path to the HL7 v2 message")
    convert.add_argument(
        "--mode",
        choices=["case", "ecr"],
        default="case",
        help="case: Case + Patient; ecr: eICR document Bundle"
    )
    convert.add_argument("--output", "-o", type=Path, default=None, help="Write JSON here instead of stdout")
    convert.add_argument("--sender", default="Unknown", help="Sender recorded on the received message")
    convert.add_argument("--log-level", default=logging_settings.LOG_LEVEL, help="Logging level")

    return parser


def convert_command(args: argparse.Namespace) -> int:
    received = ReceivedMessage(args.input.read_text(encoding="utf-8"), sender=args.sender)
    logger.info(
        f"Received {args.input} from {received.sender}: "
        f"format={received.content_format.value} sha256={received.sha256}"
    )

    if args.mode == "ecr":
        result = EcrConverter().convert(received, document_id=received.id)
    else:
        result = CaseConverter().convert(received)

    for issue in result.issues:
        logger.debug(f"Issue: {issue}")

    output = json.dumps(result.to_dict(), indent=2)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(output + "\n", encoding="utf-8")
        logger.info(f"Wrote {args.output}")
    else:
        print(output)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        setup_logging(
            level=args.log_level,
            log_file=logging_settings.LOG_FILE,
            format_json=logging_settings.LOG_FORMAT_JSON,
        )
    except ConfigurationError as e:
        print(f"case_ingestion: {e}", file=sys.stderr)
        return 2

    try:
        return convert_command(args)
    except CaseIngestionError as e:
        logger.error(f"Conversion failed: {e}")
        return 1
    except OSError as e:
        logger.error(f"Cannot read {args.input}: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
