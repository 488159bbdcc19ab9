"""NDRC CLI.

Usage:
    python -m ndrc serve [--host HOST] [--port PORT] [--log-level LEVEL]
    python -m ndrc validate --kind amend|create [--input PATH]

validate runs the same structural parsing and business rules as the HTTP
endpoints and prints a deterministic JSON report.

Exit codes:
    0: Validation passed / server exited cleanly
    1: Internal error
    2: Validation failed / invalid input
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from ndrc.models.claim import AmendClaimRequest, CreateClaimRequest
from ndrc.validators.claim_validator import validate_claim
from ndrc.validators.payload import StructuralError, parse_payload

CLAIM_MODELS: dict[str, type[AmendClaimRequest] | type[CreateClaimRequest]] = {
    "amend": AmendClaimRequest,
    "create": CreateClaimRequest,
}


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2))


def _make_error_result(code: str, message: str, path: str = "/") -> dict[str, Any]:
    return {"errors": [{"code": code, "message": message, "path": path}], "pass": False}


def _read_input(input_path: str | None) -> str:
    """Read the payload from a file or stdin.

    Raises:
        OSError: If the file cannot be read.
    """
    if input_path:
        with open(input_path, encoding="utf-8") as f:
            return f.read()
    return sys.stdin.read()


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a claim payload.

    Exit codes:
        0: pass=True
        2: pass=False (unreadable input, structural error or rule violations)
    """
    try:
        content = _read_input(args.input)
    except OSError as e:
        _output_json(_make_error_result("INVALID_INPUT", f"Cannot read input: {e}"))
        return 2

    try:
        request = parse_payload(content, CLAIM_MODELS[args.kind])
    except StructuralError as e:
        _output_json(_make_error_result(e.code, e.message))
        return 2

    validated = validate_claim(request)
    _output_json(
        {
            "errors": [
                {"code": v.code, "message": v.message, "path": v.path}
                for v in validated.violations
            ],
            "pass": validated.is_valid,
        }
    )
    return 0 if validated.is_valid else 2


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP service with uvicorn."""
    import uvicorn

    from ndrc.api.main import create_app

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    uvicorn.run(create_app(), host=args.host, port=args.port, log_level=args.log_level)
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ndrc",
        description="NDRC - National Duty Repayment Center case service",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")
    serve_parser.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug"],
        help="Log level for the service and uvicorn",
    )

    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a create-case or amend-case payload",
    )
    validate_parser.add_argument(
        "--kind",
        required=True,
        choices=sorted(CLAIM_MODELS),
        help="Payload kind",
    )
    validate_parser.add_argument(
        "--input",
        required=False,
        default=None,
        metavar="PATH",
        help="Path to JSON file (reads from stdin if omitted)",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Exit codes:
        0: Success / validation passed
        1: Internal error (unexpected)
        2: Validation failed
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "validate":
            return cmd_validate(args)
        if args.command == "serve":
            return cmd_serve(args)
        parser.print_help()
        return 0
    except Exception as e:
        _output_json(_make_error_result("INTERNAL_ERROR", str(e)))
        return 1


if __name__ == "__main__":
    sys.exit(main())
