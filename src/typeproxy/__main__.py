"""Developer entry point: inspect contracts from the command line.

Usage::

    python -m typeproxy describe myapp.state:TodoState
    python -m typeproxy roundtrip myapp.state:TodoState '{"title": "milk"}'

``describe`` prints the introspected properties and methods as JSON.
``roundtrip`` decodes the payload into a proxy (with a recording sink
attached, so watched properties are accepted) and prints the re-encoded
form with defaults filled in.
"""

from __future__ import annotations

import argparse
import importlib
import json
import logging
import sys

from typeproxy.introspect import introspect
from typeproxy.serialization import deserialize, serialize
from typeproxy.testing import RecordingSink

logging.basicConfig(level=logging.INFO, format="  %(message)s")
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="python -m typeproxy", description="Inspect typeproxy contracts")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    describe = sub.add_parser("describe", help="Print a contract's properties and methods")
    describe.add_argument("contract", help="module.path:ContractName")

    roundtrip = sub.add_parser("roundtrip", help="Decode JSON into a proxy and re-encode it")
    roundtrip.add_argument("contract", help="module.path:ContractName")
    roundtrip.add_argument("payload", help="JSON object, or '-' to read stdin")
    return p.parse_args(argv)


def load_contract(target: str) -> type:
    """Resolve ``module.path:Name`` to a class."""
    module_name, sep, attr = target.partition(":")
    if not sep or not attr:
        raise SystemExit(f"Expected module.path:ContractName, got {target!r}")
    obj = importlib.import_module(module_name)
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.debug:
        logging.getLogger("typeproxy").setLevel(logging.DEBUG)

    contract = load_contract(args.contract)

    if args.command == "describe":
        print(json.dumps(introspect(contract).describe(), indent=2))
        return 0

    payload = sys.stdin.read() if args.payload == "-" else args.payload
    sink = RecordingSink()
    instance = deserialize(contract, payload, sink=sink)
    notified = sink.calls_to("notify_change")
    if notified:
        logger.info("%d watched notification(s) during decode", len(notified))
    print(serialize(instance))
    return 0


if __name__ == "__main__":
    sys.exit(main())
