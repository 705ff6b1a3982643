"""
Command line entry point.

Usage:
    # Serve tools over stdio (default command)
    poly-iac-tools serve

    # Show the tool table of the adapters that connect on this machine
    poly-iac-tools list

    # Run one tool and print the envelope
    poly-iac-tools call terraform_validate --args '{"path": "./infra"}'

    # Adapter connection report
    poly-iac-tools status --adapters terraform
"""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
from pathlib import Path

from iac_tools import __version__
from iac_tools.adapters import build_adapters
from iac_tools.config import BINARY_MODES, ServerConfig
from iac_tools.dispatch import Dispatcher
from iac_tools.errors import ToolCollisionError
from iac_tools.registry import AdapterRegistry, RegistryBuildReport
from iac_tools.runner import ProcessRunner
from iac_tools.server import StdioToolServer

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--adapters", type=str, default=argparse.SUPPRESS, help="Comma list of adapters to enable (default: all)")
    common.add_argument("--timeout", type=float, default=argparse.SUPPRESS, help="Seconds per external process, 0 for no limit")
    common.add_argument("--binary-mode", choices=BINARY_MODES, default=argparse.SUPPRESS, help="Where binaries are looked up")
    common.add_argument("--bin-dir", type=str, default=argparse.SUPPRESS, help="Extra binary directory for dynamic mode")
    common.add_argument("--strict", action="store_true", default=argparse.SUPPRESS, help="Fail on tool name collisions between adapters")
    common.add_argument("--verbose", "-v", action="store_true", default=argparse.SUPPRESS, help="Show debug output")

    parser = argparse.ArgumentParser(
        prog="poly-iac-tools",
        description="Serve Terraform/OpenTofu and Pulumi as JSON-RPC tools.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        parents=[common],
        epilog="""
Examples:
  poly-iac-tools serve
  poly-iac-tools list
  poly-iac-tools call terraform_plan --args '{"path": "./infra"}'
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command")
    serve = sub.add_parser("serve", parents=[common], help="Serve tools over stdio (default)")
    serve.add_argument("--workers", type=int, default=None, help="Concurrent tool calls")
    sub.add_parser("list", parents=[common], help="Print the tool table as JSON")
    sub.add_parser("status", parents=[common], help="Print adapter connection states")
    call = sub.add_parser("call", parents=[common], help="Dispatch one tool call")
    call.add_argument("tool", type=str, help="Tool name, e.g. terraform_plan")
    call.add_argument("--args", dest="tool_args", type=str, default="{}", help="Arguments as a JSON object")
    return parser


def load_config(args: argparse.Namespace) -> ServerConfig:
    """Environment first, command line flags on top."""
    # Shared flags default to SUPPRESS so a sub-command never resets a
    # flag given before it
    flags = vars(args)
    config = ServerConfig.from_env()
    if flags.get("adapters"):
        config.adapters = [a.strip().lower() for a in flags["adapters"].split(",") if a.strip()]
    if flags.get("timeout") is not None:
        config.timeout = flags["timeout"]
    if flags.get("bin_dir"):
        config.bin_dir = Path(flags["bin_dir"]).expanduser()
    if flags.get("binary_mode"):
        config.binary_mode = flags["binary_mode"]
    if flags.get("strict"):
        config.strict_tool_names = True
    if flags.get("workers"):
        config.max_workers = flags["workers"]
    if flags.get("verbose"):
        config.log_level = "DEBUG"
    config.validate()
    return config


def build_registry(config: ServerConfig) -> tuple[AdapterRegistry, RegistryBuildReport]:
    """Instantiate the configured adapters and connect them."""
    runner = ProcessRunner(timeout=config.timeout)
    adapters = build_adapters(config.adapters, runner=runner, search_path=config.search_path())
    registry = AdapterRegistry(strict=config.strict_tool_names)
    report = registry.register_all(adapters)
    return registry, report


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command or "serve"

    try:
        config = load_config(args)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    # stdout carries the protocol; logs always go to stderr
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        registry, report = build_registry(config)
    except ToolCollisionError as e:
        # The rejected adapters are already disconnected
        print(f"poly-iac-tools: {e}", file=sys.stderr)
        return 1

    try:
        if command == "status":
            print(json.dumps({"adapters": registry.status(), "report": report.to_dict()}, indent=2))
            return 0

        dispatcher = Dispatcher(registry)

        if command == "list":
            print(json.dumps(dispatcher.list_tools(), indent=2))
            return 0

        if command == "call":
            try:
                tool_args = json.loads(args.tool_args)
            except json.JSONDecodeError as e:
                print(f"--args is not valid JSON: {e}", file=sys.stderr)
                return 2
            envelope = dispatcher.dispatch(args.tool, tool_args)
            print(json.dumps(envelope.to_dict(), indent=2))
            return 1 if envelope.is_error else 0

        return serve(dispatcher, report, config)
    finally:
        registry.disconnect_all()


def serve(dispatcher: Dispatcher, report: RegistryBuildReport, config: ServerConfig) -> int:
    if not report.ok:
        failures = "; ".join(f"{name}: {reason}" for name, reason in report.failed.items())
        print(
            f"poly-iac-tools: no adapter could connect ({failures or 'none configured'})",
            file=sys.stderr,
        )
        return 1

    # Graceful shutdown: the worker pool finishes in-flight calls on exit
    def shutdown(sig, frame):
        logger.info(f"Received signal {sig}, shutting down")
        sys.exit(0)
    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    print(
        f"poly-iac-tools v{__version__} (STDIO mode): "
        f"{len(report.connected)} adapter(s) connected, {report.tool_count} tools registered",
        file=sys.stderr,
    )
    StdioToolServer(dispatcher, max_workers=config.max_workers).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
