"""turnstream CLI entry point.

Usage:
    turnstream run --config agent.yaml
    turnstream functions
    turnstream init [--output agent.yaml]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger


def cmd_run(args: argparse.Namespace) -> None:
    """Run the turnstream server."""
    config_path = args.config

    if not Path(config_path).exists():
        logger.error(f"Config file not found: {config_path}")
        sys.exit(1)

    from turnstream.config import load_config

    config = load_config(config_path)

    # Configure logging
    logger.remove()
    logger.add(sys.stderr, level=config.logging.level)

    logger.info(f"turnstream starting with config: {config_path}")
    logger.info(f"LLM: {config.llm.provider} ({config.llm.model})")
    logger.info(
        f"Listening on: {config.server.host}:{config.server.port}"
        f"{config.server.websocket_path}/{{call_id}}"
    )

    from turnstream.server import run_server

    run_server(config)


def cmd_functions(args: argparse.Namespace) -> None:
    """List the functions the agent can call."""
    from turnstream.persona import TOOL_SCHEMAS

    print("\nAvailable turnstream Functions:")
    print("=" * 40)
    for schema in TOOL_SCHEMAS:
        fn = schema["function"]
        params = ", ".join(fn["parameters"].get("properties", {})) or "-"
        print(f"  {fn['name']:<24} params={params}")
    print(f"\nTotal: {len(TOOL_SCHEMAS)} functions")
    print()


def cmd_init(args: argparse.Namespace) -> None:
    """Generate a starter configuration file."""
    output = Path(args.output)

    if output.exists() and not args.force:
        logger.error(f"File already exists: {output}. Use --force to overwrite.")
        sys.exit(1)

    from turnstream.config import DEFAULT_CONFIG_YAML

    output.write_text(DEFAULT_CONFIG_YAML)
    print(f"Configuration written to: {output}")
    print(f"\nEdit the file and run: turnstream run --config {output}")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="turnstream",
        description="turnstream - Streaming custom-LLM server for voice agents",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # `turnstream run`
    run_parser = subparsers.add_parser("run", help="Run the turnstream server")
    run_parser.add_argument(
        "--config", "-c",
        default="agent.yaml",
        help="Path to the YAML config file (default: agent.yaml)",
    )

    # `turnstream functions`
    subparsers.add_parser("functions", help="List the functions the agent can call")

    # `turnstream init`
    init_parser = subparsers.add_parser("init", help="Generate a starter config file")
    init_parser.add_argument(
        "--output", "-o",
        default="agent.yaml",
        help="Output file path (default: agent.yaml)",
    )
    init_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Overwrite existing file",
    )

    args = parser.parse_args(argv)

    if args.command == "run":
        cmd_run(args)
    elif args.command == "functions":
        cmd_functions(args)
    elif args.command == "init":
        cmd_init(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
