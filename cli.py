"""CLI entry point for mcp-session-gateway."""
import argparse
import json
import sys

import uvicorn

from config import config_file_path, load_config, load_env_files
from logging_config import setup_logging
from server import VERSION, create_app


def cmd_start(args):
    """Run the gateway in the foreground."""
    try:
        config = load_config()
    except ValueError as e:
        print(f"[ERROR] Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    host = args.host or config.host
    port = args.port or config.port
    setup_logging(service_name="mcp-session-gateway", level=config.log_level, fmt=config.log_format)

    print(f"MCP Session Gateway v{VERSION}")
    print(f"  MCP endpoint:  {config.server_url}{config.mcp_path}")
    print(f"  OAuth enabled: {config.enable_oauth}")
    uvicorn.run(create_app(config), host=host, port=port, log_level=config.log_level.lower())


def cmd_config(args):
    """Show the effective configuration."""
    try:
        config = load_config()
    except ValueError as e:
        print(f"[ERROR] Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Config file: {config_file_path()}")
    print(json.dumps(config.as_dict(), indent=2, default=str))


def cmd_version(args=None):
    """Show version information."""
    print(f"mcp-session-gateway v{VERSION}")


def cmd_help(args=None):
    """Show detailed help."""
    print("""
MCP Session Gateway - OAuth 2.1 + PKCE protected MCP server with per-session transports

USAGE:
    mcp-session-gateway <command> [options]

COMMANDS:
    start       Run the server in the foreground (default)
    config      Show the effective configuration
    version     Show version information
    help        Show this help message

OPTIONS (start):
    --host HOST     Bind address (default: MCP_HOST or 127.0.0.1)
    --port PORT     Bind port (default: MCP_PORT or 3000)

CONFIGURATION:
    Environment variables (or a .env file) override ~/.mcp-session-gateway/config.json.
    See 'mcp-session-gateway config' for the values in effect.

QUICK START:
    1. Run 'mcp-session-gateway start'
    2. Point your MCP client at http://localhost:3000/mcp
    3. Approve the consent page that opens during the OAuth flow
""")


# ============== Main Entry Point ==============

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-session-gateway",
        description="MCP Session Gateway - OAuth-protected MCP server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  start     Run the server (default)
  config    Show effective configuration
  version   Show version
  help      Show detailed help

Examples:
  mcp-session-gateway start --port 8080
  mcp-session-gateway config
"""
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="start",
        choices=["start", "config", "version", "help"],
        help="Command to run (default: start)"
    )
    parser.add_argument("--host", help="Bind address for 'start'")
    parser.add_argument("--port", type=int, help="Bind port for 'start'")
    parser.add_argument("--version", "-v", dest="show_version", action="store_true", help=argparse.SUPPRESS)
    return parser


COMMANDS = {
    "start": cmd_start,
    "config": cmd_config,
    "version": cmd_version,
    "help": cmd_help,
}


def main(argv=None):
    """Main entry point for CLI."""
    load_env_files()
    args = build_parser().parse_args(argv)
    if args.show_version:
        cmd_version(args)
        return
    COMMANDS[args.command](args)


if __name__ == "__main__":
    main()
