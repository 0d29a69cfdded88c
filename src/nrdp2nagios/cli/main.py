"""CLI entry point for nrdp2nagios.

Subcommands:
    serve      Accept NRDP submissions and keep the Nagios config current.
    generate   Run one regeneration cycle (or print the config).
    info       Show configuration and ledger contents.
"""

from __future__ import annotations

import argparse
import logging
import sys

logger = logging.getLogger("nrdp2nagios")


def _load_config(args: argparse.Namespace):
    """Load and validate config, exiting on configuration errors."""
    from nrdp2nagios.config import ConfigError, load_config, validate_config
    from nrdp2nagios.logs import configure_logging

    configure_logging("info")
    try:
        config = load_config(getattr(args, "config", None))
        validate_config(config)
    except ConfigError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config.logging.level)
    return config


def _build_context(config):
    from nrdp2nagios.app import build_context
    from nrdp2nagios.ledger.store import LedgerError

    try:
        return build_context(config)
    except LedgerError as e:
        print(f"Error: failed to initialize database: {e}", file=sys.stderr)
        sys.exit(1)


# ---------------------------------------------------------------------------
# Subcommand: serve
# ---------------------------------------------------------------------------

def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP endpoint with regeneration and reload in the background."""
    from werkzeug.serving import make_server

    from nrdp2nagios.spool.storage import StorageError

    config = _load_config(args)
    context = _build_context(config)

    try:
        context.storage.ensure_writable()
    except StorageError as e:
        print(f"Error: storage check failed: {e}", file=sys.stderr)
        context.ledger.close()
        return 1

    try:
        logger.info("Storage stats: %s", context.storage.stats())
    except StorageError as e:
        logger.info("Could not read storage stats: %s", e)

    server = make_server(
        config.server.host,
        config.server.port,
        context.create_app(),
        threaded=True,
    )
    context.start()
    logger.info("Starting server on %s", config.server.listen_addr)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        server.server_close()
        context.stop()
    return 0


# ---------------------------------------------------------------------------
# Subcommand: generate
# ---------------------------------------------------------------------------

def cmd_generate(args: argparse.Namespace) -> int:
    """Run a single regeneration cycle."""
    from nrdp2nagios.ledger.store import LedgerError
    from nrdp2nagios.regen.engine import CycleOutcome

    config = _load_config(args)
    context = _build_context(config)
    try:
        if args.stdout:
            try:
                print(context.engine.render(), end="")
            except LedgerError as e:
                print(f"Error: {e}", file=sys.stderr)
                return 1
            return 0

        result = context.engine.run_cycle()
    finally:
        context.ledger.close()

    print(
        f"  nagios: {result.outcome.value} "
        f"({result.hosts} hosts, {result.services} services, "
        f"pruned {result.pruned_hosts} hosts, {result.pruned_services} services)"
    )
    if result.outcome in (CycleOutcome.FETCH_FAILED, CycleOutcome.PUBLISH_FAILED):
        return 1
    return 0


# ---------------------------------------------------------------------------
# Subcommand: info
# ---------------------------------------------------------------------------

def cmd_info(args: argparse.Namespace) -> int:
    """Show configuration and ledger row counts."""
    config = _load_config(args)
    context = _build_context(config)

    print(f"Listen:   {config.server.listen_addr}")
    print(f"Database: {config.database_path}")
    print()

    print("Spool:")
    print(f"  directory: {config.storage.output_dir}")
    print(f"  group:     {config.storage.group_name or '(unchanged)'}")
    print(f"  max files: {config.storage.max_files}")
    print(f"  min free:  {config.storage.min_disk_space_percent}%")
    print()

    nagios = config.nagios
    print("Nagios:")
    print(f"  output:           {context.engine.output_path}")
    print(f"  host template:    {nagios.host_template}")
    print(f"  service template: {nagios.service_template}")
    print(f"  interval:         {nagios.generation_interval}")
    print(f"  stale threshold:  {nagios.stale_threshold}")
    if nagios.reload_command:
        print(f"  reload:           {nagios.reload_command}")
    else:
        print(f"  reload:           SIGHUP via {nagios.pid_file}")
    print()

    try:
        hosts = context.ledger.list_hosts()
        services = context.ledger.list_services()
    finally:
        context.ledger.close()

    print("Ledger:")
    print(f"  hosts:    {len(hosts)}")
    print(f"  services: {len(services)}")

    return 0


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="nrdp2nagios",
        description="Receive NRDP check results and generate Nagios config.",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to nrdp2nagios.toml (default: ./nrdp2nagios.toml)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # serve
    subparsers.add_parser("serve", help="Run the NRDP receiver")

    # generate
    gen_parser = subparsers.add_parser("generate", help="Regenerate the Nagios config once")
    gen_parser.add_argument(
        "--stdout", action="store_true",
        help="Print the rendered config instead of pruning and publishing",
    )

    # info
    subparsers.add_parser("info", help="Show configuration and ledger counts")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "serve": cmd_serve,
        "generate": cmd_generate,
        "info": cmd_info,
    }

    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
