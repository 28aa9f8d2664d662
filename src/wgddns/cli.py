"""CLI entry point for wg-ddns."""

from pathlib import Path

import click

from wgddns import __version__
from wgddns.config import apply_overrides, load_config, validate_config
from wgddns.errors import ConfigError
from wgddns.logging import setup_logging


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    envvar="WG_DDNS_CONFIG",
    help="Path to config file.",
)
@click.pass_context
def main(ctx: click.Context, config: Path | None) -> None:
    """WireGuard DDNS - restart tunnels when their endpoint's address changes."""
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = load_config(config)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)


def _monitor_options(func):
    """Options shared by commands that discover interfaces."""
    options = [
        click.option(
            "--single-interface",
            envvar="WG_DDNS_SINGLE_INTERFACE",
            help="Monitor only the specified WireGuard interface.",
        ),
        click.option(
            "--log-level",
            envvar="WG_DDNS_LOG_LEVEL",
            help="Log level: debug, info, warn, error (default: info).",
        ),
        click.option(
            "--config-dir",
            envvar="WG_DDNS_CONFIG_DIR",
            help="Directory holding <interface>.conf files (default: /etc/wireguard).",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_config(ctx: click.Context, **overrides):
    try:
        config = apply_overrides(ctx.obj["config"], **overrides)
        return validate_config(config)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)


@main.command()
@_monitor_options
@click.option(
    "--listen-address",
    envvar="WG_DDNS_LISTEN_ADDRESS",
    help="HTTP API listen address.",
)
@click.option(
    "--listen-port",
    envvar="WG_DDNS_LISTEN_PORT",
    help="HTTP API listen port.",
)
@click.option(
    "--api-key",
    envvar="WG_DDNS_API_KEY",
    help="API key for authentication.",
)
@click.option(
    "--check-interval",
    envvar="WG_DDNS_CHECK_INTERVAL",
    help=(
        "DNS check interval, e.g. 10s, 1m, 5m (default: 10s). "
        "A bare number is read as seconds."
    ),
)
@click.pass_context
def run(
    ctx: click.Context,
    single_interface: str | None,
    log_level: str | None,
    config_dir: str | None,
    listen_address: str | None,
    listen_port: str | None,
    api_key: str | None,
    check_interval: str | None,
) -> None:
    """Run the monitor.

    The HTTP API is enabled only when --listen-address, --listen-port and
    --api-key are all provided.
    """
    import asyncio

    from wgddns.daemon import Daemon, StartupError

    config = _build_config(
        ctx,
        single_interface=single_interface,
        listen_address=listen_address,
        listen_port=listen_port,
        api_key=api_key,
        log_level=log_level,
        check_interval=check_interval,
        config_dir=config_dir,
    )
    logger = setup_logging(config)

    async def _run():
        daemon = Daemon(config=config, logger=logger)
        try:
            await daemon.start()
        except StartupError as e:
            logger.error(str(e))
            click.echo(f"Error: {e}", err=True)
            raise SystemExit(1)
        await daemon.run_forever()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        pass


@main.command()
@_monitor_options
@click.pass_context
def interfaces(
    ctx: click.Context,
    single_interface: str | None,
    log_level: str | None,
    config_dir: str | None,
) -> None:
    """Discover and list monitorable interfaces, then exit."""
    import asyncio

    from wgddns.discovery import InterfaceDiscoverer
    from wgddns.errors import DiscoveryError, ServiceManagerError
    from wgddns.resolver import Resolver
    from wgddns.systemd import ServiceNaming, SystemdManager
    from wgddns.wireguard_config import WireGuardConfigParser

    config = _build_config(
        ctx,
        single_interface=single_interface,
        log_level=log_level,
        config_dir=config_dir,
    )
    logger = setup_logging(config)

    async def _list():
        async with SystemdManager(logger=logger.getChild("systemd")) as manager:
            discoverer = InterfaceDiscoverer(
                service_manager=manager,
                parser=WireGuardConfigParser(
                    resolver=Resolver(timeout=config.resolve_timeout),
                    config_dir=config.config_dir,
                    logger=logger.getChild("wireguard_config"),
                ),
                naming=ServiceNaming(config.service_prefix, config.service_suffix),
                single_interface=config.single_interface,
                logger=logger.getChild("discovery"),
            )
            return await discoverer.discover()

    try:
        endpoints = asyncio.run(_list())
    except (DiscoveryError, ServiceManagerError) as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if not endpoints:
        click.echo("No WireGuard interfaces with domain endpoints found.")
        return

    click.echo(f"{'INTERFACE':<12} {'ENDPOINT':<32} {'HOSTNAME':<28} {'IP'}")
    click.echo("-" * 84)
    for endpoint in endpoints:
        click.echo(
            f"{endpoint.interface:<12} "
            f"{endpoint.endpoint:<32} "
            f"{endpoint.hostname:<28} "
            f"{endpoint.last_ip or '-'}"
        )


@main.command()
def version() -> None:
    """Show version."""
    click.echo(f"wg-ddns version {__version__}")
