"""
oevbot CLI - Command Line Interface for the OEV auction bidder

Main entry point for all CLI commands.
"""

import sys

import click

from oevbot.utils.logger import setup_logging


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--env-file", default=None, help="Path to a .env file")
@click.option("--log-dir", default=None, help="Also write logs to this directory")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, env_file, log_dir):
    """OEV auction bidder"""
    import logging

    level = logging.DEBUG if debug else logging.INFO
    setup_logging(level=level, log_dir=log_dir, log_to_file=log_dir is not None)

    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file


def _load(ctx):
    from oevbot.core.config import load_config
    from oevbot.core.errors import ConfigurationError

    try:
        return load_config(ctx.obj["env_file"])
    except ConfigurationError as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        sys.exit(2)


# =============================================================================
# Bid Command
# =============================================================================


@cli.command("bid")
@click.pass_context
def bid(ctx):
    """Run one bid cycle: place, await award, update, report"""
    from oevbot.core.errors import BidCycleError, ConfigurationError
    from oevbot.core.lifecycle import AuctionOrchestrator
    from oevbot.crypto import bytes_to_hex

    config = _load(ctx)
    try:
        orchestrator = AuctionOrchestrator.from_config(config)
    except ConfigurationError as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        sys.exit(2)

    try:
        result = orchestrator.run_cycle()
    except BidCycleError as e:
        click.echo(f"❌ Bid cycle failed during {e.phase.name}: {e.cause}", err=True)
        if e.bid is not None:
            click.echo(f"   Bid ID: {bytes_to_hex(e.bid.bid_id)}", err=True)
            click.echo(f"   Bid state: {e.bid.state.name}", err=True)
        sys.exit(1)

    click.echo("✅ Bid cycle complete")
    click.echo(f"   Bid ID: {bytes_to_hex(result.bid.bid_id)}")
    click.echo(f"   Update tx: {result.update.tx_hash_hex}")
    click.echo(f"   Report tx: {result.report.tx_hash_hex}")
    click.echo(f"   Confirmation tx: {bytes_to_hex(result.confirmation.tx_hash)}")


# =============================================================================
# Window Command
# =============================================================================


@cli.command("window")
@click.option("--dapp-id", default=1, type=int, help="dApp id")
@click.option("--auction-length", default=30, type=int, help="Auction length (s)")
@click.option("--bidding-phase-length", default=25, type=int, help="Bidding phase length (s)")
@click.option("--buffer", default=3, type=int, help="Minimum bidding time left (s)")
@click.option("--at", "timestamp", default=None, type=int, help="Unix time (default: now)")
def window(dapp_id, auction_length, bidding_phase_length, buffer, timestamp):
    """Show the auction window and bid topic a bid would target"""
    from oevbot.core.auction import auction_offset, compute_window, derive_bid_topic
    from oevbot.core.config import AuctionConfig
    from oevbot.core.errors import ConfigurationError
    from oevbot.crypto import bytes_to_hex

    try:
        config = AuctionConfig(
            dapp_id=dapp_id,
            auction_length=auction_length,
            bidding_phase_length=bidding_phase_length,
            bidding_phase_buffer=buffer,
        )
    except ConfigurationError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(2)

    w = compute_window(config, timestamp)
    click.echo("Auction Window")
    click.echo("-" * 40)
    click.echo(f"  Offset: {auction_offset(dapp_id, auction_length)}s")
    click.echo(f"  Auction start: {w.auction_start_time}")
    click.echo(f"  Bidding phase end: {w.bidding_phase_end_time}")
    click.echo(f"  Signed data cutoff: {w.signed_data_cutoff}")
    click.echo(f"  Bid expiry: {w.bid_expiry}")
    click.echo(f"  Next window: {w.next_window_start}")
    click.echo(f"  Bid topic: {bytes_to_hex(derive_bid_topic(w, config))}")


# =============================================================================
# Quotes Command
# =============================================================================


@cli.command("quotes")
@click.option("--feed", default=None, help="dAPI name (default: DAPI_NAME)")
@click.pass_context
def quotes(ctx, feed):
    """Fetch the signed data bundle for a dAPI"""
    from oevbot.core.errors import ConfigurationError, OevBotError
    from oevbot.core.lifecycle import AuctionOrchestrator

    config = _load(ctx)
    try:
        provider = AuctionOrchestrator.from_config(config).quote_provider
        bundle = provider.fetch(feed or config.feed_name)
    except ConfigurationError as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        sys.exit(2)
    except OevBotError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    click.echo(f"Quotes for {bundle.feed_name}")
    click.echo("-" * 40)
    click.echo(f"  Signed data entries: {len(bundle)}")
    click.echo(f"  Median price: {bundle.median_price}")


if __name__ == "__main__":
    cli()
