"""Main entry point for hookwire.

Initializes logging in two phases (defaults then config-driven),
builds the Bot from config and the built-in commands, runs startup
command migration, then serves the webhook endpoint until SIGTERM or
SIGINT.

Key functions:
    build_bot: Assemble a Bot from a Config.
    main: Async entry point.
    run: Synchronous wrapper that calls asyncio.run(main()).
"""

import asyncio
import signal
import sys

import structlog

from . import __version__
from .logging_config import setup_logging


def build_bot(config):
    """Assemble a Bot from config and the built-in commands."""
    from .bot import Builder
    from .commands import builtin_commands
    from .session import DiscordSession

    session = DiscordSession(
        token=config.bot_token or None,
        api_base_url=config.api_base_url,
        timeout=config.request_timeout,
        logger=structlog.get_logger("hookwire.session"),
    )
    return (
        Builder(config.application_id, session)
        .with_logger_factory(structlog.get_logger)
        .with_deferred_response(config.deferred_response)
        .with_ephemeral_deferral(config.ephemeral_deferral)
        .with_guild_id(config.guild_id)
        .with_migration_enabled(config.migration_enabled)
        .with_application_commands(builtin_commands())
        .build()
    )


async def main():
    """Main async entry point."""
    # Defaults first so config loading can log.
    setup_logging()
    logger = structlog.get_logger("hookwire")

    logger.info("hookwire_starting", version=__version__)

    from .config import get_config

    config = get_config()
    config.validate()

    # Real levels and file locations; loggers are cached from here on.
    setup_logging(config)

    bot = build_bot(config)

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def handle_shutdown(sig):
        logger.info("shutdown_signal_received", signal=sig.name)
        shutdown_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, handle_shutdown, sig)
        except NotImplementedError:
            # Windows: add_signal_handler not supported.
            if sig == signal.SIGINT:
                signal.signal(
                    signal.SIGINT,
                    lambda s, f: handle_shutdown(signal.SIGINT),
                )

    try:
        # Migration errors are fatal: the remote command set would be stale.
        await bot.start()
        await bot.serve(
            config.public_key or None,
            host=config.webhook_host,
            port=config.webhook_port,
            path=config.webhook_path,
        )
        await shutdown_event.wait()
    except Exception as e:
        logger.error("bot_error", error=str(e))
        raise
    finally:
        await bot.close()
        logger.info("hookwire_stopped")


def run():
    """Synchronous entry point for the ``hookwire`` console script."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    except SystemExit as e:
        sys.exit(e.code)


if __name__ == "__main__":
    run()
