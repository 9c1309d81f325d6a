#main.py

"""
Janus - one-way directory mirroring

Headless runner: loads the stored watchers, optionally reconciles every
sync directory, then mirrors changes until interrupted.
"""
import sys
import asyncio
import argparse
import logging

from janus.core.context import AppContext
from janus.core.notifications import Notification
from janus.utils.config import load_config
from janus.utils.logger import setup_logging_from_config, log_exception

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Janus directory mirroring")
    parser.add_argument("-c", "--config", help="Path to a YAML or JSON configuration file")
    parser.add_argument("--no-initial-sync", action="store_true",
                        help="Skip the full reconciliation at startup")
    parser.add_argument("--sync-interval", type=float, default=0.0,
                        help="Flush pending manual changes every N seconds (0 disables)")
    return parser.parse_args(argv)


def print_notification(notification: Notification):
    print(f"  {notification}")


async def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)

    config = load_config(args.config)
    setup_logging_from_config(config)

    print("=" * 60)
    print("Janus - Directory Mirroring")
    print("=" * 60)

    context = AppContext.from_config(config)
    context.notifications.subscribe(print_notification)

    try:
        count = context.load()
        print(f"\nStore: {context.store.path}")
        print(f"Loaded {count} watchers")
        for watcher in context.watchers:
            configuration = watcher.configuration
            print(f"  {configuration.name}: {configuration.watch_directory} "
                  f"-> {configuration.sync_directory}")

        if config.watchdog.initial_sync and not args.no_initial_sync:
            print("\nReconciling sync directories...")
            futures = context.initial_synchronise_all()
            reports = await asyncio.gather(*(asyncio.wrap_future(f) for f in futures))
            for report in reports:
                logger.info(f"Initial sync: {report.summary()}")

        print("\nJanus is running. Press Ctrl+C to stop.")
        elapsed = 0.0
        while True:
            await asyncio.sleep(1)
            elapsed += 1
            if args.sync_interval and elapsed >= args.sync_interval:
                elapsed = 0.0
                await asyncio.to_thread(context.synchronise_all)

    except asyncio.CancelledError:
        pass

    except KeyboardInterrupt:
        print("\nShutting down...")

    except Exception as e:
        log_exception(logger, e, "Janus stopped on an unexpected error")
        sys.exit(1)

    finally:
        context.stop_all()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
