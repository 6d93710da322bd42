"""
Command-line interface for Radio Now Playing

This module provides the CLI entry point for all operations:
- Serving the JSON API (with optional background refresh)
- One-off polls and ad classification checks
- Audio ad detection against a stream URL
- Admin authentication setup

Usage:
    python -m radio_nowplaying.cli --help
"""

import argparse
import getpass
import json
import logging
import sys

from radio_nowplaying import get_version
from radio_nowplaying.logging_setup import setup_logging
from radio_nowplaying.settings import load_settings, get_openai_api_key

# Initial basic config for early logging (replaced once settings are loaded)
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def load_database(settings):
    """Load database from settings

    Args:
        settings: Settings dict

    Returns:
        NowPlayingDatabase instance (connected)
    """
    from radio_nowplaying.database import NowPlayingDatabase

    db_file = settings.get('database', {}).get('file', 'radio_nowplaying.db')
    db = NowPlayingDatabase(db_file)
    db.connect()
    return db


def build_dispatcher(settings, db=None):
    from radio_nowplaying.dispatcher import StationDispatcher
    return StationDispatcher.from_settings(settings, db=db)


def print_json(data):
    print(json.dumps(data, indent=2))


def cmd_list_stations(args, settings):
    """List configured stations

    Usage: --list-stations
    """
    db = load_database(settings)
    try:
        dispatcher = build_dispatcher(settings, db)
        stations = dispatcher.registry.all_stations()
        print(f"\n{len(stations)} station(s):\n")
        for station in stations:
            print(f"  {station.station_id:<16} {station.name:<20} [{station.api_type}] {station.tagline}")
        return 0
    finally:
        db.close()


def cmd_poll(args, settings):
    """Poll one station (or all) and print the record

    Usage: --poll STATION | --poll all
    """
    db = load_database(settings)
    try:
        dispatcher = build_dispatcher(settings, db)
        if args.poll == 'all':
            results = dispatcher.poll_all()
        else:
            results = [dispatcher.poll(args.poll)]

        for result in results:
            print_json(result.to_dict())
        return 0
    finally:
        db.close()


def cmd_test_ad(args, settings):
    """Run the metadata classifier on a title/artist pair

    Usage: --test-ad TITLE ARTIST
    """
    from radio_nowplaying.ad_detection import classify_metadata

    title, artist = args.test_ad
    verdict = classify_metadata(title, artist)

    print(f"{'[AD]' if verdict.is_ad else '[MUSIC]'} {title} / {artist}")
    print_json(verdict.to_dict())
    return 0


def cmd_detect_ad(args, settings):
    """Sample a stream and classify it with speech-to-text + LLM

    Usage: --detect-ad URL
    """
    from radio_nowplaying.deep_detection import detect_ad_from_stream

    if not get_openai_api_key(settings):
        print("[FAIL] OpenAI API key not configured (settings ad_detection.openai_api_key or OPENAI_API_KEY)")
        return 1

    print(f"Sampling {args.detect_ad}...")
    result = detect_ad_from_stream(args.detect_ad, settings=settings)
    print_json(result.to_dict())

    if result.error:
        print(f"[FAIL] {result.error}")
        return 1
    return 0


def cmd_force_ad(args, settings):
    """Write a branded ad record for the default (or --station) station

    Usage: --force-ad BRAND [--station ID]
    """
    db = load_database(settings)
    try:
        dispatcher = build_dispatcher(settings, db)
        result = dispatcher.force_ad(brand=args.force_ad, station_id=args.station)
        print(f"[OK] {result.track.title} stored for {result.station.name}")
        return 0
    finally:
        db.close()


def cmd_set_auth(args, settings):
    """Enable admin authentication

    Usage: --set-auth USERNAME
    """
    from radio_nowplaying.auth import save_auth_config, hash_password

    password = getpass.getpass('Password: ')
    if len(password) < 8:
        print("[FAIL] Password must be at least 8 characters")
        return 1
    if password != getpass.getpass('Confirm password: '):
        print("[FAIL] Passwords do not match")
        return 1

    if save_auth_config(args.set_auth, hash_password(password)):
        print(f"[OK] Authentication enabled for {args.set_auth}")
        return 0
    print("[FAIL] Could not save authentication settings")
    return 1


def cmd_disable_auth(args, settings):
    """Disable admin authentication

    Usage: --disable-auth
    """
    from radio_nowplaying.auth import disable_auth

    if disable_auth():
        print("[OK] Authentication disabled")
        return 0
    print("[FAIL] Could not disable authentication")
    return 1


def cmd_serve(args, settings):
    """Start the JSON API

    Usage: --serve [--host HOST] [--port PORT] [--refresh]
    """
    import signal

    from radio_nowplaying.scheduler import NowPlayingScheduler
    from radio_nowplaying.web import init_app, run_app, cleanup

    host = args.host or settings.get('gui', {}).get('host', '0.0.0.0')
    port = args.port or settings.get('gui', {}).get('port', 5000)
    debug = settings.get('gui', {}).get('debug', False)

    db = load_database(settings)
    dispatcher = build_dispatcher(settings, db)

    scheduler_settings = settings.get('scheduler', {})
    scheduler = NowPlayingScheduler(
        dispatcher,
        refresh_interval_seconds=scheduler_settings.get('refresh_interval_seconds', 60),
        history_days=settings.get('ad_detection', {}).get('history_days', 30),
    )
    if args.refresh or scheduler_settings.get('refresh_enabled'):
        scheduler.start()

    init_app(database=db, station_dispatcher=dispatcher,
             background_scheduler=scheduler, app_settings=settings)

    # Graceful shutdown handler
    def signal_handler(sig, frame):
        logger.info("Shutdown signal received. Stopping gracefully...")
        try:
            cleanup()
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")
        logger.info("Shutdown complete. Goodbye!")
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        run_app(host=host, port=port, debug=debug)
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt received")
        signal_handler(None, None)
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        description=f'Radio Now Playing {get_version()} - Now playing metadata and ad detection',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument('--settings', metavar='FILE',
                        help='Settings file (default: radio_nowplaying_settings.json)')

    # Commands
    parser.add_argument('--serve', action='store_true',
                        help='Start the JSON API (default when no other command is given)')
    parser.add_argument('--poll', metavar='STATION',
                        help="Poll a station once and print the record ('all' for every station)")
    parser.add_argument('--list-stations', action='store_true',
                        help='List configured stations')
    parser.add_argument('--test-ad', nargs=2, metavar=('TITLE', 'ARTIST'),
                        help='Run the metadata ad classifier')
    parser.add_argument('--detect-ad', metavar='URL',
                        help='Sample a stream and classify it with speech-to-text + LLM')
    parser.add_argument('--force-ad', metavar='BRAND',
                        help='Store a branded ad record')
    parser.add_argument('--set-auth', metavar='USERNAME',
                        help='Enable admin authentication (prompts for a password)')
    parser.add_argument('--disable-auth', action='store_true',
                        help='Disable admin authentication')

    # Options
    parser.add_argument('--station', metavar='ID',
                        help='Station for --force-ad (default: default station)')
    parser.add_argument('--refresh', action='store_true',
                        help='With --serve: start the background refresh job')
    parser.add_argument('--host', metavar='HOST',
                        help='API host (default: from settings or 0.0.0.0)')
    parser.add_argument('--port', type=int, metavar='PORT',
                        help='API port (default: from settings or 5000)')
    return parser


def main(argv=None):
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings(args.settings)
    setup_logging(settings)

    # Route to appropriate command
    if args.list_stations:
        return cmd_list_stations(args, settings)
    elif args.poll:
        return cmd_poll(args, settings)
    elif args.test_ad:
        return cmd_test_ad(args, settings)
    elif args.detect_ad:
        return cmd_detect_ad(args, settings)
    elif args.force_ad:
        return cmd_force_ad(args, settings)
    elif args.set_auth:
        return cmd_set_auth(args, settings)
    elif args.disable_auth:
        return cmd_disable_auth(args, settings)
    else:
        # --serve is the default command
        return cmd_serve(args, settings)


if __name__ == '__main__':
    sys.exit(main())
