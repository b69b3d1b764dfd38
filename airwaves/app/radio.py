"""
Main entry point for Airwaves.

Builds settings, the play queue and a player backend, then runs the station
on an asyncio loop until interrupted or the queue runs out.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

from airwaves.app.settings import Settings, load_settings
from airwaves.app.station import Station
from airwaves.broadcast_core.pcm_player import PcmPlayer
from airwaves.broadcast_core.simulated_player import SimulatedPlayer
from airwaves.music_logic.play_queue import PlayQueue
from airwaves.outputs.ffplay_sink import FFplaySink
from airwaves.outputs.null_sink import NullSink

logger = logging.getLogger(__name__)


def _parse_args(args: Optional[list[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="airwaves", description="AI radio DJ between your songs")
    parser.add_argument("music_dir", nargs="?", help="Directory of 'Artist - Title' audio files")
    parser.add_argument("--simulate", action="store_true",
                        help="Headless clock-driven playback, no audio output")
    parser.add_argument("--silent", action="store_true",
                        help="Decode audio but discard it instead of playing through ffplay")
    parser.add_argument("--no-http", action="store_true", help="Do not start the HTTP control surface")
    return parser.parse_args(args)


def _build_player(settings: Settings, simulate: bool, silent: bool):
    if simulate or settings.player == "simulated":
        return SimulatedPlayer()
    sink = NullSink() if silent else FFplaySink()
    return PcmPlayer(sink)


async def _serve(station: Station, serve_http: bool) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, station.stop)
        except NotImplementedError:
            # Platforms without loop signal support fall back to KeyboardInterrupt
            pass
    await station.run(serve_http=serve_http)


def main(args: Optional[list[str]] = None) -> None:
    """
    Run the station.

    Exit code 2 means no music directory was given.
    """
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    options = _parse_args(args)
    settings = load_settings()

    music_dir = options.music_dir or settings.music_dir
    if not music_dir:
        logger.error("No music directory: pass one or set AIRWAVES_MUSIC_DIR")
        sys.exit(2)

    logger.info("=" * 70)
    logger.info("Airwaves - Starting Station")
    logger.info("=" * 70)

    queue = PlayQueue.from_directory(music_dir)
    player = _build_player(settings, options.simulate, options.silent)
    station = Station(settings, queue, player)

    try:
        asyncio.run(_serve(station, serve_http=not options.no_http))
    except KeyboardInterrupt:
        logger.info("[STATION] Interrupted by user")


if __name__ == "__main__":
    main()
