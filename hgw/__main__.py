"""Entry point for the HGW batcher.

Usage examples:
    python -m hgw serve
    python -m hgw batch joesguns 0.7 --strategy gw
    python -m hgw xp joesguns
"""
import argparse
import asyncio
import logging

from dotenv import load_dotenv

load_dotenv()

log = logging.getLogger("hgw")


async def _run(start) -> int:
    """Seed the world, tick it, and run the batcher *start* launches."""
    from hgw.config import settings
    from hgw.database import async_session, init_db
    from hgw.game.batcher_manager import BatcherManager
    from hgw.game.sim_host import DatabaseHost
    from hgw.game.world_loop import WorldLoop
    from hgw.main import seed_world

    await init_db()
    await seed_world(async_session)

    manager = BatcherManager(
        DatabaseHost(async_session, settings.TIME_SCALE), settings.batcher_config(),
    )
    world_loop = WorldLoop(async_session)
    await world_loop.start()
    try:
        handle = await start(manager)
        await handle.task
    finally:
        await manager.stop_all(graceful=False)
        await world_loop.stop()

    if handle.error:
        log.error("Batcher stopped: %s", handle.error)
        return 1
    return 0


def main(argv=None) -> int:
    from hgw.game import constants as C
    from hgw.game.prep import Strategy

    parser = argparse.ArgumentParser(prog="hgw", description="HGW batcher")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("serve", help="Run the HTTP API and world loop")

    batch = sub.add_parser("batch", help="Prep and hack one target until interrupted")
    batch.add_argument("target")
    batch.add_argument("fraction", nargs="?", type=float, default=None)
    batch.add_argument("--strategy", choices=[s.value for s in Strategy], default=None)

    xp = sub.add_parser("xp", help="Grow one target on every worker for hacking experience")
    xp.add_argument("target", nargs="?", default=C.JOES)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        import uvicorn
        from hgw.config import settings

        uvicorn.run("hgw.main:app", host=settings.HOST, port=settings.PORT)
        return 0

    if args.command == "xp":
        def start(manager):
            return manager.start_xp(args.target)
    else:
        if args.fraction is not None and not 0 < args.fraction <= 1:
            parser.error("fraction must be in (0, 1]")
        strategy = Strategy(args.strategy) if args.strategy else None

        def start(manager):
            return manager.start(args.target, args.fraction, strategy)

    try:
        return asyncio.run(_run(start))
    except KeyboardInterrupt:
        log.info("Interrupted")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
