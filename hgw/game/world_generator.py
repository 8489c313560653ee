"""World generator -- seeds the simulated network.

Creates the home server, the player and a fixed set of world servers whose
stats follow the early-game servers of the host game.  Money starts at a
twenty-fifth of the maximum and security at its base level, so every target
needs prepping before it is worth hacking.
"""
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hgw.game import constants as C
from hgw.models.player import Player
from hgw.models.server import Server

log = logging.getLogger(__name__)

HOME_RAM = 128
INITIAL_MONEY_DIVISOR = 25

# (hostname, ram, required skill, ports required, base security,
#  min security, max money, growth)
WORLD_SERVERS = [
    (C.NOODLES, 4, 1, 0, 1, 1, 1_750_000, 3000),
    ("foodnstuff", 16, 1, 0, 10, 3, 50_000_000, 5),
    ("sigma-cosmetics", 16, 5, 0, 10, 3, 57_500_000, 20),
    (C.JOES, 16, 10, 0, 15, 5, 62_500_000, 20),
    ("hong-fang-tea", 16, 30, 0, 15, 5, 75_000_000, 20),
    ("harakiri-sushi", 16, 40, 0, 15, 5, 100_000_000, 40),
    ("nectar-net", 16, 20, 0, 20, 7, 68_750_000, 25),
    ("neo-net", 32, 50, 1, 25, 8, 125_000_000, 25),
    ("zer0", 32, 75, 1, 25, 8, 187_500_000, 40),
    ("max-hardware", 32, 80, 1, 15, 5, 250_000_000, 30),
    ("iron-gym", 32, 100, 1, 30, 10, 500_000_000, 20),
    (C.PHANTASY, 32, 100, 2, 20, 7, 600_000_000, 35),
    ("silver-helix", 64, 150, 2, 30, 10, 1_125_000_000, 30),
    ("omega-net", 32, 202, 2, 35, 12, 1_600_000_000, 35),
    ("CSEC", 8, 59, 1, 1, 1, 0, 0),
    ("darkweb", 1, 1, 5, 1, 1, 0, 0),
]


async def is_seeded(db: AsyncSession) -> bool:
    count = (await db.execute(select(func.count(Server.id)))).scalar_one()
    return count > 0


async def generate_world(db: AsyncSession) -> Player:
    """Create the home server, the world servers and the player."""
    db.add(Server(
        hostname=C.HOME,
        max_ram=HOME_RAM,
        has_root=True,
        is_home=True,
        purchased_by_player=True,
        security=1,
        min_security=1,
    ))
    for (hostname, ram, skill, ports, base_sec, min_sec, max_money, growth) in WORLD_SERVERS:
        db.add(Server(
            hostname=hostname,
            max_ram=ram,
            required_skill=skill,
            ports_required=ports,
            security=base_sec,
            min_security=min_sec,
            money=max_money / INITIAL_MONEY_DIVISOR,
            max_money=max_money,
            growth=growth,
        ))
    player = Player()
    db.add(player)
    await db.flush()
    log.info("Generated world with %d servers", len(WORLD_SERVERS) + 1)
    return player
