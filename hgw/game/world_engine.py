"""World engine -- runs HGW scripts inside the simulated world.

A launched script claims RAM on its host and becomes a ``RunningScript``
record with a finish time.  The world loop calls ``tick_scripts()`` and each
script whose finish time has passed applies its effect to the target, pays
out hacking experience and frees its RAM.  Effects are computed against the
target's state at completion time, as in the host game.
"""
import logging
import time
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hgw.game import actions as A
from hgw.game import constants as C
from hgw.models.player import Player
from hgw.models.running_script import RunningScript
from hgw.models.server import Server

log = logging.getLogger(__name__)

PSERV_BASE_COST = 55_000  # per GB
PSERV_LIMIT = 25
PSERV_RAM = [2 ** k for k in range(1, 21)]

_SCRIPT_ACTION = {spec.script: action for action, spec in A.ACTIONS.items()}


def now_ms() -> float:
    return time.time() * 1000


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_player(db: AsyncSession) -> Player:
    player = (await db.execute(select(Player).limit(1))).scalar_one_or_none()
    if player is None:
        raise ValueError("World has no player; seed it first")
    return player


async def get_server(db: AsyncSession, hostname: str) -> Server:
    server = (
        await db.execute(select(Server).where(Server.hostname == hostname))
    ).scalar_one_or_none()
    if server is None:
        raise ValueError(f"No server named {hostname}")
    return server


async def list_servers(db: AsyncSession) -> list[Server]:
    return list((await db.execute(select(Server).order_by(Server.id))).scalars().all())


def action_duration(target: Server, player: Player, action: A.Action, time_scale: float) -> float:
    """Milliseconds *action* takes against *target*, scaled for the simulation."""
    spec = A.ACTIONS[action]
    return spec.duration(target.security, target.required_skill, player.hacking_skill) * time_scale


def action_potency(target: Server, player: Player, action: A.Action) -> float:
    return A.potency(
        action, target.security, target.required_skill,
        player.hacking_skill, target.growth,
    )


# ---------------------------------------------------------------------------
# Root access and purchased servers
# ---------------------------------------------------------------------------


async def nuke(db: AsyncSession, hostname: str) -> bool:
    """Gain root access if we own enough port openers.  Idempotent."""
    server = await get_server(db, hostname)
    if server.has_root:
        return True
    player = await get_player(db)
    if server.ports_required > player.port_openers:
        return False
    server.has_root = True
    await db.flush()
    log.info("Nuked %s", hostname)
    return True


def pserv_cost(ram: int) -> float:
    return PSERV_BASE_COST * ram


async def purchase_server(db: AsyncSession, ram: int) -> Server:
    """Buy a purchased server named pserv, pserv-0, pserv-1, ..."""
    if ram not in PSERV_RAM:
        raise ValueError(f"Invalid RAM amount {ram}; must be a power of 2")
    owned = (
        await db.execute(
            select(Server).where(
                Server.purchased_by_player == True,  # noqa: E712
                Server.is_home == False,  # noqa: E712
            )
        )
    ).scalars().all()
    if len(owned) >= PSERV_LIMIT:
        raise ValueError(f"Already own the maximum of {PSERV_LIMIT} servers")
    player = await get_player(db)
    cost = pserv_cost(ram)
    if player.money < cost:
        raise ValueError(f"Insufficient funds. Need {cost:.0f}, have {player.money:.0f}")

    names = {s.hostname for s in owned}
    hostname = C.PSERV_PREFIX
    k = 0
    while hostname in names:
        hostname = f"{C.PSERV_PREFIX}-{k}"
        k += 1

    player.money -= cost
    server = Server(
        hostname=hostname,
        max_ram=ram,
        has_root=True,
        purchased_by_player=True,
    )
    db.add(server)
    await db.flush()
    log.info("Purchased %s with %d GB RAM", hostname, ram)
    return server


# ---------------------------------------------------------------------------
# Scripts
# ---------------------------------------------------------------------------


async def launch_script(
    db: AsyncSession,
    script: str,
    hostname: str,
    threads: int,
    target_name: str,
    time_scale: float,
    now: Optional[float] = None,
) -> Optional[int]:
    """Start *script* on *hostname*; return the pid, or None if it cannot run."""
    action = _SCRIPT_ACTION.get(script)
    if action is None:
        raise ValueError(f"Unknown script: {script}")
    if threads < 1:
        return None
    host = await get_server(db, hostname)
    target = await get_server(db, target_name)
    ram = C.SCRIPT_RAM[script] * threads
    if not host.has_root or host.ram_used + ram > host.max_ram:
        log.debug("Cannot run %s x%d on %s", script, threads, hostname)
        return None

    player = await get_player(db)
    now = now_ms() if now is None else now
    host.ram_used += ram
    proc = RunningScript(
        script=script,
        action=action.value,
        host_id=host.id,
        target_id=target.id,
        threads=threads,
        ram=ram,
        started_at_ms=now,
        finish_at_ms=now + action_duration(target, player, action, time_scale),
        is_active=True,
    )
    db.add(proc)
    await db.flush()
    return proc.id


async def is_running(db: AsyncSession, pid: int) -> bool:
    proc = await db.get(RunningScript, pid)
    return proc is not None and proc.is_active


async def tick_scripts(db: AsyncSession, now: Optional[float] = None) -> list[dict]:
    """Complete every script whose finish time has passed."""
    now = now_ms() if now is None else now
    due = (
        await db.execute(
            select(RunningScript)
            .where(
                RunningScript.is_active == True,  # noqa: E712
                RunningScript.finish_at_ms <= now,
            )
            .order_by(RunningScript.finish_at_ms)
        )
    ).scalars().all()
    if not due:
        return []

    player = await get_player(db)
    completed = []
    for proc in due:
        host = await db.get(Server, proc.host_id)
        target = await db.get(Server, proc.target_id)
        effect = _apply(A.Action(proc.action), target, player, proc.threads)
        if host is not None:
            host.ram_used = max(host.ram_used - proc.ram, 0.0)
        proc.is_active = False
        completed.append({"pid": proc.id, "action": proc.action, "target": target.hostname, **effect})
    await db.flush()
    return completed


# ---------------------------------------------------------------------------
# Internal: effects
# ---------------------------------------------------------------------------


def _apply(action: A.Action, target: Server, player: Player, threads: int) -> dict:
    if action is A.Action.WEAKEN:
        effect = _apply_weaken(target, threads)
    elif action is A.Action.GROW:
        effect = _apply_grow(target, threads)
    else:
        effect = _apply_hack(target, player, threads)

    exp = A.exp_per_thread(target.min_security) * threads
    player.hacking_exp += exp
    player.hacking_skill = A.skill_from_exp(player.hacking_exp)
    effect["exp"] = exp
    return effect


def _apply_weaken(target: Server, threads: int) -> dict:
    before = target.security
    target.security = max(target.security - C.WEAKEN_SECURITY_PER_THREAD * threads, target.min_security)
    return {"security": target.security - before}


def _apply_grow(target: Server, threads: int) -> dict:
    if target.max_money <= 0:
        return {"money": 0.0}
    before = target.money
    multiplier = A.grow_multiplier(target.security, target.growth, threads)
    # Each thread adds $1 before growth so an empty server can recover.
    target.money = min((target.money + threads) * multiplier, target.max_money)
    target.security = min(target.security + C.GROW_SECURITY_PER_THREAD * threads, C.MAX_SECURITY)
    return {"money": target.money - before}


def _apply_hack(target: Server, player: Player, threads: int) -> dict:
    percent = A.hack_percent(target.security, target.required_skill, player.hacking_skill)
    stolen = min(target.money * percent * threads, target.money)
    target.money -= stolen
    player.money += stolen
    target.security = min(target.security + C.HACK_SECURITY_PER_THREAD * threads, C.MAX_SECURITY)
    return {"money": -stolen}
