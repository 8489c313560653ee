"""REST API endpoints for the simulated world: servers and the player."""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from hgw.database import get_db
from hgw.game import world_engine
from hgw.models.server import Server

router = APIRouter(prefix="/api", tags=["world"])


class PurchaseRequest(BaseModel):
    ram: int


def _server_dict(s: Server) -> dict:
    return {
        "hostname": s.hostname,
        "max_ram": s.max_ram,
        "ram_used": s.ram_used,
        "has_root": s.has_root,
        "is_home": s.is_home,
        "purchased": s.purchased_by_player,
        "required_skill": s.required_skill,
        "ports_required": s.ports_required,
        "security": s.security,
        "min_security": s.min_security,
        "money": s.money,
        "max_money": s.max_money,
    }


async def _get_server(db: AsyncSession, hostname: str) -> Server:
    try:
        return await world_engine.get_server(db, hostname)
    except ValueError:
        raise HTTPException(status_code=404, detail="Server not found")


@router.get("/servers")
async def list_servers(db: AsyncSession = Depends(get_db)):
    return [_server_dict(s) for s in await world_engine.list_servers(db)]


@router.get("/servers/{hostname}")
async def get_server(hostname: str, db: AsyncSession = Depends(get_db)):
    return _server_dict(await _get_server(db, hostname))


@router.post("/servers/{hostname}/nuke")
async def nuke_server(hostname: str, db: AsyncSession = Depends(get_db)):
    """Try to gain root access to a server."""
    await _get_server(db, hostname)
    rooted = await world_engine.nuke(db, hostname)
    return {"hostname": hostname, "has_root": rooted}


@router.post("/servers/purchase")
async def purchase_server(req: PurchaseRequest, db: AsyncSession = Depends(get_db)):
    try:
        server = await world_engine.purchase_server(db, req.ram)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _server_dict(server)


@router.get("/player")
async def get_player(db: AsyncSession = Depends(get_db)):
    try:
        player = await world_engine.get_player(db)
    except ValueError:
        raise HTTPException(status_code=404, detail="Player not found")
    return {
        "hacking_skill": player.hacking_skill,
        "hacking_exp": player.hacking_exp,
        "money": player.money,
        "port_openers": player.port_openers,
    }
