"""REST API endpoints to start, inspect and stop batchers."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from hgw.game import constants as C
from hgw.game.batcher_manager import BatcherManager, ClaimConflict
from hgw.game.prep import Strategy

router = APIRouter(prefix="/api/batchers", tags=["batchers"])


class StartRequest(BaseModel):
    target: str
    fraction: Optional[float] = Field(default=None, gt=0, le=1)
    strategy: Optional[Strategy] = None
    workers: Optional[list[str]] = None
    name: Optional[str] = None


class PservRequest(BaseModel):
    fraction: Optional[float] = Field(default=None, gt=0, le=1)


class SplitRequest(BaseModel):
    count: int = Field(default=3, ge=1)


class XpRequest(BaseModel):
    target: str = C.JOES
    workers: Optional[list[str]] = None


def get_manager(request: Request) -> BatcherManager:
    return request.app.state.manager


@router.get("")
async def list_batchers(manager: BatcherManager = Depends(get_manager)):
    return manager.status()


@router.get("/{name}")
async def get_batcher(name: str, manager: BatcherManager = Depends(get_manager)):
    handle = manager.get(name)
    if handle is None:
        raise HTTPException(status_code=404, detail="Batcher not found")
    return handle.to_dict()


@router.post("")
async def start_batcher(req: StartRequest, manager: BatcherManager = Depends(get_manager)):
    target = await _get_target(manager, req.target)
    if target.max_money == 0:
        raise HTTPException(status_code=400, detail=f"{req.target} is bankrupt")
    try:
        handle = await manager.start(
            req.target, req.fraction, req.strategy, req.workers, req.name,
        )
    except ClaimConflict as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return handle.to_dict()


@router.post("/world")
async def start_world_batcher(manager: BatcherManager = Depends(get_manager)):
    try:
        handle = await manager.start_world()
    except ClaimConflict as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return handle.to_dict()


@router.post("/world/split")
async def deploy_world_batchers(
    req: SplitRequest, manager: BatcherManager = Depends(get_manager)
):
    """Partition the idle world servers across the best *count* targets."""
    try:
        handles = await manager.deploy_world(req.count)
    except ClaimConflict as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return [h.to_dict() for h in handles]


@router.post("/xp")
async def start_xp_batcher(req: XpRequest, manager: BatcherManager = Depends(get_manager)):
    target = await _get_target(manager, req.target)
    if target.max_money == 0:
        raise HTTPException(status_code=400, detail=f"{req.target} is bankrupt")
    try:
        handle = await manager.start_xp(req.target, req.workers)
    except ClaimConflict as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return handle.to_dict()


@router.post("/pserv")
async def deploy_pserv_batchers(
    req: PservRequest, manager: BatcherManager = Depends(get_manager)
):
    handles = await manager.deploy_pserv(req.fraction)
    return [h.to_dict() for h in handles]


@router.delete("/{name}")
async def stop_batcher(
    name: str, wait: bool = False, manager: BatcherManager = Depends(get_manager)
):
    """Stop a batcher once its current cycle completes."""
    try:
        handle = await manager.stop(name, wait=wait)
    except KeyError:
        raise HTTPException(status_code=404, detail="Batcher not found")
    return handle.to_dict()


async def _get_target(manager: BatcherManager, name: str):
    try:
        return await manager.host.get_target(name)
    except ValueError:
        raise HTTPException(status_code=404, detail="Target not found")
