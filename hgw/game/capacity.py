"""Worker capacity model."""
import math

from hgw.game.errors import require
from hgw.game.host import Worker


def free_ram(worker: Worker, home_reserve: float = 0.0) -> float:
    """RAM left on *worker*, minus the home reserve when it is the home server."""
    reserved = home_reserve if worker.is_home else 0.0
    return worker.max_ram - worker.ram_used - reserved


def threads(worker: Worker, script_ram: float, home_reserve: float = 0.0) -> int:
    """Maximum threads of a script costing *script_ram* that *worker* can run.

    Never negative: a worker without enough RAM contributes 0 threads.
    """
    require(script_ram > 0, f"Script RAM must be positive, got {script_ram}")
    ram = free_ram(worker, home_reserve)
    if ram <= 0:
        return 0
    return max(math.floor(ram / script_ram), 0)
