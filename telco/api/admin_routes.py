from fastapi import APIRouter, Depends, HTTPException, Header
from telco.settings import settings
from telco.api.routes import get_network
from telco.core.network import Network
import telco.observability.metrics as metrics

router = APIRouter(prefix="/admin", tags=["admin"])

def require_admin(x_admin_key: str = Header(default="", alias="x-admin-key")):
    if not settings.ADMIN_API_KEY:
        return
    if x_admin_key != settings.ADMIN_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid admin key")

@router.get("/stats")
def get_stats(_=Depends(require_admin), net: Network = Depends(get_network)):
    """Registry sizes plus the Redis-backed communication counters."""
    return {
        "clients": net.client_count,
        "terminals": net.terminal_count,
        "communications": len(net.all_communications()),
        "metrics": metrics.get_stats_snapshot(),
    }
