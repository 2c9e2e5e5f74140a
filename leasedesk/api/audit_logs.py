from fastapi import APIRouter, Depends, Query

from ..api.dependencies import get_state
from ..auth.jwt import require_permission
from ..models.models import User
from ..schemas.schemas import AuditLogList
from ..services.store import AppState

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("/", response_model=AuditLogList)
def list_audit_logs(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    state: AppState = Depends(get_state),
    _: User = Depends(require_permission("audit_logs", "view")),
) -> AuditLogList:
    logs = sorted(state.audit_logs, key=lambda entry: entry.timestamp, reverse=True)
    return AuditLogList(items=logs[offset : offset + limit], total=len(logs))
