from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class AuditEventResponse(BaseModel):
    """Single audit event in response"""

    id: str
    type: str
    client_id: str
    address: Optional[str]
    action: str
    status: str
    details: Dict[str, Any]
    ip_address: str
    user_agent: str
    request_id: Optional[str]
    timestamp: str


class AuditLogsResponse(BaseModel):
    """GET /audit/logs response payload"""

    events: List[AuditEventResponse]
    limit: int
    offset: int


class AuditStatsResponse(BaseModel):
    total: int
    by_type: Dict[str, int]
    by_status: Dict[str, int]
    by_action: Dict[str, int]
