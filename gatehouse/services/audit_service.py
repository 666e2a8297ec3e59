from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from gatehouse.db.models import AuditLog


class AuditService:
    """Append-only trail of authentication events (register, login, logout)."""

    def log(
        self,
        db: Session,
        *,
        action: str,
        user_id: Optional[int],
        client_ip: Optional[str],
        resource: Optional[str] = None,
    ) -> AuditLog:
        entry = AuditLog(
            action=action,
            user_id=user_id,
            client_ip=client_ip,
            resource=(resource or None) and resource[:200],
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry
