# app/settlement/audit.py
"""
Audit logging for settlement events.

This module records settlement protocol events for:
- Dispute resolution
- Reconciliation of issued invoices against receipts
- Debugging rejected proofs

Log format: JSON lines (one event per line)
Log location: Configured via AUDIT_LOG_PATH (disabled when unset)

Events logged:
- Invoice issued (nonce, feature, price, ttl)
- Payment settled (nonce, payer, wallet scheme)
- Payment failed (reason code, stage)
- Receipt verified (nonce, outcome)
- Resource access granted / denied
- Error (type, message)

Signatures and key material are never written to the audit log.
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from app.core.config import settings

logger = logging.getLogger(__name__)


class AuditEventType(Enum):
    """Types of audit events that can be logged."""
    INVOICE_ISSUED = "invoice_issued"
    PAYMENT_SETTLED = "payment_settled"
    PAYMENT_FAILED = "payment_failed"
    RECEIPT_VERIFIED = "receipt_verified"
    ACCESS_GRANTED = "access_granted"
    ACCESS_DENIED = "access_denied"
    ERROR = "error"


def generate_request_id() -> str:
    """Generate a short unique request ID for tracking."""
    return str(uuid.uuid4())[:8]


def get_audit_log_path() -> Optional[Path]:
    """Path of the audit log, or None when auditing is disabled."""
    if not settings.AUDIT_LOG_PATH:
        return None
    return Path(settings.AUDIT_LOG_PATH)


def create_audit_event(
    event_type: AuditEventType,
    data: Dict[str, Any],
    client_ip: Optional[str] = None,
    wallet_address: Optional[str] = None,
    request_id: Optional[str] = None
) -> Dict[str, Any]:
    """
    Create an audit event dictionary.

    Args:
        event_type: Type of event to log
        data: Event-specific data
        client_ip: Client IP address (if available)
        wallet_address: Payer wallet account (if available)
        request_id: Unique request identifier (if available)

    Returns:
        A structured event ready to be written to the audit log
    """
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type.value,
        "request_id": request_id or generate_request_id(),
        "client_ip": client_ip,
        "wallet_address": wallet_address,
        "data": data
    }


def log_audit_event(
    event_type: AuditEventType,
    data: Dict[str, Any],
    client_ip: Optional[str] = None,
    wallet_address: Optional[str] = None,
    request_id: Optional[str] = None
) -> Optional[str]:
    """
    Append an audit event to the audit log.

    Returns:
        The request_id used for this event, or None if auditing is disabled
        or the write failed
    """
    log_path = get_audit_log_path()
    if log_path is None:
        return None

    event = create_audit_event(
        event_type=event_type,
        data=data,
        client_ip=client_ip,
        wallet_address=wallet_address,
        request_id=request_id
    )

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "a") as f:
            f.write(json.dumps(event) + "\n")

        logger.debug(f"Audit event logged: {event_type.value} [{event['request_id']}]")
        return event["request_id"]

    except OSError as e:
        logger.error(f"Failed to write audit event: {e}")
        return None


def log_invoice_issued(
    client_ip: Optional[str],
    nonce: str,
    feature: str,
    amount: str,
    unit: str,
    ttl: int,
) -> Optional[str]:
    return log_audit_event(
        event_type=AuditEventType.INVOICE_ISSUED,
        data={
            "nonce": nonce,
            "feature": feature,
            "amount": amount,
            "unit": unit,
            "ttl": ttl,
        },
        client_ip=client_ip,
    )


def log_payment_settled(
    client_ip: Optional[str],
    payer: str,
    nonce: str,
    kind: str,
    feature: str,
) -> Optional[str]:
    return log_audit_event(
        event_type=AuditEventType.PAYMENT_SETTLED,
        data={
            "nonce": nonce,
            "kind": kind,
            "feature": feature,
        },
        client_ip=client_ip,
        wallet_address=payer,
    )


def log_payment_failed(
    client_ip: Optional[str],
    reason: str,
    stage: str,
    wallet_address: Optional[str] = None,
) -> Optional[str]:
    """Log a rejected settlement; ``stage`` names the endpoint that rejected it."""
    return log_audit_event(
        event_type=AuditEventType.PAYMENT_FAILED,
        data={
            "reason": reason,
            "stage": stage,
        },
        client_ip=client_ip,
        wallet_address=wallet_address,
    )


def log_receipt_verified(
    client_ip: Optional[str],
    nonce: str,
    ok: bool,
    reason: Optional[str] = None,
) -> Optional[str]:
    return log_audit_event(
        event_type=AuditEventType.RECEIPT_VERIFIED,
        data={
            "nonce": nonce,
            "ok": ok,
            "reason": reason,
        },
        client_ip=client_ip,
    )


def log_access(
    client_ip: Optional[str],
    resource: str,
    granted: bool,
    reason: Optional[str] = None,
    wallet_address: Optional[str] = None,
) -> Optional[str]:
    """Log a protected-resource access decision."""
    return log_audit_event(
        event_type=AuditEventType.ACCESS_GRANTED if granted else AuditEventType.ACCESS_DENIED,
        data={
            "resource": resource,
            "reason": reason,
        },
        client_ip=client_ip,
        wallet_address=wallet_address,
    )


def log_error(
    client_ip: Optional[str],
    error_type: str,
    error_message: str,
    context: Optional[Dict[str, Any]] = None,
) -> Optional[str]:
    """Log an unexpected internal error."""
    return log_audit_event(
        event_type=AuditEventType.ERROR,
        data={
            "error_type": error_type,
            "error_message": error_message,
            "context": context or {},
        },
        client_ip=client_ip,
    )


def read_audit_log(
    max_entries: Optional[int] = 100,
    event_type: Optional[AuditEventType] = None,
) -> List[Dict[str, Any]]:
    """
    Read entries from the audit log.

    Args:
        max_entries: Maximum number of entries to return (None for all)
        event_type: Filter by event type (optional)

    Returns:
        List of audit events (most recent first)
    """
    log_path = get_audit_log_path()
    if log_path is None or not log_path.exists():
        return []

    events = []
    try:
        with open(log_path, "r") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    event = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if event_type and event.get("event_type") != event_type.value:
                    continue
                events.append(event)
    except OSError as e:
        logger.error(f"Failed to read audit log: {e}")
        return []

    return list(reversed(events))[:max_entries]


def get_audit_stats() -> Dict[str, Any]:
    """
    Get event counts from the audit log.

    Returns:
        Dict with total_events, events_by_type and log location
    """
    log_path = get_audit_log_path()
    events_by_type: Dict[str, int] = {}
    total = 0

    for event in read_audit_log(max_entries=None):
        total += 1
        kind = event.get("event_type", "unknown")
        events_by_type[kind] = events_by_type.get(kind, 0) + 1

    return {
        "total_events": total,
        "events_by_type": events_by_type,
        "log_path": str(log_path) if log_path else None,
        "log_exists": bool(log_path and log_path.exists()),
    }
