"""ID Generation Utilities"""
import time
import uuid
from datetime import datetime, timezone
from typing import Optional


def generate_id(prefix: Optional[str] = None) -> str:
    """
    Generate a unique ID with optional prefix

    Examples:
        >>> generate_id('AUD')
        'AUD-a1b2c3d4e5f6'
        >>> generate_id()
        'a1b2c3d4e5f6'
    """
    unique_part = uuid.uuid4().hex[:12]

    if prefix:
        return f"{prefix}-{unique_part}"
    return unique_part


def generate_rule_id() -> str:
    """Generate automation rule ID (millisecond timestamp based)"""
    return f"rule-{int(time.time() * 1000)}-{uuid.uuid4().hex[:4]}"


def generate_audit_log_id() -> str:
    """Generate audit log ID"""
    return generate_id("AUD")


def generate_object_id() -> str:
    """Generate object storage entity ID"""
    return str(uuid.uuid4())


def generate_correlation_id() -> str:
    """
    Generate a correlation ID for request tracing

    Returns:
        Correlation ID string with timestamp prefix
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    unique_part = uuid.uuid4().hex[:8]
    return f"COR-{timestamp}-{unique_part}"
