"""Audit logging utilities for provisioning operations (install / clear)."""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import os
import sys
from pathlib import Path
from typing import Any, Literal

AUDIT_LOG_DIR = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))
AUDIT_LOG_FILE = AUDIT_LOG_DIR / "provisioning-events.jsonl"


def _get_signing_key() -> bytes:
    """Get the audit signing key from a mounted secret or the environment (read lazily)."""
    secret_file = Path("/run/secrets") / "audit_log_signing_key"
    if secret_file.is_file():
        try:
            return secret_file.read_text(encoding="utf-8").strip().encode("utf-8")
        except OSError:
            pass
    return os.environ.get("AUDIT_LOG_SIGNING_KEY", "").strip().encode("utf-8")


EventType = Literal["install", "clear"]


def _ensure_audit_dir() -> None:
    """Create audit directory with restricted permissions."""
    AUDIT_LOG_DIR.mkdir(parents=True, exist_ok=True)
    AUDIT_LOG_DIR.chmod(0o700)


def _sign_event(event: dict[str, Any]) -> str:
    """Generate HMAC-SHA256 signature for audit event."""
    signing_key = _get_signing_key()
    if not signing_key:
        return ""
    # Canonical JSON representation for signing
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
    return hmac.new(signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def log_provisioning_event(
    event_type: EventType,
    prefix: str,
    *,
    operator: str = "system",
    environment: str = "mypurecloud.com",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    """Log a provisioning event to the audit trail with timestamp and signature.

    Args:
        event_type: Type of operation (install, clear, ...)
        prefix: Naming prefix of the objects affected
        operator: Who performed the operation (user or system)
        environment: Platform environment where the operation ran
        details: Additional context (created/deleted objects, errors)
        success: Whether the operation succeeded
    """
    _ensure_audit_dir()

    event = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "environment": environment,
        "prefix": prefix,
        "operator": operator,
        "success": success,
        "details": details or {},
    }

    signature = _sign_event(event)
    if signature:
        event["signature"] = signature

    # Append to JSONL file (one JSON object per line)
    with AUDIT_LOG_FILE.open("a", encoding="utf-8") as f:
        f.write(json.dumps(event, ensure_ascii=False) + "\n")

    AUDIT_LOG_FILE.chmod(0o600)


def safe_log_provisioning_event(
    event_type: EventType,
    prefix: str,
    *,
    operator: str = "system",
    environment: str = "mypurecloud.com",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> bool:
    """Log a provisioning event, reporting audit failures on stderr instead of raising.

    Returns:
        True if event was logged successfully, False if logging failed
    """
    try:
        log_provisioning_event(
            event_type,
            prefix,
            operator=operator,
            environment=environment,
            details=details,
            success=success,
        )
        return True
    except (OSError, TypeError, ValueError) as e:
        print(
            f"[audit] Warning: Failed to log {event_type} event for {prefix}: {e}",
            file=sys.stderr,
        )
        return False


def verify_audit_log() -> tuple[int, int]:
    """Verify all signatures in the audit log.

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    if not AUDIT_LOG_FILE.exists():
        return 0, 0

    total = 0
    valid = 0

    with AUDIT_LOG_FILE.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            total += 1
            try:
                event = json.loads(line)
                stored_sig = event.pop("signature", "")
                if not stored_sig:
                    continue
                computed_sig = _sign_event(event)
                if hmac.compare_digest(stored_sig, computed_sig):
                    valid += 1
            except (json.JSONDecodeError, KeyError):
                continue

    return total, valid


if __name__ == "__main__":
    total, valid = verify_audit_log()
    print(f"Audit log: {valid}/{total} events with valid signatures")
    sys.exit(0 if total == valid else 1)
