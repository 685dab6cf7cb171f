# stockroom/utils/audit.py
import logging

audit_logger = logging.getLogger("stockroom.audit")


# One audit line per domain action; meta is rendered as sorted key=value pairs
def write_log(*, action, resource, status="SUCCESS", actor=None, meta=None):
    details = " ".join(f"{k}={v}" for k, v in sorted((meta or {}).items()))
    level = logging.INFO if status == "SUCCESS" else logging.WARNING
    audit_logger.log(
        level,
        f"{action} resource={resource} status={status} actor={actor or 'system'} {details}".rstrip(),
        extra={"action": action, "resource": resource, "status": status, "meta": meta or {}},
    )
