# secure_exam/monitoring.py
import logging

from flask import current_app

from secure_exam import storage
from secure_exam.database import utcnow
from secure_exam.errors import ApiError

log = logging.getLogger(__name__)


def _require_session(session_id):
    if not storage.get_session(session_id):
        raise ApiError("Exam session not found", 404)


def record_incident(data):
    """
    Store a security incident unless the session already has
    MAX_INCIDENTS_PER_TYPE of the same type (HTTP 429 then).
    """
    _require_session(data.sessionId)

    limit = current_app.config["MAX_INCIDENTS_PER_TYPE"]
    seen = storage.count_incidents(data.sessionId, data.incidentType)
    if seen >= limit:
        log.info("Incident limit reached for %s/%s", data.sessionId, data.incidentType)
        raise ApiError("Incident limit reached", 429)

    doc = {
        "sessionId": data.sessionId,
        "incidentType": data.incidentType,
        "severity": data.severity,
        "description": data.description,
        "metadata": dict(data.metadata, warningCount=seen + 1),
        "isResolved": False,
        "resolvedBy": None,
        "resolvedAt": None,
        "createdAt": utcnow(),
    }
    return storage.insert_incident(doc)


def record_event(session_id, event_type, event_data=None):
    _require_session(session_id)
    return storage.insert_monitoring_log(session_id, event_type, event_data)
