# secure_exam/routes/incident_routes.py

from flask import Blueprint, g, jsonify, request

from secure_exam import monitoring, storage
from secure_exam.database import to_json
from secure_exam.errors import ApiError
from secure_exam.models.monitoring_log import MonitoringLogCreate
from secure_exam.models.security_incident import SecurityIncidentCreate
from secure_exam.realtime import notify_admins
from secure_exam.utils.auth import admin_required
from secure_exam.utils.validation import parse_body

incident = Blueprint("incident", __name__)


# =====================================================
# SECURITY INCIDENTS
# =====================================================
@incident.post("/security-incidents")
def create_security_incident():
    data = parse_body(SecurityIncidentCreate)
    doc = to_json(monitoring.record_incident(data))
    notify_admins("security_incident", doc)
    return jsonify(doc), 201


@incident.get("/security-incidents")
@admin_required
def list_security_incidents():
    session_id = request.args.get("sessionId")
    return jsonify(to_json(storage.list_incidents(session_id=session_id))), 200


@incident.patch("/security-incidents/<incident_id>/resolve")
@admin_required
def resolve_security_incident(incident_id):
    doc = storage.resolve_incident(incident_id, g.admin["email"])
    if not doc:
        raise ApiError("Security incident not found", 404)
    return jsonify(to_json(doc)), 200


# =====================================================
# MONITORING LOGS
# =====================================================
@incident.post("/monitoring-logs")
def create_monitoring_log():
    data = parse_body(MonitoringLogCreate)
    doc = monitoring.record_event(data.sessionId, data.eventType, data.eventData)
    return jsonify(to_json(doc)), 201


@incident.get("/exam-sessions/<session_id>/monitoring-logs")
@admin_required
def list_monitoring_logs(session_id):
    return jsonify(to_json(storage.list_monitoring_logs(session_id))), 200
