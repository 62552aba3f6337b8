# secure_exam/realtime.py
"""
Monitoring channel served on /ws as a plain WebSocket.

Every frame is a JSON object with a ``type`` field. Frames sent by the
server look like ``{"type": <event>, "data": {...}}``.

Admins are identified once, from the admin cookie on the upgrade request.
Students announce themselves in an ``auth`` frame; that identity is taken at
face value.
"""
import json
import logging
import threading

from flask import current_app, request
from flask_sock import Sock
from pydantic import ValidationError
from simple_websocket import ConnectionClosed

from secure_exam.database import to_json
from secure_exam.errors import ApiError
from secure_exam.models.security_incident import SecurityIncidentCreate
from secure_exam.monitoring import record_event, record_incident
from secure_exam.utils.jwt_manager import admin_from_token

log = logging.getLogger(__name__)

sock = Sock()

ADMIN_ROOM = "admins"
STUDENT_ROOM = "students"

_connections = set()
_connections_lock = threading.Lock()


def session_room(session_id):
    return f"session:{session_id}"


class Connection:
    """One open /ws socket and who is on the other end."""

    def __init__(self, ws, admin=None):
        self.ws = ws
        self.admin = bool(admin)
        self.type = "admin" if admin else None
        self.user_id = admin["email"] if admin else None
        self.session_id = None
        self.rooms = {ADMIN_ROOM} if admin else set()
        self._send_lock = threading.Lock()

    def send(self, frame_type, data):
        message = json.dumps({"type": frame_type, "data": data})
        with self._send_lock:
            self.ws.send(message)

    def error(self, message, status=None):
        data = {"message": message}
        if status is not None:
            data["status"] = status
        self.send("error", data)


# =====================================================
# BROADCAST (FIRE-AND-FORGET)
# =====================================================
def broadcast(room, frame_type, data):
    with _connections_lock:
        targets = [c for c in _connections if room in c.rooms]
    for conn in targets:
        try:
            conn.send(frame_type, data)
        except (ConnectionClosed, OSError):
            log.debug("Dropped %s frame for a closed connection", frame_type)


def notify_admins(frame_type, data):
    broadcast(ADMIN_ROOM, frame_type, data)


def _session_id(conn, data):
    return data.get("sessionId") or conn.session_id


# =====================================================
# FRAME HANDLERS
# =====================================================
def handle_auth(conn, data):
    if data.get("userType") == "admin":
        if not conn.admin:
            conn.error("Admin access requires a signed-in admin")
            return
        conn.send("auth_ok", {"userType": "admin", "userId": conn.user_id})
        return

    # students are trusted on their word
    conn.type = "student"
    conn.user_id = data.get("userId")
    conn.session_id = data.get("sessionId")
    conn.rooms = {STUDENT_ROOM}
    if conn.session_id:
        conn.rooms.add(session_room(conn.session_id))
    conn.send("auth_ok", {"userType": "student", "userId": conn.user_id, "sessionId": conn.session_id})
    notify_admins("student_connected", {"userId": conn.user_id, "sessionId": conn.session_id})


def handle_student_status_update(conn, data):
    notify_admins("student_status", {
        "userId": conn.user_id,
        "sessionId": _session_id(conn, data),
        "data": data.get("payload"),
    })


def handle_face_detection_update(conn, data):
    session_id = _session_id(conn, data)
    notify_admins("face_detection", {"sessionId": session_id, "data": data.get("payload")})
    if session_id:
        record_event(session_id, "face_detected", data.get("payload"))


def handle_video_snapshot(conn, data):
    session_id = _session_id(conn, data)
    payload = data.get("payload") or {}
    notify_admins("video_snapshot", {"sessionId": session_id, "data": payload})
    if session_id:
        # only a marker is persisted, never the frame itself
        marker = {k: v for k, v in payload.items() if k not in ("image", "frame")}
        record_event(session_id, "video_snapshot", marker)


def handle_security_violation(conn, data):
    incident = record_incident(SecurityIncidentCreate(
        sessionId=_session_id(conn, data) or "",
        incidentType=data.get("incidentType", "unknown"),
        severity=data.get("severity", "medium"),
        description=data.get("description", ""),
        metadata=data.get("metadata") or {},
    ))
    notify_admins("security_incident", to_json(incident))


def handle_policy_update(conn, data):
    if not conn.admin:
        conn.error("Admin access required")
        return
    session_id = data.get("sessionId")
    target = session_room(session_id) if session_id else STUDENT_ROOM
    broadcast(target, "policy_update", {"sessionId": session_id, "policy": data.get("policy") or {}})


HANDLERS = {
    "auth": handle_auth,
    "student_status_update": handle_student_status_update,
    "face_detection_update": handle_face_detection_update,
    "video_snapshot": handle_video_snapshot,
    "security_violation": handle_security_violation,
    "policy_update": handle_policy_update,
}


def dispatch(conn, message):
    """Run the handler for one frame; failures are reported, never fatal."""
    try:
        data = json.loads(message)
    except ValueError:
        conn.error("Invalid JSON frame", 400)
        return
    if not isinstance(data, dict):
        conn.error("Frame must be a JSON object", 400)
        return

    handler = HANDLERS.get(data.get("type"))
    if handler is None:
        conn.error(f"Unknown message type: {data.get('type')}")
        return

    try:
        handler(conn, data)
    except ApiError as e:
        conn.error(e.message, e.status)
    except ValidationError:
        conn.error("Validation failed", 400)
    except Exception:
        log.exception("WebSocket message error (%s)", data.get("type"))
        conn.error("Failed to process message")


# =====================================================
# /ws ENDPOINT
# =====================================================
@sock.route("/ws")
def monitoring_socket(ws):
    admin = admin_from_token(request.cookies.get(current_app.config["ADMIN_COOKIE_NAME"]))
    conn = Connection(ws, admin)
    with _connections_lock:
        _connections.add(conn)
    log.debug("WebSocket connected (admin=%s)", conn.admin)

    try:
        while True:
            dispatch(conn, ws.receive())
    except ConnectionClosed:
        log.debug("WebSocket connection closed")
    finally:
        with _connections_lock:
            _connections.discard(conn)
        if conn.type == "student":
            notify_admins("student_disconnected", {"userId": conn.user_id, "sessionId": conn.session_id})
