# secure_exam/database.py
from datetime import datetime, timezone

from bson import ObjectId
from flask import current_app
from pymongo import MongoClient, ASCENDING

# COLLECTIONS
USERS = "users"
HALL_TICKETS = "hall_tickets"
EXAM_SESSIONS = "exam_sessions"
QUESTIONS = "questions"
SECURITY_INCIDENTS = "security_incidents"
MONITORING_LOGS = "monitoring_logs"


def init_db(app):
    client = app.config.get("MONGO_CLIENT")
    if client is None:
        client = MongoClient(app.config["MONGO_URI"])
        app.config["MONGO_CLIENT"] = client

    db = client[app.config["MONGO_DB_NAME"]]
    app.extensions["mongo_db"] = db
    ensure_indexes(db)
    return db


def ensure_indexes(db):
    db[USERS].create_index("email")
    db[HALL_TICKETS].create_index("hallTicketId", unique=True)
    db[HALL_TICKETS].create_index("qrCodeData", unique=True)
    db[HALL_TICKETS].create_index("createdBy")
    # one session per (student, hall ticket)
    db[EXAM_SESSIONS].create_index(
        [("studentId", ASCENDING), ("hallTicketId", ASCENDING)], unique=True
    )
    db[EXAM_SESSIONS].create_index("status")
    db[QUESTIONS].create_index("examName")
    db[SECURITY_INCIDENTS].create_index([("sessionId", ASCENDING), ("incidentType", ASCENDING)])
    db[MONITORING_LOGS].create_index("sessionId")


def get_db():
    return current_app.extensions["mongo_db"]


def collection(name):
    return get_db()[name]


# =====================================================
# HELPERS
# =====================================================
def utcnow():
    # pymongo hands back naive UTC datetimes, keep everything naive
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value):
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_json(value):
    """Convert a Mongo document (or anything nested in one) to JSON-safe data."""
    if isinstance(value, dict):
        out = {}
        for key, item in value.items():
            if key == "_id":
                out["id"] = str(item)
            else:
                out[key] = to_json(item)
        return out
    if isinstance(value, list):
        return [to_json(item) for item in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat() + "Z" if value.tzinfo is None else value.isoformat()
    return value
