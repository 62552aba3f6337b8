# secure_exam/storage.py
"""
Persistence helpers over the Mongo collections.

Functions return raw documents (with ObjectId ``_id``); callers convert with
``database.to_json`` before answering a request.
"""
import json
import secrets
import string
from datetime import datetime, timezone

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument

from secure_exam.database import (
    USERS, HALL_TICKETS, EXAM_SESSIONS, QUESTIONS,
    SECURITY_INCIDENTS, MONITORING_LOGS,
    collection, utcnow, to_naive_utc,
)

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def _by_id(obj_id):
    if isinstance(obj_id, ObjectId):
        return {"_id": obj_id}
    if not obj_id or not ObjectId.is_valid(obj_id):
        return None
    return {"_id": ObjectId(obj_id)}


def _find_one_by_id(name, obj_id):
    query = _by_id(obj_id)
    if query is None:
        return None
    return collection(name).find_one(query)


# =====================================================
# USERS
# =====================================================
def get_user(user_id):
    return collection(USERS).find_one({"_id": user_id})


def student_user_id(roll_number):
    return f"student_{roll_number}"


def ensure_student_user(ticket):
    """Create the lightweight student user for a hall ticket if missing."""
    user_id = student_user_id(ticket["rollNumber"])
    if get_user(user_id):
        return user_id

    name_parts = ticket["studentName"].split(" ")
    now = utcnow()
    collection(USERS).update_one(
        {"_id": user_id},
        {
            "$setOnInsert": {
                "email": ticket["studentEmail"],
                "firstName": name_parts[0] or ticket["studentName"],
                "lastName": " ".join(name_parts[1:]),
                "role": "student",
                "createdAt": now,
            },
            "$set": {"updatedAt": now},
        },
        upsert=True,
    )
    return user_id


def ensure_admin_user(email):
    now = utcnow()
    collection(USERS).update_one(
        {"_id": email},
        {
            "$setOnInsert": {
                "email": email,
                "firstName": "Admin",
                "lastName": "User",
                "role": "admin",
                "createdAt": now,
            },
            "$set": {"updatedAt": now},
        },
        upsert=True,
    )


# =====================================================
# HALL TICKETS
# =====================================================
def generate_hall_ticket_code():
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(8))
    return f"HT{utcnow().year}{suffix}"


def build_qr_payload(hall_ticket_code, roll_number, exam_name):
    return json.dumps({
        "hallTicketId": hall_ticket_code,
        "rollNumber": roll_number,
        "examName": exam_name,
        "timestamp": int(datetime.now(timezone.utc).timestamp() * 1000),
    })


def create_hall_ticket(data, created_by):
    code = generate_hall_ticket_code()
    now = utcnow()
    doc = {
        "hallTicketId": code,
        "examName": data.examName,
        "examDate": to_naive_utc(data.examDate),
        "duration": data.duration,
        "totalQuestions": data.totalQuestions,
        "rollNumber": data.rollNumber,
        "studentName": data.studentName,
        "studentEmail": data.studentEmail,
        "studentIdBarcode": data.studentIdBarcode,
        "qrCodeData": build_qr_payload(code, data.rollNumber, data.examName),
        "isActive": True,
        "createdBy": created_by,
        "createdAt": now,
        "updatedAt": now,
    }
    doc["_id"] = collection(HALL_TICKETS).insert_one(doc).inserted_id
    return doc


def get_hall_ticket(ticket_id):
    return _find_one_by_id(HALL_TICKETS, ticket_id)


def get_hall_ticket_by_qr(qr_data):
    return collection(HALL_TICKETS).find_one({"qrCodeData": qr_data, "isActive": True})


def get_hall_ticket_by_code(hall_ticket_code):
    return collection(HALL_TICKETS).find_one({"hallTicketId": hall_ticket_code, "isActive": True})


def get_hall_ticket_by_code_and_roll(hall_ticket_code, roll_number):
    return collection(HALL_TICKETS).find_one({
        "hallTicketId": hall_ticket_code,
        "rollNumber": roll_number,
        "isActive": True,
    })


def list_hall_tickets(created_by):
    return list(collection(HALL_TICKETS).find({"createdBy": created_by}).sort("createdAt", DESCENDING))


def update_hall_ticket(ticket_id, updates):
    query = _by_id(ticket_id)
    if query is None:
        return None
    if "examDate" in updates:
        updates["examDate"] = to_naive_utc(updates["examDate"])
    updates["updatedAt"] = utcnow()
    return collection(HALL_TICKETS).find_one_and_update(
        query, {"$set": updates}, return_document=ReturnDocument.AFTER
    )


def delete_hall_ticket(ticket_id):
    """Hard delete, cascading to sessions and their incidents and logs."""
    ticket = get_hall_ticket(ticket_id)
    if not ticket:
        return False

    ticket_key = str(ticket["_id"])
    session_ids = [str(s["_id"]) for s in collection(EXAM_SESSIONS).find({"hallTicketId": ticket_key}, {"_id": 1})]
    if session_ids:
        collection(SECURITY_INCIDENTS).delete_many({"sessionId": {"$in": session_ids}})
        collection(MONITORING_LOGS).delete_many({"sessionId": {"$in": session_ids}})
    collection(EXAM_SESSIONS).delete_many({"hallTicketId": ticket_key})
    collection(HALL_TICKETS).delete_one({"_id": ticket["_id"]})
    return True


# =====================================================
# EXAM SESSIONS
# =====================================================
def get_session(session_id):
    return _find_one_by_id(EXAM_SESSIONS, session_id)


def get_session_by_student(student_id, hall_ticket_id):
    return collection(EXAM_SESSIONS).find_one({"studentId": student_id, "hallTicketId": hall_ticket_id})


def insert_session(doc):
    """Raises pymongo DuplicateKeyError when the student already has one."""
    now = utcnow()
    doc.setdefault("createdAt", now)
    doc.setdefault("updatedAt", now)
    doc["_id"] = collection(EXAM_SESSIONS).insert_one(doc).inserted_id
    return doc


def update_session(session_id, updates, extra_filter=None):
    query = _by_id(session_id)
    if query is None:
        return None
    if extra_filter:
        query.update(extra_filter)
    updates = dict(updates, updatedAt=utcnow())
    return collection(EXAM_SESSIONS).find_one_and_update(
        query, {"$set": updates}, return_document=ReturnDocument.AFTER
    )


def list_sessions(query=None):
    return list(collection(EXAM_SESSIONS).find(query or {}).sort("createdAt", DESCENDING))


def count_sessions(query=None):
    return collection(EXAM_SESSIONS).count_documents(query or {})


# =====================================================
# QUESTIONS
# =====================================================
def create_question(data):
    doc = data.model_dump()
    doc["createdAt"] = utcnow()
    doc["_id"] = collection(QUESTIONS).insert_one(doc).inserted_id
    return doc


def list_questions(exam_name=None):
    query = {"examName": exam_name} if exam_name else {}
    return list(collection(QUESTIONS).find(query).sort("createdAt", DESCENDING))


def questions_by_ids(question_ids):
    """Questions for the given ids, in the order of ``question_ids``."""
    oids = [ObjectId(q) for q in question_ids if ObjectId.is_valid(q)]
    found = {str(q["_id"]): q for q in collection(QUESTIONS).find({"_id": {"$in": oids}})}
    return [found[q] for q in question_ids if q in found]


def question_ids_for_exam(exam_name):
    return [str(q["_id"]) for q in collection(QUESTIONS).find({"examName": exam_name}, {"_id": 1})]


def all_question_ids():
    return [str(q["_id"]) for q in collection(QUESTIONS).find({}, {"_id": 1})]


def update_question(question_id, data):
    query = _by_id(question_id)
    if query is None:
        return None
    return collection(QUESTIONS).find_one_and_update(
        query,
        {"$set": dict(data.model_dump(), updatedAt=utcnow())},
        return_document=ReturnDocument.AFTER,
    )


def delete_question(question_id):
    query = _by_id(question_id)
    if query is None:
        return False
    return collection(QUESTIONS).delete_one(query).deleted_count == 1


# =====================================================
# SECURITY INCIDENTS
# =====================================================
def count_incidents(session_id, incident_type):
    return collection(SECURITY_INCIDENTS).count_documents({"sessionId": session_id, "incidentType": incident_type})


def insert_incident(doc):
    doc["_id"] = collection(SECURITY_INCIDENTS).insert_one(doc).inserted_id
    return doc


def list_incidents(session_id=None, unresolved_only=True):
    query = {}
    if session_id:
        query["sessionId"] = session_id
    elif unresolved_only:
        query["isResolved"] = False
    return list(collection(SECURITY_INCIDENTS).find(query).sort("createdAt", DESCENDING))


def count_unresolved_incidents():
    return collection(SECURITY_INCIDENTS).count_documents({"isResolved": False})


def resolve_incident(incident_id, resolved_by):
    query = _by_id(incident_id)
    if query is None:
        return None
    return collection(SECURITY_INCIDENTS).find_one_and_update(
        query,
        {"$set": {"isResolved": True, "resolvedBy": resolved_by, "resolvedAt": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )


# =====================================================
# MONITORING LOGS
# =====================================================
def insert_monitoring_log(session_id, event_type, event_data=None):
    doc = {
        "sessionId": session_id,
        "eventType": event_type,
        "eventData": event_data or {},
        "timestamp": utcnow(),
    }
    doc["_id"] = collection(MONITORING_LOGS).insert_one(doc).inserted_id
    return doc


def list_monitoring_logs(session_id):
    return list(collection(MONITORING_LOGS).find({"sessionId": session_id}).sort("timestamp", DESCENDING))
