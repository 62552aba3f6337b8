# secure_exam/routes/result_routes.py

from flask import Blueprint, jsonify, request

from secure_exam import storage
from secure_exam.database import to_json
from secure_exam.models.exam_session import COMPLETED, IN_PROGRESS
from secure_exam.utils.auth import admin_required

result = Blueprint("result", __name__)


# =====================================================
# HELPER: SCORE ONE SESSION
# =====================================================
def _normalize(answer):
    return str(answer).strip().lower() if answer is not None else ""


def _score_session(session, questions):
    answers = session.get("answers") or {}
    correct = 0
    marks = 0
    total_marks = 0

    for q in questions:
        weight = q.get("marks", 1)
        total_marks += weight
        given = answers.get(str(q["_id"]))
        if given is not None and _normalize(given) == _normalize(q["correctAnswer"]):
            correct += 1
            marks += weight

    return {
        "correctAnswers": correct,
        "totalQuestions": len(questions),
        "marksObtained": marks,
        "totalMarks": total_marks,
        "score": round(marks * 100 / total_marks, 2) if total_marks else 0,
    }


def _ticket_meta(hall_ticket_id):
    ticket = storage.get_hall_ticket(hall_ticket_id)
    if not ticket:
        return {"hallTicketCode": "", "examName": "", "studentName": "", "rollNumber": ""}
    return {
        "hallTicketCode": ticket["hallTicketId"],
        "examName": ticket["examName"],
        "studentName": ticket["studentName"],
        "rollNumber": ticket["rollNumber"],
    }


# =====================================================
# DASHBOARD COUNTERS
# =====================================================
@result.get("/exam-stats")
@admin_required
def exam_stats():
    active = storage.list_sessions({"status": IN_PROGRESS})

    progress = []
    for s in active:
        assigned = len(s.get("questionIds") or [])
        if assigned:
            progress.append(min(s.get("currentQuestion") or 1, assigned) * 100 / assigned)

    return jsonify({
        "activeStudents": len(active),
        "totalSessions": storage.count_sessions(),
        "securityAlerts": storage.count_unresolved_incidents(),
        "averageProgress": round(sum(progress) / len(progress)) if progress else 0,
    }), 200


# =====================================================
# RESULTS OF COMPLETED SESSIONS
# =====================================================
@result.get("/results")
@admin_required
def results():
    exam_name = request.args.get("examName", "").strip()
    rows = []

    for s in storage.list_sessions({"status": COMPLETED}):
        meta = _ticket_meta(s["hallTicketId"])
        if exam_name and meta["examName"] != exam_name:
            continue

        row = {
            "sessionId": str(s["_id"]),
            "hallTicketId": s["hallTicketId"],
            "studentId": s["studentId"],
            "startTime": s.get("startTime"),
            "endTime": s.get("endTime"),
            "autoSubmitted": s.get("autoSubmitted", False),
        }
        row.update(meta)
        row.update(_score_session(s, storage.questions_by_ids(s.get("questionIds") or [])))
        rows.append(to_json(row))

    return jsonify({"results": rows}), 200
