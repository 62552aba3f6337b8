# secure_exam/routes/exam_routes.py

from flask import Blueprint, jsonify

from secure_exam import session_manager, storage
from secure_exam.models.exam_session import ExamSessionCreate, ExamSessionProgress, ExamSubmit, IN_PROGRESS
from secure_exam.session_manager import session_view
from secure_exam.utils.auth import admin_required
from secure_exam.utils.validation import parse_body

exam = Blueprint("exam", __name__)


def _with_student(session):
    view = session_view(session)
    user = storage.get_user(session["studentId"]) or {}
    view["studentName"] = user.get("firstName")
    view["studentLastName"] = user.get("lastName")
    view["studentEmail"] = user.get("email")
    return view


# =====================================================
# CREATE OR RESUME SESSION (STUDENT, VIA HALL TICKET)
# =====================================================
@exam.post("/exam-sessions")
def create_exam_session():
    data = parse_body(ExamSessionCreate)
    session = session_manager.create_or_resume(data.hallTicketId)
    return jsonify(session_view(session)), 200


# =====================================================
# ADMIN VIEWS
# =====================================================
@exam.get("/exam-sessions")
@admin_required
def list_exam_sessions():
    sessions = [session_manager.expire_if_overdue(s) for s in storage.list_sessions()]
    return jsonify([_with_student(s) for s in sessions]), 200


@exam.get("/active-sessions")
@admin_required
def active_sessions():
    sessions = [session_manager.expire_if_overdue(s) for s in storage.list_sessions({"status": IN_PROGRESS})]
    return jsonify([_with_student(s) for s in sessions if s["status"] == IN_PROGRESS]), 200


@exam.get("/exam-sessions/<session_id>")
@admin_required
def get_exam_session(session_id):
    session = session_manager.load_session(session_id)
    return jsonify(_with_student(session)), 200


# =====================================================
# STUDENT PROGRESS
# =====================================================
@exam.get("/exam-sessions/<session_id>/questions")
def session_questions(session_id):
    return jsonify(session_manager.questions_for_student(session_id)), 200


@exam.patch("/exam-sessions/<session_id>")
def update_exam_session(session_id):
    progress = parse_body(ExamSessionProgress)
    session = session_manager.update_progress(session_id, progress)
    return jsonify(session_view(session)), 200


@exam.post("/exam-sessions/<session_id>/submit")
def submit_exam(session_id):
    data = parse_body(ExamSubmit)
    session, already = session_manager.submit(session_id, data.answers)
    return jsonify({
        "success": True,
        "message": "Exam already submitted" if already else "Exam submitted successfully",
        "alreadySubmitted": already,
        "session": session_view(session),
    }), 200
