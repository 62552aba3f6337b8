# secure_exam/session_manager.py
"""
Exam session lifecycle: not_started -> in_progress -> completed.

One session exists per (student, hall ticket). Questions are drawn once and
never re-drawn; the deadline is enforced on the server whenever a session is
read or written.
"""
import logging
import random
from datetime import timedelta

from pymongo.errors import DuplicateKeyError

from secure_exam import storage
from secure_exam.database import utcnow, to_json
from secure_exam.errors import ApiError
from secure_exam.models.exam_session import NOT_STARTED, IN_PROGRESS, COMPLETED

log = logging.getLogger(__name__)

# answers posted this long after the deadline still count
SUBMIT_GRACE_SECONDS = 30


def active_ticket_or_400(hall_ticket_id):
    ticket = storage.get_hall_ticket(hall_ticket_id)
    if not ticket or not ticket.get("isActive"):
        raise ApiError("Invalid or inactive hall ticket", 400)
    return ticket


def find_or_insert_session(ticket, student_id):
    ticket_key = str(ticket["_id"])
    existing = storage.get_session_by_student(student_id, ticket_key)
    if existing:
        return existing

    doc = {
        "hallTicketId": ticket_key,
        "studentId": student_id,
        "status": NOT_STARTED,
        "questionIds": [],
        "answers": {},
        "currentQuestion": 1,
        "timeRemaining": ticket["duration"] * 60,
        "startTime": None,
        "endTime": None,
        "deadline": None,
        "isVerified": False,
        "verificationData": None,
    }
    try:
        return storage.insert_session(doc)
    except DuplicateKeyError:
        # lost the race against a concurrent request for the same student
        log.info("Session for %s / %s created concurrently, reusing it", student_id, ticket_key)
        return storage.get_session_by_student(student_id, ticket_key)


def pick_question_ids(ticket):
    pool = storage.question_ids_for_exam(ticket["examName"])
    if not pool:
        log.warning("No questions for exam %r, falling back to the full question bank", ticket["examName"])
        pool = storage.all_question_ids()
    return random.sample(pool, min(ticket["totalQuestions"], len(pool)))


def assign_questions(session, ticket):
    if session.get("questionIds"):
        return session

    chosen = pick_question_ids(ticket)
    if not chosen:
        return session

    updated = storage.update_session(
        session["_id"], {"questionIds": chosen}, extra_filter={"questionIds": {"$size": 0}}
    )
    # someone else assigned first; keep theirs
    return updated or storage.get_session(session["_id"])


def start_session(session, ticket):
    if session["status"] != NOT_STARTED:
        return session

    now = utcnow()
    updates = {
        "status": IN_PROGRESS,
        "startTime": now,
        "deadline": now + timedelta(minutes=ticket["duration"]),
        "currentQuestion": 1,
        "answers": {},
        "timeRemaining": ticket["duration"] * 60,
    }
    updated = storage.update_session(session["_id"], updates, extra_filter={"status": NOT_STARTED})
    return updated or storage.get_session(session["_id"])


def create_or_resume(hall_ticket_id):
    """Idempotent session creation for the student holding `hall_ticket_id`."""
    ticket = active_ticket_or_400(hall_ticket_id)
    student_id = storage.ensure_student_user(ticket)

    session = find_or_insert_session(ticket, student_id)
    session = expire_if_overdue(session)
    if session["status"] == COMPLETED:
        return session

    session = assign_questions(session, ticket)
    return start_session(session, ticket)


# =====================================================
# DEADLINE
# =====================================================
def seconds_left(session, now=None):
    deadline = session.get("deadline")
    if session["status"] != IN_PROGRESS or deadline is None:
        return session.get("timeRemaining")
    now = now or utcnow()
    return max(0, int((deadline - now).total_seconds()))


def past_grace(deadline, now=None):
    """True once the submit grace period after `deadline` has run out."""
    return deadline is not None and (now or utcnow()) > deadline + timedelta(seconds=SUBMIT_GRACE_SECONDS)


def expire_if_overdue(session):
    # the countdown submit may still be in flight during the grace period
    if session["status"] != IN_PROGRESS or not past_grace(session.get("deadline")):
        return session
    log.info("Session %s passed its deadline, auto-submitting", session["_id"])
    finalized, _ = finalize(session, answers=None, auto=True)
    return finalized


def finalize(session, answers=None, auto=False):
    """Mark the session completed. Returns (session, already_completed)."""
    updates = {
        "status": COMPLETED,
        "endTime": utcnow(),
        "timeRemaining": 0,
        "autoSubmitted": auto,
    }
    if answers is not None:
        updates["answers"] = answers

    updated = storage.update_session(session["_id"], updates, extra_filter={"status": {"$ne": COMPLETED}})
    if updated is None:
        return storage.get_session(session["_id"]), True
    return updated, False


# =====================================================
# STUDENT OPERATIONS
# =====================================================
def load_session(session_id):
    session = storage.get_session(session_id)
    if not session:
        raise ApiError("Exam session not found", 404)
    return expire_if_overdue(session)


def submit(session_id, answers=None):
    """Returns (session, already_submitted)."""
    session = storage.get_session(session_id)
    if not session:
        raise ApiError("Exam session not found", 404)
    if session["status"] == COMPLETED:
        return session, True

    late = past_grace(session.get("deadline"))
    if late:
        log.warning("Late submission for session %s ignored answers", session["_id"])

    return finalize(session, answers=None if late else answers, auto=late)


def update_progress(session_id, progress):
    if progress.status in ("completed", "submitted"):
        session, already = submit(session_id, progress.answers)
        if already:
            raise ApiError("Exam already submitted", 409)
        return session

    session = load_session(session_id)
    if session["status"] == COMPLETED:
        raise ApiError("Exam already submitted", 409)

    if session["status"] == NOT_STARTED:
        ticket = active_ticket_or_400(session["hallTicketId"])
        session = start_session(assign_questions(session, ticket), ticket)

    updates = {}
    if progress.answers is not None:
        updates["answers"] = progress.answers
    if progress.currentQuestion is not None:
        updates["currentQuestion"] = progress.currentQuestion
    if progress.timeRemaining is not None:
        # client countdown can't extend the server deadline
        updates["timeRemaining"] = min(progress.timeRemaining, seconds_left(session))
    if not updates:
        return session

    updated = storage.update_session(session["_id"], updates, extra_filter={"status": IN_PROGRESS})
    if updated is None:
        raise ApiError("Exam already submitted", 409)
    return updated


def questions_for_student(session_id):
    session = load_session(session_id)
    ids = session.get("questionIds") or []
    return [
        {
            "id": str(q["_id"]),
            "questionText": q["questionText"],
            "options": q.get("options", []),
            "questionType": q.get("questionType"),
            "marks": q.get("marks", 1),
        }
        for q in storage.questions_by_ids(ids)
    ]


def session_view(session, include_documents=False):
    """JSON-ready session with a live `timeRemaining`."""
    view = to_json(session)
    view["timeRemaining"] = seconds_left(session)
    verification = view.get("verificationData")
    if verification and not include_documents:
        view["verificationData"] = {
            k: v for k, v in verification.items() if k not in ("documentImage", "selfieImage")
        }
    return view
