from datetime import timedelta

from bson import ObjectId

from secure_exam import storage
from secure_exam.database import utcnow
from tests.conftest import create_question, create_ticket, start_session


def _seed_questions(admin_client, count=5, exam_name="Data Structures"):
    return [create_question(admin_client, exam_name=exam_name, text=f"{exam_name} Q{i}") for i in range(count)]


def _move_deadline(db, session_id, seconds_ago):
    db["exam_sessions"].update_one(
        {"_id": ObjectId(session_id)},
        {"$set": {"deadline": utcnow() - timedelta(seconds=seconds_ago)}},
    )


def test_create_starts_session(admin_client, client):
    questions = _seed_questions(admin_client)
    ticket = create_ticket(admin_client)

    session = start_session(client, ticket)

    assert session["status"] == "in_progress"
    assert session["studentId"] == "student_R1001"
    assert session["hallTicketId"] == ticket["id"]
    assert session["startTime"] is not None
    assert session["deadline"] is not None
    assert 3590 <= session["timeRemaining"] <= 3600
    assert len(session["questionIds"]) == 3
    assert set(session["questionIds"]) <= {q["id"] for q in questions}


def test_create_is_idempotent(admin_client, client):
    _seed_questions(admin_client)
    ticket = create_ticket(admin_client)

    first = start_session(client, ticket)
    second = start_session(client, ticket)

    assert second["id"] == first["id"]
    # questions are drawn once and never re-drawn
    assert second["questionIds"] == first["questionIds"]
    assert second["startTime"] == first["startTime"]


def test_concurrent_create_reuses_existing(admin_client, client, monkeypatch):
    ticket = create_ticket(admin_client)
    first = start_session(client, ticket)

    real = storage.get_session_by_student
    calls = []

    def lookup_misses_once(student_id, hall_ticket_id):
        calls.append(student_id)
        return None if len(calls) == 1 else real(student_id, hall_ticket_id)

    monkeypatch.setattr(storage, "get_session_by_student", lookup_misses_once)
    second = start_session(client, ticket)

    assert second["id"] == first["id"]
    assert len(calls) == 2


def test_questions_only_from_matching_exam(admin_client, client):
    _seed_questions(admin_client, count=3, exam_name="Algebra")
    mine = _seed_questions(admin_client, count=4)
    ticket = create_ticket(admin_client)

    session = start_session(client, ticket)
    assert set(session["questionIds"]) <= {q["id"] for q in mine}


def test_question_pool_falls_back_to_all(admin_client, client):
    others = _seed_questions(admin_client, count=2, exam_name="Algebra")
    ticket = create_ticket(admin_client, examName="Unlisted Exam")

    session = start_session(client, ticket)
    assert sorted(session["questionIds"]) == sorted(q["id"] for q in others)


def test_questions_hide_correct_answer(admin_client, client):
    _seed_questions(admin_client)
    ticket = create_ticket(admin_client)
    session = start_session(client, ticket)

    resp = client.get(f"/api/exam-sessions/{session['id']}/questions")
    assert resp.status_code == 200
    questions = resp.get_json()
    assert [q["id"] for q in questions] == session["questionIds"]
    assert all("correctAnswer" not in q for q in questions)
    assert questions[0]["options"] == ["A", "B", "C", "D"]


def test_unknown_session(client):
    assert client.get("/api/exam-sessions/64b000000000000000000000/questions").status_code == 404
    assert client.get("/api/exam-sessions/nope/questions").status_code == 404


def test_progress_update(admin_client, client):
    _seed_questions(admin_client)
    ticket = create_ticket(admin_client)
    session = start_session(client, ticket)
    qid = session["questionIds"][0]

    resp = client.patch(f"/api/exam-sessions/{session['id']}", json={
        "answers": {qid: "B"},
        "currentQuestion": 2,
        "timeRemaining": 3000,
    })
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["answers"] == {qid: "B"}
    assert body["currentQuestion"] == 2
    assert body["status"] == "in_progress"


def test_client_cannot_extend_time(admin_client, client, db):
    ticket = create_ticket(admin_client)
    session = start_session(client, ticket)

    resp = client.patch(f"/api/exam-sessions/{session['id']}", json={"timeRemaining": 99999})
    assert resp.status_code == 200
    stored = db["exam_sessions"].find_one({"_id": ObjectId(session["id"])})
    assert stored["timeRemaining"] <= 3600


def test_submit(admin_client, client):
    _seed_questions(admin_client)
    ticket = create_ticket(admin_client)
    session = start_session(client, ticket)
    answers = {session["questionIds"][0]: "B"}

    resp = client.post(f"/api/exam-sessions/{session['id']}/submit", json={"answers": answers})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["alreadySubmitted"] is False
    assert body["session"]["status"] == "completed"
    assert body["session"]["endTime"] is not None
    assert body["session"]["answers"] == answers
    assert body["session"]["timeRemaining"] == 0

    again = client.post(f"/api/exam-sessions/{session['id']}/submit", json={"answers": {}}).get_json()
    assert again["alreadySubmitted"] is True
    assert again["session"]["answers"] == answers


def test_patch_after_submit_conflicts(admin_client, client):
    ticket = create_ticket(admin_client)
    session = start_session(client, ticket)
    client.post(f"/api/exam-sessions/{session['id']}/submit", json={})

    resp = client.patch(f"/api/exam-sessions/{session['id']}", json={"currentQuestion": 2})
    assert resp.status_code == 409
    assert resp.get_json()["message"] == "Exam already submitted"


def test_submitted_status_is_normalized(admin_client, client):
    ticket = create_ticket(admin_client)
    session = start_session(client, ticket)

    resp = client.patch(f"/api/exam-sessions/{session['id']}", json={"status": "submitted", "answers": {}})
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "completed"

    resp = client.patch(f"/api/exam-sessions/{session['id']}", json={"status": "completed"})
    assert resp.status_code == 409


def test_unknown_status_rejected(admin_client, client):
    ticket = create_ticket(admin_client)
    session = start_session(client, ticket)
    resp = client.patch(f"/api/exam-sessions/{session['id']}", json={"status": "paused"})
    assert resp.status_code == 400


def test_deadline_auto_submits(admin_client, client, db):
    ticket = create_ticket(admin_client)
    session = start_session(client, ticket)
    _move_deadline(db, session["id"], seconds_ago=120)

    resp = admin_client.get(f"/api/exam-sessions/{session['id']}")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "completed"
    assert body["autoSubmitted"] is True
    assert body["studentName"] == "Asha"
    assert body["studentLastName"] == "Verma"

    # a completed session is returned as is, not restarted
    again = start_session(client, ticket)
    assert again["status"] == "completed"


def test_submit_within_grace_keeps_answers(admin_client, client, db):
    ticket = create_ticket(admin_client)
    session = start_session(client, ticket)
    _move_deadline(db, session["id"], seconds_ago=10)

    body = client.post(f"/api/exam-sessions/{session['id']}/submit", json={"answers": {"q": "A"}}).get_json()
    assert body["session"]["answers"] == {"q": "A"}
    assert body["session"]["autoSubmitted"] is False


def test_late_submit_ignores_answers(admin_client, client, db):
    ticket = create_ticket(admin_client)
    session = start_session(client, ticket)
    _move_deadline(db, session["id"], seconds_ago=120)

    body = client.post(f"/api/exam-sessions/{session['id']}/submit", json={"answers": {"q": "A"}}).get_json()
    assert body["session"]["status"] == "completed"
    assert body["session"]["answers"] == {}
    assert body["session"]["autoSubmitted"] is True


def test_admin_session_lists(admin_client, client):
    ticket = create_ticket(admin_client)
    other = create_ticket(admin_client, rollNumber="R1002", studentName="Ravi Kumar")
    s1 = start_session(client, ticket)
    start_session(client, other)
    client.post(f"/api/exam-sessions/{s1['id']}/submit", json={})

    all_sessions = admin_client.get("/api/exam-sessions").get_json()
    assert len(all_sessions) == 2

    active = admin_client.get("/api/active-sessions").get_json()
    assert [s["studentName"] for s in active] == ["Ravi"]

    assert client.get("/api/exam-sessions").status_code == 401


def test_admin_poll_in_grace_period_keeps_final_answers(admin_client, client, db):
    _seed_questions(admin_client)
    ticket = create_ticket(admin_client)
    session = start_session(client, ticket)
    qid = session["questionIds"][0]
    _move_deadline(db, session["id"], seconds_ago=2)

    active = admin_client.get("/api/active-sessions").get_json()
    assert [s["id"] for s in active] == [session["id"]]
    assert admin_client.get(f"/api/exam-sessions/{session['id']}").get_json()["status"] == "in_progress"

    body = client.post(f"/api/exam-sessions/{session['id']}/submit", json={"answers": {qid: "B"}}).get_json()
    assert body["alreadySubmitted"] is False
    assert body["session"]["answers"] == {qid: "B"}
    assert body["session"]["autoSubmitted"] is False
