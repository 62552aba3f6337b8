import base64
import uuid
from types import SimpleNamespace

import cv2
import mongomock
import numpy as np
import pytest
from werkzeug.security import generate_password_hash

from secure_exam.app import create_app

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "correct-horse"


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "APP_ENV": "development",
        "MONGO_CLIENT": mongomock.MongoClient(),
        "MONGO_DB_NAME": f"secure_exam_test_{uuid.uuid4().hex[:8]}",
        "JWT_SECRET": "test-secret",
        "ADMIN_EMAIL": ADMIN_EMAIL,
        "ADMIN_PASSWORD_HASH": generate_password_hash(ADMIN_PASSWORD),
        "OPENAI_API_KEY": None,
    })
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    c = app.test_client()
    resp = c.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200
    return c


@pytest.fixture
def db(app):
    with app.app_context():
        from secure_exam.database import get_db
        yield get_db()


# =====================================================
# DATA HELPERS
# =====================================================
def ticket_payload(**overrides):
    data = {
        "studentName": "Asha Verma",
        "studentEmail": "asha@example.com",
        "rollNumber": "R1001",
        "examName": "Data Structures",
        "examDate": "2026-11-02T09:00:00Z",
        "duration": 60,
        "totalQuestions": 3,
    }
    data.update(overrides)
    return data


def create_ticket(admin_client, **overrides):
    resp = admin_client.post("/api/hall-tickets", json=ticket_payload(**overrides))
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def create_question(admin_client, exam_name="Data Structures", text="Q?", correct="B", marks=1):
    resp = admin_client.post("/api/questions", json={
        "examName": exam_name,
        "questionText": text,
        "options": ["A", "B", "C", "D"],
        "correctAnswer": correct,
        "marks": marks,
    })
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def start_session(client, ticket):
    resp = client.post("/api/exam-sessions", json={"hallTicketId": ticket["id"]})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()


def image_data_url(width=420, height=260, noisy=True, ext=".png"):
    if noisy:
        frame = np.random.default_rng(0).integers(0, 256, (height, width, 3), dtype=np.uint8)
    else:
        frame = np.full((height, width, 3), 128, dtype=np.uint8)
    ok, buf = cv2.imencode(ext, frame)
    assert ok
    mime = "image/png" if ext == ".png" else "image/jpeg"
    return f"data:{mime};base64," + base64.b64encode(buf.tobytes()).decode("ascii")


# =====================================================
# OPENAI STUB
# =====================================================
class StubOpenAI:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])
