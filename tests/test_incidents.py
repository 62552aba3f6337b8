from tests.conftest import create_ticket, start_session


def _incident(client, session_id, incident_type="multiple_faces", **extra):
    body = {"sessionId": session_id, "incidentType": incident_type, "severity": "high",
            "description": "Two faces in frame"}
    body.update(extra)
    return client.post("/api/security-incidents", json=body)


def test_record_incident(admin_client, client):
    session = start_session(client, create_ticket(admin_client))

    resp = _incident(client, session["id"], metadata={"faces": 2})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["isResolved"] is False
    assert body["severity"] == "high"
    assert body["metadata"] == {"faces": 2, "warningCount": 1}

    second = _incident(client, session["id"]).get_json()
    assert second["metadata"]["warningCount"] == 2
    # counted per type
    other = _incident(client, session["id"], incident_type="tab_switch").get_json()
    assert other["metadata"]["warningCount"] == 1


def test_incident_limit(app, admin_client, client, db):
    app.config["MAX_INCIDENTS_PER_TYPE"] = 2
    session = start_session(client, create_ticket(admin_client))

    assert _incident(client, session["id"]).status_code == 201
    assert _incident(client, session["id"]).status_code == 201
    resp = _incident(client, session["id"])
    assert resp.status_code == 429
    assert resp.get_json()["message"] == "Incident limit reached"
    assert db["security_incidents"].count_documents({}) == 2

    assert _incident(client, session["id"], incident_type="looking_away").status_code == 201


def test_incident_for_unknown_session(client):
    assert _incident(client, "64b000000000000000000000").status_code == 404


def test_invalid_severity(admin_client, client):
    session = start_session(client, create_ticket(admin_client))
    assert _incident(client, session["id"], severity="extreme").status_code == 400


def test_admin_lists_and_resolves(admin_client, client):
    s1 = start_session(client, create_ticket(admin_client))
    s2 = start_session(client, create_ticket(admin_client, rollNumber="R1002"))
    first = _incident(client, s1["id"]).get_json()
    _incident(client, s2["id"])

    assert client.get("/api/security-incidents").status_code == 401
    assert len(admin_client.get("/api/security-incidents").get_json()) == 2

    resp = admin_client.patch(f"/api/security-incidents/{first['id']}/resolve")
    assert resp.status_code == 200
    resolved = resp.get_json()
    assert resolved["isResolved"] is True
    assert resolved["resolvedBy"] == "admin@example.com"
    assert resolved["resolvedAt"].endswith("Z")

    unresolved = admin_client.get("/api/security-incidents").get_json()
    assert [i["sessionId"] for i in unresolved] == [s2["id"]]

    # session filter includes resolved ones
    by_session = admin_client.get(f"/api/security-incidents?sessionId={s1['id']}").get_json()
    assert [i["id"] for i in by_session] == [first["id"]]

    assert admin_client.patch("/api/security-incidents/nope/resolve").status_code == 404


def test_monitoring_logs(admin_client, client):
    session = start_session(client, create_ticket(admin_client))

    resp = client.post("/api/monitoring-logs", json={
        "sessionId": session["id"],
        "eventType": "face_detected",
        "eventData": {"faces": 1},
    })
    assert resp.status_code == 201
    assert resp.get_json()["eventData"] == {"faces": 1}

    logs = admin_client.get(f"/api/exam-sessions/{session['id']}/monitoring-logs").get_json()
    assert [log["eventType"] for log in logs] == ["face_detected"]

    missing = client.post("/api/monitoring-logs", json={"sessionId": "64b000000000000000000000", "eventType": "x"})
    assert missing.status_code == 404
