import json

from tests.conftest import create_ticket


def _verify(client, **body):
    return client.post("/api/auth/verify-hall-ticket", json=body)


def test_manual_entry(admin_client, client):
    ticket = create_ticket(admin_client)

    resp = _verify(client, hallTicketId=ticket["hallTicketId"], rollNumber="R1001")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["valid"] is True
    assert body["hallTicket"]["id"] == ticket["id"]
    assert body["hallTicket"]["hasBarcode"] is False
    # no admin-only fields leak to students
    assert "qrCodeData" not in body["hallTicket"]
    assert "studentEmail" not in body["hallTicket"]


def test_manual_entry_wrong_roll(admin_client, client):
    ticket = create_ticket(admin_client)
    resp = _verify(client, hallTicketId=ticket["hallTicketId"], rollNumber="R9999")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Invalid details"


def test_qr_scan(admin_client, client):
    ticket = create_ticket(admin_client)
    resp = _verify(client, qrData=ticket["qrCodeData"], rollNumber="R1001")
    assert resp.status_code == 200
    assert resp.get_json()["hallTicket"]["hallTicketId"] == ticket["hallTicketId"]


def test_qr_reencoded_payload_still_matches(admin_client, client):
    ticket = create_ticket(admin_client)
    payload = json.loads(ticket["qrCodeData"])
    reencoded = json.dumps(payload, indent=2)

    resp = _verify(client, qrData=reencoded, rollNumber="R1001")
    assert resp.status_code == 200


def test_qr_roll_mismatch(admin_client, client):
    ticket = create_ticket(admin_client)
    resp = _verify(client, qrData=ticket["qrCodeData"], rollNumber="R0000")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Roll number mismatch"


def test_qr_unknown(client):
    resp = _verify(client, qrData="garbage", rollNumber="R1001")
    assert resp.status_code == 404
    assert resp.get_json()["message"] == "Invalid hall ticket"


def test_neither_field(client):
    resp = _verify(client, rollNumber="R1001")
    assert resp.status_code == 400


def test_barcode_match(admin_client, client):
    ticket = create_ticket(admin_client, studentIdBarcode="ID-778899")
    resp = client.post("/api/auth/verify-barcode", json={"hallTicketId": ticket["id"], "barcode": "ID-778899"})
    assert resp.status_code == 200
    assert resp.get_json() == {"valid": True}


def test_barcode_is_compared_exactly(admin_client, client):
    ticket = create_ticket(admin_client, studentIdBarcode="ID-778899")
    for wrong in ("id-778899", "ID-778899 ", "ID-77889"):
        resp = client.post("/api/auth/verify-barcode", json={"hallTicketId": ticket["id"], "barcode": wrong})
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Barcode does not match"


def test_barcode_not_registered(admin_client, client):
    ticket = create_ticket(admin_client)
    resp = client.post("/api/auth/verify-barcode", json={"hallTicketId": ticket["id"], "barcode": "X"})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "No barcode registered for this hall ticket"


def test_barcode_unknown_ticket(client):
    resp = client.post("/api/auth/verify-barcode", json={"hallTicketId": "64b000000000000000000000", "barcode": "X"})
    assert resp.status_code == 404
