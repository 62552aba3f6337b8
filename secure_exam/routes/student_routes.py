# secure_exam/routes/student_routes.py

import json

from flask import Blueprint, jsonify

from secure_exam import storage
from secure_exam.database import to_json
from secure_exam.errors import ApiError
from secure_exam.models.identity import BarcodeCheck, HallTicketCheck
from secure_exam.utils.validation import parse_body

student = Blueprint("student", __name__)


def _public_ticket(ticket):
    """The part of a hall ticket a student may see."""
    return to_json({
        "id": str(ticket["_id"]),
        "hallTicketId": ticket["hallTicketId"],
        "examName": ticket["examName"],
        "studentName": ticket["studentName"],
        "rollNumber": ticket["rollNumber"],
        "examDate": ticket["examDate"],
        "duration": ticket["duration"],
        "totalQuestions": ticket["totalQuestions"],
        "hasBarcode": bool(ticket.get("studentIdBarcode")),
    })


def _ticket_from_qr(qr_data):
    ticket = storage.get_hall_ticket_by_qr(qr_data)
    if ticket:
        return ticket
    # a re-encoded QR payload still carries the ticket code
    try:
        payload = json.loads(qr_data)
    except ValueError:
        return None
    if isinstance(payload, dict) and payload.get("hallTicketId"):
        return storage.get_hall_ticket_by_code(str(payload["hallTicketId"]))
    return None


# =====================================================
# VERIFY HALL TICKET (QR OR MANUAL ENTRY)
# =====================================================
@student.post("/verify-hall-ticket")
def verify_hall_ticket():
    data = parse_body(HallTicketCheck)

    if data.hallTicketId:
        ticket = storage.get_hall_ticket_by_code_and_roll(data.hallTicketId, data.rollNumber)
        if not ticket:
            raise ApiError("Invalid details", 400)
    elif data.qrData:
        ticket = _ticket_from_qr(data.qrData)
        if not ticket:
            raise ApiError("Invalid hall ticket", 404)
        if ticket["rollNumber"] != data.rollNumber:
            raise ApiError("Roll number mismatch", 400)
    else:
        raise ApiError("Either QR data or hall ticket ID is required", 400)

    return jsonify({"valid": True, "hallTicket": _public_ticket(ticket)}), 200


# =====================================================
# ID CARD BARCODE GATE
# =====================================================
@student.post("/verify-barcode")
def verify_barcode():
    data = parse_body(BarcodeCheck)

    ticket = storage.get_hall_ticket(data.hallTicketId)
    if not ticket or not ticket.get("isActive"):
        raise ApiError("Hall ticket not found", 404)

    expected = ticket.get("studentIdBarcode")
    if not expected:
        raise ApiError("No barcode registered for this hall ticket", 400)

    # exact comparison, no normalisation
    if data.barcode.encode("utf-8") != expected.encode("utf-8"):
        raise ApiError("Barcode does not match", 400)

    return jsonify({"valid": True}), 200
