# secure_exam/routes/hall_ticket_routes.py

from flask import Blueprint, current_app, g, jsonify

from secure_exam import storage
from secure_exam.database import to_json
from secure_exam.errors import ApiError
from secure_exam.models.hall_ticket import HallTicketCreate, HallTicketUpdate
from secure_exam.utils.auth import admin_required
from secure_exam.utils.qr import qr_data_url
from secure_exam.utils.validation import parse_body

hall_ticket = Blueprint("hall_ticket", __name__)


def _ticket_or_404(ticket_id):
    ticket = storage.get_hall_ticket(ticket_id)
    if not ticket:
        raise ApiError("Hall ticket not found", 404)
    return ticket


# =====================================================
# CREATE HALL TICKET
# =====================================================
@hall_ticket.post("")
@admin_required
def create_hall_ticket():
    data = parse_body(HallTicketCreate)
    ticket = storage.create_hall_ticket(data, created_by=g.admin["email"])
    current_app.logger.info("Hall ticket %s issued for roll %s", ticket["hallTicketId"], ticket["rollNumber"])
    return jsonify(to_json(ticket)), 201


# =====================================================
# LIST (ONLY LOGGED-IN ADMIN'S TICKETS)
# =====================================================
@hall_ticket.get("")
@admin_required
def list_hall_tickets():
    tickets = storage.list_hall_tickets(g.admin["email"])
    return jsonify(to_json(tickets)), 200


@hall_ticket.get("/<ticket_id>")
@admin_required
def get_hall_ticket(ticket_id):
    return jsonify(to_json(_ticket_or_404(ticket_id))), 200


# =====================================================
# UPDATE / SOFT DISABLE
# =====================================================
@hall_ticket.patch("/<ticket_id>")
@admin_required
def update_hall_ticket(ticket_id):
    _ticket_or_404(ticket_id)
    updates = parse_body(HallTicketUpdate).model_dump(exclude_unset=True)
    ticket = storage.update_hall_ticket(ticket_id, updates)
    return jsonify(to_json(ticket)), 200


# =====================================================
# QR CODE IMAGE
# =====================================================
@hall_ticket.get("/<ticket_id>/qr")
@admin_required
def hall_ticket_qr(ticket_id):
    ticket = _ticket_or_404(ticket_id)
    return jsonify({"qrCodeUrl": qr_data_url(ticket["qrCodeData"], width=300, margin=2)}), 200


# =====================================================
# HARD DELETE (CASCADES TO SESSIONS)
# =====================================================
@hall_ticket.delete("/<ticket_id>")
@admin_required
def delete_hall_ticket(ticket_id):
    if not storage.delete_hall_ticket(ticket_id):
        raise ApiError("Hall ticket not found", 404)
    current_app.logger.info("Hall ticket %s deleted by %s", ticket_id, g.admin["email"])
    return jsonify({"success": True}), 200
