# secure_exam/routes/identity_routes.py

from flask import Blueprint, g, jsonify

from secure_exam import identity_verifier
from secure_exam.errors import ApiError
from secure_exam.models.identity import DocumentCheck, IdentityVerificationRequest, StoreIdentityDocument
from secure_exam.session_manager import session_view
from secure_exam.utils.auth import admin_required
from secure_exam.utils.image_quality import QUALITY_POOR
from secure_exam.utils.validation import parse_body

identity = Blueprint("identity", __name__)


# =====================================================
# DOCUMENT QUALITY CHECK (BEFORE UPLOAD)
# =====================================================
@identity.post("/identity/check-document")
def check_document():
    data = parse_body(DocumentCheck)
    analysis = identity_verifier.check_document(data.image, data.fileName)
    status = 400 if analysis["quality"] == QUALITY_POOR else 200
    return jsonify(analysis), status


# =====================================================
# VERIFY IDENTITY (FAIL-OPEN)
# =====================================================
@identity.post("/verify-identity")
def verify_identity():
    data = parse_body(IdentityVerificationRequest)
    return jsonify(identity_verifier.verify_identity(data)), 200


# =====================================================
# STORE DOCUMENTS FOR MANUAL REVIEW
# =====================================================
@identity.post("/store-identity-document")
def store_identity_document():
    data = parse_body(StoreIdentityDocument)
    return jsonify(identity_verifier.store_identity_document(data)), 200


# =====================================================
# ADMIN: MANUAL VERIFICATION QUEUE
# =====================================================
@identity.get("/admin/manual-verifications")
@admin_required
def manual_verification_queue():
    sessions = identity_verifier.pending_reviews()
    return jsonify([session_view(s, include_documents=True) for s in sessions]), 200


@identity.post("/admin/manual-verifications/<session_id>/<decision>")
@admin_required
def review_verification(session_id, decision):
    if decision not in ("approve", "reject"):
        raise ApiError("Unknown decision", 404)
    session = identity_verifier.review(session_id, decision == "approve", g.admin["email"])
    return jsonify(session_view(session)), 200
