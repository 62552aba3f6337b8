# secure_exam/identity_verifier.py
"""
Identity verification with a fail-open policy.

A student is never blocked because the AI provider is missing or failing:

* no API key configured  -> soft pass, confidence 0.75, manual review
* provider call fails    -> soft pass, confidence 0.5, manual review
* provider call succeeds -> the provider's verdict is returned as is

Only the local quality gate on the document image can reject a request
before any network call.
"""
import logging

from flask import current_app
from pymongo.errors import PyMongoError

from secure_exam import ai_verification, storage
from secure_exam.config import is_production
from secure_exam.database import utcnow
from secure_exam.errors import ApiError
from secure_exam.session_manager import find_or_insert_session
from secure_exam.utils.image_quality import (
    QUALITY_POOR, analyze_document, decode_image_payload, selfie_issues, validate_document,
)

log = logging.getLogger(__name__)

NO_KEY_CONFIDENCE = 0.75
PROVIDER_FAILURE_CONFIDENCE = 0.5

PENDING_MANUAL_REVIEW = "pending_manual_review"
AI_VERIFIED = "ai_verified"
AI_REJECTED = "ai_rejected"
APPROVED = "approved"
REJECTED = "rejected"


# =====================================================
# LOCAL QUALITY GATE
# =====================================================
def check_document(image, file_name=None):
    config = current_app.config
    _, raw = validate_document(
        image,
        max_bytes=config["MAX_DOCUMENT_BYTES"],
        file_name=file_name,
        max_name_length=config["MAX_FILENAME_LENGTH"],
    )
    return analyze_document(raw, development=not is_production(config))


def require_usable_document(image, file_name=None):
    analysis = check_document(image, file_name)
    if analysis["quality"] == QUALITY_POOR:
        raise ApiError(
            "Please upload a clearer image. Issues: " + ", ".join(analysis["issues"]),
            400,
            {"quality": analysis["quality"], "issues": analysis["issues"]},
        )
    return analysis


def live_photo_issues(selfie_image):
    try:
        _, raw = decode_image_payload(selfie_image)
    except ApiError:
        return ["Live photo could not be analyzed"]
    return selfie_issues(raw)


# =====================================================
# PERSISTENCE (never raises)
# =====================================================
def _attach_verification(hall_ticket_id, verification, is_verified):
    try:
        ticket = storage.get_hall_ticket(hall_ticket_id)
        if not ticket:
            log.warning("Hall ticket %s not found, continuing without storing verification", hall_ticket_id)
            return False

        student_id = storage.ensure_student_user(ticket)
        session = find_or_insert_session(ticket, student_id)
        storage.update_session(session["_id"], {
            "verificationData": verification,
            "isVerified": is_verified,
        })
        log.info("Stored verification (%s) for hall ticket %s in session %s",
                 verification["status"], ticket["hallTicketId"], session["_id"])
        return True
    except PyMongoError:
        log.exception("Error storing identity verification (non-fatal)")
        return False


def store_for_manual_review(hall_ticket_id, document_image, selfie_image=None, reason=""):
    return _attach_verification(hall_ticket_id, {
        "status": PENDING_MANUAL_REVIEW,
        "documentImage": document_image,
        "selfieImage": selfie_image,
        "reason": reason,
        "submittedAt": utcnow(),
    }, is_verified=False)


def _soft_pass(confidence, reason, stored, issues):
    return {
        "isValid": True,
        "confidence": confidence,
        "requiresManualReview": True,
        "stored": stored,
        "extractedData": {},
        "faceMatch": {"matches": False, "confidence": 0},
        "reasons": [reason],
        "qualityIssues": issues,
    }


# =====================================================
# VERIFICATION
# =====================================================
def verify_identity(req):
    analysis = require_usable_document(req.idCardImage, req.fileName)
    issues = analysis["issues"] + live_photo_issues(req.selfieImage)

    config = current_app.config
    api_key = config.get("OPENAI_API_KEY")
    if not api_key:
        log.info("No AI key configured, saving documents of %s for manual review", req.hallTicketId)
        stored = store_for_manual_review(
            req.hallTicketId, req.idCardImage, req.selfieImage,
            reason="AI verification not configured",
        )
        return _soft_pass(
            NO_KEY_CONFIDENCE,
            "Documents received. Your identity will be reviewed by an administrator.",
            stored, issues,
        )

    try:
        result = ai_verification.verify_id_document(
            req.idCardImage, req.selfieImage, req.expectedName, req.expectedIdNumber,
            api_key=api_key, model=config["OPENAI_MODEL"],
        )
    except Exception as e:
        # any provider failure falls back to manual review
        log.warning("AI verification failed for %s: %s", req.hallTicketId, e)
        stored = store_for_manual_review(
            req.hallTicketId, req.idCardImage, req.selfieImage,
            reason=f"AI verification failed: {e}",
        )
        return _soft_pass(
            PROVIDER_FAILURE_CONFIDENCE,
            "Automatic verification is unavailable. Documents saved for manual review.",
            stored, issues,
        )

    _attach_verification(req.hallTicketId, {
        "status": AI_VERIFIED if result["isValid"] else AI_REJECTED,
        "confidence": result["confidence"],
        "extractedData": result["extractedData"],
        "faceMatch": result["faceMatch"],
        "reasons": result["reasons"],
        "submittedAt": utcnow(),
    }, is_verified=result["isValid"])

    result["requiresManualReview"] = False
    result["qualityIssues"] = issues
    return result


def store_identity_document(req):
    stored = store_for_manual_review(
        req.hallTicketId, req.documentImage, req.selfieImage,
        reason="Submitted for manual verification",
    )
    return {"success": True, "stored": stored}


# =====================================================
# ADMIN REVIEW
# =====================================================
def pending_reviews():
    return storage.list_sessions({
        "verificationData.status": PENDING_MANUAL_REVIEW,
        "isVerified": {"$ne": True},
    })


def review(session_id, approve, reviewer):
    session = storage.get_session(session_id)
    if not session:
        raise ApiError("Exam session not found", 404)

    verification = session.get("verificationData") or {}
    if verification.get("status") != PENDING_MANUAL_REVIEW:
        raise ApiError("No pending manual verification for this session", 409)

    verification = dict(
        verification,
        status=APPROVED if approve else REJECTED,
        reviewedBy=reviewer,
        reviewedAt=utcnow(),
    )
    return storage.update_session(session["_id"], {
        "verificationData": verification,
        "isVerified": approve,
    })
