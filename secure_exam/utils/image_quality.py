# secure_exam/utils/image_quality.py
import base64
import binascii

import cv2
import numpy as np

from secure_exam.errors import ApiError

ALLOWED_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}

# (min_width, min_height, min_ratio, max_ratio)
PRODUCTION_LIMITS = (400, 300, 1.3, 2.0)
DEVELOPMENT_LIMITS = (200, 150, 0.8, 3.0)

RECOMMENDED_SIZE = (800, 600)
BLUR_THRESHOLD = 15.0

QUALITY_GOOD = "good"
QUALITY_ACCEPTABLE = "acceptable"
QUALITY_POOR = "poor"

_face_cascade = None


# =====================================================
# DECODING
# =====================================================
def sniff_mime(raw):
    if raw.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if raw.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if raw[:4] == b"RIFF" and raw[8:12] == b"WEBP":
        return "image/webp"
    return None


def decode_image_payload(payload):
    """
    Split a data URL (or bare base64) into (mime_type, raw bytes).
    The mime type comes from the data URL header, else from magic bytes.
    """
    header, encoded = payload.split(",", 1) if "," in payload else (None, payload)
    try:
        raw = base64.b64decode(encoded, validate=False)
    except (binascii.Error, ValueError):
        raise ApiError("Image is not valid base64 data", 400)

    mime = None
    if header and header.startswith("data:"):
        mime = header[5:].split(";", 1)[0].lower() or None
    if mime is None:
        mime = sniff_mime(raw)
    return mime, raw


def validate_document(payload, max_bytes, file_name=None, max_name_length=100):
    """Hard gate on type, size and file name. Returns (mime, raw bytes)."""
    mime, raw = decode_image_payload(payload)
    if mime not in ALLOWED_MIME_TYPES:
        raise ApiError("Please upload a valid image file (JPEG, PNG, or WebP)", 400)
    if len(raw) > max_bytes:
        raise ApiError(f"File size must be less than {max_bytes // (1024 * 1024)}MB", 400)
    if file_name and len(file_name) > max_name_length:
        raise ApiError("File name is too long", 400)
    return mime, raw


def to_cv_image(raw):
    buf = np.frombuffer(raw, dtype=np.uint8)
    if buf.size == 0:
        return None
    return cv2.imdecode(buf, cv2.IMREAD_COLOR)


# =====================================================
# HEURISTICS
# =====================================================
def laplacian_variance(gray):
    return float(cv2.Laplacian(gray, cv2.CV_64F).var())


def analyze_document(raw, development=False):
    """
    Quality verdict for an ID document image.

    Returns a dict with ``quality`` (good / acceptable / poor), ``issues``
    and the decoded ``width`` and ``height``.
    """
    frame = to_cv_image(raw)
    if frame is None:
        return {"quality": QUALITY_POOR, "issues": ["Failed to analyze image"], "width": 0, "height": 0}

    height, width = frame.shape[:2]
    min_w, min_h, min_ratio, max_ratio = DEVELOPMENT_LIMITS if development else PRODUCTION_LIMITS
    issues = []
    quality = QUALITY_GOOD

    if width < min_w or height < min_h:
        if development:
            issues.append("Low resolution image (acceptable for testing)")
            quality = QUALITY_ACCEPTABLE
        else:
            issues.append("Image resolution is too low")
            quality = QUALITY_POOR
    elif width < RECOMMENDED_SIZE[0] or height < RECOMMENDED_SIZE[1]:
        issues.append("Consider using a higher resolution image")
        quality = QUALITY_ACCEPTABLE

    ratio = width / height
    if ratio < min_ratio or ratio > max_ratio:
        if development:
            issues.append("Aspect ratio is non-standard (acceptable for testing)")
        else:
            issues.append("Image aspect ratio doesn't match typical ID cards")
        if quality == QUALITY_GOOD:
            quality = QUALITY_ACCEPTABLE

    gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    if laplacian_variance(gray) < BLUR_THRESHOLD:
        issues.append("Image appears blurry")
        if quality == QUALITY_GOOD:
            quality = QUALITY_ACCEPTABLE

    return {"quality": quality, "issues": issues, "width": width, "height": height}


def _get_face_cascade():
    global _face_cascade
    if _face_cascade is None:
        _face_cascade = cv2.CascadeClassifier(
            cv2.data.haarcascades + "haarcascade_frontalface_default.xml"
        )
    return _face_cascade


def count_faces(raw):
    frame = to_cv_image(raw)
    if frame is None:
        return 0
    gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    faces = _get_face_cascade().detectMultiScale(gray, scaleFactor=1.1, minNeighbors=5, minSize=(60, 60))
    return len(faces)


def selfie_issues(raw):
    """Informational checks on the live photo; never blocks verification."""
    faces = count_faces(raw)
    if faces == 0:
        return ["No face detected in live photo"]
    if faces > 1:
        return ["Multiple faces detected in live photo"]
    return []
