# secure_exam/ai_verification.py
import json
import logging

from openai import OpenAI

from secure_exam.utils.name_matching import name_similarity

log = logging.getLogger(__name__)

NAME_MATCH_THRESHOLD = 0.7
DEFAULT_CONFIDENCE = 0.8

SYSTEM_PROMPT = """You are a fast ID verification system. Analyze both images simultaneously:
1. Extract name from the ID document
2. Check if the person in both images is the same
3. Validate document authenticity

Return this JSON structure:
{
  "name": "extracted name from ID",
  "documentType": "type of document",
  "isValidDocument": boolean,
  "faceMatch": boolean,
  "overallConfidence": number (0-1),
  "passed": boolean,
  "reason": "brief explanation"
}"""


class AIVerificationError(Exception):
    pass


def _get_client(api_key):
    return OpenAI(api_key=api_key)


def _as_data_url(image):
    if image.startswith("data:"):
        return image
    return f"data:image/jpeg;base64,{image}"


def verify_id_document(id_card_image, selfie_image, expected_name, expected_id_number=None,
                       api_key=None, model="gpt-4o", client=None):
    """
    Ask the vision model whether the ID card and the selfie show the same
    person named `expected_name`. Provider errors propagate to the caller.
    """
    client = client or _get_client(api_key)
    response = client.chat.completions.create(
        model=model,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {
                        "type": "text",
                        "text": (
                            "Quick verification needed:\n"
                            "1. Extract the name from the ID document\n"
                            "2. Check if the faces match between ID and selfie\n"
                            f'3. Expected name should be: "{expected_name}"\n\n'
                            "Return pass/fail decision."
                        ),
                    },
                    {"type": "image_url", "image_url": {"url": _as_data_url(id_card_image)}},
                    {"type": "image_url", "image_url": {"url": _as_data_url(selfie_image)}},
                ],
            },
        ],
        response_format={"type": "json_object"},
        max_tokens=500,
    )

    content = response.choices[0].message.content or "{}"
    try:
        result = json.loads(content)
    except json.JSONDecodeError as e:
        raise AIVerificationError(f"Unparsable verification reply: {content[:80]}") from e
    if not isinstance(result, dict):
        raise AIVerificationError("Verification reply is not a JSON object")

    return interpret_result(result, expected_name, expected_id_number)


def interpret_result(result, expected_name, expected_id_number=None):
    """Turn the model's JSON into the verification result sent to students."""
    reasons = []
    is_valid = bool(result.get("passed", False))

    extracted = result.get("name")
    if extracted and expected_name:
        similarity = name_similarity(extracted.lower(), expected_name.lower())
        if similarity < NAME_MATCH_THRESHOLD:
            is_valid = False
            reasons.append(f'Name mismatch: Expected "{expected_name}", found "{extracted}"')

    if result.get("reason"):
        reasons.append(result["reason"])

    if not is_valid and result.get("passed"):
        reasons.append("Failed name verification despite face match")

    confidence = result.get("overallConfidence") or DEFAULT_CONFIDENCE
    log.debug("AI verification for %r: valid=%s confidence=%s", expected_name, is_valid, confidence)

    return {
        "isValid": is_valid,
        "confidence": confidence,
        "extractedData": {
            "name": extracted,
            "documentType": result.get("documentType"),
            "idNumber": expected_id_number,
            "dateOfBirth": None,
        },
        "faceMatch": {
            "matches": bool(result.get("faceMatch", False)),
            "confidence": confidence,
        },
        "reasons": reasons or ["Verification completed"],
    }
