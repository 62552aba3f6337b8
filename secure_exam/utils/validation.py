# secure_exam/utils/validation.py
from flask import request


def parse_body(model):
    """Validate the JSON body against a pydantic model (ValidationError -> 400)."""
    return model.model_validate(request.get_json(silent=True) or {})
