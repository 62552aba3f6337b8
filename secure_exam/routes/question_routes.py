# secure_exam/routes/question_routes.py

from flask import Blueprint, jsonify, request

from secure_exam import storage
from secure_exam.database import to_json
from secure_exam.errors import ApiError
from secure_exam.models.question import QuestionCreate
from secure_exam.utils.auth import admin_required
from secure_exam.utils.validation import parse_body

question = Blueprint("question", __name__)


@question.post("")
@admin_required
def create_question():
    data = parse_body(QuestionCreate)
    return jsonify(to_json(storage.create_question(data))), 201


@question.get("")
@admin_required
def list_questions():
    exam_name = request.args.get("examName", "").strip() or None
    return jsonify(to_json(storage.list_questions(exam_name))), 200


@question.put("/<question_id>")
@admin_required
def update_question(question_id):
    data = parse_body(QuestionCreate)
    updated = storage.update_question(question_id, data)
    if not updated:
        raise ApiError("Question not found", 404)
    return jsonify(to_json(updated)), 200


@question.delete("/<question_id>")
@admin_required
def delete_question(question_id):
    if not storage.delete_question(question_id):
        raise ApiError("Question not found", 404)
    return jsonify({"success": True}), 200
