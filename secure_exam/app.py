import logging
import os

from flask import Flask, jsonify
from flask_cors import CORS
from pymongo.errors import PyMongoError

from secure_exam.config import Config, resolve_jwt_secret
from secure_exam.database import get_db, init_db
from secure_exam.errors import register_error_handlers
from secure_exam.realtime import sock

# BLUEPRINTS
from secure_exam.routes.auth_routes import auth
from secure_exam.routes.hall_ticket_routes import hall_ticket
from secure_exam.routes.student_routes import student
from secure_exam.routes.identity_routes import identity
from secure_exam.routes.exam_routes import exam
from secure_exam.routes.question_routes import question
from secure_exam.routes.incident_routes import incident
from secure_exam.routes.result_routes import result


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    # =====================================================
    # LOGGING
    # =====================================================
    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(app.config["LOG_LEVEL"])

    app.config["JWT_SECRET"] = resolve_jwt_secret(app.config)

    CORS(app, origins=app.config["CORS_ORIGINS"])

    # =====================================================
    # DATABASE
    # =====================================================
    init_db(app)

    # =====================================================
    # BLUEPRINTS
    # =====================================================
    app.register_blueprint(auth, url_prefix="/api/admin")
    app.register_blueprint(hall_ticket, url_prefix="/api/hall-tickets")
    app.register_blueprint(student, url_prefix="/api/auth")
    app.register_blueprint(identity, url_prefix="/api")
    app.register_blueprint(exam, url_prefix="/api")
    app.register_blueprint(question, url_prefix="/api/questions")
    app.register_blueprint(incident, url_prefix="/api")
    app.register_blueprint(result, url_prefix="/api")

    register_error_handlers(app)

    # =====================================================
    # MONITORING CHANNEL (/ws)
    # =====================================================
    sock.init_app(app)

    # =====================================================
    # HEALTH CHECKS
    # =====================================================
    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    @app.route("/api/health")
    def api_health():
        response = {"backend": "ok", "database": "unavailable"}
        try:
            get_db().command("ping")
            response["database"] = "ok"
        except PyMongoError as e:
            response["database"] = f"error: {str(e)[:60]}"
        return jsonify(response)

    return app


# =====================================================
# LOCAL RUN
# =====================================================
if __name__ == "__main__":
    app = create_app()
    port = int(os.getenv("PORT", 5000))
    app.run(host="0.0.0.0", port=port, threaded=True)
