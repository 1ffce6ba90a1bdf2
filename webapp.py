import logging

from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from mail_senders import MailSender, build_mail_sender
from order_mail import (
    InvalidEmailError,
    OrderSubmission,
    build_order_email,
    extract_customer_email,
)
from settings import Settings, load_settings

logger = logging.getLogger(__name__)

INVALID_EMAIL_MESSAGE = "Invalid or missing customer email address."
INVALID_METHOD_MESSAGE = "Invalid request method. Only POST requests are accepted."
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."


def _envelope(success, message):
    # Every outcome is reported with HTTP 200; the frontend reads `success`.
    return jsonify({"success": success, "message": message}), 200


def create_app(settings: Settings | None = None, sender: MailSender | None = None) -> Flask:
    settings = settings or load_settings()
    sender = sender or build_mail_sender(settings)

    # ─── App setup ───────────────────────────────────────────────────────────
    app = Flask(__name__)
    CORS(
        app,
        origins="*",
        send_wildcard=True,
        methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )  # any origin may post the order form

    # ─── POST /submit ─────────────────────────────────────────────────────────
    # /mail.php is the path the published order forms still post to.
    @app.route("/submit", methods=["POST", "OPTIONS"])
    @app.route("/mail.php", methods=["POST", "OPTIONS"])
    def submit():
        if request.method == "OPTIONS":
            return "", 200

        submission = OrderSubmission.from_form(request.form)
        try:
            customer_email = extract_customer_email(submission.raw_customer_email)
        except InvalidEmailError as exc:
            logger.info("Rejected order submission: %s", exc)
            return _envelope(False, INVALID_EMAIL_MESSAGE)

        order_email = build_order_email(
            submission,
            customer_email,
            operator_email=settings.operator_email,
            from_email=settings.from_email,
            from_name=settings.from_name,
            title=settings.message_title,
        )
        result = sender.send(
            order_email.recipients,
            order_email.subject,
            order_email.body,
            order_email.headers,
        )
        return _envelope(result.ok, result.detail)

    # ─── Health check ─────────────────────────────────────────────────────────
    @app.route("/healthz")
    def healthz():
        return "OK", 200

    # ─── Error envelopes ──────────────────────────────────────────────────────
    @app.errorhandler(405)
    def method_not_allowed(_exc):
        return _envelope(False, INVALID_METHOD_MESSAGE)

    @app.errorhandler(Exception)
    def unexpected_error(exc):
        if isinstance(exc, HTTPException):
            return exc
        logger.exception("Order submission failed")
        return _envelope(False, UNKNOWN_ERROR_MESSAGE)

    return app
