"""
Authentication blueprint (mounted at /api/v1/auth):
- POST /register
- POST /login
- POST /refresh-token   (alias: /refresh)
- POST /logout
- POST /logout-all
- POST /send-verification-email
- POST /resend-code
- GET|POST /verify-email
- POST /forgot-password
- POST /reset-password

Handlers only parse input, call services.auth and shape the response. The
refresh token travels in request and response bodies and is never logged.
"""
from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request
from marshmallow import ValidationError

from models.schemas.auth import (
    CodeSchema,
    EmailSchema,
    LoginSchema,
    LogoutSchema,
    PasswordResetSchema,
    RefreshSchema,
    RegisterSchema,
    ResendCodeSchema,
    UserOutSchema,
)
from services import auth as auth_service
from utils.decorators import jwt_required
from utils.errors import InvalidOrExpiredCode

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
email_schema = EmailSchema()
code_schema = CodeSchema()
password_reset_schema = PasswordResetSchema()
resend_code_schema = ResendCodeSchema()
user_out_schema = UserOutSchema()

# same body whether or not the address belongs to someone
CODE_SENT_MESSAGE = "If the address is registered, a code has been sent."


def _load_code_payload(schema, payload, status=None):
    """Load a body carrying a one-time code; a missing or malformed code is just a bad code."""
    try:
        return schema.load(payload)
    except ValidationError as err:
        if "code" in err.messages:
            raise InvalidOrExpiredCode(status=status) from err
        raise


@bp.post("/register")
def register():
    """
    Register a new user and open a session.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password]
          properties:
            email: { type: string, example: "test@example.com" }
            password: { type: string, example: "password123" }
            full_name: { type: string, example: "Nguyen Van A" }
    responses:
      200:
        description: Registered; returns access and refresh tokens
      400:
        description: Email already in use
      422:
        description: Validation error
    """
    data = register_schema.load(request.get_json(silent=True) or {})
    user, pair = auth_service.register(
        data["email"], data["password"], {"full_name": data.get("full_name")}
    )
    return jsonify({**pair.to_dict(), "user": user_out_schema.dump(user)}), 200


@bp.post("/login")
def login():
    """
    Login: return access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [email, password]
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      403:
        description: Invalid login credentials
    """
    data = login_schema.load(request.get_json(silent=True) or {})
    pair = auth_service.login(data["email"], data["password"])
    return jsonify(pair.to_dict()), 200


@bp.post("/refresh-token")
@bp.post("/refresh")
def refresh():
    """
    Exchange a refresh token for a new pair; the presented token is spent.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [refresh_token]
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: New access and refresh tokens
      403:
        description: Invalid refresh token
    """
    data = refresh_schema.load(request.get_json(silent=True) or {})
    pair = auth_service.refresh(data["refresh_token"])
    return jsonify(pair.to_dict()), 200


@bp.post("/logout")
def logout():
    """
    Logout: revokes the presented refresh token. Unknown tokens are ignored.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: Logged out
    """
    data = logout_schema.load(request.get_json(silent=True) or {})
    auth_service.logout(data.get("refresh_token"))
    return jsonify({"message": "Logged out"}), 200


@bp.post("/logout-all")
@jwt_required()
def logout_all(identity):
    """
    Revoke every session of the caller.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Sessions revoked
      401:
        description: Unauthorized
    """
    revoked = auth_service.logout_everywhere(identity.user_id)
    return jsonify({"message": "Logged out everywhere", "revoked": revoked}), 200


@bp.post("/send-verification-email")
def send_verification_email():
    """
    Send an email verification code.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [email]
           properties:
             email: { type: string }
    responses:
      200:
        description: Accepted; the body does not reveal whether the address exists
    """
    data = email_schema.load(request.get_json(silent=True) or {})
    auth_service.request_email_verification(data["email"])
    return jsonify({"message": CODE_SENT_MESSAGE}), 200


@bp.post("/resend-code")
def resend_code():
    """
    Send the current code again without issuing a new one.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [email, purpose]
           properties:
             email: { type: string }
             purpose: { type: string, enum: [email_verification, password_reset] }
    responses:
      200:
        description: Accepted; the body does not reveal whether the address exists
      503:
        description: A live code exists but the notification could not be sent
    """
    data = resend_code_schema.load(request.get_json(silent=True) or {})
    auth_service.resend_code(data["email"], data["purpose"])
    return jsonify({"message": CODE_SENT_MESSAGE}), 200


@bp.route("/verify-email", methods=["GET", "POST"])
def verify_email():
    """
    Verify the caller's email address with the code they received.
    ---
    tags:
      - Auth
    parameters:
      - in: query
        name: code
        type: string
        required: false
      - in: body
        name: body
        required: false
        schema:
          type: object
          properties:
            code: { type: string, example: "123456" }
    responses:
      200:
        description: Email verified
      400:
        description: Invalid or expired code
    """
    if request.method == "GET":
        payload = {"code": request.args.get("code") or request.args.get("otp")}
    else:
        payload = request.get_json(silent=True) or {}
    data = _load_code_payload(code_schema, payload)
    user = auth_service.confirm_email_verification(data["code"])
    return jsonify({"message": "Email successfully verified", "user": user_out_schema.dump(user)}), 200


@bp.post("/forgot-password")
def forgot_password():
    """
    Send a password reset code.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [email]
           properties:
             email: { type: string }
    responses:
      200:
        description: Accepted; the body does not reveal whether the address exists
    """
    data = email_schema.load(request.get_json(silent=True) or {})
    auth_service.request_password_reset(data["email"])
    return jsonify({"message": CODE_SENT_MESSAGE}), 200


@bp.post("/reset-password")
def reset_password():
    """
    Set a new password with a reset code; signs the user out everywhere.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [code, new_password]
           properties:
             code: { type: string }
             new_password: { type: string }
    responses:
      200:
        description: Password changed, all sessions revoked
      404:
        description: Invalid or expired code
    """
    data = _load_code_payload(password_reset_schema, request.get_json(silent=True) or {}, status=404)
    auth_service.confirm_password_reset(data["code"], data["new_password"])
    return jsonify({"message": "Password has been reset"}), 200
