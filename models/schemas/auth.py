from flask import current_app
from marshmallow import Schema, fields, pre_load, validates, validate, ValidationError

from models.one_time_code import PURPOSES


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def _check_password(value):
    min_length = current_app.config.get("PASSWORD_MIN_LENGTH", 8) if current_app else 8
    if len(value) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters long.")


class EmailSchema(Schema):
    email = fields.Email(required=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data, email=_norm_email(data["email"]))
        return data


class ResendCodeSchema(EmailSchema):
    purpose = fields.String(required=True, validate=validate.OneOf(PURPOSES))


class RegisterSchema(EmailSchema):
    password = fields.String(required=True, load_only=True)
    full_name = fields.String(allow_none=True, validate=validate.Length(max=255))

    @validates("password")
    def validate_password(self, value, **kwargs):
        _check_password(value)


class LoginSchema(Schema):
    # no format checks here; malformed input is just a failed login
    email = fields.String(required=True)
    password = fields.String(required=True, load_only=True)


class RefreshSchema(Schema):
    refresh_token = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class LogoutSchema(Schema):
    refresh_token = fields.String(load_only=True, allow_none=True)


class CodeSchema(Schema):
    code = fields.String(required=True, validate=validate.Regexp(r"^\d{4,16}$", error="Code must be numeric."))


class PasswordResetSchema(CodeSchema):
    new_password = fields.String(required=True, load_only=True)

    @validates("new_password")
    def validate_new_password(self, value, **kwargs):
        _check_password(value)


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    email = fields.String()
    full_name = fields.String(allow_none=True)
    is_verified = fields.Boolean()
    created_at = fields.DateTime(allow_none=True)
