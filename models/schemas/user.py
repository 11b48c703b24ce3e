import re

from marshmallow import Schema, fields, pre_load, validate, validates, ValidationError

from models.user import Role, normalize_email

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
PHONE_PATTERN = r"^[+]?[(]?[0-9]{1,4}[)]?[-\s.]?[(]?[0-9]{1,4}[)]?[-\s.]?[0-9]{1,9}$"


def _check_password(value):
    if len(value) < 8:
        raise ValidationError("Password must be at least 8 characters long.")
    if not PASSWORD_PATTERN.match(value):
        raise ValidationError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number."
        )


class _NormalizedEmailMixin:
    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data, email=normalize_email(data["email"]))
        return data


class _StrippedNameMixin:
    @pre_load
    def strip_name(self, data, **kwargs):
        if isinstance(data, dict) and isinstance(data.get("full_name"), str):
            data = dict(data, full_name=data["full_name"].strip())
        return data


class SignupSchema(_NormalizedEmailMixin, _StrippedNameMixin, Schema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)
    full_name = fields.String(required=True, validate=validate.Length(min=2, max=100))
    role = fields.Enum(Role, by_value=True, load_default=None)
    phone_number = fields.String(
        load_default=None,
        validate=validate.Regexp(PHONE_PATTERN, error="Please provide a valid phone number."),
    )

    @validates("password")
    def validate_password(self, value, **kwargs):
        _check_password(value)


class LoginSchema(_NormalizedEmailMixin, Schema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class RefreshSchema(Schema):
    refresh_token = fields.String(required=True, validate=validate.Length(min=1))


class LogoutSchema(Schema):
    refresh_token = fields.String(load_default=None, allow_none=True)


class ChangePasswordSchema(Schema):
    current_password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))
    new_password = fields.String(required=True, load_only=True)

    @validates("new_password")
    def validate_new_password(self, value, **kwargs):
        _check_password(value)


class ProfileUpdateSchema(_StrippedNameMixin, Schema):
    full_name = fields.String(allow_none=True, validate=validate.Length(min=2, max=100))
    phone_number = fields.String(
        allow_none=True,
        validate=validate.Regexp(PHONE_PATTERN, error="Please provide a valid phone number."),
    )


class RoleUpdateSchema(Schema):
    role = fields.Enum(Role, by_value=True, required=True)


class StatusUpdateSchema(Schema):
    is_active = fields.Boolean(required=True)


class UserOutSchema(Schema):
    id = fields.String()
    email = fields.String()
    full_name = fields.String()
    role = fields.Enum(Role, by_value=True)
    phone_number = fields.String(allow_none=True)
    is_active = fields.Boolean()
    email_verified = fields.Boolean()
    created_at = fields.DateTime()
