import re

from marshmallow import Schema, fields, pre_load, validates, validate, ValidationError

SPECIAL_CHARS = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


class UserCreateSchema(Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=100))
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = dict(data)
            if "email" in data:
                data["email"] = _norm_email(data["email"])
            if isinstance(data.get("name"), str):
                data["name"] = data["name"].strip()
        return data

    @validates("password")
    def validate_password(self, value, **kwargs):
        errors = []
        if len(value) < 6:
            errors.append("Password must be at least 6 characters long.")
        if not re.search(r"[A-Z]", value):
            errors.append("Password must contain at least one uppercase letter.")
        if not re.search(r"[0-9]", value):
            errors.append("Password must contain at least one number.")
        if not SPECIAL_CHARS.search(value):
            errors.append("Password must contain at least one special character.")
        if re.search(r"\s", value):
            errors.append("Password must not contain spaces.")
        if errors:
            raise ValidationError(errors)


class UserLoginSchema(Schema):
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = {**data, "email": _norm_email(data["email"])}
        return data


class SessionOutSchema(Schema):
    family = fields.String()
    created_at = fields.DateTime(data_key="createdAt")
    expires_at = fields.DateTime(data_key="expiresAt")
    ip_address = fields.String(allow_none=True, data_key="ipAddress")
    user_agent = fields.String(allow_none=True, data_key="userAgent")
