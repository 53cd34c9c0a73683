from marshmallow import Schema, fields, pre_load, validate, validates, ValidationError

from models.user import Role

MIN_PASSWORD_LENGTH = 6


def normalize_email(v):
    return v.strip().lower() if isinstance(v, str) else v


class NormalizedEmailSchema(Schema):
    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = {**data, "email": normalize_email(data["email"])}
        return data


class UserCreateSchema(NormalizedEmailSchema):
    first_name = fields.String(required=True, data_key="firstName", validate=validate.Length(min=1, max=100))
    last_name = fields.String(required=True, data_key="lastName", validate=validate.Length(min=1, max=100))
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)
    role = fields.Enum(Role, by_value=True, load_default=Role.STUDENT)

    @validates("password")
    def validate_password(self, value, **kwargs):
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")


class UserUpdateSchema(NormalizedEmailSchema):
    first_name = fields.String(data_key="firstName", validate=validate.Length(min=1, max=100))
    last_name = fields.String(data_key="lastName", validate=validate.Length(min=1, max=100))
    email = fields.Email()
    password = fields.String(load_only=True)
    role = fields.Enum(Role, by_value=True)

    @validates("password")
    def validate_password(self, value, **kwargs):
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")


class UserOutSchema(Schema):
    """User without secret fields."""

    id = fields.String()
    email = fields.String()
    first_name = fields.String(data_key="firstName")
    last_name = fields.String(data_key="lastName")
    role = fields.Enum(Role, by_value=True)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
