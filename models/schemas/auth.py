from marshmallow import EXCLUDE, Schema, fields, validate

from models.schemas.user import UserCreateSchema, NormalizedEmailSchema


class LoginSchema(NormalizedEmailSchema):
    email = fields.String(required=True, validate=validate.Length(min=1))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))


class RegisterSchema(UserCreateSchema):
    """Self-registration never chooses a role; new accounts are students."""

    class Meta:
        exclude = ("role",)
        unknown = EXCLUDE


class RefreshTokenSchema(Schema):
    refresh_token = fields.String(required=True, data_key="refreshToken", validate=validate.Length(min=1))


class TokenPairSchema(Schema):
    access_token = fields.String(data_key="accessToken")
    refresh_token = fields.String(data_key="refreshToken")
    expires_in = fields.Integer(data_key="expiresIn")
    token_type = fields.String(data_key="tokenType")
