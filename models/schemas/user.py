from marshmallow import EXCLUDE, Schema, fields, pre_load, validate

from utils.security import as_utc


def _strip(v):
    return v.strip() if isinstance(v, str) else v


class CredentialsSchema(Schema):
    """Body of /auth/register and /auth/login."""

    class Meta:
        unknown = EXCLUDE

    username = fields.String(required=True, validate=validate.Length(min=1, max=255))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=1))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "username" in data:
            data = dict(data)
            data["username"] = _strip(data["username"])
        return data


class UserOutSchema(Schema):
    id = fields.Integer()
    username = fields.String()
    created_at = fields.Method("get_created_at", data_key="createdAt")

    def get_created_at(self, obj):
        if obj.created_at is None:
            return None
        return as_utc(obj.created_at).isoformat()
