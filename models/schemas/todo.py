from marshmallow import EXCLUDE, Schema, ValidationError, fields, validates

from utils.security import as_utc


class TodoCreateSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    value = fields.String(required=True)

    @validates("value")
    def validate_value(self, value, **kwargs):
        if not value.strip():
            raise ValidationError("Field 'value' is required")
        if len(value) > 1024:
            raise ValidationError("Field 'value' must be at most 1024 characters.")


class TodoOutSchema(Schema):
    id = fields.Integer()
    value = fields.String()
    date = fields.Method("get_date")

    def get_date(self, obj):
        return as_utc(obj.date).isoformat()
