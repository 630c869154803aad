from marshmallow import Schema, fields, validate, validates, ValidationError, EXCLUDE

PASSWORD_MIN_LENGTH = 8


def _check_password(value):
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise ValidationError("Password contains characters that cannot be encoded.")
    if len(value) < PASSWORD_MIN_LENGTH:
        raise ValidationError(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters long."
        )


class UserRegisterSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    name = fields.String(allow_none=True, load_default=None)
    # emails are kept exactly as submitted (no case folding)
    email = fields.Email(required=True)
    password = fields.String(required=True, load_only=True)
    conf_password = fields.String(data_key="confPassword", load_default=None, allow_none=True, load_only=True)

    @validates("password")
    def validate_password(self, value, **kwargs):
        _check_password(value)


class UserLoginSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True)
    password = fields.String(
        required=True, load_only=True, validate=validate.Length(min=1, error="Password is required.")
    )


class UserUpdateSchema(Schema):
    """Every field is optional; absent fields are left untouched."""

    class Meta:
        unknown = EXCLUDE

    name = fields.String()
    email = fields.Email()
    password = fields.String(load_only=True)

    @validates("password")
    def validate_password(self, value, **kwargs):
        _check_password(value)


def flatten_errors(messages: dict) -> list:
    """Turn marshmallow's {field: [msg, ...]} into [{"param": field, "msg": msg}, ...]."""
    errors = []
    for field, msgs in sorted(messages.items()):
        if isinstance(msgs, dict):
            msgs = [m for sub in msgs.values() for m in sub]
        for msg in msgs:
            errors.append({"param": field, "msg": msg})
    return errors
