"""Password strength rules."""

SPECIAL_CHARACTERS = "@$!%*?&"

# (predicate, message) pairs, checked in order; the first failure is reported
PASSWORD_RULES = (
    (lambda pw: any(c.isupper() for c in pw), "Password must contain at least one uppercase letter"),
    (lambda pw: any(c.islower() for c in pw), "Password must contain at least one lowercase letter"),
    (lambda pw: any(c.isdigit() for c in pw), "Password must contain at least one digit"),
    (
        lambda pw: any(c in SPECIAL_CHARACTERS for c in pw),
        f"Password must contain at least one special character ({SPECIAL_CHARACTERS})",
    ),
)


def validate_password_strength(password: str) -> str:
    """Check a registration password against ``PASSWORD_RULES``.

    Length is left to the schema's ``min_length``. Returns the password
    unchanged so it can be used directly as a pydantic field validator.

    Raises:
        ValueError: With the message of the first rule that fails

    Examples:
        >>> validate_password_strength("Abcdef1!")
        'Abcdef1!'
        >>> validate_password_strength("Abcdefg1")
        Traceback (most recent call last):
        ...
        ValueError: Password must contain at least one special character (@$!%*?&)

    """
    for check, message in PASSWORD_RULES:
        if not check(password):
            raise ValueError(message)
    return password
