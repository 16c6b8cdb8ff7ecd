"""
Input validation for records created by collaborators.
"""

MAX_FIELD_LENGTH = 10_000


def format_validation_error(field_name: str, reason: str) -> str:
    """Generate consistent error message for validation failures."""
    return f"{field_name} {reason}"


def validate_field(field_name: str, value: str) -> tuple[bool, str]:
    """
    Validate one record content field.

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Must be a string
        - Cannot be empty or whitespace-only
        - Cannot exceed MAX_FIELD_LENGTH characters
    """
    if not isinstance(value, str):
        return (
            False,
            format_validation_error(field_name, "must be a string"),
        )
    if not value.strip():
        return (
            False,
            format_validation_error(field_name, "cannot be empty"),
        )
    if len(value) > MAX_FIELD_LENGTH:
        return (
            False,
            format_validation_error(
                field_name,
                f"exceeds maximum length of {MAX_FIELD_LENGTH} characters",
            ),
        )
    return (True, "")


def validate_record_fields(
    text: str, author: str, category: str
) -> tuple[str, str, str]:
    """
    Validate and trim the content fields of a new record.

    Returns:
        The stripped ``(text, author, category)`` triple.

    Raises:
        ValueError: If any field fails ``validate_field()``.
    """
    for name, value in (
        ("Text", text),
        ("Author", author),
        ("Category", category),
    ):
        ok, message = validate_field(name, value)
        if not ok:
            raise ValueError(message)
    return text.strip(), author.strip(), category.strip()
