"""Shared password validation logic."""

import re

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 72  # bcrypt only looks at the first 72 bytes


def password_problems(password: str) -> list[str]:
    """Return every strength requirement the password misses, in a stable order."""
    problems = []
    if len(password) < MIN_PASSWORD_LENGTH:
        problems.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_LENGTH:
        problems.append(f"Password must be at most {MAX_PASSWORD_LENGTH} bytes")
    if not re.search(r"[A-Z]", password):
        problems.append("Password must contain at least one uppercase letter")
    if not re.search(r"\d", password):
        problems.append("Password must contain at least one number")
    return problems


def validate_password_strength(password: str) -> str:
    """Validate password meets strength requirements.

    Requirements: 6+ chars, at least one uppercase letter, one digit.
    Raises ValueError listing every unmet requirement.
    Returns the password unchanged if valid.
    """
    problems = password_problems(password)
    if problems:
        raise ValueError("; ".join(problems))
    return password
