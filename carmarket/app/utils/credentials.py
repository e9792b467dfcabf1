from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

PHONE_RE = re.compile(r"^\+?[1-9]\d{1,14}$")
MIN_PASSWORD_LENGTH = 8

PASSWORD_REQUIREMENTS = (
    (re.compile(r".{8,}"), "At least 8 characters"),
    (re.compile(r"[A-Z]"), "At least one uppercase letter"),
    (re.compile(r"[a-z]"), "At least one lowercase letter"),
    (re.compile(r"[0-9]"), "At least one number"),
    (re.compile(r"[^A-Za-z0-9]"), "At least one special character"),
)


@dataclass
class PasswordStrength:
    score: int
    label: str
    requirements: List[dict]

    @property
    def ratio(self) -> float:
        return self.score / len(PASSWORD_REQUIREMENTS)


def password_strength(password: str) -> PasswordStrength:
    checks = [
        {"text": text, "met": bool(regex.search(password or ""))}
        for regex, text in PASSWORD_REQUIREMENTS
    ]
    score = sum(1 for c in checks if c["met"])
    if score == 0:
        label = ""
    elif score < 3:
        label = "Weak"
    elif score < 5:
        label = "Medium"
    else:
        label = "Strong"
    return PasswordStrength(score=score, label=label, requirements=checks)


def signup_error(password: str, phone_number: Optional[str]) -> Optional[str]:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        return "Password must be at least 8 characters long"
    if not PHONE_RE.match((phone_number or "").strip()):
        return "Please enter a valid phone number"
    return None
