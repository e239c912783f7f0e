# schemas.py
# ======================
# Request models for the web layer. The rules engine assumes well-formed
# birth fields, so everything is checked here first.

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from astrology import BirthInput

DEFAULT_TZ = "+05:30"

# friendly message per field, shown instead of pydantic's wording
FIELD_MESSAGES = {
    "name": "Your name is required",
    "date": "Use YYYY-MM-DD",
    "time": "Use HH:MM (24h)",
    "place": "Birth place is required",
    "tz_offset": "e.g. +05:30",
    "question": "Type a question.",
    "mode": "Mode must be 'Rule-based' or 'OpenAI'",
}


class BirthForm(BaseModel):
    """Birth details as posted by the profile form."""

    name: str = Field(min_length=1)
    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    time: str = Field(pattern=r"^\d{2}:\d{2}$")
    place: str = Field(min_length=1)
    tz_offset: str = Field(default=DEFAULT_TZ, pattern=r"^[+-]\d{2}:\d{2}$")

    def to_birth_input(self) -> BirthInput:
        return BirthInput(
            name=self.name,
            date=self.date,
            time=self.time,
            place=self.place,
            tz_offset=self.tz_offset,
        )


class AskForm(BaseModel):
    question: str = Field(min_length=1)


class SettingsForm(BaseModel):
    mode: Literal["Rule-based", "OpenAI"] = "Rule-based"
    api_key: Optional[str] = None


def validation_messages(exc: ValidationError) -> List[str]:
    """Flatten a ValidationError into one readable message per failing field."""
    messages = []
    for err in exc.errors():
        field = err["loc"][0] if err.get("loc") else None
        msg = FIELD_MESSAGES.get(field, err.get("msg", "Invalid value"))
        if msg not in messages:
            messages.append(msg)
    return messages
