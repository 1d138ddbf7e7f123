import re
from typing import List, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

EMAIL_MAX_LENGTH = 255
PHONE_MAX_LENGTH = 20
PHONE_PATTERN = re.compile(r"\+?[1-9]\d{1,14}", re.ASCII)


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class IdentifyRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: Optional[str] = None
    phoneNumber: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, value):
        value = _blank_to_none(value)
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("Please provide a valid email address")
        if len(value) > EMAIL_MAX_LENGTH:
            raise ValueError(f"Email must be less than {EMAIL_MAX_LENGTH} characters")
        # validate only; the address is stored and matched exactly as sent
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError:
            raise ValueError("Please provide a valid email address") from None
        return value

    @field_validator("phoneNumber", mode="before")
    @classmethod
    def check_phone(cls, value):
        # clients often send the number as a JSON integer
        if isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        value = _blank_to_none(value)
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("Please provide a valid phone number")
        if len(value) > PHONE_MAX_LENGTH:
            raise ValueError(f"Phone number must be less than {PHONE_MAX_LENGTH} characters")
        if not PHONE_PATTERN.fullmatch(value):
            raise ValueError("Please provide a valid phone number")
        return value

    @model_validator(mode="after")
    def check_at_least_one(self):
        if self.email is None and self.phoneNumber is None:
            raise ValueError("At least one of email or phoneNumber must be provided!")
        return self


class ContactResponse(BaseModel):
    # consumers read the historical "primaryContatctId" spelling
    primaryContactId: int = Field(serialization_alias="primaryContatctId")
    emails: List[str]
    phoneNumbers: List[str]
    secondaryContactIds: List[int]


class FinalResponse(BaseModel):
    contact: ContactResponse


class ErrorDetail(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    error: str
    message: Optional[str] = None
    details: Optional[List[ErrorDetail]] = None


class HealthResponse(BaseModel):
    status: str
    database: str
    timestamp: str
    uptime: float
    version: str
