import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger("records.schemas")


def utcnow():
    """Naive UTC timestamp, the form SQLite hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ================= ENUMS =================

class Role(str, Enum):
    ADMIN = "admin"
    OPERATOR = "operator"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class CaseStatus(str, Enum):
    OPEN = "open"
    PENDING = "pending"
    CLOSED = "closed"


NonEmpty = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_json(self, exclude=None):
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)


def _naive_utc(value):
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _enum_or_default(enum_cls, value, default):
    """Decode a stored enum value, substituting ``default`` when out of range."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning(
            "Unknown %s value %r in stored row, using %r",
            enum_cls.__name__, value, default.value,
        )
        return default


# ================= ENTITIES =================

class User(_Record):
    id: str
    username: str
    password: str
    role: Role = Role.OPERATOR
    name: str
    last_login: Optional[datetime] = None
    is_active: bool = True
    created_at: datetime

    @field_validator("role", mode="before")
    @classmethod
    def decode_role(cls, value):
        return _enum_or_default(Role, value, Role.OPERATOR)

    def public(self):
        """API form of the user, never carrying the password hash."""
        return self.to_json(exclude={"password"})


class CriminalRecord(_Record):
    id: str
    name: str
    age: int
    gender: Gender
    crime_type: str
    fir_number: Optional[str] = None
    case_status: CaseStatus = CaseStatus.OPEN
    arrest_date: Optional[datetime] = None
    address: Optional[str] = None
    photo: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("gender", mode="before")
    @classmethod
    def decode_gender(cls, value):
        return _enum_or_default(Gender, value, Gender.OTHER)

    @field_validator("case_status", mode="before")
    @classmethod
    def decode_status(cls, value):
        return _enum_or_default(CaseStatus, value, CaseStatus.OPEN)


class FirRecord(_Record):
    id: str
    fir_number: str
    criminal_id: Optional[str] = None
    fir_date: datetime
    description: str
    created_at: datetime
    updated_at: datetime


# ================= DRAFTS =================

class _Draft(_Record):
    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    @field_validator("*", mode="after")
    @classmethod
    def normalise_datetimes(cls, value):
        return _naive_utc(value)


class UserDraft(_Draft):
    username: Annotated[str, StringConstraints(strip_whitespace=True, min_length=3)]
    password: str = Field(min_length=6)
    role: Role = Field(default=Role.OPERATOR, validate_default=True)
    name: NonEmpty


class CriminalDraft(_Draft):
    name: NonEmpty
    age: int = Field(ge=1, le=150)
    gender: Gender
    crime_type: NonEmpty
    fir_number: Optional[str] = None
    case_status: CaseStatus = Field(default=CaseStatus.OPEN, validate_default=True)
    arrest_date: Optional[datetime] = None
    address: Optional[str] = None
    photo: Optional[str] = None

    @field_validator("fir_number", "arrest_date", "address", "photo", mode="before")
    @classmethod
    def blank_is_absent(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class FirDraft(_Draft):
    fir_number: Optional[str] = None
    criminal_id: Optional[str] = None
    fir_date: Optional[datetime] = None
    description: NonEmpty

    @field_validator("fir_number", "criminal_id", "fir_date", mode="before")
    @classmethod
    def blank_is_absent(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


# ================= PATCHES =================
# Only fields the caller actually sent are applied (``exclude_unset``).

class _Patch(_Draft):
    required_fields: ClassVar[tuple] = ()

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, value, info):
        if value is None and info.field_name in cls.required_fields:
            raise ValueError("may not be null")
        return value

    def changes(self):
        return self.model_dump(exclude_unset=True)


class UserPatch(_Patch):
    required_fields = ("username", "password", "role", "name", "is_active")

    username: Optional[Annotated[str, StringConstraints(strip_whitespace=True, min_length=3)]] = None
    password: Optional[str] = Field(default=None, min_length=6)
    role: Optional[Role] = None
    name: Optional[NonEmpty] = None
    is_active: Optional[bool] = None
    last_login: Optional[datetime] = None


class CriminalPatch(_Patch):
    required_fields = ("name", "age", "gender", "crime_type", "case_status")

    name: Optional[NonEmpty] = None
    age: Optional[int] = Field(default=None, ge=1, le=150)
    gender: Optional[Gender] = None
    crime_type: Optional[NonEmpty] = None
    fir_number: Optional[str] = None
    case_status: Optional[CaseStatus] = None
    arrest_date: Optional[datetime] = None
    address: Optional[str] = None
    photo: Optional[str] = None


class FirPatch(_Patch):
    required_fields = ("fir_number", "fir_date", "description")

    fir_number: Optional[NonEmpty] = None
    criminal_id: Optional[str] = None
    fir_date: Optional[datetime] = None
    description: Optional[NonEmpty] = None


# ================= STATISTICS =================

class CrimeTypeCount(_Record):
    type: str
    count: int


class CaseStatusCount(_Record):
    status: str
    count: int


class Statistics(_Record):
    total_criminals: int
    active_firs: int
    solved_cases: int
    pending_cases: int
    crime_type_distribution: list[CrimeTypeCount]
    case_status_distribution: list[CaseStatusCount]
