"""Client model definitions."""

import enum
from dataclasses import dataclass

from sqlalchemy import Column, Enum, Integer, String
from hospital_backend.database import Base


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    PATIENT = "PATIENT"


class Client(Base):
    """Represents a patient (or administrator) account."""
    __tablename__ = "clients"

    client_id = Column(Integer, primary_key=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, index=True)
    role = Column(Enum(Role, native_enum=False, length=16), nullable=False, default=Role.PATIENT)


@dataclass(frozen=True)
class Caller:
    """The authenticated client on whose behalf an operation runs."""

    client_id: int
    role: Role = Role.PATIENT

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def owns(self, client_id: int) -> bool:
        return self.client_id == client_id
