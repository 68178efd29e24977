from datetime import date

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    __tablename__ = "users"
    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)
    full_name: str | None = None
    user_type: str = Field(default="patient", index=True)  # patient / doctor


class Patient(SQLModel, table=True):
    __tablename__ = "patients"
    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    name: str
    phone: str | None = None
    date_of_birth: date | None = None


class Doctor(SQLModel, table=True):
    __tablename__ = "doctors"
    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    first_name: str
    last_name: str
    specialty: str | None = None
    phone: str | None = None
    is_active: bool = True

    @property
    def display_name(self) -> str:
        return f"Dr. {self.first_name} {self.last_name}"
