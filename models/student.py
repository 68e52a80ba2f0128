# models/student.py
from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional

# Only these keys may be changed through PUT /api/etudiants/{id}
ALLOWED_UPDATE_FIELDS = ("nom", "prenom", "email", "filiere", "annee", "moyenne", "actif")


def _clean_name(v):
    if v is None:
        raise ValueError("ne peut pas être nul")
    if not v.strip():
        raise ValueError("ne peut pas être vide")
    return v.strip()


class StudentCreate(BaseModel):
    """Document written on POST /api/etudiants. Unknown keys are dropped."""
    nom: str
    prenom: str
    email: EmailStr
    filiere: Optional[str] = None
    annee: Optional[int] = None
    moyenne: Optional[float] = None
    actif: bool = True

    @field_validator("nom", "prenom")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator("filiere")
    @classmethod
    def strip_filiere(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class StudentUpdate(BaseModel):
    """Partial update; dump with ``exclude_unset`` to keep only the keys sent."""
    nom: Optional[str] = None
    prenom: Optional[str] = None
    email: Optional[EmailStr] = None
    filiere: Optional[str] = None
    annee: Optional[int] = None
    moyenne: Optional[float] = None
    actif: Optional[bool] = None

    @field_validator("nom", "prenom")
    @classmethod
    def not_empty(cls, v: Optional[str]) -> str:
        return _clean_name(v)

    @field_validator("email", "actif")
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("ne peut pas être nul")
        return v

    @field_validator("filiere")
    @classmethod
    def strip_filiere(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v
