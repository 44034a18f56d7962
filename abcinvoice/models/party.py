from __future__ import annotations
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .common import gen_id


class Party(BaseModel):
    """Champs communs aux entreprises et aux clients."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=gen_id)
    name: str = Field(min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, v):
        # la base distante renvoie parfois des identifiants numériques
        return str(v) if v is not None else v

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", "phone", "address", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class Client(Party):
    vat: Optional[str] = None

    @field_validator("vat", mode="before")
    @classmethod
    def _vat_blank(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v


class Company(Party):
    logo: Optional[str] = None  # data URL (image encodée en base64)
