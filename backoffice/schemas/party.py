"""Pydantic schemas for the party (supplier/customer) master."""
from pydantic import EmailStr, Field

from backoffice.schemas.base import BaseCreateSchema, BaseResponseSchema
from backoffice.models.party import PartyType
from typing import Optional
from datetime import datetime
import uuid


class PartyAddress(BaseCreateSchema):
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    country: str = "India"


class BankDetails(BaseCreateSchema):
    account_name: Optional[str] = None
    account_number: Optional[str] = None
    ifsc: Optional[str] = None
    bank_name: Optional[str] = None
    branch: Optional[str] = None


class PartyCreate(BaseCreateSchema):
    name: str = Field(..., max_length=200)
    type: PartyType = PartyType.SUPPLIER
    code: Optional[str] = Field(None, max_length=50)
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[PartyAddress] = None
    gstin: Optional[str] = None
    pan: Optional[str] = None
    bank_details: Optional[BankDetails] = None
    default_payment_terms: Optional[str] = None
    notes: Optional[str] = None


class PartyUpdate(BaseCreateSchema):
    name: Optional[str] = Field(None, max_length=200)
    type: Optional[PartyType] = None
    code: Optional[str] = Field(None, max_length=50)
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[PartyAddress] = None
    gstin: Optional[str] = None
    pan: Optional[str] = None
    bank_details: Optional[BankDetails] = None
    default_payment_terms: Optional[str] = None
    notes: Optional[str] = None


class PartyResponse(BaseResponseSchema):
    id: uuid.UUID
    name: str
    type: str
    code: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[dict] = None
    gstin: Optional[str] = None
    pan: Optional[str] = None
    bank_details: Optional[dict] = None
    default_payment_terms: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

