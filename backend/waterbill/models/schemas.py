"""
Pydantic schemas
Request and response validation for the HTTP layer
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Any
from pydantic import BaseModel, Field, ConfigDict
from waterbill.models.ontology import (
    PaymentStatus, BillItemType, AuditAction, UserRole
)


# ============== Pagination Schemas ==============

class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


# ============== Customer Schemas ==============

class CustomerBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    customer_number: int = Field(..., ge=1)


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    customer_number: Optional[int] = Field(None, ge=1)


class CustomerSummary(BaseModel):
    id: int
    name: str
    customer_number: int
    model_config = ConfigDict(from_attributes=True)


class CustomerResponse(CustomerBase):
    id: int
    outstanding_balance: Decimal
    created_at: datetime
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class CustomerListResponse(BaseModel):
    data: List[CustomerResponse]
    meta: PageMeta


class CustomerRemoveResponse(BaseModel):
    message: str
    deleted_readings_count: int


class CustomerRestoreResponse(BaseModel):
    message: str
    restored_readings_count: int


class BalanceCheckResponse(BaseModel):
    customer_id: int
    recorded_balance: Decimal
    computed_balance: Decimal
    consistent: bool


# ============== Bill Schemas ==============

class BillItemResponse(BaseModel):
    id: int
    type: BillItemType
    usage: int
    rate: Decimal
    amount: Decimal
    model_config = ConfigDict(from_attributes=True)


class BillResponse(BaseModel):
    id: int
    meter_reading_id: int
    total_amount: Decimal
    penalty: Decimal
    amount_paid: Decimal
    remaining: Decimal
    change: Decimal
    payment_status: PaymentStatus
    paid_at: Optional[datetime] = None
    created_at: datetime
    items: List[BillItemResponse] = []
    model_config = ConfigDict(from_attributes=True)


class BillDetailResponse(BillResponse):
    period: str
    usage: int
    customer: Optional[CustomerSummary] = None


class CustomerReadingResponse(BaseModel):
    id: int
    period: str
    meter_start: int
    meter_end: int
    usage: int
    created_at: datetime
    bill: Optional[BillResponse] = None
    model_config = ConfigDict(from_attributes=True)


class CustomerDetailResponse(CustomerResponse):
    meter_readings: List[CustomerReadingResponse] = []


class PayBillRequest(BaseModel):
    amount_paid: Decimal
    has_penalty: bool = False


class PaymentResult(BaseModel):
    bill_id: int
    amount_paid: Decimal
    penalty: Decimal
    remaining: Decimal
    change: Decimal
    payment_status: PaymentStatus
    message: str


# ============== Meter Reading Schemas ==============

class MeterReadingCreate(BaseModel):
    customer_id: int = Field(..., ge=1)
    period: str = Field(..., max_length=7, description="YYYY-MM, e.g. 2025-01")
    meter_end: int


class MeterReadingResponse(BaseModel):
    id: int
    customer_id: int
    period: str
    meter_start: int
    meter_end: int
    usage: int
    created_at: datetime
    customer: Optional[CustomerSummary] = None
    bill: Optional[BillResponse] = None
    model_config = ConfigDict(from_attributes=True)


class PeriodReport(BaseModel):
    period: str
    data: List[MeterReadingResponse]


# ============== Setting Schemas ==============

class SettingResponse(BaseModel):
    key: str
    value: str
    description: Optional[str] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class SettingUpdate(BaseModel):
    value: str = Field(..., min_length=1, max_length=50)


# ============== Audit Schemas ==============

class AuditLogResponse(BaseModel):
    id: int
    action: AuditAction
    entity_type: str
    entity_id: Optional[int] = None
    performed_by: str
    ip_address: Optional[str] = None
    details: Optional[Any] = None
    description: Optional[str] = None
    created_at: datetime


class AuditLogListResponse(BaseModel):
    data: List[AuditLogResponse]
    meta: PageMeta


# ============== Auth Schemas ==============

class UserResponse(BaseModel):
    id: int
    username: str
    name: str
    role: UserRole
    is_active: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1, max_length=100)
    role: UserRole = UserRole.OPERATOR


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
