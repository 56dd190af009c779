"""
Customer routes
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from waterbill.database import get_db
from waterbill.models.ontology import User
from waterbill.models.schemas import (
    CustomerCreate, CustomerUpdate, CustomerResponse, CustomerListResponse,
    CustomerRemoveResponse, CustomerRestoreResponse, BalanceCheckResponse,
    CustomerDetailResponse
)
from waterbill.security.auth import get_actor, require_admin, require_any_role
from waterbill.security.context import ActorContext
from waterbill.services.customer_service import CustomerService

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.post("", response_model=CustomerResponse, status_code=201)
def create_customer(
    data: CustomerCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    actor: ActorContext = Depends(get_actor)
):
    """Register a customer"""
    return CustomerService(db).create_customer(data, actor)


@router.get("", response_model=CustomerListResponse)
def list_customers(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_any_role)
):
    """Paginated customer list"""
    customers, meta = CustomerService(db).list_customers(page, limit)
    return {"data": customers, "meta": meta}


@router.get("/{customer_id}", response_model=CustomerDetailResponse)
def get_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_any_role)
):
    """Customer with readings and bills"""
    return CustomerService(db).get_customer_detail(customer_id)


@router.patch("/{customer_id}", response_model=CustomerResponse)
def update_customer(
    customer_id: int,
    data: CustomerUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    actor: ActorContext = Depends(get_actor)
):
    """Update name or customer number"""
    return CustomerService(db).update_customer(customer_id, data, actor)


@router.delete("/{customer_id}", response_model=CustomerRemoveResponse)
def remove_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    actor: ActorContext = Depends(get_actor)
):
    """Soft delete a customer with its readings, bills and items"""
    return CustomerService(db).remove_customer(customer_id, actor)


@router.post("/{customer_id}/restore", response_model=CustomerRestoreResponse)
def restore_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    actor: ActorContext = Depends(get_actor)
):
    """Restore a soft-deleted customer"""
    return CustomerService(db).restore_customer(customer_id, actor)


@router.delete("/{customer_id}/force")
def force_delete_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    actor: ActorContext = Depends(get_actor)
):
    """Permanently delete the customer row only"""
    return CustomerService(db).force_delete_customer(customer_id, actor)


@router.get("/{customer_id}/balance-check", response_model=BalanceCheckResponse)
def check_balance(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_any_role)
):
    """Compare the stored balance with the sum over unpaid bills"""
    return CustomerService(db).reconcile_balance(customer_id)
