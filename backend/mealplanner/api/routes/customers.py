from fastapi import APIRouter, Depends, Response

from mealplanner.core.access_gate import TrainerContext, require_active_subscription
from mealplanner.db.base import get_session_factory
from mealplanner.schemas.planning import AddCustomerRequest, CustomerListResponse, CustomerResponse
from mealplanner.services.customer_service import CustomerService

router = APIRouter()


@router.post("", response_model=CustomerResponse, status_code=201)
async def add_customer(
    body: AddCustomerRequest,
    ctx: TrainerContext = Depends(require_active_subscription()),
):
    """Link a customer, consuming one unit of the customer quota (429 when exhausted)."""
    service = CustomerService(get_session_factory())
    return await service.add_customer(ctx.trainer_id, body.email, body.name)


@router.get("", response_model=CustomerListResponse)
async def list_customers(ctx: TrainerContext = Depends(require_active_subscription())):
    service = CustomerService(get_session_factory())
    return await service.list_customers(ctx.trainer_id)


@router.delete("/{customer_id}", status_code=204)
async def remove_customer(
    customer_id: str,
    ctx: TrainerContext = Depends(require_active_subscription()),
):
    service = CustomerService(get_session_factory())
    await service.remove_customer(ctx.trainer_id, customer_id)
    return Response(status_code=204)
