"""Credits domain router."""

from fastapi import APIRouter

from src.api.core.dependencies import CreditLedgerDep, CurrentUserAuthDep
from src.api.core.messages import APIResponse, MessageCode
from src.api.credits.schemas import CreditStatusModel, CreditStatusResponse
from src.modules.billing.constants import OPERATION_COSTS

router = APIRouter(prefix="/credits", tags=["credits"])


@router.get("/status", response_model=CreditStatusResponse)
async def get_credit_status(
    ledger: CreditLedgerDep,
    current_user: CurrentUserAuthDep,
) -> CreditStatusResponse:
    """Today's pool-funded credit usage and the cost of each operation."""
    status = await ledger.get_status(current_user.user_id)
    data = CreditStatusModel(
        credits_used=status.credits_used,
        credits_remaining=status.credits_remaining,
        limit=status.limit,
        costs={operation.value: cost for operation, cost in OPERATION_COSTS.items()},
    )
    return APIResponse.success(message_code=MessageCode.SUCCESS, data=data)
