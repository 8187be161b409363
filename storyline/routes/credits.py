from fastapi import Depends
from sqlalchemy.orm import Session

from storyline.database import get_db
from storyline.dependencies import get_current_user
from storyline.metrics.router import MetricsRouter
from storyline.schemas.schemas import CreditBalanceResponse, GenerationCostsResponse
from storyline.services.credit_ledger import GENERATION_COSTS, CreditLedger

router = MetricsRouter(tags=["credits"])


@router.get("/credits", response_model=CreditBalanceResponse)
def read_balance(db: Session = Depends(get_db), current_user: dict = Depends(get_current_user)):
    user_id = current_user["user_id"]
    return CreditBalanceResponse(user_id=user_id, credits=CreditLedger(db).get_balance(user_id))


@router.get("/credits/costs", response_model=GenerationCostsResponse)
def read_generation_costs():
    return GenerationCostsResponse(costs=GENERATION_COSTS)
