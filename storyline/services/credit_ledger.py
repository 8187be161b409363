import logging
from typing import Dict

from sqlalchemy.orm import Session

from ..config import NEW_USER_CREDITS
from ..constants.metrics import Constants
from ..metrics.statsd_client import statsd
from ..models.enums import GenerationKind
from ..repository.credit_repository import CreditRepository
from ..utils.exceptions import InsufficientFunds, InvalidCreditAmount

logger = logging.getLogger(__name__)

GENERATION_COSTS: Dict[GenerationKind, int] = {
    GenerationKind.COMPLETE_SETUP: 10,
    GenerationKind.SINGLE_PAGE_SETUP: 2,
    GenerationKind.CHAPTER_NORMAL: 5,
    GenerationKind.CHAPTER_LONG: 8,
}


def generation_cost(kind: GenerationKind) -> int:
    return GENERATION_COSTS[GenerationKind(kind)]


def _validate_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidCreditAmount(amount)
    return amount


class CreditLedger:
    """Per-user credit balance with atomic debit and unconditional credit.

    A debit is one conditional UPDATE (``credits >= amount``), so the sufficiency check and
    the decrement happen in the same statement and concurrent debits serialize in the
    database instead of racing on a read-then-write.
    """

    def __init__(self, db: Session, initial_credits: int = NEW_USER_CREDITS):
        self.db = db
        self.credit_repo = CreditRepository(db)
        self.initial_credits = initial_credits

    def get_balance(self, user_id: str) -> int:
        return self.credit_repo.get_or_create(user_id, self.initial_credits).credits

    def debit(self, user_id: str, amount: int, reason: str = "debit") -> int:
        amount = _validate_amount(amount)
        self.credit_repo.get_or_create(user_id, self.initial_credits)
        balance = self.credit_repo.conditional_debit(user_id, amount, reason)
        if balance is None:
            current = self.get_balance(user_id)
            logger.info(f"Rejected debit of {amount} for user {user_id}: balance {current}")
            raise InsufficientFunds(user_id, amount, current)
        logger.info(f"Debited {amount} credits from user {user_id} ({reason}), balance {balance}")
        statsd.increment(Constants.Metric.CREDITS_DEBITED, amount, {Constants.Tag.REASON: reason})
        return balance

    def credit(self, user_id: str, amount: int, reason: str = "credit") -> int:
        amount = _validate_amount(amount)
        self.credit_repo.get_or_create(user_id, self.initial_credits)
        balance = self.credit_repo.increment(user_id, amount, reason)
        logger.info(f"Credited {amount} credits to user {user_id} ({reason}), balance {balance}")
        statsd.increment(Constants.Metric.CREDITS_CREDITED, amount, {Constants.Tag.REASON: reason})
        return balance

    def reserve(self, user_id: str, kind: GenerationKind) -> int:
        """Debit the fixed cost of a generation kind before any model call is made."""
        cost = generation_cost(kind)
        self.debit(user_id, cost, reason=f"reserve:{GenerationKind(kind).value}")
        return cost

    def refund(self, user_id: str, kind: GenerationKind) -> int:
        cost = generation_cost(kind)
        self.credit(user_id, cost, reason=f"refund:{GenerationKind(kind).value}")
        return cost
