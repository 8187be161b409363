import time
from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from ..models.models import CreditAccount, CreditTransaction
from .base_repository import BaseRepository


class CreditRepository(BaseRepository[CreditAccount]):
    model = CreditAccount

    def get_by_user_id(self, user_id: str) -> Optional[CreditAccount]:
        return self.db.query(CreditAccount).filter(CreditAccount.user_id == user_id).first()

    def get_or_create(self, user_id: str, initial_credits: int) -> CreditAccount:
        account = self.get_by_user_id(user_id)
        if account:
            return account
        current_time = int(time.time())
        account = CreditAccount(
            user_id=user_id,
            credits=initial_credits,
            created_at=current_time,
            updated_at=current_time,
        )
        self.db.add(account)
        try:
            self.db.commit()
        except IntegrityError:
            # Another request created the account first
            self.db.rollback()
            return self.get_by_user_id(user_id)
        self.db.refresh(account)
        return account

    def conditional_debit(self, user_id: str, amount: int, reason: str) -> Optional[int]:
        """Decrement only if the balance covers the amount. Returns the new balance, or None."""
        changed = self._update_where(
            CreditAccount.user_id == user_id,
            CreditAccount.credits >= amount,
            credits=CreditAccount.credits - amount,
            updated_at=int(time.time()),
        )
        if changed != 1:
            self.db.rollback()
            return None
        return self._record(user_id, -amount, reason)

    def increment(self, user_id: str, amount: int, reason: str) -> Optional[int]:
        """Returns the new balance, or None when the user has no account."""
        changed = self._update_where(
            CreditAccount.user_id == user_id,
            credits=CreditAccount.credits + amount,
            updated_at=int(time.time()),
        )
        if changed != 1:
            self.db.rollback()
            return None
        return self._record(user_id, amount, reason)

    def _record(self, user_id: str, amount: int, reason: str) -> int:
        balance = (
            self.db.query(CreditAccount.credits).filter(CreditAccount.user_id == user_id).scalar()
        )
        self.db.add(
            CreditTransaction(
                user_id=user_id,
                amount=amount,
                reason=reason,
                balance_after=balance,
                created_at=int(time.time()),
            )
        )
        self.db.commit()
        return balance

    def get_transactions(self, user_id: str) -> List[CreditTransaction]:
        return (
            self.db.query(CreditTransaction)
            .filter(CreditTransaction.user_id == user_id)
            .order_by(CreditTransaction.id)
            .all()
        )
