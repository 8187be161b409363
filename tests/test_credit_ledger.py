"""Tests for the credit ledger."""

from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from storyline.database import Base
from storyline.models.enums import GenerationKind
from storyline.repository.credit_repository import CreditRepository
from storyline.services.credit_ledger import GENERATION_COSTS, CreditLedger, generation_cost
from storyline.utils.exceptions import InsufficientFunds, InvalidCreditAmount

from conftest import USER_ID


class TestGenerationCost:
    def test_cost_table(self):
        assert generation_cost(GenerationKind.COMPLETE_SETUP) == 10
        assert generation_cost(GenerationKind.SINGLE_PAGE_SETUP) == 2
        assert generation_cost(GenerationKind.CHAPTER_NORMAL) == 5
        assert generation_cost(GenerationKind.CHAPTER_LONG) == 8

    def test_accepts_raw_values(self):
        assert generation_cost("chapter_long") == 8
        assert set(GENERATION_COSTS) == set(GenerationKind)


class TestCreditLedger:
    def test_new_account_gets_starting_grant(self, db):
        assert CreditLedger(db).get_balance(USER_ID) == 100

    def test_starting_grant_is_configurable(self, db):
        assert CreditLedger(db, initial_credits=7).get_balance("someone-else") == 7

    def test_debit_and_credit(self, db):
        ledger = CreditLedger(db)
        assert ledger.debit(USER_ID, 30) == 70
        assert ledger.credit(USER_ID, 5) == 75
        assert ledger.get_balance(USER_ID) == 75

    def test_debit_exact_balance_reaches_zero(self, db):
        ledger = CreditLedger(db)
        assert ledger.debit(USER_ID, 100) == 0
        with pytest.raises(InsufficientFunds):
            ledger.debit(USER_ID, 1)

    def test_insufficient_funds_leaves_balance_untouched(self, db):
        ledger = CreditLedger(db)
        ledger.debit(USER_ID, 98)

        with pytest.raises(InsufficientFunds) as exc_info:
            ledger.debit(USER_ID, 5)

        assert exc_info.value.status_code == 402
        assert exc_info.value.required == 5
        assert exc_info.value.balance == 2
        assert ledger.get_balance(USER_ID) == 2

    @pytest.mark.parametrize("amount", [0, -5, 2.5, True, "5"])
    def test_rejects_invalid_amounts(self, db, amount):
        ledger = CreditLedger(db)
        with pytest.raises(InvalidCreditAmount):
            ledger.debit(USER_ID, amount)
        with pytest.raises(InvalidCreditAmount):
            ledger.credit(USER_ID, amount)
        assert ledger.get_balance(USER_ID) == 100

    def test_reserve_and_refund_use_cost_table(self, db):
        ledger = CreditLedger(db)
        assert ledger.reserve(USER_ID, GenerationKind.CHAPTER_LONG) == 8
        assert ledger.get_balance(USER_ID) == 92
        ledger.refund(USER_ID, GenerationKind.CHAPTER_LONG)
        assert ledger.get_balance(USER_ID) == 100

    def test_every_mutation_is_logged(self, db):
        ledger = CreditLedger(db)
        ledger.debit(USER_ID, 10, reason="test-debit")
        ledger.credit(USER_ID, 4, reason="test-credit")
        with pytest.raises(InsufficientFunds):
            ledger.debit(USER_ID, 500)

        transactions = CreditRepository(db).get_transactions(USER_ID)
        assert [(t.amount, t.reason, t.balance_after) for t in transactions] == [
            (-10, "test-debit", 90),
            (4, "test-credit", 94),
        ]

    def test_missing_account_is_not_incremented(self, db):
        repo = CreditRepository(db)

        assert repo.increment("nobody", 5, "grant") is None
        assert repo.conditional_debit("nobody", 5, "debit") is None
        assert repo.get_transactions("nobody") == []
        assert repo.get_by_user_id("nobody") is None


class TestConcurrentDebits:
    """Debits from many sessions at once must never overdraw the account."""

    @pytest.fixture
    def file_session_factory(self, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'ledger.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        # sqlite only: take the write lock at BEGIN so waiting sessions queue on the busy timeout
        @event.listens_for(engine, "connect")
        def _disable_implicit_begin(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _begin_immediate(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

        Base.metadata.create_all(engine)
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
        engine.dispose()

    def test_balance_never_goes_negative(self, file_session_factory):
        setup = file_session_factory()
        CreditLedger(setup).get_balance(USER_ID)
        setup.close()

        def attempt(_):
            session = file_session_factory()
            try:
                CreditLedger(session).debit(USER_ID, 10)
                return True
            except InsufficientFunds:
                return False
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(attempt, range(15)))

        check = file_session_factory()
        try:
            assert results.count(True) == 10
            assert results.count(False) == 5
            assert CreditLedger(check).get_balance(USER_ID) == 0
            assert len(CreditRepository(check).get_transactions(USER_ID)) == 10
        finally:
            check.close()
