"""SQLAlchemy ORM models for accounts, investments and their transactions"""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, Text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

MONEY = Numeric(18, 2)


class UserAccount(Base):
    """One financial record per user"""

    __tablename__ = "user_account"

    id = Column(Text, primary_key=True)
    available_balance = Column(MONEY, nullable=False, default=0)
    total_earnings = Column(MONEY, nullable=False, default=0)
    total_funded_amount = Column(MONEY, nullable=False, default=0)
    last_accrued_on = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    investments = relationship(
        "InvestmentRecord",
        back_populates="account",
        cascade="all, delete-orphan",
        order_by="InvestmentRecord.start_date",
    )
    transactions = relationship(
        "AccountTransaction",
        back_populates="account",
        cascade="all, delete-orphan",
        order_by="AccountTransaction.date",
    )


class InvestmentRecord(Base):
    """Funded plan position; principal, rate, duration and end date are fixed at creation"""

    __tablename__ = "investment"

    id = Column(Text, primary_key=True)
    account_id = Column(Text, ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_name = Column(Text, nullable=False)
    amount = Column(MONEY, nullable=False)
    return_rate = Column(Numeric(9, 4), nullable=False)
    duration_days = Column(Integer, nullable=False)
    days_processed = Column(Integer, nullable=False, default=0)
    total_earned = Column(MONEY, nullable=False, default=0)
    status = Column(Text, nullable=False, default="active")
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)

    account = relationship("UserAccount", back_populates="investments")


class AccountTransaction(Base):
    """Append-only ledger line; the id is unique across all accounts"""

    __tablename__ = "account_transaction"

    id = Column(Text, primary_key=True)
    account_id = Column(Text, ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Text, nullable=False)
    amount = Column(MONEY, nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    status = Column(Text, nullable=False, default="completed")
    description = Column(Text, nullable=False, default="")
    investment_id = Column(Text, nullable=True, index=True)

    account = relationship("UserAccount", back_populates="transactions")
