from sqlalchemy import Column, String, DateTime
from prize_engine.database import Base


class SpinEligibility(Base):
    """One row per identity; the spin window is claimed by a conditional write here."""

    __tablename__ = "spin_eligibility"

    identity_key = Column(String(80), primary_key=True)
    last_spun_at = Column(DateTime(timezone=True), nullable=False)
