"""PlotAreaRange model - plot-area brackets (sq ft) carrying a multiplier."""
from sqlalchemy import Column, String, Numeric, Boolean, DateTime, CheckConstraint
from sqlalchemy.sql import func
from rera_quotes.database import Base, BigIntPK


class PlotAreaRange(Base):
    """
    Plot-area bracket.

    max_area is NULL for the open-ended top bracket.
    """

    __tablename__ = 'plot_area_range'
    __table_args__ = (
        CheckConstraint('multiplier > 0', name='ck_plot_area_range_multiplier_positive'),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    min_area = Column(Numeric(12, 2), nullable=False, default=0)
    max_area = Column(Numeric(12, 2), nullable=True)
    multiplier = Column(Numeric(6, 3), nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<PlotAreaRange(id={self.id}, name='{self.name}', multiplier={self.multiplier})>"

    def contains(self, area):
        """Check if an area (sq ft) falls inside this bracket."""
        if area is None:
            return False
        if area < self.min_area:
            return False
        return self.max_area is None or area <= self.max_area
