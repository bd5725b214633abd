from sqlalchemy import Column, Integer, String, DateTime, Text, JSON
from sqlalchemy.sql import func
from feedwatch.database import Base
import enum


class EngagementStatus(str, enum.Enum):
    PROSPECT = "prospect"
    ACTIVE = "active"
    ON_HOLD = "on-hold"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class Engagement(Base):
    """
    A consulting project. Only the fields the background jobs read or write
    are modelled here.

    ai_insights and risk_assessment are owned by different job kinds and are
    always written with column-targeted UPDATEs.
    """
    __tablename__ = "engagements"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(256), nullable=False)
    client_name = Column(String(256), nullable=False)
    client_industry = Column(String(128), nullable=True)
    description = Column(Text, nullable=True)
    engagement_type = Column(String(32), default="advisory")
    status = Column(String(32), default=EngagementStatus.ACTIVE.value, nullable=False, index=True)

    technologies = Column(JSON, default=list)
    deliverables = Column(JSON, default=list)
    budget = Column(Integer, nullable=True)

    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)

    ai_insights = Column(JSON, nullable=True)
    risk_assessment = Column(JSON, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def to_snapshot(self) -> dict:
        """Serializable view handed to the generation backend."""
        return {
            "id": self.id,
            "name": self.name,
            "client_name": self.client_name,
            "client_industry": self.client_industry,
            "description": self.description,
            "engagement_type": self.engagement_type,
            "status": self.status,
            "technologies": self.technologies or [],
            "deliverables": self.deliverables or [],
            "budget": self.budget,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }
