from sqlalchemy import Column, Integer, String, DateTime, Text, JSON
from sqlalchemy.sql import func
from feedwatch.database import Base


class NewsArticle(Base):
    __tablename__ = "news_articles"

    id = Column(Integer, primary_key=True, index=True)
    source = Column(String(128), nullable=False, index=True)  # feed key
    guid = Column(String(1024), nullable=True)
    link = Column(String(2048), nullable=False, unique=True)

    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    author = Column(String(256), nullable=True)
    categories = Column(JSON, default=list)

    image_url = Column(String(2048), nullable=True)
    thumbnail_url = Column(String(2048), nullable=True)

    # "metadata" is reserved on declarative classes
    feed_metadata = Column("metadata", JSON, default=dict)

    published_at = Column(DateTime, nullable=True)
    fetched_at = Column(DateTime, server_default=func.now())
