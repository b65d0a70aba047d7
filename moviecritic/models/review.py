from sqlalchemy import Column, Integer, String, Float, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from moviecritic.database import Base


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False, index=True)
    reviewer_name = Column(String(255), nullable=True)
    rating = Column(Float, nullable=False)  # 0-10 inclusive
    review_comments = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    movie = relationship("Movie", back_populates="reviews")

    def __repr__(self):
        return f"<Review(id={self.id}, movie_id={self.movie_id}, rating={self.rating})>"
