from sqlalchemy import Column, String, Integer, Float, Boolean, Text
from app.database import Base

class Job(Base):
    __tablename__ = "jobs"

    id = Column(String, primary_key=True, index=True)
    total_records = Column(Integer, default=0)
    processed_count = Column(Integer, default=0)
    progress = Column(Integer, default=0)
    status = Column(String, default="Processing...")
    start_time = Column(Float, index=True) # epoch seconds
    estimated_time_remaining = Column(Integer, nullable=True)
    completed = Column(Boolean, default=False)
    result = Column(Text, nullable=True) # JSON encoded job result
