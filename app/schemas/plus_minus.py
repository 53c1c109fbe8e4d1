"""
Plus/Minus Schemas
"""
import datetime
from pydantic import BaseModel

class GenerateRequest(BaseModel):
    date: datetime.date
