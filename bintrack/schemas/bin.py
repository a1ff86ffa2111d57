# bintrack/schemas/bin.py
from pydantic import BaseModel
from typing import Optional, Union


class BinRecordOut(BaseModel):
    bin: str
    level: Union[int, float]
    latitude: float
    longitude: float
    address: str
    lastEmpty: Optional[str]
