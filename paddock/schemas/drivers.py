from typing import Optional

from pydantic import BaseModel


class Driver(BaseModel):
    id: str
    code: str
    number: Optional[str] = None
    first_name: str
    last_name: str
    nationality: str
    constructor_id: Optional[str] = None
    constructor_name: Optional[str] = None
    profile_picture_url: Optional[str] = None
