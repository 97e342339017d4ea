from pydantic import BaseModel
from typing import Optional


class Profile(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
