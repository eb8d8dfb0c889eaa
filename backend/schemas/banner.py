from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class BannerBase(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    image_url: str = Field(min_length=1)
    link_url: Optional[str] = None
    is_active: bool = True
    display_order: int = 0


class BannerCreate(BannerBase):
    pass


# Schema for partial banner updates
class BannerUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    link_url: Optional[str] = None
    is_active: Optional[bool] = None
    display_order: Optional[int] = None


class BannerOut(BannerBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: Optional[datetime] = None
