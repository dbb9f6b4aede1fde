"""
Pydantic schemas for stored records and API payloads.
Records (Image, Config, Status) are what the key-value store persists;
the *Ref / *Response models are the JSON shapes of the HTTP API.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from enum import Enum
from typing import List


class ImageType(str, Enum):
    """Content type of a frame item."""
    IMAGE = "IMAGE"
    URL = "URL"


class Image(BaseModel):
    """Image record stored in the metadata bucket."""
    id: int
    path: str
    type: ImageType = ImageType.IMAGE
    metadata: str = ""


class Config(BaseModel):
    """Display configuration, singleton record of the configuration bucket."""
    image_duration: int = 60
    random_order: bool = False


class Status(BaseModel):
    """
    Rotation status, singleton record of the status bucket.
    current_image_id is -1 until the first image was selected.
    seed and switch_count make random-order picks reproducible.
    """
    current_image_id: int = -1
    last_switch: datetime
    seed: int = 0
    switch_count: int = 0


class ImageRef(BaseModel):
    """
    Image as exchanged with the admin frontend.
    Used by GET/PUT /admin/api/image and POST /admin/api/image.
    """
    id: int
    path: str
    type: ImageType = ImageType.IMAGE
    metadata: str = ""

    model_config = ConfigDict(from_attributes=True)


class CurrentImageResponse(BaseModel):
    """
    Response schema for the currently displayed image.
    Used by GET /api/image/current endpoint.
    """
    path: str
    type: ImageType
    metadata: str = ""

    model_config = ConfigDict(from_attributes=True)


class ConfigRef(BaseModel):
    """
    Request and response schema for the display configuration.
    Used by GET/PUT /admin/api/configuration endpoint.
    """
    image_duration: int = Field(alias="imageDuration", ge=0)
    random_order: bool = Field(default=False, alias="randomOrder")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_config(cls, config: Config) -> "ConfigRef":
        return cls(image_duration=config.image_duration, random_order=config.random_order)

    def to_config(self) -> Config:
        return Config(image_duration=self.image_duration, random_order=self.random_order)


class ImageReorderRequest(BaseModel):
    """
    Request schema for reordering images by id only.
    Used by PUT /admin/api/image/order endpoint.
    Contains array of image IDs in the desired display order.
    """
    image_ids: List[int]

    @field_validator('image_ids')
    @classmethod
    def validate_unique_ids(cls, v):
        if len(v) != len(set(v)):
            raise ValueError('Duplicate image IDs are not allowed')
        return v


class DeleteImageResponse(BaseModel):
    message: str
    image_id: int
