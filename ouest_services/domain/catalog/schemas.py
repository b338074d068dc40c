"""Catalog service schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ...models import CatalogService
from ...shared.pagination import Pagination

MAX_SERVICE_IMAGES = 20

Category = Literal[
    "bureaux",
    "piscine",
    "régulier",
    "ponctuel",
    "salles de réunion",
    "sas d'entrée",
    "réfectoire",
    "sanitaires",
    "escaliers",
    "vitrines",
]


class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10, max_length=1000)
    price: float = Field(..., gt=0)
    area: Optional[float] = Field(None, gt=0)
    duration: Optional[float] = Field(None, gt=0)
    category: Category
    availability: Optional[dict] = None
    location: Optional[dict] = None
    providerId: Optional[str] = None


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=1000)
    price: Optional[float] = Field(None, gt=0)
    area: Optional[float] = Field(None, gt=0)
    duration: Optional[float] = Field(None, gt=0)
    category: Optional[Category] = None
    availability: Optional[dict] = None
    location: Optional[dict] = None
    providerId: Optional[str] = None


class ServiceImage(BaseModel):
    url: str
    fileKey: Optional[str] = None


class ServiceResponse(BaseModel):
    id: str
    name: str
    description: str
    price: float
    area: Optional[float] = None
    duration: Optional[float] = None
    category: str
    images: list[ServiceImage] = []
    availability: Optional[dict] = None
    location: Optional[dict] = None
    providerId: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_service(cls, service: CatalogService) -> "ServiceResponse":
        return cls(
            id=service.id,
            name=service.name,
            description=service.description,
            price=service.price,
            area=service.area,
            duration=service.duration,
            category=service.category,
            images=service.images or [],
            availability=service.availability,
            location=service.location,
            providerId=service.provider_id,
            createdAt=service.created_at,
            updatedAt=service.updated_at,
        )


class ServiceListResponse(BaseModel):
    services: list[ServiceResponse]
    pagination: Pagination
