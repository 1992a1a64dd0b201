# idp/application/dtos/base_dto.py

"""
Base class for the application DTOs.
"""

from pydantic import BaseModel, ConfigDict


class CustomBaseModel(BaseModel):
    """
    Base model for every DTO of the application. Reads attributes from
    ORM/domain objects.
    """

    model_config = ConfigDict(from_attributes=True)
