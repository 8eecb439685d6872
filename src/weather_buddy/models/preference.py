"""Pydantic models for user preferences and location entries."""

from pydantic import BaseModel, ConfigDict, Field


class Location(BaseModel):
    city: str
    district: str
    code: str
    name: str


class UserPreference(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    uid: str
    location: Location
    push_time: str = Field(alias="pushTime")
