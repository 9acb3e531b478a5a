"""Pydantic response models for the Zookeepr API.

Request bodies are accepted as plain mappings and checked by
:mod:`zookeepr.database`, so these models only shape what is returned.
Routes serialise with ``response_model_exclude_unset`` and every field is
optional, so stored records come back exactly as they sit in the file,
extra fields included.
"""

from __future__ import annotations

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Animal(BaseModel):
    """An animal record as stored in ``animals.json``."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: Optional[str] = None
    species: Optional[str] = None
    diet: Optional[str] = None
    personalityTraits: Optional[List[Any]] = Field(None, description="Ordered personality traits")


class Zookeeper(BaseModel):
    """A zookeeper record as stored in ``zookeepers.json``."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    name: Optional[str] = None
    age: Optional[Union[int, float]] = None
    favoriteAnimal: Optional[str] = None


class ErrorResponse(BaseModel):
    """Body returned for rejected candidates and storage failures."""

    detail: str
