"""Pydantic models for the persona endpoint."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class PersonaRequest(BaseModel):
    """Request schema for persona generation."""

    user_id: str = Field(..., description="Identifier echoed back in the response")
    name: str = Field(..., description="Full name of the user")
    position: str = Field(..., description="Job title")
    department: str = Field(..., description="Department name")
    language: str = Field(..., description="Preferred language")
    samples: List[str] = Field(..., description="Writing samples used to infer tone and style")


class PersonaResponse(BaseModel):
    """Response schema for persona generation."""

    user_id: str
    persona_string: str
