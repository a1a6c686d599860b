"""Pydantic request models for FastAPI endpoints."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class ResearchWebRequest(BaseModel):
    # Optional here so a missing query yields the 400 "query is required" shape
    query: Optional[str] = None
    mode: Literal["quick", "deep"] = "quick"
    locale: Optional[str] = Field(None, max_length=32)
    geo: Optional[str] = Field(None, max_length=32)
    language: Optional[str] = Field(None, max_length=16)
    market: Optional[str] = Field(None, max_length=64)
    topic: Optional[Literal["seasonal", "product", "supplier", "general"]] = None
