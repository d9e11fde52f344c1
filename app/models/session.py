"""Authenticated request context"""
from typing import Optional
from pydantic import BaseModel, Field


class Session(BaseModel):
    """
    Who is acting on this request

    Built once per request from the bearer token and passed explicitly to
    every service and database call that needs ownership.
    """
    user_id: str = Field(..., description="Supabase auth user id (token 'sub')")
    email: Optional[str] = None
    access_token: str = Field(..., repr=False)
