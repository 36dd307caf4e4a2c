"""
Authentication Pydantic schemas.
"""

from pydantic import BaseModel, Field
from backend.app.models.enums import UserRole


class WeChatLogin(BaseModel):
    """
    Schema for mini-program login.

    Used by POST /auth/login with the code returned by wx.login().
    """
    code: str = Field(..., min_length=1, description="WeChat login code")


class TokenResponse(BaseModel):
    """Returned by successful login/refresh."""
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user_id: int = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    role: UserRole = Field(..., description="User role")
    is_new_user: bool = Field(default=False, description="True on the first login")
