"""
WeChat mini-program login.

Exchanges the one-shot login code from wx.login() for the user's openid.
"""

import logging

import httpx

from backend.app.core.config import settings
from backend.app.core.exceptions import AuthenticationError, StoreUnavailableError

logger = logging.getLogger(__name__)


async def code_to_openid(code: str) -> str:
    """
    Call jscode2session and return the openid.

    Raises:
        AuthenticationError: WeChat rejected the code
        StoreUnavailableError: WeChat could not be reached
    """
    params = {
        "appid": settings.wechat_app_id,
        "secret": settings.wechat_secret,
        "js_code": code,
        "grant_type": "authorization_code",
    }
    try:
        async with httpx.AsyncClient(timeout=settings.wechat_timeout_seconds) as client:
            response = await client.get(settings.wechat_code2session_url, params=params)
            response.raise_for_status()
            payload = response.json()
    except httpx.HTTPError as exc:
        logger.error("WeChat code2session request failed: %s", exc)
        raise StoreUnavailableError("WeChat login service unavailable")

    if payload.get("errcode"):
        logger.warning("WeChat rejected login code: errcode=%s errmsg=%s", payload.get("errcode"), payload.get("errmsg"))
        raise AuthenticationError("Invalid WeChat login code")

    openid = payload.get("openid")
    if not openid:
        raise AuthenticationError("WeChat response missing openid")
    return openid
