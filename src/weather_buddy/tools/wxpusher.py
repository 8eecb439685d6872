"""WxPusher push API: message delivery and subscriber listing."""

from __future__ import annotations

import httpx
import structlog

from weather_buddy.config import settings
from weather_buddy.errors import ApiError, ConfigurationError

logger = structlog.get_logger()

CONTENT_TYPE_TEXT = 1
CONTENT_TYPE_HTML = 2
# WxPusher rejects summaries longer than this.
MAX_SUMMARY_LEN = 100
_SUCCESS_CODE = 1000


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.http_timeout_sec)


async def push_message(
    content: str,
    uids: list[str],
    is_html: bool = False,
    summary: str = "天气推送",
) -> dict:
    """Send *content* to *uids*.

    Returns:
        The provider's response body.

    Raises:
        ConfigurationError: WXPUSHER_APP_TOKEN is not set.
        ApiError: Transport failure or a response without ``success: true``.
    """
    if not settings.wxpusher_app_token:
        raise ConfigurationError("未设置WXPUSHER_APP_TOKEN环境变量")

    payload = {
        "appToken": settings.wxpusher_app_token,
        "content": content,
        "summary": summary[:MAX_SUMMARY_LEN],
        "contentType": CONTENT_TYPE_HTML if is_html else CONTENT_TYPE_TEXT,
        "uids": uids,
    }

    logger.info("wxpusher.push.start", uid_count=len(uids), summary=payload["summary"], is_html=is_html)

    try:
        async with _client() as client:
            resp = await client.post(settings.wxpusher_api_url, json=payload)
            resp.raise_for_status()
            body = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("wxpusher.push.request_failed", error=str(exc))
        raise ApiError(f"推送请求异常: {exc}", "wxpusher", exc) from exc

    if not isinstance(body, dict):
        logger.error("wxpusher.push.malformed", body_type=type(body).__name__)
        raise ApiError("推送接口返回了无法解析的数据", "wxpusher")
    if not body.get("success"):
        logger.error("wxpusher.push.rejected", code=body.get("code"), msg=body.get("msg"))
        raise ApiError(f"推送失败: {body.get('msg')}", "wxpusher")

    records = body.get("data") or []
    message_id = records[0].get("messageId") if records and isinstance(records[0], dict) else None
    logger.info("wxpusher.push.done", message_id=message_id)
    return body


async def get_enabled_uids() -> list[str]:
    """Return every uid subscribed to the app, walking all result pages.

    Returns an empty list on any failure (the scheduler tick becomes a no-op).
    """
    if not settings.wxpusher_app_token:
        logger.warning("wxpusher.users.skip", reason="WXPUSHER_APP_TOKEN not configured")
        return []

    uids: list[str] = []
    page = 1
    try:
        async with _client() as client:
            while True:
                resp = await client.get(
                    settings.wxpusher_user_api_url,
                    params={
                        "appToken": settings.wxpusher_app_token,
                        "page": page,
                        "pageSize": settings.wxpusher_page_size,
                    },
                )
                resp.raise_for_status()
                body = resp.json()
                if not isinstance(body, dict):
                    logger.error("wxpusher.users.malformed", body_type=type(body).__name__)
                    return []
                if body.get("code") != _SUCCESS_CODE:
                    logger.error("wxpusher.users.rejected", code=body.get("code"), msg=body.get("msg"))
                    return []

                data = body.get("data") or {}
                records = data.get("records") or []
                uids.extend(r["uid"] for r in records if r.get("uid"))

                total = data.get("total") or 0
                if not records or page * settings.wxpusher_page_size >= total:
                    break
                page += 1
    except Exception:
        logger.exception("wxpusher.users.failed", page=page)
        return []

    logger.info("wxpusher.users.done", user_count=len(uids))
    return uids
