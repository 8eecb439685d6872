"""FastAPI route handlers for inbound WxPusher messages."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool

from weather_buddy.api.dependencies import get_directory, get_store
from weather_buddy.api.schemas import CallbackRequest, CallbackResponse
from weather_buddy.commands.handler import INTENT_PUSH, chat_intent, chat_reply, handle
from weather_buddy.memory.locations import LocationDirectory
from weather_buddy.memory.user_preferences import PreferenceRepository
from weather_buddy.pipeline.push import push_weather
from weather_buddy.tools.wxpusher import push_message

logger = structlog.get_logger()

router = APIRouter(prefix="/api")


@router.post("/wx-callback", response_model=CallbackResponse)
async def wx_callback(
    body: CallbackRequest,
    background_tasks: BackgroundTasks,
    store: PreferenceRepository = Depends(get_store),
    directory: LocationDirectory = Depends(get_directory),
):
    """Handle an upstream user message and push the reply back to the sender."""
    if body.data is None:
        logger.warning("callback.malformed", action=body.action)
        raise HTTPException(status_code=400, detail="请求格式不正确")

    uid, content = body.data.uid, body.data.content
    if not uid or not content:
        logger.warning("callback.missing_fields", has_uid=bool(uid), has_content=bool(content))
        raise HTTPException(status_code=400, detail="缺少必要参数")

    message = content.strip()
    logger.info("callback.received", uid=uid, message=message)

    try:
        intent = chat_intent(message)
        if intent == INTENT_PUSH:
            # Runs after the response is sent.
            background_tasks.add_task(push_weather, [uid], store)
            logger.info("callback.push_scheduled", uid=uid)
            return CallbackResponse(success=True)

        if intent:
            reply = chat_reply(intent)
        else:
            # Command handling reads and writes the preference file.
            reply = await run_in_threadpool(handle, message, uid, store, directory)
        await push_message(reply.content, [uid], is_html=reply.is_html, summary=reply.title)
    except Exception:
        logger.exception("callback.failed", uid=uid)
        raise HTTPException(status_code=500, detail="处理消息失败")

    logger.info("callback.replied", uid=uid, title=reply.title)
    return CallbackResponse(success=True)
