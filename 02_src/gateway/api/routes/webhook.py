"""LINE webhook route."""

import json

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ...app import IApplication
from ...logging_config import get_logger
from ...models import ImageContent, InboundMessage, TextContent

logger = get_logger(__name__)


class LineSource(BaseModel):
    """Sender of a webhook event."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = "user"
    user_id: str | None = Field(None, alias="userId")


class LineMessage(BaseModel):
    """Message body of a webhook event."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    type: str
    text: str | None = None


class LineEvent(BaseModel):
    """One webhook event."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str
    reply_token: str | None = Field(None, alias="replyToken")
    source: LineSource | None = None
    message: LineMessage | None = None


class LineWebhook(BaseModel):
    """Request body posted by the LINE platform."""

    model_config = ConfigDict(extra="ignore")

    destination: str = ""
    events: list[LineEvent] = []


class WebhookResponse(BaseModel):
    """Response model for webhook."""

    status: str
    accepted: int


def to_inbound(event: LineEvent) -> InboundMessage | None:
    """Translate a webhook event into an InboundMessage, or None to ignore it."""
    if event.type != "message" or event.message is None:
        return None
    if event.source is None or not event.source.user_id:
        logger.info("Skipping message event without a user id")
        return None

    message = event.message
    if message.type == "text" and message.text:
        content = TextContent(message.text)
    elif message.type == "image" and message.id:
        content = ImageContent(message.id)
    else:
        logger.info(f"Ignoring unsupported message type: {message.type}")
        return None

    return InboundMessage(
        user_id=event.source.user_id,
        content=content,
        reply_token=event.reply_token,
        metadata={"message_id": message.id},
    )


def create_webhook_router(app: IApplication) -> APIRouter:
    """Create webhook router."""
    router = APIRouter(tags=["webhook"])

    @router.post("/webhook", response_model=WebhookResponse)
    async def line_webhook(request: Request) -> dict:
        """Buffer every text and image message; the reply goes out after the quiet window."""
        body = await request.body()
        try:
            payload = LineWebhook.model_validate(json.loads(body))
        except (ValueError, ValidationError) as e:
            logger.error(f"Error parsing webhook body: {e}")
            raise HTTPException(status_code=400, detail="Invalid webhook body")

        accepted = 0
        for event in payload.events:
            inbound = to_inbound(event)
            if inbound is None:
                continue
            await app.receive(inbound)
            accepted += 1

        return {"status": "ok", "accepted": accepted}

    return router
