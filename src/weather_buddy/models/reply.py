"""Reply type returned by every command handler."""

from pydantic import BaseModel


class CommandReply(BaseModel):
    content: str
    is_html: bool = True
    title: str = "消息回复"
