from pydantic import BaseModel, Field


class TelegramLinkResponse(BaseModel):
    linked: bool
    link_code: str = Field(..., description='Send "/start <code>" to the bot to link this account')
