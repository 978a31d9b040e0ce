from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.security import CurrentUser, get_current_user
from app.models import User
from app.schemas.telegram import TelegramLinkResponse
from app.services import accounts
from database import get_db

router = APIRouter()


def _to_response(user: User) -> TelegramLinkResponse:
    return TelegramLinkResponse(linked=bool(user.telegram_chat_id), link_code=user.tg_link_code)


@router.get("/my/telegram", response_model=TelegramLinkResponse)
def get_my_telegram_link(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TelegramLinkResponse:
    return _to_response(accounts.get_telegram_link(db, user.id))


@router.post("/my/telegram/regenerate", response_model=TelegramLinkResponse)
def regenerate_my_telegram_link(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TelegramLinkResponse:
    return _to_response(accounts.regenerate_link_code(db, user.id))
