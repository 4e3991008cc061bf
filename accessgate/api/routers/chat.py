"""Chat history API endpoints."""

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from accessgate.api.deps import get_desk, http_error
from accessgate.core.errors import AccessGateError
from accessgate.services.desk import AccessDesk

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatMessageResponse(BaseModel):
    sender: str
    text: str
    created_at: str


@router.get("/{user_id}", response_model=List[ChatMessageResponse])
async def get_chat_history(
    user_id: str,
    desk: AccessDesk = Depends(get_desk),
):
    """Get the user's chat log, oldest first."""
    try:
        messages = desk.chat_history(user_id)
    except AccessGateError as e:
        raise http_error(e)
    return [ChatMessageResponse.model_validate(m.to_dict()) for m in messages]
