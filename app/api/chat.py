from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.broadcast import get_broadcaster
from app.database import get_db
from app.security import get_request_account_id
from app.services import economy, queries
from schemas.chat import ChatHistoryResponse, MessageCreate, PostMessageResult

router = APIRouter()


@router.get("/streams/{stream_id}/messages", response_model=ChatHistoryResponse)
async def get_chat_history(
    stream_id: int,
    limit: int = Query(default=200, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
):
    return await queries.chat_history(db, stream_id, limit=limit)


@router.post("/streams/{stream_id}/messages", response_model=PostMessageResult, status_code=201)
async def send_message(
    stream_id: int,
    message: MessageCreate,
    db: AsyncSession = Depends(get_db),
    account_id: int | None = Depends(get_request_account_id),
    broadcaster=Depends(get_broadcaster),
):
    return await economy.post_chat_message(
        db,
        viewer_id=message.viewer_id,
        stream_id=stream_id,
        text=message.text,
        authenticated_account_id=account_id,
        broadcaster=broadcaster,
    )
