from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.broadcast import get_broadcaster
from app.database import get_db
from app.security import get_request_account_id
from app.services import economy, queries
from schemas.gift import GiftResponse, SendGiftRequest, SendGiftResult

router = APIRouter()


@router.get("/streamers/{streamer_id}/gifts", response_model=List[GiftResponse])
async def list_streamer_gifts(streamer_id: int, db: AsyncSession = Depends(get_db)):
    gifts = await queries.list_gifts(db, streamer_id)
    return [GiftResponse.model_validate(g) for g in gifts]


@router.post("/streams/{stream_id}/gifts/{gift_id}/send", response_model=SendGiftResult, status_code=201)
async def send_gift(
    stream_id: int,
    gift_id: int,
    payload: SendGiftRequest,
    db: AsyncSession = Depends(get_db),
    account_id: int | None = Depends(get_request_account_id),
    broadcaster=Depends(get_broadcaster),
):
    return await economy.send_gift(
        db,
        sender_id=payload.sender_id,
        stream_id=stream_id,
        gift_id=gift_id,
        quantity=payload.quantity,
        message=payload.message,
        authenticated_account_id=account_id,
        broadcaster=broadcaster,
    )
