from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.security import get_request_account_id
from app.services import economy, queries
from schemas.bonus import DailyBonusResult
from schemas.level import LevelProgressResponse
from schemas.wallet import CoinPackageResponse, PurchaseResult, WalletResponse

router = APIRouter()


@router.get("/coin-packages", response_model=List[CoinPackageResponse])
async def list_coin_packages(db: AsyncSession = Depends(get_db)):
    packages = await queries.list_packages(db)
    return [CoinPackageResponse.model_validate(p) for p in packages]


@router.get("/viewers/{viewer_id}/wallet", response_model=WalletResponse)
async def get_wallet(
    viewer_id: int,
    limit: int = Query(default=50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    return await queries.wallet_summary(db, viewer_id, limit=limit)


@router.post("/viewers/{viewer_id}/packages/{package_id}/purchase", response_model=PurchaseResult, status_code=201)
async def purchase_package(
    viewer_id: int,
    package_id: int,
    db: AsyncSession = Depends(get_db),
    account_id: int | None = Depends(get_request_account_id),
):
    return await economy.purchase_coins(
        db,
        viewer_id=viewer_id,
        package_id=package_id,
        authenticated_account_id=account_id,
    )


@router.post("/viewers/{viewer_id}/daily-bonus", response_model=DailyBonusResult)
async def claim_daily_bonus(
    viewer_id: int,
    db: AsyncSession = Depends(get_db),
    account_id: int | None = Depends(get_request_account_id),
):
    return await economy.claim_daily_bonus(db, viewer_id=viewer_id, authenticated_account_id=account_id)


@router.get("/viewers/{viewer_id}/level-progress", response_model=LevelProgressResponse)
async def viewer_level_progress(viewer_id: int, db: AsyncSession = Depends(get_db)):
    return await queries.viewer_progress(db, viewer_id)
