from __future__ import annotations

from fastapi import APIRouter, Depends, Path, status

from freelancehub.dependencies import get_bid_engine, get_current_freelancer, get_current_client, get_current_user
from freelancehub.models import Bid, User, UserPublic
from freelancehub.schemas.bid import BidCreate, BidRead, BidWithFreelancerRead, BidWithTaskRead
from freelancehub.schemas.common import MAX_RECORD_ID, ApiResponse
from freelancehub.schemas.task import TaskSummaryRead
from freelancehub.services.bids import BidEngine

router = APIRouter(prefix="/bids", tags=["bids"])


def _with_freelancer(bid: Bid) -> BidWithFreelancerRead:
    return BidWithFreelancerRead(
        **BidRead.model_validate(bid).model_dump(),
        freelancer=UserPublic.model_validate(bid.freelancer),
    )


def _with_task(bid: Bid) -> BidWithTaskRead:
    return BidWithTaskRead(
        **BidRead.model_validate(bid).model_dump(),
        task=TaskSummaryRead.model_validate(bid.task),
    )


@router.get("/my-bids", response_model=ApiResponse[list[BidWithTaskRead]])
def list_my_bids(
    current_user: User = Depends(get_current_freelancer),
    engine: BidEngine = Depends(get_bid_engine),
) -> ApiResponse[list[BidWithTaskRead]]:
    return ApiResponse(data=[_with_task(bid) for bid in engine.list_freelancer_bids(current_user)])


@router.get("/task/{task_id}", response_model=ApiResponse[list[BidWithFreelancerRead]])
def list_task_bids(
    task_id: int = Path(gt=0, le=MAX_RECORD_ID),
    current_user: User = Depends(get_current_user),
    engine: BidEngine = Depends(get_bid_engine),
) -> ApiResponse[list[BidWithFreelancerRead]]:
    del current_user
    return ApiResponse(data=[_with_freelancer(bid) for bid in engine.list_task_bids(task_id)])


@router.post("/", response_model=ApiResponse[BidRead], status_code=status.HTTP_201_CREATED)
def submit_bid(
    payload: BidCreate,
    current_user: User = Depends(get_current_freelancer),
    engine: BidEngine = Depends(get_bid_engine),
) -> ApiResponse[BidRead]:
    bid = engine.submit_bid(
        current_user,
        task_id=payload.task_id,
        amount=payload.amount,
        proposal=payload.proposal,
        timeline=payload.timeline,
    )
    return ApiResponse(message="Bid submitted successfully", data=BidRead.model_validate(bid))


@router.patch("/{bid_id}/accept", response_model=ApiResponse[None])
def accept_bid(
    bid_id: int = Path(gt=0, le=MAX_RECORD_ID),
    current_user: User = Depends(get_current_client),
    engine: BidEngine = Depends(get_bid_engine),
) -> ApiResponse[None]:
    engine.accept_bid(current_user, bid_id)
    return ApiResponse(message="Bid accepted and freelancer hired successfully.")


@router.patch("/{bid_id}/withdraw", response_model=ApiResponse[BidRead])
def withdraw_bid(
    bid_id: int = Path(gt=0, le=MAX_RECORD_ID),
    current_user: User = Depends(get_current_freelancer),
    engine: BidEngine = Depends(get_bid_engine),
) -> ApiResponse[BidRead]:
    bid = engine.withdraw_bid(current_user, bid_id)
    return ApiResponse(message="Bid withdrawn", data=BidRead.model_validate(bid))
