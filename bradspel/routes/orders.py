"""
Bradspel Backend — Table Order Routes
======================================

What:  Guests order a game from their table; staff list, complete or cancel
       the pending orders.
Who:   POST /order-game is public (the table QR page). Everything else
       requires a staff identity.
"""

import logging
from typing import List

from fastapi import APIRouter, Body, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from bradspel.database import get_db_session
from bradspel.dependencies import require_staff
from bradspel.schemas.common import ErrorResponse
from bradspel.schemas.inputs import MAX_ID
from bradspel.schemas.lending import (
    MessageResponse,
    OrderPlacedResponse,
    OrderRequest,
    OrderResponse,
)
from bradspel.services.auth_service import Identity
from bradspel.services.lending_service import lending_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/order-game", tags=["Orders"])


@router.post(
    "",
    response_model=OrderPlacedResponse,
    responses={
        400: {"description": "Missing or invalid fields", "model": ErrorResponse},
        404: {"description": "Game not found", "model": ErrorResponse},
    },
    summary="Order a game to a table",
)
async def place_order(
    body: OrderRequest = Body(...),
    db: AsyncSession = Depends(get_db_session),
) -> OrderPlacedResponse:
    command = body.to_command()
    order_id = await lending_service.place_order(db, command)
    return OrderPlacedResponse(order_id=order_id)


@router.get(
    "",
    response_model=List[OrderResponse],
    summary="List pending orders",
)
async def list_orders(
    db: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(require_staff),
) -> List[OrderResponse]:
    orders = await lending_service.list_orders(db)
    return [OrderResponse.model_validate(order) for order in orders]


@router.post(
    "/{order_id}/complete",
    response_model=MessageResponse,
    responses={
        400: {"description": "Order lacks customer name or phone", "model": ErrorResponse},
        404: {"description": "Order or game not found", "model": ErrorResponse},
        500: {"description": "Database error, nothing was changed", "model": ErrorResponse},
    },
    summary="Hand over an ordered game",
    description=(
        "Resolves the customer by phone number (creating a guest account if "
        "needed), lends the game to them and removes the order."
    ),
)
async def complete_order(
    order_id: int = Path(gt=0, le=MAX_ID),
    db: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(require_staff),
) -> MessageResponse:
    await lending_service.complete_order(db, order_id)
    return MessageResponse(message="Order completed and game lent out")


@router.delete(
    "/{order_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Order not found", "model": ErrorResponse}},
    summary="Cancel a pending order",
)
async def cancel_order(
    order_id: int = Path(gt=0, le=MAX_ID),
    db: AsyncSession = Depends(get_db_session),
    identity: Identity = Depends(require_staff),
) -> MessageResponse:
    await lending_service.cancel_order(db, order_id)
    return MessageResponse(message="Order cancelled")
