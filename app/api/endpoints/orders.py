import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.core import schemas
from app.core.board.client import BoardClient, parse_board
from app.core.board.normalize import normalize_board
from app.core.dependencies import get_board_client, settings_dep
from app.core.errors import DashboardError, NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Orders"])

client_dep = Annotated[BoardClient, Depends(get_board_client)]


@router.get(
    "/refresh",
    response_model=schemas.OrdersResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": schemas.ErrorResponse},
        404: {"model": schemas.ErrorResponse},
        500: {"model": schemas.ErrorResponse},
    },
)
async def refresh_orders(config: settings_dep, client: client_dep):
    """Fetch the board and return its items as dashboard orders."""
    try:
        response = await client.get_board(config.MONDAY_BOARD_ID)

        if not response.ok:
            logger.error(f"Board API errors: {response.errors}")
            # Transport / server failures are ours to report as 500
            code = 500 if (response.status_code or 0) >= 500 else 400
            raise UpstreamError(response.error_message, status_code=code)

        board = parse_board(response.data)
        if board is None:
            raise NotFoundError(
                "No boards found",
                details="The API returned successfully but no boards were found "
                f"with the provided ID {config.MONDAY_BOARD_ID}",
            )

        orders = normalize_board(board)

        return schemas.OrdersResponse(
            orders=orders,
            meta=schemas.OrdersMeta(
                board_name=board.name,
                item_count=len(board.items),
                timestamp=datetime.now(timezone.utc).isoformat(),
            ),
        )

    except DashboardError:
        raise
    except Exception as error:
        logger.exception(f"Error fetching orders: {error}")
        raise DashboardError(str(error) or "Unknown error occurred", status_code=500)
