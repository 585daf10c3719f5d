"""GET /api/v1/feed — ranked and chronological post feeds."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.core.errors import normalize_db_error, normalize_validation_error
from backend.app.core.logging import EVENT_FEED_SERVED, log_event
from backend.app.db.session import get_db
from backend.app.models.feed import FeedPost, FeedResponse, FeedType
from backend.app.services.post_repository import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    InvalidFeedRequestError,
    count_feed,
    list_feed,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/v1/feed", response_model=FeedResponse)
def get_feed(
    feed_type: FeedType = Query(FeedType.top, alias="type"),
    viewer_id: int | None = Query(None),
    offset: int = Query(0, ge=0),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
) -> FeedResponse:
    """Return one page of the requested feed variant."""
    correlation_id = str(uuid.uuid4())

    try:
        posts = list_feed(
            db, feed_type, viewer_id=viewer_id, offset=offset, limit=limit,
        )
        total = count_feed(db, feed_type, viewer_id=viewer_id)
    except InvalidFeedRequestError as exc:
        error = normalize_validation_error([str(exc)])
        raise HTTPException(status_code=error.http_status, detail=error.user_message)
    except SQLAlchemyError as exc:
        error = normalize_db_error(
            exc, operation="list_feed", correlation_id=correlation_id, read=True,
        )
        raise HTTPException(status_code=error.http_status, detail=error.user_message)

    log_event(
        logger, "info", EVENT_FEED_SERVED,
        type=feed_type,
        viewer_id=viewer_id,
        offset=offset,
        returned=len(posts),
        total=total,
    )

    return FeedResponse(
        type=feed_type,
        total=total,
        offset=offset,
        limit=limit,
        posts=[FeedPost.model_validate(post) for post in posts],
    )
