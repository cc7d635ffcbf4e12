# linkedin_learning_connector/services.py

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from connector_commons.backend import BackendClient
from connector_commons.context import ConnectorContext

from .config import Settings

logger = logging.getLogger(__name__)


def learning_assets_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}/learningAssets"


def previous_month_millis(days: int, now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    return int((now - timedelta(days=days)).timestamp() * 1000)


def _course_query(settings: Settings, **criteria: Any) -> Dict[str, Any]:
    query = {
        "q": "criteria",
        "assetFilteringCriteria.assetTypes[0]": "COURSE",
        **criteria,
        "count": settings.COURSE_COUNT,
        # Only English courses until the backend supports localisation
        "assetFilteringCriteria.locales[1].language": settings.COURSE_LANGUAGE,
        "assetFilteringCriteria.locales[1].country": settings.COURSE_COUNTRY,
    }
    return query


async def _fetch_courses(
    backend: BackendClient, ctx: ConnectorContext, params: Dict[str, Any]
) -> List[Dict[str, Any]]:
    body = await backend.get_json(
        learning_assets_url(ctx.backend_base_url),
        params=params,
        headers={"authorization": ctx.backend_authorization},
    )
    return (body or {}).get("elements") or []


async def get_user_top_picks(
    backend: BackendClient, ctx: ConnectorContext, settings: Settings
) -> List[Dict[str, Any]]:
    params = _course_query(settings, **{"assetPresentationCriteria.sortBy": "RELEVANCE"})
    return await _fetch_courses(backend, ctx, params)


async def get_new_courses(
    backend: BackendClient, ctx: ConnectorContext, settings: Settings
) -> List[Dict[str, Any]]:
    params = _course_query(
        settings,
        **{
            "assetPresentationCriteria.sortBy": "RECENCY",
            "assetFilteringCriteria.lastModifiedAfter": previous_month_millis(
                settings.NEW_COURSES_LOOKBACK_DAYS
            ),
        },
    )
    return await _fetch_courses(backend, ctx, params)


async def keyword_search(
    backend: BackendClient, ctx: ConnectorContext, settings: Settings, keyword: str
) -> List[Dict[str, Any]]:
    params = _course_query(settings, **{"assetFilteringCriteria.keyword": keyword})
    logger.info("Searching courses for a %d character keyword", len(keyword))
    return await _fetch_courses(backend, ctx, params)
