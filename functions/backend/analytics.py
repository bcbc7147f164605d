"""
Page visit and e-mail click tracking plus the admin summary.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Optional

from backend.db import DbClient
from shared import constants

VISITS = constants.PAGE_VISITS_TABLE
EMAIL_CLICKS = constants.EMAIL_CLICKS_TABLE

# Geo headers set by common CDNs in front of the API.
COUNTRY_HEADERS = ("cf-ipcountry", "x-vercel-ip-country", "cloudfront-viewer-country")


def country_from_headers(headers) -> Optional[str]:
    for name in COUNTRY_HEADERS:
        value = headers.get(name)
        # "XX" and "T1" are Cloudflare's unknown / Tor markers.
        if value and value.upper() not in ("XX", "T1"):
            return value.upper()
    return None


def record_page_visit(db: DbClient, page_path: str, country: Optional[str]) -> dict:
    return db.insert(VISITS, {"page_path": page_path, "country": country})


def record_email_click(
    db: DbClient, email: Optional[str], page_path: Optional[str]
) -> dict:
    return db.insert(EMAIL_CLICKS, {"email": email, "page_path": page_path})


def summary(db: DbClient, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now(timezone.utc)
    midnight = now.astimezone(timezone.utc).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    visits = db.select(VISITS)
    countries = Counter(visit["country"] for visit in visits if visit.get("country"))
    pages = Counter(visit["page_path"] for visit in visits)
    return {
        "total_visits": len(visits),
        "today_visits": db.count(VISITS, since=midnight),
        "email_clicks": db.count(EMAIL_CLICKS),
        "top_countries": [
            {"country": country, "count": count}
            for country, count in countries.most_common(constants.TOP_COUNTRIES_LIMIT)
        ],
        "pages": [{"page": page, "count": count} for page, count in pages.most_common()],
    }
