import logging
from urllib.parse import urlparse

import requests
from fastapi import APIRouter, Depends, Query, Response

logger = logging.getLogger(__name__)

router = APIRouter()

ALLOWED_HOSTS = {
    "www.formula1.com",
    "formula1.com",
    "media.formula1.com",
    "content-api.formula1.com",
    "fom-website.azureedge.net",
    "f1mrx.netlify.app",
}
CACHE_CONTROL = "public, max-age=86400"


def get_http() -> requests.Session:
    return requests.Session()

def content_type_for(path: str) -> str:
    lowered = path.lower()
    if lowered.endswith(".png"):
        return "image/png"
    if lowered.endswith(".webp"):
        return "image/webp"
    return "image/jpeg"

@router.get("/proxy")
def proxy(src: str = Query(...), http: requests.Session = Depends(get_http)):
    url = urlparse(src)
    if url.hostname not in ALLOWED_HOSTS:
        return Response(status_code=403)

    try:
        upstream = http.get(src, timeout=15)
        upstream.raise_for_status()
    except requests.RequestException:
        logger.warning("Image proxy fetch failed for %s", src, exc_info=True)
        return Response(status_code=502)

    return Response(
        content=upstream.content,
        media_type=content_type_for(url.path),
        headers={"Cache-Control": CACHE_CONTROL},
    )
