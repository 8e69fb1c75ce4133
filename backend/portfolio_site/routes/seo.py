"""
Portfolio Site Backend — SEO Routes
====================================

What:  /robots.txt, /sitemap.xml and the page-meta endpoint the site's
       layout calls while rendering <head>.
"""

from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import PlainTextResponse, Response

from portfolio_site.config import settings
from portfolio_site.services import seo

router = APIRouter(tags=["SEO"])


@router.get("/robots.txt", response_class=PlainTextResponse, include_in_schema=False)
async def robots_txt() -> PlainTextResponse:
    return PlainTextResponse(seo.build_robots_txt(settings))


@router.get("/sitemap.xml", include_in_schema=False)
async def sitemap_xml() -> Response:
    return Response(
        content=seo.build_sitemap_xml(settings),
        media_type="application/xml; charset=utf-8",
    )


@router.get("/api/seo/meta", summary="Meta, Open Graph, Twitter and JSON-LD for a page")
async def page_meta(
    path: str = Query(default="/", max_length=500),
    title: Optional[str] = Query(default=None, max_length=200),
    description: Optional[str] = Query(default=None, max_length=500),
    image: Optional[str] = Query(default=None, max_length=500),
) -> dict:
    if not path.startswith("/"):
        path = "/" + path
    canonical = seo.generate_canonical_url(settings, path)
    meta = seo.generate_seo_meta(
        settings,
        title=seo.generate_page_title(settings, title),
        description=description,
        image=image,
        url=canonical,
    )
    return {
        "title": meta.title,
        "description": meta.description,
        "canonical": canonical,
        "openGraph": seo.generate_open_graph_tags(settings, meta),
        "twitter": seo.generate_twitter_tags(settings, meta),
        "structuredData": seo.generate_structured_data(settings, meta),
    }
