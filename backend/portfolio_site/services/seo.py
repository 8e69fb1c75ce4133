"""
Portfolio Site Backend — SEO Metadata
======================================

What:  Page meta, Open Graph / Twitter tags, JSON-LD, robots.txt and
       sitemap.xml for the portfolio.
How:   Pure functions over the site settings. Output is deterministic apart
       from the sitemap's <lastmod>, which the caller may pin.
Who:   routes/seo.py.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional
from xml.sax.saxutils import escape

from pydantic import BaseModel

from portfolio_site.config import Settings

STATIC_PAGES = ["", "/about", "/work", "/contact"]

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"


class SEOMeta(BaseModel):
    title: str
    description: str
    image: str
    url: str
    type: str = "website"


def site_name(settings: Settings) -> str:
    """'Bizkit.dev - Omar Bizkitdev' → 'Bizkit.dev'"""
    return settings.site_title.split(" - ")[0]


def generate_page_title(settings: Settings, title: Optional[str] = None) -> str:
    if not title:
        return settings.site_title
    return f"{title} | {site_name(settings)}"


def generate_canonical_url(settings: Settings, path: str) -> str:
    base = settings.site_url.rstrip("/")
    return f"{base}{'' if path == '/' else path}"


def generate_seo_meta(settings: Settings, **overrides) -> SEOMeta:
    """Site defaults, with any non-None override applied on top."""
    meta = {
        "title": settings.site_title,
        "description": settings.site_description,
        "image": settings.default_og_image,
        "url": settings.site_url,
        "type": "website",
    }
    meta.update({key: value for key, value in overrides.items() if value is not None})
    return SEOMeta(**meta)


def generate_open_graph_tags(settings: Settings, meta: SEOMeta) -> Dict[str, str]:
    return {
        "og:title": meta.title,
        "og:description": meta.description,
        "og:image": meta.image or settings.default_og_image,
        "og:url": meta.url or settings.site_url,
        "og:type": meta.type or "website",
        "og:site_name": site_name(settings),
    }


def generate_twitter_tags(settings: Settings, meta: SEOMeta) -> Dict[str, str]:
    return {
        "twitter:card": "summary_large_image",
        "twitter:title": meta.title,
        "twitter:description": meta.description,
        "twitter:image": meta.image or settings.default_og_image,
        "twitter:creator": settings.twitter_handle,
    }


def generate_structured_data(settings: Settings, meta: SEOMeta) -> Dict[str, object]:
    return {
        "@context": "https://schema.org",
        "@type": "WebSite",
        "name": meta.title,
        "description": meta.description,
        "url": meta.url or settings.site_url,
        "author": {
            "@type": "Person",
            "name": settings.site_author,
            "url": settings.site_url,
        },
    }


def build_robots_txt(settings: Settings) -> str:
    base = settings.site_url.rstrip("/")
    return f"""User-agent: *
Allow: /

# Sitemap
Sitemap: {base}/sitemap.xml

# Crawl-delay for respectful crawling
Crawl-delay: 1

# Block sensitive areas
Disallow: /api/
Disallow: /.env
Disallow: /node_modules/
Disallow: /dist/
Disallow: /src/

# Public API endpoints
Allow: /api/projects
Allow: /api/projects/*

# Common bot rules
User-agent: Googlebot
Allow: /
Crawl-delay: 1

User-agent: Bingbot
Allow: /
Crawl-delay: 1

User-agent: Slurp
Allow: /
Crawl-delay: 2

# Block aggressive crawlers
User-agent: SemrushBot
Disallow: /

User-agent: AhrefsBot
Disallow: /

User-agent: MJ12bot
Disallow: /"""


def sitemap_pages(settings: Settings) -> List[str]:
    return STATIC_PAGES + [f"/projects/{pid}" for pid in settings.sitemap_project_list]


def _priority(page: str) -> str:
    if page == "":
        return "1.0"
    if page in ("/about", "/work"):
        return "0.8"
    if page.startswith("/projects/"):
        return "0.7"
    return "0.5"


def _changefreq(page: str) -> str:
    return "weekly" if page == "" else "monthly"


def build_sitemap_xml(settings: Settings, lastmod: Optional[datetime] = None) -> str:
    base = settings.site_url.rstrip("/")
    stamp = (lastmod or datetime.now(timezone.utc)).isoformat()
    entries = [
        "  <url>\n"
        f"    <loc>{escape(base + page)}</loc>\n"
        f"    <lastmod>{stamp}</lastmod>\n"
        f"    <changefreq>{_changefreq(page)}</changefreq>\n"
        f"    <priority>{_priority(page)}</priority>\n"
        "  </url>"
        for page in sitemap_pages(settings)
    ]
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<urlset xmlns="{SITEMAP_NAMESPACE}">\n'
        + "\n".join(entries)
        + "\n</urlset>"
    )
