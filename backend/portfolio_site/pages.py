"""
Portfolio Site Backend — Standalone HTML Pages
===============================================

What:  The small HTML pages served by link-driven endpoints (confirmation and
       unsubscribe links opened from an email client).
How:   String templates with every interpolated value passed through
       html.escape. No template engine; there are only three page shapes.
"""

from html import escape
from typing import Iterable, Optional

from portfolio_site.config import settings

# Endpoints opened from email links; their errors are pages, not JSON
LINK_PAGE_PATHS = frozenset({"/api/subscribe/confirm", "/api/subscribe/unsubscribe"})

HTML_NO_CACHE = {"Cache-Control": "no-cache"}

PAGE_STYLE = """
    body {
      font-family: 'Inter', -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      background: linear-gradient(135deg, #0f0f23 0%, #1a1a2e 50%, #16213e 100%);
      color: #ffffff;
      margin: 0;
      min-height: 100vh;
      display: flex;
      align-items: center;
      justify-content: center;
    }
    .container { max-width: 600px; margin: 0 auto; padding: 2rem; text-align: center; }
    .icon { font-size: 4rem; margin-bottom: 1rem; }
    h1 { color: #00ffff; font-size: 2.5rem; margin-bottom: 1rem; }
    h1.error { color: #ff4d6d; }
    p { font-size: 1.1rem; line-height: 1.6; margin-bottom: 1.5rem; color: #cccccc; }
    .btn {
      display: inline-block;
      padding: 12px 24px;
      background: linear-gradient(135deg, #00ffff, #9f40ff);
      color: white;
      text-decoration: none;
      border-radius: 8px;
      font-weight: 600;
    }
"""


def render_page(
    title: str,
    paragraphs: Iterable[str],
    *,
    icon: str,
    error: bool = False,
    action_href: str = "/",
    action_label: str = "Return to Homepage",
) -> str:
    body = "\n".join(f"    <p>{escape(text)}</p>" for text in paragraphs)
    heading_class = ' class="error"' if error else ""
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{escape(title)} - {escape(settings.site_author)}</title>
  <style>{PAGE_STYLE}</style>
</head>
<body>
  <div class="container">
    <div class="icon">{icon}</div>
    <h1{heading_class}>{escape(title)}</h1>
{body}
    <a href="{escape(action_href, quote=True)}" class="btn">{escape(action_label)}</a>
  </div>
</body>
</html>"""


def success_page(title: str, message: str, note: Optional[str] = None) -> str:
    paragraphs = [message] + ([note] if note else [])
    return render_page(title, paragraphs, icon="✅")


def error_page(title: str, message: str, include_subscribe_link: bool = False) -> str:
    if include_subscribe_link:
        return render_page(
            title,
            [message],
            icon="⚠️",
            error=True,
            action_href="/#subscribe",
            action_label="Subscribe Again",
        )
    return render_page(title, [message], icon="⚠️", error=True)
