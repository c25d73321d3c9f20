"""Embed documents. Only the <meta> tags are consumed, by link-preview fetchers."""
from html import escape

PLAYER_WIDTH = 320
PLAYER_HEIGHT = 320
PLAYER_FORMAT = "mp4"


def _attr(value) -> str:
    return escape("" if value is None else str(value), quote=True)


def render_video_card(title: str, text: str, post_url: str, video_url: str, thumbnail_url: str = None) -> str:
    meta = [
        f'<meta property="og:title" content="{_attr(title)}"/>',
        f'<meta name="twitter:description" content="{_attr(text)}">',
        f'<meta property="og:url" content="{_attr(post_url)}"/>',
        f'<meta property="twitter:player" content="{_attr(video_url)}">',
        f'<meta property="twitter:player:stream" content="{_attr(video_url)}"/>',
        f'<meta property="twitter:player:stream:content_type" content="{PLAYER_FORMAT}"/>',
        f'<meta property="twitter:player:width" content="{PLAYER_WIDTH}">',
        f'<meta property="twitter:player:height" content="{PLAYER_HEIGHT}">',
        '<meta property="og:type" content="video.other">',
        f'<meta property="og:video:url" content="{_attr(video_url)}">',
        f'<meta property="og:video:secure_url" content="{_attr(video_url)}">',
        f'<meta property="og:video:width" content="{PLAYER_WIDTH}">',
        f'<meta property="og:video:height" content="{PLAYER_HEIGHT}">',
    ]
    if thumbnail_url:
        meta.append(f'<meta property="og:image" content="{_attr(thumbnail_url)}">')
    return _document(meta)


def render_image_card(title: str, text: str, post_url: str, image_url: str) -> str:
    return _document([
        '<meta name="twitter:card" content="summary_large_image">',
        f'<meta property="og:title" content="{_attr(title)}"/>',
        f'<meta name="twitter:description" content="{_attr(text)}">',
        f'<meta property="twitter:image" content="{_attr(image_url)}">',
        f'<meta property="og:url" content="{_attr(post_url)}"/>',
        f'<meta property="og:image" content="{_attr(image_url)}">',
    ])


def render_text_card(title: str, text: str, post_url: str) -> str:
    return _document([
        f'<meta property="og:title" content="{_attr(title)}"/>',
        f'<meta name="twitter:description" content="{_attr(text)}">',
        f'<meta property="og:url" content="{_attr(post_url)}"/>',
    ])


def _document(meta) -> str:
    head = "\n        ".join(meta)
    return f"""<html>
    <head>
        {head}
    </head>
</html>
"""
