import copy
import html
import re
from pathlib import Path
from urllib.parse import quote
from app.config import config

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

MEDIA_LAYOUT = "WITH_MEDIA_CONTENT_LAYOUT"

# Notes are stored by the Spaces editor as entity-encoded markup
_P_OPEN = "&lt;p&gt;"
_P_OPEN_PASTED = "&lt;p id=&quot;isPasted&quot;&gt;"
_P_CLOSE = "&lt;/p&gt;"
_BR = "&lt;br&gt;"


def _encoded_anchor(url: str, text: str) -> str:
    return (
        f"&lt;a href=&quot;{url}&quot; target=&quot;_blank&quot; "
        f"rel=&quot;noopener noreferrer&quot;&gt;{text}&lt;/a&gt;"
    )


def notes_to_html(text: str, hyperlinks: list[dict] = None) -> str:
    """
    Converts plain Space notes into the encoded paragraph markup the notes section expects.
    The first occurrence of every hyperlink text in a paragraph becomes an anchor.
    """
    if not text:
        return ""

    hyperlinks = hyperlinks or []
    paragraphs = [p for p in re.split(r"\n\s*\n|\r\n\s*\r\n", text) if p.strip()]
    parts = []

    for index, paragraph in enumerate(paragraphs):
        paragraph_text = paragraph.strip()

        for link in hyperlinks:
            link_text = str(link.get("text") or "")
            if link_text and link_text in paragraph_text:
                paragraph_text = paragraph_text.replace(link_text, _encoded_anchor(link["url"], link_text), 1)

        paragraph_text = paragraph_text.replace("-->", "→").replace("\r\n", _BR).replace("\n", _BR)

        if index == 0 and "→" in paragraph_text:
            parts.append(f"{_P_OPEN_PASTED}{paragraph_text}{_P_CLOSE}")
        else:
            parts.append(f"{_P_OPEN}{paragraph_text}{_P_CLOSE}")

        if index < len(paragraphs) - 1:
            parts.append(f"{_P_OPEN}{_BR}{_P_CLOSE}")

    return "".join(parts)


def process_space_notes(text: str, extracted_hyperlinks: list[dict] = None) -> str:
    return notes_to_html(text, list(extracted_hyperlinks or []) + config.NOTES_COMMON_LINKS)


def encode_banner_text(text: str) -> str:
    """Wraps the banner in a paragraph and URI-encodes it like encodeURIComponent."""
    formatted = re.sub(r"\n\s*\n", "<br><br>", text)
    formatted = formatted.replace("\n", " ").replace("→", "&rarr;")
    return quote(f"<p>{formatted}</p>", safe="-_.!~*'()")


def banner_background() -> dict:
    return {
        "type": "GRADIENT",
        "value": {
            "selectedSolidColor": None,
            "selectedGradientColor": {
                "background": config.BANNER_GRADIENT,
                "color": config.BANNER_COLOR,
                "selected": True,
            },
            "selectedImage": None,
            "isUploadedImage": False,
        },
        "base64": None,
    }


def apply_widget_content(widget: dict, video_url: str = None, banner: str = None) -> dict:
    """
    Returns a copy of the widget with the video, media layout and optional banner applied.
    Widgets without a config are returned unchanged.
    """
    updated = copy.deepcopy(widget)
    widget_config = updated.get("config")
    if not widget_config:
        return updated

    widget_config["mediaContent"] = {
        "mediaType": "VIDEO",
        "content": {"url": video_url or "", "thumbnailUrl": ""},
    }
    layout_type = widget_config.get("bannerLayoutType") or {}
    layout_type["layoutName"] = MEDIA_LAYOUT
    widget_config["bannerLayoutType"] = layout_type

    if banner:
        widget_config["bannerText"] = {"value": encode_banner_text(banner)}
        widget_config["bannerContent"] = banner_background()

    return updated


def _load_invite_template() -> str:
    return (TEMPLATE_DIR / "invite_email.html").read_text(encoding="utf-8")


def invite_email_body(contact_name: str = None) -> str:
    body = _load_invite_template().replace("[Contact Name]", contact_name or "")
    return html.escape(body, quote=True)
