"""Markdown rendering for progress notes."""

import xml.etree.ElementTree as etree

import bleach
import markdown as md
from markdown.extensions import Extension
from markdown.treeprocessors import Treeprocessor

_ALLOWED_TAGS = [
    "p",
    "br",
    "strong",
    "em",
    "del",
    "h1",
    "h2",
    "h3",
    "h4",
    "blockquote",
    "code",
    "pre",
    "ul",
    "ol",
    "li",
    "table",
    "thead",
    "tbody",
    "tr",
    "th",
    "td",
    "a",
    "img",
]
_ALLOWED_ATTRS = {
    "a": ["href", "title"],
    "img": ["src", "alt", "title", "class", "loading", "data-note-id"],
}


class NoteImageTreeprocessor(Treeprocessor):
    """Tag inline note images so the timeline can style and group them."""

    def __init__(self, md: md.Markdown, note_id: str = "") -> None:
        super().__init__(md)
        self.note_id = note_id

    def run(self, root: etree.Element) -> None:
        for img in root.iter("img"):
            img.set("class", "note-inline-image")
            img.set("loading", "lazy")
            if self.note_id:
                img.set("data-note-id", self.note_id)


class NoteImageExtension(Extension):
    def __init__(self, **kwargs: object) -> None:
        self.config = {"note_id": ["", "Id of the note being rendered"]}
        super().__init__(**kwargs)

    def extendMarkdown(self, md: md.Markdown) -> None:
        note_id = self.getConfig("note_id")
        md.treeprocessors.register(
            NoteImageTreeprocessor(md, str(note_id) if note_id else ""),
            "note_images",
            15,
        )


def render_markdown(text: str, note_id: int | None = None) -> str:
    """Render note markdown to sanitized HTML."""
    html = md.markdown(
        text,
        extensions=[
            "extra",
            "nl2br",
            NoteImageExtension(note_id="" if note_id is None else str(note_id)),
        ],
    )
    return bleach.clean(
        html, tags=_ALLOWED_TAGS, attributes=_ALLOWED_ATTRS, strip=True
    )
