"""
Test Data Generators
====================

Builders for card records, resolved cards, project folders and PNG bytes.
"""

import io
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from PIL import Image  # type: ignore

from cardpress.models.schemas import CardRecord, ResolvedCard


def png_bytes(width: int = 4, height: int = 6, color: str = "white") -> bytes:
    """Encode a solid-color PNG."""
    output = io.BytesIO()
    Image.new("RGB", (width, height), color).save(output, format="PNG")
    return output.getvalue()


def make_cards(rows: List[Dict[str, str]]) -> List[CardRecord]:
    return [CardRecord(row, row_index=index) for index, row in enumerate(rows)]


def make_resolved_cards(count: int, html: str = "<div>card</div>") -> List[ResolvedCard]:
    cards = make_cards([{"id": f"card-{index}", "Name": f"Card {index}"} for index in range(count)])
    return [
        ResolvedCard(
            index=index,
            row_index=card.row_index,
            card=card,
            template_path="templates/card.html",
            html=f'{html}<span data-card="{index}"></span>',
        )
        for index, card in enumerate(cards)
    ]


DEFAULT_CONFIG: Dict[str, Any] = {
    "project": {"id": "demo", "name": "Demo Deck", "version": 1},
    "layout": {"width": 63, "height": 88, "unit": "mm", "dpi": 300},
    "templates": {"default": "templates/card.html"},
    "localization": {"directory": "i18n", "defaultLocale": "en"},
    "csv": {"idColumn": "id", "templateColumn": "template"},
    "export": {
        "dpi": 300,
        "pdf": {
            "pageSize": "a4",
            "orientation": "portrait",
            "margin": 10,
            "border": {"thickness": 0.1, "color": "#333333"},
        },
    },
}

DEFAULT_TEMPLATE = (
    '<div class="card"><h1>{{t:card.Name}}</h1>'
    "<p>{{ Cost }}</p><small>{{index1}}</small>"
    '<img src="./images/{{id}}.png"></div>'
)

SPECIAL_TEMPLATE = '<div class="special">{{ Name }} / {{t:common.title}}</div>'

DEFAULT_CSV = "id,Name,Cost,template\nfire,Fireball,3,\nice,Ice Wall,2,templates/special.html\n"

DEFAULT_MESSAGES: Dict[str, Dict[str, Any]] = {
    "en": {
        "common": {"title": "Spells"},
        "cards": {"fire": {"Name": "Fireball (EN)"}},
    },
    "de": {
        "common": {"title": "Zauber"},
        "cards": {"fire": {"Name": "Feuerball"}},
    },
}


class ProjectFolderBuilder:
    """Write a complete card deck project into a directory."""

    def __init__(self, root: Path):
        self.root = root

    def write(self, relative: str, content: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def build(
        self,
        config: Optional[Dict[str, Any]] = None,
        csv_text: str = DEFAULT_CSV,
        templates: Optional[Dict[str, str]] = None,
        messages: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> Path:
        self.write("card-deck-project.yml", yaml.safe_dump(config or DEFAULT_CONFIG))
        self.write("cards.csv", csv_text)

        if templates is None:
            templates = {
                "templates/card.html": DEFAULT_TEMPLATE,
                "templates/special.html": SPECIAL_TEMPLATE,
            }
        for relative, content in templates.items():
            self.write(relative, content)

        for locale, bundle in (DEFAULT_MESSAGES if messages is None else messages).items():
            self.write(f"i18n/{locale}.yml", yaml.safe_dump(bundle))

        (self.root / "images").mkdir(exist_ok=True)
        (self.root / "images" / "fire.png").write_bytes(png_bytes())
        return self.root
