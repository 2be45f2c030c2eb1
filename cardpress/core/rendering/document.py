"""
Card Document
=============

Wraps rendered card HTML in a complete page sized to the card, ready for
preview or rasterization.
"""

from typing import Any, Optional
from pathlib import Path

import jinja2

from cardpress.config.logging import get_logger
from cardpress.core.errors import CardRenderError

logger = get_logger(__name__)

DOCUMENT_TEMPLATE = "card_document.html"


class CardDocumentBuilder:
    """Jinja2-based builder for standalone card documents."""

    def __init__(self) -> None:
        self.logger: Any = logger.bind(component="card_document")
        self._setup_jinja2_environment()

    def _setup_jinja2_environment(self) -> None:
        """Setup Jinja2 template environment."""
        template_dir = Path(__file__).parent / "templates"
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            autoescape=jinja2.select_autoescape(["html", "xml"]),
        )

        def px(value: float) -> str:
            """Format a numeric value as CSS pixels."""
            return f"{round(float(value), 3):g}px"

        self.env.filters["px"] = px

    def build(
        self,
        html: str,
        width_px: float,
        height_px: float,
        base_url: Optional[str] = None,
        locale: Optional[str] = None,
        title: str = "Card",
    ) -> str:
        """
        Build a card document.

        Args:
            html: Rendered card HTML
            width_px: Card width in CSS pixels
            height_px: Card height in CSS pixels
            base_url: Optional base URL for relative references
            locale: Document language

        Returns:
            Complete HTML document

        Raises:
            CardRenderError: If the wrapper template fails to render
        """
        try:
            template = self.env.get_template(DOCUMENT_TEMPLATE)
            return template.render(
                card_html=html,
                width_px=width_px,
                height_px=height_px,
                base_url=base_url,
                locale=locale,
                title=title,
            )
        except jinja2.TemplateError as e:
            self.logger.error("Card document rendering failed", error=str(e))
            raise CardRenderError(f"Card document rendering failed: {e}")
