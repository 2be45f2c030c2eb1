"""
Unit Tests for Card Resolution Pipeline
=======================================

Template loading, card resolution, skipping and cache invalidation.
"""

from unittest.mock import Mock

import pytest

from cardpress.core.errors import NoTemplatesError
from cardpress.core.pipeline.card_pipeline import CardResolutionPipeline
from cardpress.core.rendering.template_renderer import TemplateRenderer
from cardpress.models.schemas import ColumnNames, LocalizationBundle, ProjectTemplates
from tests.utils.data_generators import make_cards
from tests.utils.mocks import InMemoryFileSystem


@pytest.fixture
def files():
    return InMemoryFileSystem(
        {
            "/deck/templates/card.html": "<h1>{{Name}}</h1><i>{{index}}</i>",
            "/deck/templates/special.html": "<h2>{{t:card.Name}}</h2>",
        }
    )


@pytest.fixture
def no_assets():
    resolver = Mock()
    resolver.resolve.return_value = None
    return resolver


@pytest.fixture
def pipeline(files, no_assets):
    return CardResolutionPipeline(files, asset_resolver=no_assets)


@pytest.fixture
def cards():
    return make_cards(
        [
            {"id": "a", "Name": "Alpha", "template": ""},
            {"id": "b", "Name": "Beta", "template": "templates/special.html"},
            {"id": "c", "Name": "Gamma", "template": "templates/special.html"},
            {"id": "d", "Name": "Delta", "template": "templates/missing.html"},
        ]
    )


class TestLoadTemplates:
    """Test template loading."""

    def test_loads_default_and_per_card_templates_once(self, pipeline, files, cards):
        templates = pipeline.load_templates("/deck", "templates/card.html", cards, "template")

        assert templates.default_template.path == "/deck/templates/card.html"
        assert set(templates.card_templates) == {"templates/special.html"}
        assert files.reads.count("/deck/templates/special.html") == 1

    def test_unreadable_templates_are_omitted(self, pipeline, cards):
        templates = pipeline.load_templates("/deck", "templates/nope.html", cards, "template")

        assert templates.default_template is None
        assert "templates/missing.html" not in templates.card_templates

    def test_templates_are_cached_by_path(self, pipeline, files, cards):
        pipeline.load_templates("/deck", "templates/card.html", cards, "template")
        pipeline.load_templates("/deck", "templates/card.html", cards, "template")

        assert files.reads.count("/deck/templates/card.html") == 1

    def test_reload_rereads_templates(self, pipeline, files, cards):
        pipeline.load_templates("/deck", "templates/card.html", cards, "template")
        files.write_binary("/deck/templates/card.html", b"<p>changed</p>")
        pipeline.invalidate(reload_templates=True)

        templates = pipeline.load_templates("/deck", "templates/card.html", cards, "template")

        assert templates.default_template.content == "<p>changed</p>"


class TestResolveAll:
    """Test card resolution."""

    def test_resolves_cards_in_row_order(self, pipeline, cards):
        templates = pipeline.load_templates("/deck", "templates/card.html", cards, "template")

        resolved = pipeline.resolve_all(cards, templates, ColumnNames(), None, "/deck")

        assert [card.index for card in resolved] == [0, 1, 2, 3]
        assert resolved[0].html == "<h1>Alpha</h1><i>0</i>"
        assert resolved[1].html == "<h2>Beta</h2>"
        assert resolved[1].template_path == "templates/special.html"
        # Missing per-row template falls back to the default
        assert resolved[3].html == "<h1>Delta</h1><i>3</i>"

    def test_localized_rendering(self, pipeline, cards):
        templates = pipeline.load_templates("/deck", "templates/card.html", cards, "template")
        bundle = LocalizationBundle(locale="de", messages={"cards": {"b": {"Name": "Beta DE"}}})

        resolved = pipeline.resolve_all(cards, templates, ColumnNames(), bundle, "/deck")

        assert resolved[1].html == "<h2>Beta DE</h2>"
        assert resolved[2].html == "<h2>Gamma</h2>"

    def test_rows_without_template_are_skipped(self, pipeline, cards):
        templates = pipeline.load_templates("/deck", None, cards, "template")

        resolved = pipeline.resolve_all(cards, templates, ColumnNames(), None, "/deck")

        assert [card.row_index for card in resolved] == [1, 2]
        assert [card.index for card in resolved] == [0, 1]

    def test_no_templates_is_hard_failure(self, pipeline, cards):
        with pytest.raises(NoTemplatesError):
            pipeline.resolve_all(cards, ProjectTemplates(), ColumnNames(), None, "/deck")

    def test_no_cards(self, pipeline):
        assert pipeline.resolve_all([], ProjectTemplates(), ColumnNames()) == []
        assert pipeline.resolve_all(None, ProjectTemplates(), ColumnNames()) == []

    def test_asset_links_are_rewritten(self, files):
        files.write_binary("/deck/templates/card.html", b'<img src="art/{{id}}.png">')
        resolver = Mock()
        resolver.resolve.side_effect = lambda root, relative: f"file://{root}/{relative}"
        pipeline = CardResolutionPipeline(files, asset_resolver=resolver)
        cards = make_cards([{"id": "a"}])
        templates = pipeline.load_templates("/deck", "templates/card.html", cards, "template")

        resolved = pipeline.resolve_all(cards, templates, ColumnNames(), None, "/deck")

        assert resolved[0].html == '<img src="file:///deck/art/a.png">'


class TestRenderCache:
    @pytest.fixture
    def counting_pipeline(self, files, no_assets):
        renderer = Mock(wraps=TemplateRenderer())
        return CardResolutionPipeline(files, renderer=renderer, asset_resolver=no_assets), renderer

    def test_rendered_html_is_memoized(self, counting_pipeline, cards):
        pipeline, renderer = counting_pipeline
        templates = pipeline.load_templates("/deck", "templates/card.html", cards, "template")

        first = pipeline.resolve_all(cards, templates, ColumnNames(), None, "/deck")
        second = pipeline.resolve_all(cards, templates, ColumnNames(), None, "/deck")

        assert [c.html for c in first] == [c.html for c in second]
        assert renderer.render.call_count == len(cards)

    def test_locale_is_part_of_the_key(self, counting_pipeline, cards):
        pipeline, renderer = counting_pipeline
        templates = pipeline.load_templates("/deck", "templates/card.html", cards, "template")

        pipeline.resolve_all(cards, templates, ColumnNames(), LocalizationBundle(locale="en"), "/deck")
        pipeline.resolve_all(cards, templates, ColumnNames(), LocalizationBundle(locale="de"), "/deck")

        assert renderer.render.call_count == 2 * len(cards)

    def test_duplicate_rows_keep_their_own_numbering(self, counting_pipeline):
        pipeline, _ = counting_pipeline
        cards = make_cards([{"Name": "Same"}, {"Name": "Same"}])
        templates = pipeline.load_templates("/deck", "templates/card.html", cards, "template")

        resolved = pipeline.resolve_all(cards, templates, ColumnNames(), None, "/deck")

        assert [c.html for c in resolved] == ["<h1>Same</h1><i>0</i>", "<h1>Same</h1><i>1</i>"]

    def test_invalidate_forces_rerender(self, counting_pipeline, cards):
        pipeline, renderer = counting_pipeline
        templates = pipeline.load_templates("/deck", "templates/card.html", cards, "template")

        pipeline.resolve_all(cards, templates, ColumnNames(), None, "/deck")
        pipeline.invalidate()
        pipeline.resolve_all(cards, templates, ColumnNames(), None, "/deck")

        assert renderer.render.call_count == 2 * len(cards)
