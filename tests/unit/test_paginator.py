"""
Unit Tests for Paginator
========================

Row-major placement, wrapping, page breaks, borders and fit-to-page scaling.
"""

import pytest

from cardpress.core.layout.paginator import Paginator, fit_scale, orient_page, paginate
from cardpress.models.schemas import Orientation

A4 = (210.0, 297.0)
POKER = (63.0, 88.0)


def positions(layout):
    return [(p.page_index, round(p.x, 6), round(p.y, 6)) for p in layout.placements]


class TestOrientPage:
    def test_portrait(self):
        assert orient_page((297, 210), Orientation.PORTRAIT) == (210, 297)

    def test_landscape(self):
        assert orient_page(A4, Orientation.LANDSCAPE) == (297, 210)


class TestPaginate:
    """Test placement of equally sized cards."""

    def test_five_poker_cards_on_a4(self):
        layout = paginate(5, POKER, A4, Orientation.PORTRAIT, margin=10, border_thickness=0)

        assert positions(layout) == [
            (0, 10, 10),
            (0, 83, 10),
            (0, 10, 108),
            (0, 83, 108),
            (1, 10, 10),
        ]
        assert layout.page_count == 2
        assert layout.scale == 1.0

    def test_output_follows_input_order(self):
        layout = paginate(12, POKER, A4, margin=10)

        assert [p.card_index for p in layout.placements] == list(range(12))

    def test_zero_cards(self):
        layout = paginate(0, POKER, A4, margin=10)

        assert layout.placements == []
        assert layout.page_count == 0

    def test_border_inflates_footprint_and_offsets_image(self):
        layout = paginate(2, POKER, A4, margin=10, border_thickness=1)

        assert layout.placements[0].x == pytest.approx(11)
        assert layout.placements[0].y == pytest.approx(11)
        # 10 + (63 + 2) + 10 = 85, image drawn one border further in
        assert layout.placements[1].x == pytest.approx(86)

    def test_landscape_fits_more_per_row(self):
        layout = paginate(4, POKER, A4, Orientation.LANDSCAPE, margin=10)

        assert positions(layout)[:3] == [(0, 10, 10), (0, 83, 10), (0, 156, 10)]
        assert layout.page_width == 297

    @pytest.mark.parametrize("margin,border", [(0, 0), (5, 0), (10, 0.5), (3, 2)])
    def test_placements_stay_inside_printable_area(self, margin, border):
        layout = paginate(40, POKER, A4, margin=margin, border_thickness=border)

        for placement in layout.placements:
            assert placement.x - layout.border >= margin - 1e-9
            assert placement.y - layout.border >= margin - 1e-9
            assert placement.x + layout.card_width + layout.border <= A4[0] - margin + 1e-9
            assert placement.y + layout.card_height + layout.border <= A4[1] - margin + 1e-9


class TestFitToPage:
    def test_fit_scale_formula(self):
        scale = fit_scale((400, 300), A4, margin=5, border_thickness=0)

        assert scale == pytest.approx(min(1, 200 / 400, 287 / 300))

    def test_fit_scale_never_enlarges(self):
        assert fit_scale(POKER, A4, margin=10, border_thickness=0) == 1.0

    def test_fit_to_page_scales_border_with_card(self):
        layout = paginate(1, (400, 600), A4, margin=5, border_thickness=2, fit_to_page=True)
        expected = min(200 / 404, 287 / 604)

        assert layout.scale == pytest.approx(expected)
        assert layout.border == pytest.approx(2 * expected)
        assert layout.card_width == pytest.approx(400 * expected)

    def test_oversized_card_is_scaled_automatically(self):
        layout = paginate(2, (300, 400), A4, margin=10)

        assert layout.scale < 1
        assert layout.card_width <= A4[0] - 20 + 1e-9
        assert layout.page_count == 2

    def test_no_printable_area(self):
        with pytest.raises(ValueError):
            paginate(1, POKER, A4, margin=200)


class TestPaginatorCursor:
    def test_next_slot_does_not_advance(self):
        paginator = Paginator(A4, POKER, margin=10)

        first = paginator.next_slot()
        again = paginator.next_slot()

        assert (first.x, first.y) == (again.x, again.y)
        assert paginator.placed == 0

    def test_uncommitted_slot_is_reused(self):
        paginator = Paginator(A4, POKER, margin=10)

        paginator.commit()
        skipped = paginator.next_slot()
        reused = paginator.commit()

        assert (reused.page_index, reused.x, reused.y) == (skipped.page_index, skipped.x, skipped.y)
        assert reused.card_index == 1
