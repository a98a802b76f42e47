import pytest

from mockbitcoind.pages import ClockSvg, HomePage, Iframe
from mockbitcoind.samples import inscription_id

_ID1 = "1" * 64 + "i1"


def test_iframe_thumbnail():
    rendered = str(Iframe.thumbnail(inscription_id(1)))
    assert rendered == (
        f"<a href=/inscription/{_ID1}><iframe sandbox=allow-scripts scrolling=no "
        f"loading=lazy src=/preview/{_ID1}></iframe></a>"
    )


def test_iframe_main():
    rendered = str(Iframe.main(inscription_id(1)))
    assert rendered == (
        "<iframe sandbox=allow-scripts scrolling=no loading=lazy "
        f"src=/preview/{_ID1}></iframe>"
    )


@pytest.mark.parametrize(
    "height, expected",
    [
        (0, 0.0),
        (504, 90.0),
        (1008, 180.0),
        (1512, 270.0),
        (2016, 0.0),
        (6930000, 180.0),
        (6930504, 270.0),
    ],
)
def test_second(height, expected):
    assert ClockSvg.for_height(height).second == expected


@pytest.mark.parametrize(
    "height, expected",
    [
        (0, 0.0),
        (52500, 90.0),
        (105000, 180.0),
        (157500, 270.0),
        (210000, 0.0),
        (6930000, 0.0),
        (6930001, 0.0),
    ],
)
def test_minute(height, expected):
    assert ClockSvg.for_height(height).minute == expected


@pytest.mark.parametrize(
    "height, expected",
    [
        (0, 0.0),
        (1732500, 90.0),
        (3465000, 180.0),
        (5197500, 270.0),
        (6930000, 0.0),
        (6930001, 0.0),
    ],
)
def test_hour(height, expected):
    assert ClockSvg.for_height(height).hour == expected


def test_final_subsidy_height():
    clock = ClockSvg.for_height(6929999)
    assert clock.second == 1007.0 / 2016.0 * 360.0
    assert clock.minute == 209_999.0 / 210_000.0 * 360.0
    assert clock.hour == 6929999.0 / 6930000.0 * 360.0


def test_final_subsidy_height_angles_match_rendered_values():
    clock = ClockSvg.for_height(6929999)
    assert str(clock.hour) == "359.9999480519481"
    assert str(clock.minute) == "359.9982857142857"
    assert str(clock.second) == "179.82142857142858"
    assert clock.height == 6929999


def test_first_post_subsidy_height():
    clock = ClockSvg.for_height(6930000)
    assert clock.second == 180.0
    assert clock.minute == 0.0
    assert clock.hour == 0.0


def test_negative_height_rejected():
    with pytest.raises(ValueError):
        ClockSvg.for_height(-1)


def test_home_page_from_blocks():
    page = HomePage.from_blocks(
        [(1260001, "1" * 64), (1260000, "0" * 64)],
        [inscription_id(1), inscription_id(2)],
    )
    assert page.last == 1260001
    assert page.blocks == ["1" * 64, "0" * 64]
    assert page.inscriptions == ["1" * 64 + "i1", "2" * 64 + "i2"]


def test_home_page_without_blocks_starts_at_zero():
    page = HomePage.from_blocks([], [])
    assert page.last == 0
    assert page.blocks == []


def test_home_page_title():
    assert HomePage.from_blocks([], []).title() == "Ordinals"