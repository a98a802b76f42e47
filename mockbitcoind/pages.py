"""View models for explorer pages: inscription iframes, the block clock and the home page."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

SUBSIDY_HALVING_INTERVAL = 210_000
DIFFCHANGE_INTERVAL = 2016
FIRST_POST_SUBSIDY_HEIGHT = 33 * SUBSIDY_HALVING_INTERVAL


@dataclass(frozen=True)
class Iframe:
    """A sandboxed preview frame for an inscription, optionally linked as a thumbnail."""

    inscription_id: str
    is_thumbnail: bool = False

    @classmethod
    def thumbnail(cls, inscription_id: str) -> Iframe:
        """A preview wrapped in a link to the inscription's page."""
        return cls(inscription_id, True)

    @classmethod
    def main(cls, inscription_id: str) -> Iframe:
        """A bare preview."""
        return cls(inscription_id, False)

    def __str__(self) -> str:
        frame = (
            "<iframe sandbox=allow-scripts scrolling=no loading=lazy "
            f"src=/preview/{self.inscription_id}></iframe>"
        )
        if self.is_thumbnail:
            return f"<a href=/inscription/{self.inscription_id}>{frame}</a>"
        return frame


@dataclass(frozen=True)
class ClockSvg:
    """Hand angles, in degrees, of the block clock for a height."""

    height: int
    hour: float
    minute: float
    second: float

    @classmethod
    def for_height(cls, height: int) -> ClockSvg:
        if height < 0:
            raise ValueError(f"height must not be negative: {height}")
        capped = min(height, FIRST_POST_SUBSIDY_HEIGHT)
        return cls(
            height=height,
            hour=(capped % FIRST_POST_SUBSIDY_HEIGHT) / FIRST_POST_SUBSIDY_HEIGHT * 360.0,
            minute=(capped % SUBSIDY_HALVING_INTERVAL) / SUBSIDY_HALVING_INTERVAL * 360.0,
            second=(height % DIFFCHANGE_INTERVAL) / DIFFCHANGE_INTERVAL * 360.0,
        )


@dataclass(frozen=True)
class HomePage:
    """The latest blocks and inscriptions shown on the home page."""

    last: int
    blocks: list[str]
    inscriptions: list[str]

    @classmethod
    def from_blocks(
        cls, blocks: Iterable[tuple[int, str]], inscriptions: Iterable[str]
    ) -> HomePage:
        """Build from ``(height, hash)`` pairs, newest first."""
        pairs = list(blocks)
        last = pairs[0][0] if pairs else 0
        return cls(
            last=last,
            blocks=[block_hash for _, block_hash in pairs],
            inscriptions=list(inscriptions),
        )

    def title(self) -> str:
        return "Ordinals"