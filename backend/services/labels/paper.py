from dataclasses import dataclass

from core.errors import InvalidConfig


@dataclass(frozen=True)
class PaperSize:
    name: str
    width_mm: float
    height_mm: float


PAPER_SIZES = {
    "A4": PaperSize("A4", 210.0, 297.0),
    "LETTER": PaperSize("Letter", 215.9, 279.4),
    "A5": PaperSize("A5", 148.0, 210.0),
}


def get_paper_size(name: str) -> PaperSize:
    paper = PAPER_SIZES.get((name or "").strip().upper())
    if paper is None:
        options = ", ".join(p.name for p in PAPER_SIZES.values())
        raise InvalidConfig(f"Unknown paper size {name!r} (expected one of {options})")
    return paper
