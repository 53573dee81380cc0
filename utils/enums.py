from enum import Enum, auto


class PrecisionMode(Enum):
    Single = auto()
    Double = auto()


class PaletteKind(Enum):
    POLY = auto()
    TRIG = auto()

    def toggled(self) -> "PaletteKind":
        return PaletteKind.TRIG if self is PaletteKind.POLY else PaletteKind.POLY


class SurfaceOwnership(Enum):
    RENDERING_OWNED = auto()
    COMPUTE_OWNED = auto()
