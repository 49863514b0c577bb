"""
SigilMint Deterministic Geometry

Seeded, fully specified pseudo-randomness and the layout figures drawn from
it. Nothing here touches a platform random source: every output is a pure
function of its seed string, so a sigil re-rendered anywhere is
byte-identical.

Seed mixing (seed32_from_hex), 32-bit unsigned throughout:
    h = 0x811C9DC5
    for each code point c of the seed text:
        h ^= c
        h = h + (h << 1) + (h << 4) + (h << 7) + (h << 8) + (h << 24)
    (every shifted term is truncated to 32 bits before the sum, and the sum
    is reduced mod 2**32)

Generator (xorshift32):
    x ^= x << 13   (mod 2**32)
    x ^= x >> 17
    x ^= x << 5    (mod 2**32)
    output x / 2**32, in [0, 1)

Seed 0 is a fixed point of xorshift32 and yields 0.0 forever. The mixer
above only reaches 0 for adversarial inputs.

Auxiliary text is laid out as bands on concentric rings. Chunk i starts at
(offset + i * GOLDEN_ANGLE_DEG) mod 360. The golden angle is an irrational
fraction of the circle, so no two start angles coincide and the spread stays
near uniform without a layout solver.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Sequence, Tuple

__all__ = [
    'MASK32',
    'PHI',
    'GOLDEN_ANGLE_DEG',
    'RADII_LADDER',
    'CENTER',
    'Tone',
    'Strand',
    'ArcBand',
    'StyleParams',
    'FacetStyle',
    'seed32_from_hex',
    'make_generator',
    'chunk_every',
    'golden_angle',
    'golden_start_angles',
    'arc_path',
    'circle_path',
    'layout_golden_arcs',
    'lissajous_path',
    'golden_spiral_path',
    'hex_ring_path',
    'flower_of_life',
    'crystal_facets',
    'facet_style',
    'style_params',
    'noise_seed',
    'proof_ring_ticks',
    'GeometryParams',
    'build_geometry',
]

MASK32 = 0xFFFFFFFF
_FNV_OFFSET = 0x811C9DC5
_TWO_POW_32 = 4294967296.0

PHI = (1 + math.sqrt(5)) / 2
GOLDEN_ANGLE_DEG = 137.50776405003785

# Outer -> inner band radii
RADII_LADDER: Tuple[int, ...] = (392, 360, 328, 296, 264)

CENTER = 500.0


# ============================================================================
# SEEDED GENERATOR
# ============================================================================

def seed32_from_hex(text: str) -> int:
    """
    Mix a seed string (normally a hex digest) into a 32-bit unsigned seed.

    Example:
        >>> seed32_from_hex("")
        2166136261
    """
    h = _FNV_OFFSET
    for char in text:
        h ^= ord(char)
        h = (
            h
            + ((h << 1) & MASK32)
            + ((h << 4) & MASK32)
            + ((h << 7) & MASK32)
            + ((h << 8) & MASK32)
            + ((h << 24) & MASK32)
        ) & MASK32
    return h


def make_generator(seed: int) -> Callable[[], float]:
    """
    Return a xorshift32 generator closure producing floats in [0, 1).

    Two generators built from the same seed yield identical sequences.
    """
    state = seed & MASK32

    def next_float() -> float:
        nonlocal state
        x = state
        x = (x ^ (x << 13)) & MASK32
        x ^= x >> 17
        x = (x ^ (x << 5)) & MASK32
        state = x
        return x / _TWO_POW_32

    return next_float


def _fmt(value: float) -> str:
    return f"{value:.2f}"


def _clamp01(value: float) -> float:
    return 0.0 if value < 0 else 1.0 if value > 1 else value


# ============================================================================
# GOLDEN-ANGLE BANDS
# ============================================================================

class Tone(str, Enum):
    """Visual priority tier of a text strand."""
    HI = "hi"
    MID = "mid"
    LOW = "low"

    @property
    def chunk_length(self) -> int:
        return {"hi": 72, "mid": 84, "low": 96}[self.value]

    @property
    def span_deg(self) -> float:
        return {"hi": 128.0, "mid": 118.0, "low": 108.0}[self.value]

    @property
    def font_size(self) -> float:
        return {"hi": 18.0, "mid": 13.6, "low": 11.4}[self.value]

    @property
    def opacity(self) -> float:
        return {"hi": 0.78, "mid": 0.40, "low": 0.22}[self.value]

    @property
    def letter_spacing(self) -> float:
        return {"hi": 0.55, "mid": 0.38, "low": 0.30}[self.value]


@dataclass(frozen=True)
class Strand:
    """A labelled text field to be sewn into ring bands."""
    label: str
    text: str
    tone: Tone


@dataclass(frozen=True)
class ArcBand:
    """One placed chunk of strand text."""
    id: str
    path_id: str
    d: str
    text: str
    radius: int
    start_deg: float
    end_deg: float
    font_size: float
    opacity: float
    letter_spacing: float


def chunk_every(text: str, n: int) -> List[str]:
    """
    Split text into chunks of at most n characters.

    >>> chunk_every("abcdefg", 3)
    ['abc', 'def', 'g']
    """
    if n <= 0 or len(text) <= n:
        return [text]
    return [text[i:i + n] for i in range(0, len(text), n)]


def golden_angle(index: int, offset: float = -90.0) -> float:
    """Start angle in [0, 360) of the golden-angle step at `index`."""
    return (offset + index * GOLDEN_ANGLE_DEG) % 360.0


def golden_start_angles(count: int, offset: float = -90.0) -> List[float]:
    """Start angles for `count` consecutive golden-angle steps."""
    return [golden_angle(i, offset) for i in range(count)]


def arc_path(radius: float, start_deg: float, end_deg: float,
             cx: float = CENTER, cy: float = CENTER) -> str:
    """Clockwise SVG arc path from start_deg to end_deg (end may exceed 360)."""
    s = math.radians(start_deg)
    e = math.radians(end_deg)
    x0 = cx + radius * math.cos(s)
    y0 = cy + radius * math.sin(s)
    x1 = cx + radius * math.cos(e)
    y1 = cy + radius * math.sin(e)
    delta = abs(end_deg - start_deg) % 360
    large_arc = 1 if delta > 180 else 0
    return (
        f"M {_fmt(x0)} {_fmt(y0)} A {_fmt(radius)} {_fmt(radius)} 0 {large_arc} 1 "
        f"{_fmt(x1)} {_fmt(y1)}"
    )


def circle_path(radius: float, cx: float = CENTER, cy: float = CENTER) -> str:
    """Full-circle path starting at 12 o'clock (usable by textPath)."""
    r = _fmt(radius)
    return (
        f"M {_fmt(cx)} {_fmt(cy - radius)} a {r} {r} 0 1 1 0 {_fmt(2 * radius)} "
        f"a {r} {r} 0 1 1 0 {_fmt(-2 * radius)}"
    )


def layout_golden_arcs(sig_id: str, strands: Sequence[Strand], offset: float = -90.0) -> Tuple[ArcBand, ...]:
    """
    Place every strand chunk on the ring ladder at golden-angle steps.

    Chunk length, arc span and text styling follow the strand's tone. The
    band index runs across all strands so placement is global.
    """
    bands: List[ArcBand] = []
    idx = 0
    for strand in strands:
        tone = Tone(strand.tone)
        for chunk in chunk_every(f"{strand.label}: {strand.text}", tone.chunk_length):
            radius = RADII_LADDER[idx % len(RADII_LADDER)]
            start = golden_angle(idx, offset)
            end = start + tone.span_deg
            bands.append(ArcBand(
                id=f"{sig_id}-arctext-{idx}",
                path_id=f"{sig_id}-arc-{idx}",
                d=arc_path(radius, start, end),
                text=chunk,
                radius=radius,
                start_deg=start,
                end_deg=end,
                font_size=tone.font_size,
                opacity=tone.opacity,
                letter_spacing=tone.letter_spacing,
            ))
            idx += 1
    return tuple(bands)


# ============================================================================
# SEEDED FIGURES
# ============================================================================

def lissajous_path(seed_hex: str, steps: int = 260) -> str:
    """Closed Lissajous wave whose amplitudes, frequencies and phase come from the seed."""
    rnd = make_generator(seed32_from_hex(seed_hex))
    amp_x = 360 + math.floor(rnd() * 140)
    amp_y = 340 + math.floor(rnd() * 160)
    freq_a = 3 + math.floor(rnd() * 5)
    freq_b = 4 + math.floor(rnd() * 6)
    delta = rnd() * math.pi

    parts = []
    for i in range(steps + 1):
        t = (i / steps) * math.pi * 2
        x = CENTER + amp_x * math.sin(freq_a * t + delta)
        y = CENTER + amp_y * math.sin(freq_b * t)
        parts.append(f"{'M' if i == 0 else 'L'} {_fmt(x)} {_fmt(y)} ")
    return "".join(parts) + "Z"


def crystal_facets(seed_hex: str) -> List[str]:
    """13-19 quadrilateral facet paths scattered by the seed."""
    rnd = make_generator(seed32_from_hex(f"FACETS:{seed_hex}"))
    facet_count = 13 + math.floor(rnd() * 7)
    paths = []
    for _ in range(facet_count):
        ang0 = rnd() * math.pi * 2
        ang1 = ang0 + (0.22 + rnd() * 0.55)
        ang2 = ang1 + (0.18 + rnd() * 0.45)

        r0 = 140 + rnd() * 320
        r1 = r0 * (0.72 + rnd() * 0.28)
        r2 = r1 * (0.70 + rnd() * 0.30)

        x0, y0 = CENTER + r0 * math.cos(ang0), CENTER + r0 * math.sin(ang0)
        x1, y1 = CENTER + r1 * math.cos(ang1), CENTER + r1 * math.sin(ang1)
        x2, y2 = CENTER + r2 * math.cos(ang2), CENTER + r2 * math.sin(ang2)

        inset = 0.08 + rnd() * 0.10
        x3 = CENTER + (x1 - CENTER) * (1 - inset)
        y3 = CENTER + (y1 - CENTER) * (1 - inset)

        paths.append(
            f"M {_fmt(x0)} {_fmt(y0)} L {_fmt(x1)} {_fmt(y1)} "
            f"L {_fmt(x2)} {_fmt(y2)} L {_fmt(x3)} {_fmt(y3)} Z"
        )
    return paths


@dataclass(frozen=True)
class FacetStyle:
    fill_opacity: float
    stroke_opacity: float
    stroke_width: float


def facet_style(seed_hex: str, index: int) -> FacetStyle:
    rnd = make_generator(seed32_from_hex(f"FACETSTYLE:{seed_hex}:{index}"))
    return FacetStyle(
        fill_opacity=_clamp01(0.012 + rnd() * 0.04),
        stroke_opacity=_clamp01(0.08 + rnd() * 0.14),
        stroke_width=0.9 + rnd() * 1.7,
    )


@dataclass(frozen=True)
class StyleParams:
    """Seed-derived opacities for the glyph layers."""
    ring_outer_opacity: float
    ring_inner_opacity: float
    wave_glow_opacity: float
    wave_core_opacity: float
    spiral_opacity: float
    phi_ring_opacity: float
    glass_plate_opacity: float
    haze_opacity: float
    prism_shift: float


def style_params(seed_hex: str, variant: str) -> StyleParams:
    """Draw layer opacities from a generator keyed on seed and variant (e.g. side)."""
    rnd = make_generator(seed32_from_hex(f"{seed_hex}:{variant}:STYLE"))
    return StyleParams(
        ring_outer_opacity=_clamp01(0.05 + rnd() * 0.10),
        ring_inner_opacity=_clamp01(0.18 + rnd() * 0.20),
        wave_glow_opacity=_clamp01(0.08 + rnd() * 0.12),
        wave_core_opacity=_clamp01(0.40 + rnd() * 0.22),
        spiral_opacity=_clamp01(0.10 + rnd() * 0.16),
        phi_ring_opacity=_clamp01(0.14 + rnd() * 0.18),
        glass_plate_opacity=_clamp01(0.05 + rnd() * 0.07),
        haze_opacity=_clamp01(0.04 + rnd() * 0.07),
        prism_shift=rnd(),
    )


def noise_seed(seed_hex: str) -> int:
    """feTurbulence seed in [0, 999)."""
    return seed32_from_hex(f"NOISE:{seed_hex}") % 999


# ============================================================================
# FIXED FIGURES
# ============================================================================

def golden_spiral_path(steps: int = 300) -> str:
    """Logarithmic spiral growing by PHI per quarter turn."""
    b = math.log(PHI) / (math.pi / 2)
    theta_max = math.pi * 4.75
    a = 360 / math.exp(b * theta_max)
    parts = []
    for i in range(steps + 1):
        t = (i / steps) * theta_max
        r = a * math.exp(b * t)
        x = CENTER + r * math.cos(t)
        y = CENTER + r * math.sin(t)
        parts.append(f"{'M' if i == 0 else 'L'} {_fmt(x)} {_fmt(y)} ")
    return "".join(parts)


def hex_ring_path(radius: float = 432) -> str:
    """Closed pointy-top hexagon."""
    pts = []
    for i in range(6):
        a = (math.pi / 3) * i - math.pi / 6
        pts.append((CENTER + radius * math.cos(a), CENTER + radius * math.sin(a)))
    d = f"M {_fmt(pts[0][0])} {_fmt(pts[0][1])} "
    for x, y in pts[1:]:
        d += f"L {_fmt(x)} {_fmt(y)} "
    return d + "Z"


def flower_of_life(radius: float = 160) -> List[str]:
    """Seven-circle flower of life as <circle> elements."""
    circles = [f'<circle cx="{CENTER:g}" cy="{CENTER:g}" r="{radius:g}" />']
    for i in range(6):
        a = (math.pi / 3) * i
        x = CENTER + radius * math.cos(a)
        y = CENTER + radius * math.sin(a)
        circles.append(f'<circle cx="{_fmt(x)}" cy="{_fmt(y)}" r="{radius:g}" />')
    return circles


def proof_ring_ticks(bits: Sequence[int], radius: float) -> str:
    """
    256 radial tick lines; a 1 bit draws a long tick, a 0 bit a short one.

    Every 32nd tick is drawn heavier as a reading aid.
    """
    lines = []
    count = len(bits)
    for i, bit in enumerate(bits):
        a = (math.pi * 2 * i) / count - math.pi / 2
        length = 22 if bit == 1 else 12
        x0 = CENTER + (radius - length) * math.cos(a)
        y0 = CENTER + (radius - length) * math.sin(a)
        x1 = CENTER + radius * math.cos(a)
        y1 = CENTER + radius * math.sin(a)
        width = 2.2 if i % 32 == 0 else 1.6 if bit == 1 else 1.0
        lines.append(
            f'<line x1="{_fmt(x0)}" y1="{_fmt(y0)}" x2="{_fmt(x1)}" y2="{_fmt(y1)}" '
            f'stroke-width="{_fmt(width)}" />\n'
        )
    return "".join(lines)


# ============================================================================
# GEOMETRY BUNDLE
# ============================================================================

@dataclass(frozen=True)
class GeometryParams:
    """Everything the container draws, derived once from the seed."""
    seed_hex: str
    variant: str
    wave: str
    facets: Tuple[str, ...]
    facet_styles: Tuple[FacetStyle, ...]
    style: StyleParams
    noise_seed: int
    ring: str
    spiral: str
    flower: Tuple[str, ...]


def build_geometry(seed_hex: str, variant: str, ring_radius: float = 432) -> GeometryParams:
    """
    Derive the full geometry bundle for one sigil.

    Args:
        seed_hex: Hex digest the glyph is seeded from
        variant: Style variant key (position side or resolution outcome)
        ring_radius: Hexagon ring radius
    """
    facets = crystal_facets(seed_hex)
    return GeometryParams(
        seed_hex=seed_hex,
        variant=variant,
        wave=lissajous_path(seed_hex),
        facets=tuple(facets),
        facet_styles=tuple(facet_style(seed_hex, i) for i in range(len(facets))),
        style=style_params(seed_hex, variant),
        noise_seed=noise_seed(seed_hex),
        ring=hex_ring_path(ring_radius),
        spiral=golden_spiral_path(),
        flower=tuple(flower_of_life()),
    )
