"""
SigilMint Container (SVG)

Composes payload, seal and geometry into one self-describing SVG document.

Layout of every container:
- <metadata>            canonical JSON of the payload (CDATA)
- <metadata id="sm-zk"> canonical JSON of the seal (CDATA)
- root data-* attributes mirroring key payload and seal fields
- golden-arc strands, binary hash ring, woven key ring, proof ticks, glyph

Both metadata blocks are machine-readable and must parse back to exactly the
payload and seal that were embedded. assemble_*() enforces this by re-reading
the document it just produced; a mismatch raises AssemblyError.

read_container() uses lxml with entity resolution and network access
disabled, so untrusted containers can be inspected safely.
"""

import base64
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from lxml import etree

from .canon import canonical_json_string, canonicalize, parse_canonical
from .exceptions import AssemblyError
from .geometry import (
    CENTER,
    PHI,
    GeometryParams,
    Strand,
    Tone,
    circle_path,
    layout_golden_arcs,
    proof_ring_ticks,
)
from .payload import micro_to_phi_dec6, phi_dec6_to_float, format_usd2

__all__ = [
    'SVG_NS',
    'SEAL_BLOCK_ID',
    'WOVEN_SEPARATOR',
    'DisplayAmounts',
    'ContainerBlocks',
    'escape_xml',
    'safe_cdata',
    'embed_block',
    'hex_to_bits256',
    'bits_to_binary_string',
    'summary_b64',
    'display_amounts',
    'render_position_svg',
    'render_resolution_svg',
    'assemble_position',
    'assemble_resolution',
    'read_container',
]

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
SEAL_BLOCK_ID = "sm-zk"
WOVEN_SEPARATOR = " • "
UNKNOWN_AMOUNT = "\u2014"

PROOF_TICK_RADIUS = 482
OUTER_SIG_RADIUS = 460
INNER_SIG_RADIUS = 410

# Characters outside the XML 1.0 Char production
_XML_ILLEGAL = re.compile('[^\x09\x0A\x0D\x20-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]')

# Legal in JSON text but not in XML; written as JSON escapes inside blocks
_JSON_XML_UNSAFE = {'\uFFFE': '\\ufffe', '\uFFFF': '\\uffff'}

_MONO_FONT = "ui-monospace, SFMono-Regular, Menlo, Monaco, Consolas, 'Liberation Mono', monospace"
_SANS_FONT = "ui-sans-serif, system-ui, -apple-system, Segoe UI, Roboto, Helvetica, Arial"

_SIDE_TONES = {
    "YES": ("rgba(185,252,255,0.98)", "rgba(185,252,255,0.10)"),
    "NO": ("rgba(190,170,255,0.98)", "rgba(190,170,255,0.10)"),
}
_OUTCOME_TONES = {
    "YES": ("rgba(120,255,200,0.92)", "rgba(120,255,200,0.10)"),
    "NO": ("rgba(255,104,104,0.92)", "rgba(255,104,104,0.10)"),
    "VOID": ("rgba(183,163,255,0.92)", "rgba(183,163,255,0.10)"),
}


# =============================================================================
# ENCODING PRIMITIVES
# =============================================================================

def escape_xml(text: Any) -> str:
    """
    Escape text for XML content and attribute values.

    Characters XML cannot carry at all are replaced with U+FFFD.

    >>> escape_xml('a<b & "c"')
    'a&lt;b &amp; &quot;c&quot;'
    """
    s = _XML_ILLEGAL.sub('\uFFFD', str(text))
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def safe_cdata(raw: str) -> str:
    """
    Wrap raw text in a CDATA section, splitting any "]]>" across sections.

    >>> safe_cdata("a]]>b")
    '<![CDATA[a]]]]><![CDATA[>b]]>'
    """
    return "<![CDATA[" + raw.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def embed_block(value: Any) -> str:
    """Canonical JSON of value as an XML-safe CDATA section."""
    text = canonical_json_string(value)
    for char, escaped in _JSON_XML_UNSAFE.items():
        text = text.replace(char, escaped)
    return safe_cdata(text)


def hex_to_bits256(hex_text: str) -> List[int]:
    """
    Expand hex digits to bits, most significant bit of each nibble first.

    Non-hex characters count as 0. The result is padded with zeros or
    truncated to exactly 256 bits.
    """
    clean = str(hex_text or "")
    if clean[:2].lower() == "0x":
        clean = clean[2:]
    bits: List[int] = []
    for char in clean.lower():
        nibble = int(char, 16) if char in "0123456789abcdef" else 0
        bits.extend(((nibble >> 3) & 1, (nibble >> 2) & 1, (nibble >> 1) & 1, nibble & 1))
    bits = bits[:256]
    bits.extend([0] * (256 - len(bits)))
    return bits


def bits_to_binary_string(hex_text: str) -> str:
    """The 256-character "0"/"1" rendering of a hash."""
    return "".join("1" if bit else "0" for bit in hex_to_bits256(hex_text))


def summary_b64(fields: Sequence[Tuple[str, Any]]) -> str:
    """Base64 of the UTF-8 " | "-joined key=value summary line."""
    line = " | ".join(f"{key}={value}" for key, value in fields)
    return base64.b64encode(line.encode("utf-8")).decode("ascii")


def _b64_utf8(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


# =============================================================================
# DISPLAY AMOUNTS
# =============================================================================

@dataclass(frozen=True)
class DisplayAmounts:
    """Human-facing stake amounts. Rendered into the container, never sealed."""
    stake_phi_dec6: str
    stake_usd2: Optional[str] = None
    usd_per_phi: Optional[float] = None

    @property
    def usd_text(self) -> str:
        return self.stake_usd2 if self.stake_usd2 is not None else UNKNOWN_AMOUNT


def display_amounts(locked_stake_micro: str, usd_per_phi: Optional[float] = None) -> DisplayAmounts:
    """Stake in PHI (six decimals) and, when a rate is known, in USD."""
    phi_dec6 = micro_to_phi_dec6(locked_stake_micro)
    if usd_per_phi is None:
        return DisplayAmounts(stake_phi_dec6=phi_dec6)
    return DisplayAmounts(
        stake_phi_dec6=phi_dec6,
        stake_usd2=format_usd2(phi_dec6_to_float(phi_dec6) * usd_per_phi),
        usd_per_phi=usd_per_phi,
    )


# =============================================================================
# RENDERING
# =============================================================================

def _attributes(pairs: Sequence[Tuple[str, Any]]) -> str:
    return "\n  ".join(f'{name}="{escape_xml(value)}"' for name, value in pairs)


def _arc_text(band) -> str:
    return (
        f'<text id="{escape_xml(band.id)}" font-family="{_MONO_FONT}" '
        f'font-size="{band.font_size:.2f}" fill="rgba(255,255,255,0.92)" '
        f'opacity="{band.opacity:.3f}" letter-spacing="{band.letter_spacing:.2f}" '
        f'style="paint-order: stroke; stroke: rgba(0,0,0,0.62); stroke-width: 1.15;" '
        f'text-rendering="geometricPrecision" pointer-events="none">'
        f'<textPath href="#{escape_xml(band.path_id)}" startOffset="0%">{escape_xml(band.text)}</textPath>'
        f'</text>'
    )


def _ring_text(path_id: str, text: str, tone: str, font_size: float, opacity: float,
               letter_spacing: float, group_id: str) -> str:
    return (
        f'<g id="{group_id}" pointer-events="none">\n'
        f'    <text font-family="{_SANS_FONT}" font-size="{font_size}" fill="{tone}" '
        f'opacity="{opacity}" letter-spacing="{letter_spacing}" text-anchor="middle" '
        f'dominant-baseline="middle">'
        f'<textPath href="#{escape_xml(path_id)}" startOffset="50%">{escape_xml(text)}</textPath>'
        f'</text>\n'
        f'  </g>'
    )


def _defs(geometry: GeometryParams, tone: str, tone_ghost: str, outer_id: str,
          inner_id: str, arc_defs: str) -> str:
    shift = geometry.style.prism_shift
    return f"""<defs>
    <path id="{escape_xml(outer_id)}" d="{circle_path(OUTER_SIG_RADIUS)}" fill="none"/>
    <path id="{escape_xml(inner_id)}" d="{circle_path(INNER_SIG_RADIUS)}" fill="none"/>
    <path id="hexRing" d="{geometry.ring}" fill="none"/>
    {arc_defs}
    <linearGradient id="prism" x1="0%" y1="0%" x2="100%" y2="100%">
      <stop offset="0%" stop-color="rgba(255,255,255,0.90)"/>
      <stop offset="{16 + shift * 10:.2f}%" stop-color="rgba(160,255,255,0.92)"/>
      <stop offset="{44 + shift * 12:.2f}%" stop-color="rgba(190,160,255,0.94)"/>
      <stop offset="{72 + shift * 8:.2f}%" stop-color="rgba(255,220,170,0.92)"/>
      <stop offset="100%" stop-color="rgba(255,255,255,0.86)"/>
    </linearGradient>
    <linearGradient id="edge" x1="0%" y1="100%" x2="100%" y2="0%">
      <stop offset="0%" stop-color="rgba(255,255,255,0.78)"/>
      <stop offset="50%" stop-color="{tone}"/>
      <stop offset="100%" stop-color="rgba(255,255,255,0.70)"/>
    </linearGradient>
    <radialGradient id="ether" cx="50%" cy="42%" r="66%">
      <stop offset="0%" stop-color="rgba(255,255,255,0.12)"/>
      <stop offset="55%" stop-color="rgba(255,255,255,0.04)"/>
      <stop offset="100%" stop-color="rgba(255,255,255,0.00)"/>
    </radialGradient>
    <radialGradient id="aurora" cx="52%" cy="52%" r="62%">
      <stop offset="0%" stop-color="rgba(255,255,255,0.08)"/>
      <stop offset="28%" stop-color="{tone_ghost}"/>
      <stop offset="100%" stop-color="rgba(255,255,255,0.00)"/>
    </radialGradient>
    <filter id="outerGlow" x="-35%" y="-35%" width="170%" height="170%">
      <feGaussianBlur stdDeviation="10" result="b"/>
      <feMerge><feMergeNode in="b"/><feMergeNode in="SourceGraphic"/></feMerge>
    </filter>
    <filter id="crystalGlow" x="-30%" y="-30%" width="160%" height="160%">
      <feGaussianBlur stdDeviation="6" result="b"/>
      <feMerge><feMergeNode in="b"/><feMergeNode in="SourceGraphic"/></feMerge>
    </filter>
    <filter id="frost" x="-25%" y="-25%" width="150%" height="150%">
      <feGaussianBlur in="SourceGraphic" stdDeviation="2.8" result="blur"/>
      <feTurbulence type="fractalNoise" baseFrequency="0.85" numOctaves="2" seed="{geometry.noise_seed}" result="noise"/>
      <feDisplacementMap in="blur" in2="noise" scale="10" xChannelSelector="R" yChannelSelector="G"/>
    </filter>
    <filter id="etchStrong" x="-18%" y="-18%" width="136%" height="136%">
      <feGaussianBlur in="SourceAlpha" stdDeviation="0.9" result="a"/>
      <feOffset in="a" dx="0" dy="1" result="d"/>
      <feMerge><feMergeNode in="d"/><feMergeNode in="SourceGraphic"/></feMerge>
    </filter>
  </defs>"""


def _glyph(geometry: GeometryParams, seal: Mapping[str, Any]) -> str:
    style = geometry.style
    facets = "\n    ".join(
        f'<path d="{d}" fill="rgba(255,255,255,{fs.fill_opacity:.3f})" stroke="url(#prism)" '
        f'stroke-width="{fs.stroke_width:.2f}" opacity="{fs.stroke_opacity:.3f}"/>'
        for d, fs in zip(geometry.facets, geometry.facet_styles)
    )
    flower = "\n    ".join(geometry.flower)
    ticks = proof_ring_ticks(hex_to_bits256(str(seal.get("canonicalHashHex", ""))), PROOF_TICK_RADIUS)
    return f"""<g stroke="url(#prism)" opacity="0.52" pointer-events="none">
    {ticks}  </g>
  <g filter="url(#frost)" pointer-events="none">
    <circle cx="{CENTER:g}" cy="{CENTER:g}" r="520" fill="url(#aurora)" opacity="{style.glass_plate_opacity * 0.92:.3f}"/>
    <circle cx="{CENTER:g}" cy="{CENTER:g}" r="520" fill="url(#ether)" opacity="{style.glass_plate_opacity:.3f}"/>
    <circle cx="{CENTER:g}" cy="{CENTER:g}" r="410" fill="rgba(255,255,255,0.05)" opacity="{style.haze_opacity:.3f}"/>
  </g>
  <g filter="url(#outerGlow)" pointer-events="none">
    <path d="{geometry.ring}" fill="none" stroke="rgba(255,255,255,{style.ring_outer_opacity:.3f})" stroke-width="12"/>
    <path d="{geometry.ring}" fill="none" stroke="url(#edge)" stroke-width="3.6" opacity="{style.ring_inner_opacity:.3f}"/>
    <circle cx="{CENTER:g}" cy="{CENTER:g}" r="{432 / PHI:.2f}" fill="none" stroke="url(#prism)" stroke-width="1.9" opacity="{style.phi_ring_opacity:.3f}"/>
  </g>
  <g fill="none" stroke="rgba(255,255,255,0.12)" stroke-width="1.2" opacity="0.78" pointer-events="none">
    {flower}
  </g>
  <g pointer-events="none">
    {facets}
  </g>
  <path d="{geometry.spiral}" fill="none" stroke="url(#prism)" stroke-width="1.6" opacity="{style.spiral_opacity:.3f}" pointer-events="none"/>
  <g filter="url(#crystalGlow)" pointer-events="none">
    <path d="{geometry.wave}" fill="none" stroke="url(#prism)" stroke-width="6.6" opacity="{style.wave_glow_opacity:.3f}"/>
    <path d="{geometry.wave}" fill="none" stroke="rgba(255,255,255,0.88)" stroke-width="2.1" opacity="{style.wave_core_opacity:.3f}"/>
  </g>"""


def _render(
    sig_id: str,
    attributes: Sequence[Tuple[str, Any]],
    title: str,
    desc: str,
    header: str,
    payload: Mapping[str, Any],
    seal: Mapping[str, Any],
    geometry: GeometryParams,
    strands: Sequence[Strand],
    woven: Sequence[str],
    tones: Tuple[str, str],
) -> str:
    tone, tone_ghost = tones
    desc_id = f"{sig_id}-desc"
    outer_id = f"{sig_id}-sig-path-outer"
    inner_id = f"{sig_id}-sig-path-inner"

    bands = layout_golden_arcs(sig_id, strands)
    arc_defs = "\n    ".join(
        f'<path id="{escape_xml(b.path_id)}" d="{b.d}" fill="none"/>' for b in bands
    )
    arc_texts = "\n    ".join(_arc_text(b) for b in bands)

    root_attributes: List[Tuple[str, Any]] = [
        ("id", sig_id),
        ("role", "img"),
        ("lang", "en"),
        ("aria-label", title),
        ("aria-describedby", desc_id),
        ("viewBox", "0 0 1000 1000"),
        ("width", "1000"),
        ("height", "1000"),
        ("shape-rendering", "geometricPrecision"),
        ("preserveAspectRatio", "xMidYMid meet"),
    ]
    root_attributes.extend(attributes)

    binary_ring = _ring_text(
        outer_id, bits_to_binary_string(str(seal.get("canonicalHashHex", ""))),
        tone, 12.4, 0.34, 1.08, "ring-binary",
    )
    woven_ring = _ring_text(
        inner_id, WOVEN_SEPARATOR.join(woven), tone, 11.2, 0.20, 0.7, "ring-woven",
    )

    return f"""<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="{SVG_NS}"
  xmlns:xlink="http://www.w3.org/1999/xlink"
  {_attributes(root_attributes)}>
  <title>{escape_xml(title)}</title>
  <desc id="{escape_xml(desc_id)}">{escape_xml(desc)}</desc>
  <metadata>{embed_block(payload)}</metadata>
  <metadata id="{SEAL_BLOCK_ID}">{embed_block(seal)}</metadata>
  {_defs(geometry, tone, tone_ghost, outer_id, inner_id, arc_defs)}
  <g filter="url(#etchStrong)" font-family="{_MONO_FONT}" fill="rgba(255,255,255,0.94)" font-size="20" letter-spacing="0.55" pointer-events="none">
    <text x="70" y="78">{escape_xml(header)}</text>
  </g>
  <g filter="url(#etchStrong)">
    {arc_texts}
  </g>
  {binary_ring}
  {woven_ring}
  {_glyph(geometry, seal)}
</svg>
"""


def _datastrand(payload: Mapping[str, Any], seal: Mapping[str, Any]) -> str:
    return _b64_utf8(canonical_json_string({
        "payload": payload,
        "seal": seal,
        "zkProof": seal.get("zkProof"),
        "zkPublicInputs": seal.get("zkPublicInputs"),
        "proofHints": seal.get("proofHints"),
    }))


def _seal_word(seal: Mapping[str, Any]) -> str:
    return "VERIFIED" if seal.get("zkOk") else "SEALED"


def _zk_strand(seal: Mapping[str, Any]) -> Strand:
    text = f"{_seal_word(seal)} • scheme={seal.get('scheme')} • assurance={seal.get('zkAssurance')}"
    if seal.get("verifiedBy"):
        text += f" • verifier={seal['verifiedBy']}"
    return Strand("ZK", text, Tone.HI)


def _hash_strand(seal: Mapping[str, Any]) -> Strand:
    return Strand(
        "HASH",
        f"canonicalHashHex={seal.get('canonicalHashHex')} • poseidonDec={seal.get('zkPoseidonHashDec')}",
        Tone.LOW,
    )


def _seal_attributes(seal: Mapping[str, Any]) -> List[Tuple[str, Any]]:
    pairs: List[Tuple[str, Any]] = [
        ("data-payload-hash", seal.get("canonicalHashHex", "")),
        ("data-zk-scheme", seal.get("scheme", "")),
        ("data-zk-poseidon-hash", seal.get("zkPoseidonHashDec", "")),
        ("data-zk-ok", "true" if seal.get("zkOk") else "false"),
        ("data-zk-assurance", seal.get("zkAssurance", "")),
    ]
    if seal.get("verifiedBy"):
        pairs.append(("data-zk-verified-by", seal["verifiedBy"]))
    return pairs


def render_position_svg(
    payload: Mapping[str, Any],
    seal: Mapping[str, Any],
    geometry: GeometryParams,
    amounts: DisplayAmounts,
) -> str:
    """
    Render an SM-POS-1 container.

    Args:
        payload: Position payload (wire form)
        seal: Seal wire dict (ArtifactSeal.to_dict())
        geometry: Geometry bundle seeded for this position
        amounts: Display amounts for the wager strand and data attributes
    """
    opened = payload["openedAt"]
    sig_id = f"sm-pos-{opened['pulse']}-{opened['beat']}-{opened['stepIndex']}"
    seal_word = _seal_word(seal)
    usd_text = amounts.usd_text

    summary = summary_b64([
        ("market", payload["marketId"]),
        ("position", payload["positionId"]),
        ("side", payload["side"]),
        ("wagerPhi", amounts.stake_phi_dec6),
        ("wagerUsd", usd_text),
        ("pulse", opened["pulse"]),
        ("beat", opened["beat"]),
        ("step", opened["stepIndex"]),
        ("zk", seal_word),
    ])

    attributes: List[Tuple[str, Any]] = [
        ("data-kind", "sigilmint-position"),
        ("data-v", payload["v"]),
        ("data-market-id", payload["marketId"]),
        ("data-position-id", payload["positionId"]),
        ("data-side", payload["side"]),
        ("data-vault-id", payload["vaultId"]),
        ("data-lock-id", payload["lockId"]),
        ("data-user-phikey", payload["userPhiKey"]),
        ("data-kai-signature", payload["kaiSignature"]),
        ("data-pulse", opened["pulse"]),
        ("data-beat", opened["beat"]),
        ("data-step-index", opened["stepIndex"]),
        ("data-summary-b64", summary),
        *_seal_attributes(seal),
        ("data-wager-phi", amounts.stake_phi_dec6),
        ("data-wager-usd", usd_text),
    ]
    if amounts.usd_per_phi is not None:
        attributes.append(("data-usd-per-phi", f"{amounts.usd_per_phi:.6f}"))

    resolution = payload.get("resolution")
    if isinstance(resolution, Mapping):
        resolution_short = (
            f"resolved={resolution.get('status', 'resolved')} outcome={resolution.get('outcome')} "
            f"atPulse={resolution.get('resolvedPulse')}"
        )
    else:
        resolution_short = "resolved=(unresolved)"

    usd_label = f"USD@{amounts.usd_per_phi:.4f}" if amounts.usd_per_phi is not None else "USD@(unknown)"
    usd_value = f"${amounts.stake_usd2}" if amounts.stake_usd2 is not None else UNKNOWN_AMOUNT
    opened_short = f"p={opened['pulse']} b={opened['beat']} s={opened['stepIndex']}"
    dot = WOVEN_SEPARATOR

    strands = [
        Strand("WAGER", f"Φ {amounts.stake_phi_dec6}{dot}{usd_label} {usd_value}{dot}feeMicro={payload['feeMicro']}", Tone.HI),
        Strand("POSITION", dot.join([
            f"marketId={payload['marketId']}",
            f"positionId={payload['positionId']}",
            f"side={payload['side']}",
            opened_short,
        ]), Tone.MID),
        Strand("VALUE", dot.join([
            f"sharesMicro={payload['sharesMicro']}",
            f"avgPriceMicro={payload['avgPriceMicro']}",
            f"worstPriceMicro={payload['worstPriceMicro']}",
            f"totalCostMicro={payload['totalCostMicro']}",
            resolution_short,
        ]), Tone.MID),
        Strand("IDENTITY", f"userPhiKey={payload['userPhiKey']}{dot}kaiSignature={payload['kaiSignature']}", Tone.MID),
        _zk_strand(seal),
        _hash_strand(seal),
        Strand("DATASTRAND_B64", _datastrand(payload, seal), Tone.LOW),
    ]

    woven = [
        f"v={payload['v']}",
        f"kind={payload['kind']}",
        f"marketId={payload['marketId']}",
        f"positionId={payload['positionId']}",
        f"side={payload['side']}",
        f"vaultId={payload['vaultId']}",
        f"lockId={payload['lockId']}",
        f"pulse={opened['pulse']}",
        f"beat={opened['beat']}",
        f"stepIndex={opened['stepIndex']}",
        f"userPhiKey={payload['userPhiKey']}",
        f"kaiSignature={payload['kaiSignature']}",
        f"canonicalHashHex={seal.get('canonicalHashHex')}",
        f"zkPoseidonHashDec={seal.get('zkPoseidonHashDec')}",
        f"scheme={seal.get('scheme')}",
        f"zkOk={'true' if seal.get('zkOk') else 'false'}",
    ]

    header = f"{payload['v']} | {seal_word} | zk={seal.get('scheme')}"
    if seal.get("verifiedBy"):
        header += f" | verifier={seal['verifiedBy']}"
    header += f" | wager Φ {amounts.stake_phi_dec6}"
    if amounts.stake_usd2 is not None:
        header += f" | ${amounts.stake_usd2}"

    return _render(
        sig_id=sig_id,
        attributes=attributes,
        title=f"SigilMint Position - {payload['side']} - pulse {opened['pulse']}",
        desc="Position sigil with embedded proof and metadata.",
        header=header,
        payload=payload,
        seal=seal,
        geometry=geometry,
        strands=strands,
        woven=woven,
        tones=_SIDE_TONES.get(payload["side"], _SIDE_TONES["YES"]),
    )


def render_resolution_svg(
    payload: Mapping[str, Any],
    seal: Mapping[str, Any],
    geometry: GeometryParams,
) -> str:
    """Render an SM-RES-1 container."""
    oracle = payload["oracle"]
    provider = oracle["provider"]
    sig_id = f"sm-res-{payload['finalPulse']}"
    dot = WOVEN_SEPARATOR

    evidence = payload.get("evidence") or {}
    evidence_text = dot.join([
        f"urls={len(evidence.get('urls', []))}",
        f"hashes={len(evidence.get('hashes', []))}",
        f"summary={evidence.get('summary', '(none)')}",
    ])

    attributes: List[Tuple[str, Any]] = [
        ("data-kind", "sigilmint-resolution"),
        ("data-v", payload["v"]),
        ("data-market-id", payload["marketId"]),
        ("data-outcome", payload["outcome"]),
        ("data-final-pulse", payload["finalPulse"]),
        ("data-oracle-provider", provider),
        ("data-summary-b64", summary_b64([
            ("market", payload["marketId"]),
            ("outcome", payload["outcome"]),
            ("finalPulse", payload["finalPulse"]),
            ("oracle", provider),
            ("zk", _seal_word(seal)),
        ])),
        *_seal_attributes(seal),
    ]

    strands = [
        Strand("RESOLUTION", f"outcome={payload['outcome']}{dot}finalPulse={payload['finalPulse']}", Tone.HI),
        Strand("MARKET", f"marketId={payload['marketId']}", Tone.MID),
        Strand("ORACLE", f"provider={provider}", Tone.MID),
        Strand("EVIDENCE", evidence_text, Tone.LOW),
        _zk_strand(seal),
        _hash_strand(seal),
        Strand("DATASTRAND_B64", _datastrand(payload, seal), Tone.LOW),
    ]

    woven = [
        f"v={payload['v']}",
        f"kind={payload['kind']}",
        f"marketId={payload['marketId']}",
        f"outcome={payload['outcome']}",
        f"finalPulse={payload['finalPulse']}",
        f"oracle={provider}",
        f"canonicalHashHex={seal.get('canonicalHashHex')}",
        f"zkPoseidonHashDec={seal.get('zkPoseidonHashDec')}",
        f"scheme={seal.get('scheme')}",
    ]

    return _render(
        sig_id=sig_id,
        attributes=attributes,
        title=f"SigilMint Resolution - {payload['outcome']} - p{payload['finalPulse']}",
        desc=(
            f"Market {payload['marketId']}; Outcome {payload['outcome']}; "
            f"FinalPulse {payload['finalPulse']}; Oracle {provider}"
        ),
        header=f"{payload['v']} | {_seal_word(seal)} | OUTCOME {payload['outcome']} | ORACLE {provider}",
        payload=payload,
        seal=seal,
        geometry=geometry,
        strands=strands,
        woven=woven,
        tones=_OUTCOME_TONES.get(payload["outcome"], _OUTCOME_TONES["VOID"]),
    )


# =============================================================================
# READING AND ROUND TRIP
# =============================================================================

@dataclass(frozen=True)
class ContainerBlocks:
    """Machine-readable content recovered from a container."""
    payload: Dict[str, Any]
    seal: Dict[str, Any]
    attributes: Dict[str, str]


def _parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False)


def read_container(svg: Union[str, bytes]) -> ContainerBlocks:
    """
    Parse a container and decode its payload and seal blocks.

    Raises:
        AssemblyError: If the document is not well-formed XML, a block is
            missing, or a block is not valid JSON
    """
    data = svg.encode("utf-8") if isinstance(svg, str) else bytes(svg)
    try:
        root = etree.fromstring(data, parser=_parser())
    except etree.XMLSyntaxError as e:
        raise AssemblyError(
            f"Container is not well-formed XML: {e}",
            details={"internal_error": type(e).__name__},
        ) from e

    payload_text: Optional[str] = None
    seal_text: Optional[str] = None
    for element in root.iterchildren(f"{{{SVG_NS}}}metadata"):
        if element.get("id") == SEAL_BLOCK_ID:
            seal_text = element.text or ""
        elif payload_text is None:
            payload_text = element.text or ""

    if payload_text is None or seal_text is None:
        raise AssemblyError(
            "Container is missing its payload or seal metadata block",
            details={"has_payload": payload_text is not None, "has_seal": seal_text is not None},
        )

    try:
        payload = parse_canonical(payload_text)
        seal = parse_canonical(seal_text)
    except ValueError as e:
        raise AssemblyError(
            f"Metadata block is not valid JSON: {e}",
            details={"internal_error": type(e).__name__},
        ) from e

    attributes = {
        str(name): str(value)
        for name, value in root.attrib.items()
        if str(name).startswith("data-")
    }
    return ContainerBlocks(payload=payload, seal=seal, attributes=attributes)


def _check_round_trip(svg: str, payload: Mapping[str, Any], seal: Mapping[str, Any]) -> str:
    blocks = read_container(svg)
    if blocks.payload != canonicalize(payload):
        raise AssemblyError("Embedded payload does not round-trip", details={"block": "payload"})
    if blocks.seal != canonicalize(seal):
        raise AssemblyError("Embedded seal does not round-trip", details={"block": "seal"})
    logger.debug("Container round trip verified (%d chars)", len(svg))
    return svg


def _encodable(render: Callable[..., str], *args: Any) -> str:
    try:
        svg = render(*args)
        svg.encode("utf-8")
    except UnicodeEncodeError as e:
        raise AssemblyError(
            "Container text is not UTF-8 encodable",
            details={"internal_error": type(e).__name__},
        ) from e
    return svg


def assemble_position(
    payload: Mapping[str, Any],
    seal: Mapping[str, Any],
    geometry: GeometryParams,
    amounts: DisplayAmounts,
) -> str:
    """Render a position container and verify it round-trips."""
    svg = _encodable(render_position_svg, payload, seal, geometry, amounts)
    return _check_round_trip(svg, payload, seal)


def assemble_resolution(
    payload: Mapping[str, Any],
    seal: Mapping[str, Any],
    geometry: GeometryParams,
) -> str:
    """Render a resolution container and verify it round-trips."""
    svg = _encodable(render_resolution_svg, payload, seal, geometry)
    return _check_round_trip(svg, payload, seal)
