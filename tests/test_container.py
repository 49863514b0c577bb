"""
Tests for the SVG Container

- Encoding primitives (XML escaping, CDATA splitting, bit expansion)
- Rendered containers round-trip their payload and seal exactly
- read_container refuses malformed and hostile documents
"""

import base64

import pytest

from sigilmint.canon import canonicalize
from sigilmint.container import (
    SEAL_BLOCK_ID,
    ContainerBlocks,
    assemble_position,
    assemble_resolution,
    bits_to_binary_string,
    display_amounts,
    embed_block,
    escape_xml,
    hex_to_bits256,
    read_container,
    render_position_svg,
    safe_cdata,
    summary_b64,
)
from sigilmint.exceptions import AssemblyError
from sigilmint.geometry import build_geometry
from sigilmint.hashing import digest_hex
from sigilmint.payload import build_position_payload
from sigilmint.seal import build_seal


@pytest.fixture
def geometry():
    return build_geometry(digest_hex("container-tests"), "YES")


@pytest.fixture
def position_parts(position_record, vault_record):
    payload = build_position_payload(position_record, vault_record)
    return payload, build_seal(payload).to_dict()


# ============================================================================
# TEST: ENCODING PRIMITIVES
# ============================================================================

class TestEscapeXml:

    def test_five_entities(self):
        assert escape_xml("<a href='x'>&\"") == "&lt;a href=&apos;x&apos;&gt;&amp;&quot;"

    def test_illegal_characters_replaced(self):
        assert escape_xml("a\x00b\x01c") == "a\ufffdb\ufffdc"
        assert escape_xml("\ufffe") == "\ufffd"

    def test_legal_whitespace_kept(self):
        assert escape_xml("a\tb\nc") == "a\tb\nc"

    def test_non_strings(self):
        assert escape_xml(42) == "42"


class TestSafeCdata:

    def test_plain(self):
        assert safe_cdata("abc") == "<![CDATA[abc]]>"

    def test_terminator_split(self):
        assert safe_cdata("a]]>b") == "<![CDATA[a]]]]><![CDATA[>b]]>"

    def test_embed_block_escapes_non_xml_json_chars(self):
        block = embed_block({"x": "\ufffe\uffff"})
        assert "\ufffe" not in block
        assert "\\ufffe\\uffff" in block


class TestBits:

    def test_nibble_msb_first(self):
        bits = hex_to_bits256("a")
        assert bits[:4] == [1, 0, 1, 0]
        assert len(bits) == 256
        assert sum(bits) == 2

    def test_prefix_and_padding(self):
        assert hex_to_bits256("0xf")[:4] == [1, 1, 1, 1]
        assert hex_to_bits256("") == [0] * 256

    def test_truncated_to_256(self):
        assert hex_to_bits256("f" * 80) == [1] * 256

    def test_non_hex_counts_as_zero(self):
        assert hex_to_bits256("zf")[:8] == [0, 0, 0, 0, 1, 1, 1, 1]

    def test_binary_string(self):
        text = bits_to_binary_string(digest_hex(b""))
        assert len(text) == 256
        assert set(text) <= {"0", "1"}
        assert text.startswith("1110")  # e3...


class TestSummaryB64:

    def test_decodes_to_joined_pairs(self):
        encoded = summary_b64([("market", "m1"), ("side", "YES"), ("pulse", 3)])
        assert base64.b64decode(encoded).decode("utf-8") == "market=m1 | side=YES | pulse=3"

    def test_utf8(self):
        encoded = summary_b64([("wager", "Φ 1.0")])
        assert base64.b64decode(encoded).decode("utf-8") == "wager=Φ 1.0"


class TestDisplayAmounts:

    def test_without_rate(self):
        amounts = display_amounts("1500000")
        assert amounts.stake_phi_dec6 == "1.500000"
        assert amounts.stake_usd2 is None
        assert amounts.usd_text == "\u2014"

    def test_with_rate(self):
        amounts = display_amounts("1500000", 2.0)
        assert amounts.stake_usd2 == "3.00"
        assert amounts.usd_text == "3.00"


# ============================================================================
# TEST: ROUND TRIP
# ============================================================================

class TestPositionContainer:

    def test_round_trip(self, position_parts, geometry):
        payload, seal = position_parts
        svg = assemble_position(payload, seal, geometry, display_amounts(payload["lockedStakeMicro"]))
        blocks = read_container(svg)
        assert isinstance(blocks, ContainerBlocks)
        assert blocks.payload == canonicalize(payload)
        assert blocks.seal == canonicalize(seal)

    def test_hostile_text_round_trips(self, position_record, vault_record, geometry):
        position_record["entry"]["venue"] = "]]> <script>&amp;\x01\x07 \ufffe\uffff \u2028 Φ end ]]>"
        position_record["marketId"] = "m<1>&\"'"
        position_record["lock"]["lockedStakeMicro"] = "9" * 60
        payload = build_position_payload(position_record, vault_record)
        seal = build_seal(payload).to_dict()

        svg = assemble_position(payload, seal, geometry, display_amounts(payload["lockedStakeMicro"], 1.5))
        blocks = read_container(svg)
        assert blocks.payload["venue"] == position_record["entry"]["venue"]
        assert blocks.payload["lockedStakeMicro"] == "9" * 60
        assert blocks.attributes["data-market-id"] == "m<1>&\"'"

    def test_attributes(self, position_parts, geometry):
        payload, seal = position_parts
        svg = assemble_position(payload, seal, geometry, display_amounts(payload["lockedStakeMicro"], 2.0))
        attrs = read_container(svg).attributes
        assert attrs["data-kind"] == "sigilmint-position"
        assert attrs["data-v"] == "SM-POS-1"
        assert attrs["data-position-id"] == "pos-0001"
        assert attrs["data-side"] == "YES"
        assert attrs["data-pulse"] == "9876543"
        assert attrs["data-payload-hash"] == seal["canonicalHashHex"]
        assert attrs["data-zk-poseidon-hash"] == seal["zkPoseidonHashDec"]
        assert attrs["data-zk-ok"] == "false"
        assert attrs["data-zk-assurance"] == "none"
        assert attrs["data-wager-phi"] == "1.500000"
        assert attrs["data-wager-usd"] == "3.00"
        assert attrs["data-usd-per-phi"] == "2.000000"
        assert all(name.startswith("data-") for name in attrs)

    def test_summary_attribute(self, position_parts, geometry):
        payload, seal = position_parts
        svg = assemble_position(payload, seal, geometry, display_amounts(payload["lockedStakeMicro"]))
        summary = base64.b64decode(read_container(svg).attributes["data-summary-b64"]).decode("utf-8")
        assert summary.startswith("market=mkt-rain-tomorrow | position=pos-0001 | side=YES")
        assert summary.endswith("zk=SEALED")

    def test_rendering_is_deterministic(self, position_parts, geometry):
        payload, seal = position_parts
        amounts = display_amounts(payload["lockedStakeMicro"])
        assert render_position_svg(payload, seal, geometry, amounts) == render_position_svg(
            dict(reversed(list(payload.items()))), seal, geometry, amounts
        )

    def test_structure(self, position_parts, geometry):
        payload, seal = position_parts
        svg = assemble_position(payload, seal, geometry, display_amounts(payload["lockedStakeMicro"]))
        assert svg.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert f'<metadata id="{SEAL_BLOCK_ID}">' in svg
        assert 'id="sm-pos-9876543-12-7"' in svg
        assert svg.count("<line ") == 256

    def test_unencodable_payload_raises(self, position_parts, geometry):
        payload, seal = position_parts
        payload = dict(payload, venue="\ud800")
        with pytest.raises(AssemblyError):
            assemble_position(payload, seal, geometry, display_amounts(payload["lockedStakeMicro"]))


class TestResolutionContainer:

    def test_round_trip(self, resolution_payload, geometry):
        seal = build_seal(resolution_payload).to_dict()
        svg = assemble_resolution(resolution_payload, seal, geometry)
        blocks = read_container(svg)
        assert blocks.payload == canonicalize(resolution_payload)
        assert blocks.seal == canonicalize(seal)
        assert blocks.attributes["data-kind"] == "sigilmint-resolution"
        assert blocks.attributes["data-outcome"] == "YES"
        assert blocks.attributes["data-final-pulse"] == "9900000"
        assert blocks.attributes["data-oracle-provider"] == "weather-oracle"

    def test_title(self, resolution_payload, geometry):
        seal = build_seal(resolution_payload).to_dict()
        svg = assemble_resolution(resolution_payload, seal, geometry)
        assert "<title>SigilMint Resolution - YES - p9900000</title>" in svg


# ============================================================================
# TEST: READING UNTRUSTED DOCUMENTS
# ============================================================================

SVG_NS = "http://www.w3.org/2000/svg"


class TestReadContainer:

    def test_not_xml(self):
        with pytest.raises(AssemblyError):
            read_container("not xml at all")

    def test_missing_seal_block(self):
        svg = f'<svg xmlns="{SVG_NS}"><metadata><![CDATA[{{}}]]></metadata></svg>'
        with pytest.raises(AssemblyError) as exc_info:
            read_container(svg)
        assert exc_info.value.details == {"has_payload": True, "has_seal": False}

    def test_bad_json(self):
        svg = (
            f'<svg xmlns="{SVG_NS}"><metadata>{{oops</metadata>'
            f'<metadata id="sm-zk"><![CDATA[{{}}]]></metadata></svg>'
        )
        with pytest.raises(AssemblyError):
            read_container(svg)

    def test_minimal(self):
        svg = (
            f'<svg xmlns="{SVG_NS}" data-kind="x" width="1"><metadata><![CDATA[{{"a":1}}]]></metadata>'
            f'<metadata id="sm-zk"><![CDATA[{{"b":2}}]]></metadata></svg>'
        )
        blocks = read_container(svg.encode("utf-8"))
        assert blocks.payload == {"a": 1}
        assert blocks.seal == {"b": 2}
        assert blocks.attributes == {"data-kind": "x"}

    def test_external_entities_not_resolved(self, tmp_path):
        secret = tmp_path / "secret.txt"
        secret.write_text('{"leaked":true}', encoding="utf-8")
        svg = (
            f'<?xml version="1.0"?>\n'
            f'<!DOCTYPE svg [<!ENTITY xxe SYSTEM "{secret.as_uri()}">]>\n'
            f'<svg xmlns="{SVG_NS}"><metadata>&xxe;</metadata>'
            f'<metadata id="sm-zk"><![CDATA[{{}}]]></metadata></svg>'
        )
        with pytest.raises(AssemblyError):
            read_container(svg)
