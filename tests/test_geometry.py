"""
Tests for Deterministic Geometry

Every figure is a pure function of its seed string:
- seed mixing and the xorshift32 generator are pinned to exact values
- golden-angle bands never share a start angle
- the geometry bundle re-renders identically
"""

import pytest

from sigilmint.geometry import (
    GOLDEN_ANGLE_DEG,
    RADII_LADDER,
    Strand,
    Tone,
    arc_path,
    build_geometry,
    chunk_every,
    circle_path,
    crystal_facets,
    golden_angle,
    golden_start_angles,
    layout_golden_arcs,
    make_generator,
    noise_seed,
    proof_ring_ticks,
    seed32_from_hex,
)

SEED = "9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08"


# ============================================================================
# TEST: SEEDED GENERATOR
# ============================================================================

class TestSeed32:

    def test_empty_string_is_offset_basis(self):
        assert seed32_from_hex("") == 0x811C9DC5

    def test_stays_in_32_bits(self):
        for text in ("a", SEED, "Φ" * 100):
            assert 0 <= seed32_from_hex(text) <= 0xFFFFFFFF

    def test_deterministic_and_sensitive(self):
        assert seed32_from_hex(SEED) == seed32_from_hex(SEED)
        assert seed32_from_hex("ab") != seed32_from_hex("ba")


class TestMakeGenerator:

    def test_first_value_from_seed_one(self):
        """x=1: 1^(1<<13)=8193, >>17 leaves it, ^(x<<5) gives 270369."""
        assert make_generator(1)() == 270369 / 2 ** 32

    def test_zero_seed_is_fixed_point(self):
        rnd = make_generator(0)
        assert [rnd() for _ in range(5)] == [0.0] * 5

    def test_same_seed_same_sequence(self):
        a = make_generator(seed32_from_hex(SEED))
        b = make_generator(seed32_from_hex(SEED))
        assert [a() for _ in range(100)] == [b() for _ in range(100)]

    def test_unit_interval(self):
        rnd = make_generator(seed32_from_hex(SEED))
        for _ in range(1000):
            value = rnd()
            assert 0.0 <= value < 1.0

    def test_generators_are_independent(self):
        a = make_generator(7)
        a()
        b = make_generator(7)
        assert b() == make_generator(7)()


# ============================================================================
# TEST: GOLDEN-ANGLE BANDS
# ============================================================================

class TestChunkEvery:

    def test_splits(self):
        assert chunk_every("abcdefg", 3) == ["abc", "def", "g"]

    def test_short_text_single_chunk(self):
        assert chunk_every("ab", 3) == ["ab"]
        assert chunk_every("", 3) == [""]


class TestGoldenAngles:

    def test_first_angle_is_offset(self):
        assert golden_start_angles(1) == [270.0]

    def test_in_range(self):
        for angle in golden_start_angles(50):
            assert 0.0 <= angle < 360.0

    @pytest.mark.parametrize("count", [2, 7, 21, 50])
    def test_no_two_start_angles_coincide(self, count):
        angles = golden_start_angles(count)
        assert len({round(a, 6) for a in angles}) == count

    def test_step_is_golden_angle(self):
        a0, a1 = golden_start_angles(2, offset=0.0)
        assert a1 - a0 == pytest.approx(GOLDEN_ANGLE_DEG)


class TestLayoutGoldenArcs:

    def test_band_per_chunk(self):
        strands = [Strand("HASH", "x" * 200, Tone.LOW), Strand("ZK", "ok", Tone.HI)]
        bands = layout_golden_arcs("sig", strands)
        # "HASH: " + 200 chars = 206 chars in chunks of 96 -> 3 bands, plus 1
        assert len(bands) == 4
        assert "".join(b.text for b in bands[:3]) == "HASH: " + "x" * 200
        assert bands[3].text == "ZK: ok"

    def test_ids_unique_and_prefixed(self):
        strands = [Strand(f"S{i}", "t" * 150, Tone.MID) for i in range(10)]
        bands = layout_golden_arcs("sm-pos-1-2-3", strands)
        ids = [b.id for b in bands]
        assert len(set(ids)) == len(ids)
        assert all(i.startswith("sm-pos-1-2-3-arctext-") for i in ids)

    def test_radii_cycle_through_ladder(self):
        strands = [Strand(f"S{i}", "t", Tone.LOW) for i in range(len(RADII_LADDER) + 2)]
        bands = layout_golden_arcs("sig", strands)
        assert [b.radius for b in bands] == [RADII_LADDER[i % len(RADII_LADDER)] for i in range(len(bands))]

    def test_start_angles_unique_across_strands(self):
        strands = [Strand(f"S{i}", "t" * 90, Tone.HI) for i in range(25)]
        bands = layout_golden_arcs("sig", strands)
        assert len({round(b.start_deg, 6) for b in bands}) == len(bands)

    @pytest.mark.parametrize("offset", [-90.0, 0.0, 45.5])
    def test_start_angles_follow_golden_sequence(self, offset):
        strands = [Strand(f"S{i}", "t" * 130, Tone.MID) for i in range(6)]
        bands = layout_golden_arcs("sig", strands, offset=offset)
        assert [b.start_deg for b in bands] == golden_start_angles(len(bands), offset=offset)
        assert bands[-1].start_deg == golden_angle(len(bands) - 1, offset)

    def test_tone_styles_applied(self):
        band = layout_golden_arcs("sig", [Strand("A", "b", Tone.HI)])[0]
        assert band.font_size == Tone.HI.font_size
        assert band.end_deg - band.start_deg == pytest.approx(Tone.HI.span_deg)


class TestPaths:

    def test_circle_path(self):
        assert circle_path(10) == (
            "M 500.00 490.00 a 10.00 10.00 0 1 1 0 20.00 a 10.00 10.00 0 1 1 0 -20.00"
        )

    def test_large_arc_flag(self):
        assert " 0 1 1 " in arc_path(100, 0, 200)
        assert " 0 0 1 " in arc_path(100, 0, 128)

    def test_proof_ring_has_one_tick_per_bit(self):
        ticks = proof_ring_ticks([1, 0] * 128, 482)
        assert ticks.count("<line ") == 256


# ============================================================================
# TEST: GEOMETRY BUNDLE
# ============================================================================

class TestBuildGeometry:

    def test_reproducible(self):
        assert build_geometry(SEED, "YES") == build_geometry(SEED, "YES")

    def test_seed_changes_figures(self):
        a = build_geometry(SEED, "YES")
        b = build_geometry("0" + SEED[1:], "YES")
        assert a.wave != b.wave

    def test_variant_changes_style_only(self):
        yes = build_geometry(SEED, "YES")
        no = build_geometry(SEED, "NO")
        assert yes.wave == no.wave
        assert yes.facets == no.facets
        assert yes.style != no.style

    def test_facet_counts(self):
        facets = crystal_facets(SEED)
        assert 13 <= len(facets) <= 19
        geometry = build_geometry(SEED, "YES")
        assert len(geometry.facet_styles) == len(geometry.facets)

    def test_noise_seed_range(self):
        assert 0 <= noise_seed(SEED) < 999

    def test_style_opacities_in_unit_range(self):
        style = build_geometry(SEED, "NO").style
        for value in (
            style.ring_outer_opacity,
            style.ring_inner_opacity,
            style.wave_glow_opacity,
            style.wave_core_opacity,
            style.spiral_opacity,
            style.phi_ring_opacity,
            style.glass_plate_opacity,
            style.haze_opacity,
        ):
            assert 0.0 <= value <= 1.0
