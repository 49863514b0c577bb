"""
SigilMint (v1.0)

Deterministic artifact minting: structured record in, self-describing,
permanently identified SVG sigil out.

Core Principle: Byte-identical output for byte-identical logical input
"Same record, same bytes, same identity, regardless of key order."

Pipeline:
- canon:     order-independent canonical JSON bytes
- hashing:   content hashes and domain-separated identifiers
- assurance: one proof verdict from many untrusted partial sources
- geometry:  seeded, reproducible layout
- container: round-trippable SVG with embedded payload and seal
- identity:  content hash and stable id of the final bytes
"""

__version__ = "1.0.0"
__author__ = "SigilMint"

# Canonical form
from .canon import (
    CIRCULAR_SENTINEL,
    UNSERIALIZABLE_SENTINEL,
    canonicalize,
    canonical_json_string,
    canonical_json_bytes,
    parse_canonical,
)

# Hashing
from .hashing import (
    HASH_ALGORITHM,
    DOMAIN_POSITION,
    DOMAIN_RESOLUTION,
    digest_hex,
    content_hash,
    derive_identifier,
    hex_to_decimal,
)

# Proof assurance
from .assurance import (
    AssuranceTier,
    AssuranceResult,
    Groth16Proof,
    ProofExtract,
    SourceRecord,
    normalize_groth16_proof,
    extract_proof_fields,
    merge_extracts,
    resolve_assurance,
)

# Geometry
from .geometry import (
    GOLDEN_ANGLE_DEG,
    RADII_LADDER,
    seed32_from_hex,
    make_generator,
    golden_start_angles,
    layout_golden_arcs,
    build_geometry,
)

# Payloads
from .payload import (
    KaiMoment,
    coerce_kai_moment,
    micro_decimal,
    build_position_payload,
    build_resolution_payload,
    seal_canonical_view,
)
from .validators import validate_payload

# Seal, container, identity
from .seal import ArtifactSeal, build_seal
from .container import ContainerBlocks, read_container
from .identity import ArtifactIdentity, identify, verify_identity

# Pipeline
from .mint import (
    MintedArtifact,
    VerificationReport,
    mint_position_sigil,
    mint_position_from_payload,
    mint_resolution_sigil,
    inspect_artifact,
)

# Exceptions
from .exceptions import (
    SigilMintError,
    InputInvalidError,
    SchemaInvalidError,
    DigestError,
    AssemblyError,
    IdentityError,
    SignatureInvalidError,
    InternalError,
)

__all__ = [
    '__version__',
    # Canonical form
    'CIRCULAR_SENTINEL',
    'UNSERIALIZABLE_SENTINEL',
    'canonicalize',
    'canonical_json_string',
    'canonical_json_bytes',
    'parse_canonical',
    # Hashing
    'HASH_ALGORITHM',
    'DOMAIN_POSITION',
    'DOMAIN_RESOLUTION',
    'digest_hex',
    'content_hash',
    'derive_identifier',
    'hex_to_decimal',
    # Proof assurance
    'AssuranceTier',
    'AssuranceResult',
    'Groth16Proof',
    'ProofExtract',
    'SourceRecord',
    'normalize_groth16_proof',
    'extract_proof_fields',
    'merge_extracts',
    'resolve_assurance',
    # Geometry
    'GOLDEN_ANGLE_DEG',
    'RADII_LADDER',
    'seed32_from_hex',
    'make_generator',
    'golden_start_angles',
    'layout_golden_arcs',
    'build_geometry',
    # Payloads
    'KaiMoment',
    'coerce_kai_moment',
    'micro_decimal',
    'build_position_payload',
    'build_resolution_payload',
    'seal_canonical_view',
    'validate_payload',
    # Seal, container, identity
    'ArtifactSeal',
    'build_seal',
    'ContainerBlocks',
    'read_container',
    'ArtifactIdentity',
    'identify',
    'verify_identity',
    # Pipeline
    'MintedArtifact',
    'VerificationReport',
    'mint_position_sigil',
    'mint_position_from_payload',
    'mint_resolution_sigil',
    'inspect_artifact',
    # Exceptions
    'SigilMintError',
    'InputInvalidError',
    'SchemaInvalidError',
    'DigestError',
    'AssemblyError',
    'IdentityError',
    'SignatureInvalidError',
    'InternalError',
]
