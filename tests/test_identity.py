"""
Tests for Artifact Identity

content_hash is the digest of the final container bytes; stable_id folds a
prefix of it into a domain-separated identifier.
"""

import pytest

from sigilmint.exceptions import IdentityError
from sigilmint.hashing import derive_identifier, digest_hex
from sigilmint.identity import (
    STABLE_ID_REFERENCE_CHARS,
    ArtifactIdentity,
    identify,
    verify_identity,
)

CONTAINER = '<svg xmlns="http://www.w3.org/2000/svg"><title>Φ</title></svg>'


class TestIdentify:

    def test_content_hash_is_digest_of_bytes(self):
        identity = identify(CONTAINER, "pos-1", "SM:POS")
        assert identity.content_hash == digest_hex(CONTAINER.encode("utf-8"))

    def test_stable_id_layout(self):
        identity = identify(CONTAINER, "pos-1", "SM:POS")
        expected = derive_identifier(
            "SM:POS:SIGIL", "pos-1", identity.content_hash[:STABLE_ID_REFERENCE_CHARS]
        )
        assert identity.stable_id == expected

    def test_text_and_bytes_agree(self):
        assert identify(CONTAINER, "p", "SM:POS") == identify(CONTAINER.encode("utf-8"), "p", "SM:POS")

    def test_idempotent(self):
        assert identify(CONTAINER, "p", "SM:RES") == identify(CONTAINER, "p", "SM:RES")

    def test_logical_id_and_domain_matter(self):
        base = identify(CONTAINER, "p", "SM:POS")
        assert identify(CONTAINER, "q", "SM:POS").stable_id != base.stable_id
        assert identify(CONTAINER, "p", "SM:RES").stable_id != base.stable_id
        assert identify(CONTAINER, "p", "SM:RES").content_hash == base.content_hash

    def test_one_byte_changes_both(self):
        a = identify(CONTAINER, "p", "SM:POS")
        b = identify(CONTAINER + "\n", "p", "SM:POS")
        assert a.content_hash != b.content_hash
        assert a.stable_id != b.stable_id

    def test_unencodable_container(self):
        with pytest.raises(IdentityError) as exc_info:
            identify("<svg>\ud800</svg>", "p", "SM:POS")
        assert exc_info.value.code == "SM_IDENTITY_FAILED"

    def test_wrong_type(self):
        with pytest.raises(IdentityError):
            identify(None, "p", "SM:POS")

    def test_to_dict(self):
        assert ArtifactIdentity("c", "s").to_dict() == {"contentHash": "c", "stableId": "s"}


class TestVerifyIdentity:

    def test_match(self):
        expected = identify(CONTAINER, "p", "SM:POS")
        assert verify_identity(CONTAINER, "p", "SM:POS", expected) is True

    def test_tampered(self):
        expected = identify(CONTAINER, "p", "SM:POS")
        assert verify_identity(CONTAINER.replace("Φ", "X"), "p", "SM:POS", expected) is False
