"""Tests for content fingerprinting and technology detection."""

import hashlib

from hypothesis import given, settings
from hypothesis import strategies as st

from legacylens.services.fingerprint import fingerprint, storage_key_for
from legacylens.services.technology import Technology, detect_technology, file_extension

# =============================================================================
# Fingerprint
# =============================================================================


class TestFingerprint:
    """Fingerprints are stable SHA-256 digests of the raw bytes."""

    @given(st.binary(max_size=4096))
    @settings(max_examples=100)
    def test_fingerprint_is_deterministic(self, content: bytes):
        """The same bytes always hash to the same fingerprint."""
        assert fingerprint(content) == fingerprint(bytes(content))

    @given(st.binary(max_size=1024))
    @settings(max_examples=100)
    def test_fingerprint_is_sha256_hex(self, content: bytes):
        """Fingerprints are the 64-character SHA-256 hex digest."""
        digest = fingerprint(content)
        assert digest == hashlib.sha256(content).hexdigest()
        assert len(digest) == 64

    def test_different_content_different_fingerprint(self):
        assert fingerprint(b"use strict;\n") != fingerprint(b"use warnings;\n")

    def test_storage_key_fans_out_on_prefix(self):
        digest = fingerprint(b"print 'hello';\n")
        key = storage_key_for(digest, "pl")
        assert key == f"{digest[:2]}/{digest}.pl"

    def test_storage_key_accepts_dotted_extension(self):
        digest = "ab" * 32
        assert storage_key_for(digest, ".ktr") == f"ab/{digest}.ktr"
        assert storage_key_for(digest) == f"ab/{digest}"


# =============================================================================
# Technology detection
# =============================================================================


class TestTechnologyDetection:
    """Technology is derived from the extension, with Pentaho XML sniffing."""

    def test_perl_extensions(self):
        assert detect_technology("report.pl") == Technology.PERL
        assert detect_technology("Lib/Module.PM") == Technology.PERL

    def test_tibco_extensions(self):
        assert detect_technology("Process.bwp") == Technology.TIBCO
        assert detect_technology("process.tibco") == Technology.TIBCO
        assert detect_technology("process.xml") == Technology.TIBCO

    def test_pentaho_extensions(self):
        assert detect_technology("load.ktr") == Technology.PENTAHO
        assert detect_technology("nightly.kjb") == Technology.PENTAHO

    def test_unknown_extension_is_other(self):
        assert detect_technology("notes.txt") == Technology.OTHER
        assert detect_technology("Makefile") == Technology.OTHER

    def test_xml_with_transformation_root_is_pentaho(self):
        content = "<?xml version=\"1.0\"?>\n<transformation>\n  <info/>\n</transformation>\n"
        assert detect_technology("export.xml", content) == Technology.PENTAHO

    def test_xml_with_job_root_is_pentaho(self):
        assert detect_technology("export.xml", "<job><name>x</name></job>") == Technology.PENTAHO

    def test_xml_without_pentaho_root_stays_tibco(self):
        content = '<pd:ProcessDefinition xmlns:pd="http://xmlns.tibco.com/bw/process/2003">'
        assert detect_technology("process.xml", content) == Technology.TIBCO

    def test_non_xml_is_never_sniffed(self):
        assert detect_technology("load.txt", "<transformation>") == Technology.OTHER

    def test_file_extension_handles_windows_paths(self):
        assert file_extension("C:\\legacy\\batch.PL") == "pl"
        assert file_extension("no_extension") == ""
