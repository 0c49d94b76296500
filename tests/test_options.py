"""Tests for the options overlay and validation."""

from datetime import timedelta
from unittest.mock import Mock

import pytest

from s3opts.models import StaticCredentials, ValidationError
from s3opts.options import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_EXPIRE,
    MIB,
    MULTIPART_MIN_SIZE,
    Options,
    new_options,
)


class TestConstants:
    """Tests for module constants."""

    def test_default_buffer_size(self):
        """Default buffer size should be 10 MiB."""
        assert DEFAULT_BUFFER_SIZE == 10 * 1024 * 1024

    def test_multipart_min_size(self):
        """Minimum buffer size should be 5 MiB (S3 minimum part size)."""
        assert MULTIPART_MIN_SIZE == 5 * 1024 * 1024

    def test_default_expire(self):
        """Default presign expiry should be 15 minutes."""
        assert DEFAULT_EXPIRE == timedelta(minutes=15)


class TestNewOptions:
    """Tests for merging option overlays."""

    def test_no_overlays_yields_defaults(self):
        """Only the buffer size and boolean flags are populated."""
        opts = new_options()

        assert opts.buffer_size == DEFAULT_BUFFER_SIZE
        assert opts.force_path_style is False
        assert opts.use_accelerate is False
        assert opts.credentials is None
        assert opts.region is None
        assert opts.uri is None
        assert opts.default_expire is None
        assert opts.unsigned_headers == ()
        assert opts.transport is None

    def test_unset_value_does_not_erase(self):
        """A later overlay without a region keeps the earlier region."""
        opts = new_options(
            Options(region="us-east-1"),
            Options(region=None),
            Options(buffer_size=20 * MIB),
        )

        assert opts.region == "us-east-1"
        assert opts.buffer_size == 20 * MIB

    def test_empty_string_does_not_erase(self):
        """Empty strings count as unset."""
        opts = new_options(Options(uri="http://a:9000"), Options(uri=""))
        assert opts.uri == "http://a:9000"

    def test_last_value_wins(self):
        """Later overlays override earlier ones field by field."""
        opts = new_options(
            Options(region="eu-west-1", uri="http://first:9000"),
            Options(region="eu-central-1"),
            Options(uri="http://last:9000"),
        )

        assert opts.region == "eu-central-1"
        assert opts.uri == "http://last:9000"

    def test_none_overlay_is_skipped(self):
        """None entries in the overlay list are ignored."""
        opts = new_options(None, Options(region="us-west-2"), None)
        assert opts.region == "us-west-2"

    def test_credentials_replaced_wholesale(self):
        """A later credential triple replaces the earlier one entirely."""
        opts = new_options(
            Options().with_static_credentials("key1", "secret1", "token1"),
            Options().with_static_credentials("key2", "secret2"),
        )

        assert opts.credentials == StaticCredentials("key2", "secret2", "")

    def test_boolean_set_true(self):
        """Setting a flag in any overlay turns it on."""
        opts = new_options(Options(force_path_style=True), Options())

        assert opts.force_path_style is True
        assert opts.use_accelerate is False

    def test_boolean_explicit_false_overrides_true(self):
        """An explicit False in a later overlay turns the flag back off."""
        opts = new_options(
            Options(use_accelerate=True),
            Options(use_accelerate=False),
        )
        assert opts.use_accelerate is False

    def test_unsigned_headers_empty_does_not_erase(self):
        """An empty header list in a later overlay keeps the earlier list."""
        opts = new_options(
            Options(unsigned_headers=("Accept-Encoding",)),
            Options(unsigned_headers=()),
        )
        assert opts.unsigned_headers == ("Accept-Encoding",)

    def test_unsigned_headers_replaced(self):
        """A later non-empty header list replaces the earlier one."""
        opts = new_options(
            Options(unsigned_headers=("Accept-Encoding",)),
            Options(unsigned_headers=("X-Custom",)),
        )
        assert opts.unsigned_headers == ("X-Custom",)

    def test_transport_and_expire(self):
        """Object-valued fields merge like the others."""
        transport = Mock()
        opts = new_options(
            Options(transport=transport),
            Options(default_expire=timedelta(minutes=5)),
        )

        assert opts.transport is transport
        assert opts.default_expire == timedelta(minutes=5)

    def test_buffer_size_default_then_override(self):
        """The default buffer size applies until an overlay sets one."""
        assert new_options(Options(region="x")).buffer_size == DEFAULT_BUFFER_SIZE
        assert new_options(Options(buffer_size=6 * MIB)).buffer_size == 6 * MIB


class TestMutators:
    """Tests for the with_* builder methods."""

    def test_mutators_return_new_instance(self):
        """Builder methods never modify the receiver."""
        base = Options()
        updated = base.with_region("us-east-1")

        assert base.region is None
        assert updated.region == "us-east-1"
        assert updated is not base

    def test_chained_mutators(self):
        """Every field can be set through its mutator."""
        transport = Mock()
        opts = (
            Options()
            .with_static_credentials("key", "secret", "token")
            .with_region("us-east-1")
            .with_content_type("application/octet-stream")
            .with_filename_suffix(".mender")
            .with_external_uri("https://public.example.com")
            .with_uri("http://internal:9000")
            .with_force_path_style(True)
            .with_use_accelerate(True)
            .with_default_expire(timedelta(minutes=1))
            .with_buffer_size(8 * MIB)
            .with_unsigned_headers(["accept-encoding"])
            .with_transport(transport)
        )

        assert opts.credentials == StaticCredentials("key", "secret", "token")
        assert opts.region == "us-east-1"
        assert opts.content_type == "application/octet-stream"
        assert opts.filename_suffix == ".mender"
        assert opts.external_uri == "https://public.example.com"
        assert opts.uri == "http://internal:9000"
        assert opts.force_path_style is True
        assert opts.use_accelerate is True
        assert opts.default_expire == timedelta(minutes=1)
        assert opts.buffer_size == 8 * MIB
        assert opts.unsigned_headers == ("Accept-Encoding",)
        assert opts.transport is transport

    def test_unsigned_headers_canonicalized_and_deduplicated(self):
        """Header names are canonicalized on write, keeping first order."""
        opts = Options().with_unsigned_headers(
            ["x-amz-meta-foo", "ACCEPT-ENCODING", "Accept-Encoding"]
        )
        assert opts.unsigned_headers == ("X-Amz-Meta-Foo", "Accept-Encoding")

    def test_constructor_canonicalizes(self):
        """Headers given to the constructor are canonicalized too."""
        assert Options(unsigned_headers=("accept-encoding",)).unsigned_headers == (
            "Accept-Encoding",
        )

    def test_unsigned_headers_bare_string_rejected(self):
        """A single string is not split into one-letter header names."""
        with pytest.raises(TypeError, match="sequence of names"):
            Options().with_unsigned_headers("Accept-Encoding")

        with pytest.raises(TypeError):
            Options(unsigned_headers="Accept-Encoding")


class TestValidate:
    """Tests for Options.validate."""

    def test_defaults_are_valid(self):
        """The effective default configuration passes validation."""
        new_options().validate()

    def test_empty_overlay_is_valid(self):
        """Absent region, URI and credentials are always legal."""
        Options().validate()

    def test_buffer_size_at_minimum(self):
        """Exactly 5 MiB is accepted."""
        Options(buffer_size=5 * MIB).validate()

    def test_buffer_size_below_minimum(self):
        """4 MiB is rejected with the field name and constraint."""
        with pytest.raises(ValidationError, match="must be at least 5MiB") as exc:
            Options(buffer_size=4 * MIB).validate()

        assert exc.value.field == "buffer_size"
        assert exc.value.message == "must be at least 5MiB"

    def test_buffer_size_one_byte_short(self):
        """The floor is inclusive: one byte below fails."""
        with pytest.raises(ValidationError):
            Options(buffer_size=MULTIPART_MIN_SIZE - 1).validate()

    def test_invalid_credentials(self):
        """Embedded credentials are validated."""
        opts = Options().with_static_credentials("", "secret")

        with pytest.raises(ValidationError) as exc:
            opts.validate()

        assert exc.value.field == "auth.key"

    def test_valid_credentials(self):
        """A complete key pair passes validation."""
        Options().with_static_credentials("key", "secret").validate()
