"""Tests for resource name generation."""

from __future__ import annotations

import re
from unittest.mock import Mock

from superkey.forge.naming import ResourceNamer, generate_id, short_name


class TestShortName:
    def test_keeps_last_path_segment(self) -> None:
        assert short_name("/insights/platform/cost-management") == "redhat-cost-management"

    def test_is_deterministic_and_has_no_separator(self) -> None:
        first = short_name("/app/foo")

        assert first == short_name("/app/foo")
        assert first == "redhat-foo"
        assert "/" not in first

    def test_trailing_slash_ignored(self) -> None:
        assert short_name("/app/foo/") == "redhat-foo"

    def test_custom_prefix(self) -> None:
        assert short_name("/app/foo", prefix="acme") == "acme-foo"

    def test_plain_name_is_kept(self) -> None:
        assert short_name("foo") == "redhat-foo"


class TestGenerateId:
    def test_default_source_gives_16_hex_chars(self) -> None:
        guid = generate_id()

        assert re.fullmatch(r"[0-9a-f]{16}", guid)

    def test_ids_differ_between_calls(self) -> None:
        assert generate_id() != generate_id()

    def test_uses_injected_random_source(self) -> None:
        source = Mock(return_value=b"\x00\x01\x02\x03\x04\x05\x06\x07")

        assert generate_id(source) == "0001020304050607"
        source.assert_called_once_with(8)


class TestResourceNamer:
    def test_resource_name_layout(self) -> None:
        namer = ResourceNamer()

        name = namer.resource_name("/insights/platform/cost-management", "bucket", "abc123")

        assert name == "redhat-cost-management-bucket-abc123"

    def test_new_guid_uses_random_source(self) -> None:
        namer = ResourceNamer(prefix="acme", random_source=lambda n: b"\xff" * n)

        assert namer.new_guid() == "ff" * 8
        assert namer.resource_name("/a/b", "role", "g") == "acme-b-role-g"
