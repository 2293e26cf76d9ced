"""Tests for the provider source identifier cipher."""

from __future__ import annotations

import pytest

from ani_dl.exceptions import DecodeError
from ani_dl.resolver.decoder import SourceIdDecoder, is_encoded
from tests.conftest import encode_path


class TestDecodePair:
    @pytest.mark.parametrize("pair, char", sorted(SourceIdDecoder.table.items()))
    def test_every_table_entry(self, pair: str, char: str) -> None:
        assert SourceIdDecoder.decode_pair(pair) == char

    def test_case_insensitive(self) -> None:
        assert SourceIdDecoder.decode_pair("7A") == "B"

    @pytest.mark.parametrize("pair", ["zz", "ff", "20", "  "])
    def test_unknown_pair_is_empty(self, pair: str) -> None:
        assert SourceIdDecoder.decode_pair(pair) == ""

    def test_table_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            SourceIdDecoder.table["zz"] = "?"  # type: ignore[index]

    def test_table_is_injective(self) -> None:
        values = list(SourceIdDecoder.table.values())
        assert len(values) == len(set(values))


class TestDecode:
    def test_simple_letters(self) -> None:
        assert SourceIdDecoder.decode("797a7b") == "ABC"

    def test_marker_stripped(self) -> None:
        assert SourceIdDecoder.decode("--797a7b") == "ABC"
        assert is_encoded("--797a7b")
        assert not is_encoded("https://example.com")

    def test_unknown_pairs_dropped(self) -> None:
        assert SourceIdDecoder.decode("--79zz7a") == "AB"

    def test_trailing_odd_character_ignored(self) -> None:
        assert SourceIdDecoder.decode("--797a7") == "AB"

    def test_clock_endpoint_rewritten(self) -> None:
        token = encode_path("/apivtwo/clock?id=abc")
        assert SourceIdDecoder.decode(token) == "/apivtwo/clock.json?id=abc"

    def test_clock_rewrite_is_idempotent(self) -> None:
        token = encode_path("/apivtwo/clock.json?id=abc")
        assert SourceIdDecoder.decode(token) == "/apivtwo/clock.json?id=abc"

    def test_path_without_clock_unchanged(self) -> None:
        token = encode_path("/media/v1/file.mp4")
        assert SourceIdDecoder.decode(token) == "/media/v1/file.mp4"

    @pytest.mark.parametrize("token", ["--", "--zzzz", "--7", ""])
    def test_nothing_decodable_raises(self, token: str) -> None:
        with pytest.raises(DecodeError):
            SourceIdDecoder.decode(token)


class TestToUrl:
    def test_joins_with_provider_base(self) -> None:
        decoder = SourceIdDecoder("https://allanime.day")
        url = decoder.to_url(encode_path("/apivtwo/clock?id=ep1"))
        assert url == "https://allanime.day/apivtwo/clock.json?id=ep1"

    def test_trailing_slash_on_base(self) -> None:
        decoder = SourceIdDecoder("https://allanime.day/")
        assert decoder.to_url(encode_path("/x")) == "https://allanime.day/x"
