"""Tests for person identifier slugs."""

from __future__ import annotations

import pytest

from silsilah.domain.ids import MAX_ID_LENGTH, generate_person_id, slugify_name, validate_person_id


class TestSlugifyName:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("William Smith", "william-smith"),
            ("  José  O'Neil ", "jose-o-neil"),
            ("Anne-Marie du Pont", "anne-marie-du-pont"),
            ("Émile Zoë", "emile-zoe"),
        ],
    )
    def test_slugs(self, name: str, expected: str) -> None:
        assert slugify_name(name) == expected

    def test_no_ascii_left_falls_back(self) -> None:
        assert slugify_name("李小龍") == "person"

    def test_truncated(self) -> None:
        slug = slugify_name("a" * 200)
        assert len(slug) == MAX_ID_LENGTH


class TestGeneratePersonId:
    def test_unique_name_unchanged(self) -> None:
        assert generate_person_id("John Smith", set()) == "john-smith"

    def test_collision_gets_suffix(self) -> None:
        taken = {"john-smith", "john-smith-2"}
        assert generate_person_id("John Smith", taken) == "john-smith-3"

    def test_suffix_respects_length_limit(self) -> None:
        base = slugify_name("b" * 100)
        generated = generate_person_id("b" * 100, {base})
        assert len(generated) <= MAX_ID_LENGTH
        assert generated.endswith("-2")


class TestValidatePersonId:
    @pytest.mark.parametrize("value", ["william-smith", "p1", "A.b_c-9"])
    def test_valid(self, value: str) -> None:
        assert validate_person_id(value)

    @pytest.mark.parametrize("value", ["", "-leading", "has space", "x" * 65, "slash/id"])
    def test_invalid(self, value: str) -> None:
        assert not validate_person_id(value)
