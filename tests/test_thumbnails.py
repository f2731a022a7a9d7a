"""Unit tests for thumbnail set construction and the lookup record model."""
from __future__ import annotations

import unittest
from unittest.mock import patch

from pydantic import ValidationError

from tubethumb.domain.thumbnails import ThumbnailVariant, VideoLookupRecord
from tubethumb.services.thumbnails import (
    VARIANT_KEYS,
    best_variant,
    build_thumbnails,
    find_variant,
    preview_variant,
    thumbnail_url,
)


class TestBuildThumbnails(unittest.TestCase):
    """Tests for build_thumbnails and its positional helpers."""

    def test_best_variant_for_example_video(self) -> None:
        """Variant 0 is the maxres JPEG flagged as best."""
        variants: list[ThumbnailVariant] = build_thumbnails("dQw4w9WgXcQ")
        first: ThumbnailVariant = variants[0]
        self.assertEqual(first.url, "https://img.youtube.com/vi/dQw4w9WgXcQ/maxresdefault.jpg")
        self.assertTrue(first.isBest)
        self.assertEqual(first.resolution, "1280 x 720")
        self.assertEqual(first.key, "maxres")
        self.assertIs(best_variant(variants), first)

    def test_fixed_order_and_urls(self) -> None:
        """The set has five variants in a fixed order with convention-based URLs."""
        variants: list[ThumbnailVariant] = build_thumbnails("abcdefghijk")
        self.assertEqual([v.key for v in variants], ["maxres", "sd", "hq", "mq", "webp"])
        self.assertEqual(tuple(v.key for v in variants), VARIANT_KEYS)
        self.assertEqual(
            [v.url for v in variants],
            [
                "https://img.youtube.com/vi/abcdefghijk/maxresdefault.jpg",
                "https://img.youtube.com/vi/abcdefghijk/sddefault.jpg",
                "https://img.youtube.com/vi/abcdefghijk/hqdefault.jpg",
                "https://img.youtube.com/vi/abcdefghijk/mqdefault.jpg",
                "https://img.youtube.com/vi_webp/abcdefghijk/sddefault.webp",
            ],
        )

    def test_exactly_one_best_at_position_zero(self) -> None:
        variants: list[ThumbnailVariant] = build_thumbnails("abcdefghijk")
        self.assertEqual([i for i, v in enumerate(variants) if v.isBest], [0])

    def test_keys_unique(self) -> None:
        variants: list[ThumbnailVariant] = build_thumbnails("abcdefghijk")
        self.assertEqual(len({v.key for v in variants}), len(variants))

    def test_pure_and_idempotent(self) -> None:
        """Two calls produce identical lists and never touch the network."""
        with patch("httpx.AsyncClient") as client_mock, patch("httpx.Client") as sync_mock:
            first: list[ThumbnailVariant] = build_thumbnails("dQw4w9WgXcQ")
            second: list[ThumbnailVariant] = build_thumbnails("dQw4w9WgXcQ")
        self.assertEqual(first, second)
        self.assertEqual(
            [v.model_dump_json() for v in first],
            [v.model_dump_json() for v in second],
        )
        client_mock.assert_not_called()
        sync_mock.assert_not_called()

    def test_variants_are_immutable(self) -> None:
        variant: ThumbnailVariant = build_thumbnails("dQw4w9WgXcQ")[0]
        with self.assertRaises(ValidationError):
            variant.url = "https://example.com/x.jpg"  # type: ignore[misc]

    def test_preview_and_lookup_helpers(self) -> None:
        variants: list[ThumbnailVariant] = build_thumbnails("dQw4w9WgXcQ")
        self.assertEqual(preview_variant(variants).key, "webp")
        found = find_variant(variants, "hq")
        self.assertIsNotNone(found)
        self.assertEqual(found.resolution, "480 x 360")  # type: ignore[union-attr]
        self.assertIsNone(find_variant(variants, "nope"))

    def test_thumbnail_url_unknown_key(self) -> None:
        with self.assertRaises(KeyError):
            thumbnail_url("dQw4w9WgXcQ", "huge")


class TestVideoLookupRecord(unittest.TestCase):
    """Validation of the persisted record shape."""

    def test_valid_record(self) -> None:
        record: VideoLookupRecord = VideoLookupRecord(
            id="dQw4w9WgXcQ",
            originalUrl="https://youtu.be/dQw4w9WgXcQ",
            thumbnails=build_thumbnails("dQw4w9WgXcQ"),
            timestamp=1_700_000_000_000,
        )
        self.assertEqual(record.thumbnails[0].key, "maxres")

    def test_best_flag_must_be_first_and_unique(self) -> None:
        variants: list[ThumbnailVariant] = build_thumbnails("dQw4w9WgXcQ")
        moved: list[ThumbnailVariant] = [variants[1], variants[0], *variants[2:]]
        doubled: list[ThumbnailVariant] = [variants[0], variants[1].model_copy(update={"isBest": True}), *variants[2:]]
        for thumbnails in (moved, doubled):
            with self.subTest(keys=[v.key for v in thumbnails]):
                with self.assertRaises(ValidationError):
                    VideoLookupRecord(
                        id="dQw4w9WgXcQ",
                        originalUrl="https://youtu.be/dQw4w9WgXcQ",
                        thumbnails=thumbnails,
                        timestamp=0,
                    )

    def test_id_must_have_eleven_characters(self) -> None:
        with self.assertRaises(ValidationError):
            VideoLookupRecord(
                id="short",
                originalUrl="https://youtu.be/short",
                thumbnails=build_thumbnails("short"),
                timestamp=0,
            )


if __name__ == "__main__":
    unittest.main()
