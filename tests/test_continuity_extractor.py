"""Tests for continuity extraction. Every unusable answer must fail closed."""

import asyncio

import pytest

from storyline.services.continuity_extractor import ContinuityExtractor
from storyline.utils.exceptions import ExtractionError

from conftest import FakeTextService, make_record


def extract(response, content="She lit the lantern on the dock.", title="Arrival"):
    service = FakeTextService(json_responses=[response])
    return asyncio.run(ContinuityExtractor(service).extract(content, title)), service


class TestContinuityExtractor:
    def test_valid_record(self):
        record, service = extract(make_record(location="dock at midnight", items=["lantern"]))

        assert record.location == "dock at midnight"
        assert record.items == ["lantern"]
        assert "She lit the lantern on the dock." in service.json_prompts[0]
        assert "Arrival" in service.json_prompts[0]

    def test_accepts_camel_case_events(self):
        response = make_record()
        response["keyEvents"] = response.pop("key_events")

        record, _ = extract(response)

        assert record.key_events == ["An event"]

    def test_cleans_list_entries(self):
        record, _ = extract(make_record(items=[" lantern ", "", None, "rope"]))
        assert record.items == ["lantern", "rope"]

    @pytest.mark.parametrize("location", ["outside", "Somewhere.", "  ", "N/A", "unknown"])
    def test_vague_location_rejected(self, location):
        with pytest.raises(ExtractionError):
            extract(make_record(location=location))

    @pytest.mark.parametrize("missing", ["summary", "key_events", "items", "location", "characters"])
    def test_missing_field_rejected(self, missing):
        response = make_record()
        del response[missing]

        with pytest.raises(ExtractionError):
            extract(response)

    def test_list_field_must_be_a_list(self):
        with pytest.raises(ExtractionError):
            extract(make_record(items="lantern"))

    def test_model_failure_rejected(self):
        with pytest.raises(ExtractionError) as exc_info:
            extract(TimeoutError("analysis timed out"))

        assert exc_info.value.status_code == 502

    def test_empty_chapter_never_reaches_the_model(self):
        service = FakeTextService(json_responses=[make_record()])

        with pytest.raises(ExtractionError):
            asyncio.run(ContinuityExtractor(service).extract("   ", "Arrival"))

        assert service.json_prompts == []
