"""Tests for filter expressions."""

from qdrant_client import models

from lyceum.rag.filters import (
    FILE_NAME_FIELD,
    SCHOOL_ID_FIELD,
    TEXT_FIELD,
    FilterExpression,
    MatchCondition,
    TextCondition,
    document_filter,
    lookup,
    tenant_filter,
)


def chunk(file_name="a.txt", school_id="school-a", text="Photosynthesis converts light", **extra):
    return {"text": text, "metadata": {"fileName": file_name, "schoolId": school_id, **extra}}


class TestFilterExpression:
    """Test building, serialising and evaluating filters."""

    def test_empty_expression_serialises_to_none(self):
        expression = FilterExpression()
        assert expression.is_empty
        assert expression.to_qdrant() is None
        assert expression.matches(chunk())

    def test_builders_return_copies(self):
        base = FilterExpression()
        narrowed = base.where(FILE_NAME_FIELD, "a.txt")
        assert base.is_empty
        assert len(narrowed.must) == 1

    def test_to_qdrant(self):
        expression = tenant_filter("school-a").containing(TEXT_FIELD, "light")

        wire = expression.to_qdrant()

        assert isinstance(wire, models.Filter)
        assert wire.should is None
        assert wire.must == [
            models.FieldCondition(key=SCHOOL_ID_FIELD, match=models.MatchValue(value="school-a")),
            models.FieldCondition(key=TEXT_FIELD, match=models.MatchText(text="light")),
        ]

    def test_match_condition(self):
        condition = MatchCondition(key=FILE_NAME_FIELD, value="a.txt")
        assert condition.matches(chunk())
        assert not condition.matches(chunk(file_name="b.txt"))
        assert not condition.matches({"text": "no metadata"})

    def test_text_condition_matches_all_words_case_insensitive(self):
        condition = TextCondition(key=TEXT_FIELD, text="LIGHT photosynthesis")
        assert condition.matches(chunk())
        assert not condition.matches(chunk(text="Photosynthesis needs water"))
        assert not condition.matches({"metadata": {}})

    def test_should_requires_one_match(self):
        expression = FilterExpression(should=[
            MatchCondition(key=FILE_NAME_FIELD, value="a.txt"),
            MatchCondition(key=FILE_NAME_FIELD, value="b.txt"),
        ])
        assert expression.matches(chunk(file_name="b.txt"))
        assert not expression.matches(chunk(file_name="c.txt"))

    def test_round_trips_through_json(self):
        expression = document_filter("a.txt", "school-a").containing(TEXT_FIELD, "light")

        restored = FilterExpression.model_validate_json(expression.model_dump_json())

        assert restored == expression
        assert isinstance(restored.must[-1], TextCondition)


class TestFilterHelpers:
    """Test the helpers used by search, ingestion and deletion."""

    def test_tenant_filter(self):
        assert tenant_filter(None).is_empty
        assert tenant_filter("school-a").matches(chunk())
        assert not tenant_filter("school-b").matches(chunk())

    def test_document_filter_scopes_to_file_and_tenant(self):
        expression = document_filter("a.txt", "school-a")
        assert expression.matches(chunk())
        assert not expression.matches(chunk(file_name="b.txt"))
        assert not expression.matches(chunk(school_id="school-b"))

    def test_document_filter_without_tenant_matches_every_tenant(self):
        expression = document_filter("a.txt")
        assert expression.matches(chunk(school_id="school-b"))

    def test_document_filter_with_ingestion_id(self):
        expression = document_filter("a.txt", "school-a", "run-1")
        assert expression.matches(chunk(ingestionId="run-1"))
        assert not expression.matches(chunk(ingestionId="run-2"))

    def test_lookup(self):
        payload = chunk()
        assert lookup(payload, "metadata.fileName") == "a.txt"
        assert lookup(payload, "metadata.missing") is None
        assert lookup(payload, "text.nested") is None
