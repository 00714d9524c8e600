"""
Unit tests for data transformers
"""

import pytest
from pydantic import ValidationError as PydanticValidationError
from ingestion.transformers.normalizer import UniversityNormalizer, slugify
from schemas.normalized import SLUG_PATTERN, TransformBatch
from core.exceptions import TransformationError, ValidationError


class TestUniversityNormalizer:
    """Test single-record normalization"""

    def test_transform_record(self):
        normalizer = UniversityNormalizer()

        raw_record = {
            "name": "  Test   University ",
            "country": "United States",
            "alpha_two_code": "US",
            "state-province": "California",
            "domains": ["Test.EDU", "test.edu", " ", None],
            "web_pages": ["www.test.edu", "https://www.test.edu", ""]
        }

        result = normalizer.transform_record(raw_record, 0)

        assert result.id == "united-states-california-test-university"
        assert result.name == "Test University"
        assert result.country == "United States"
        assert result.alpha_code == "US"
        assert result.state_province == "California"
        assert result.domains == ["test.edu"]
        assert result.web_pages == ["https://www.test.edu"]
        assert result.last_updated.tzinfo is not None

    def test_optional_fields_default(self):
        normalizer = UniversityNormalizer()

        result = normalizer.transform_record({"name": "Lone College", "country": "Canada"}, 0)

        assert result.id == "canada-lone-college"
        assert result.alpha_code is None
        assert result.state_province is None
        assert result.domains == []
        assert result.web_pages == []

    def test_empty_state_is_null(self):
        normalizer = UniversityNormalizer()

        result = normalizer.transform_record(
            {"name": "Lone College", "country": "Canada", "state-province": "  "}, 0
        )

        assert result.state_province is None
        assert result.id == "canada-lone-college"

    def test_rejects_non_object(self):
        normalizer = UniversityNormalizer()

        with pytest.raises(ValidationError) as exc_info:
            normalizer.transform_record(["Test University"], 4)

        assert exc_info.value.message == "Invalid record type at index 4: expected object"

    @pytest.mark.parametrize("record, field", [
        ({"country": "United States"}, "name"),
        ({"name": "   ", "country": "United States"}, "name"),
        ({"name": 42, "country": "United States"}, "name"),
        ({"name": "Test University"}, "country"),
        ({"name": "Test University", "country": ""}, "country"),
    ])
    def test_rejects_missing_required_field(self, record, field):
        normalizer = UniversityNormalizer()

        with pytest.raises(ValidationError) as exc_info:
            normalizer.transform_record(record, 0)

        assert exc_info.value.message == f"Missing or invalid required field '{field}'"

    def test_punctuation_only_names_fail_slug_check(self):
        normalizer = UniversityNormalizer()

        with pytest.raises(PydanticValidationError):
            normalizer.transform_record({"name": "!!!", "country": "???"}, 0)


class TestIdGeneration:
    """Deterministic slug ids"""

    def test_with_state(self):
        record = {
            "name": "Test University",
            "country": "United States",
            "state-province": "California"
        }
        assert UniversityNormalizer.generate_id(record) == "united-states-california-test-university"

    def test_without_state(self):
        record = {"name": "Test University", "country": "United States", "state-province": None}
        assert UniversityNormalizer.generate_id(record) == "united-states-test-university"

    @pytest.mark.parametrize("name, country, state", [
        ("Université de Montréal", "Canada", "Québec"),
        ("St. John's College -- Annapolis", "United States", "Maryland"),
        ("  A&M   University ", " United States ", None),
        ("-Leading Hyphen-", "X", "--"),
        ("École 42", "France", "Île-de-France"),
    ])
    def test_ids_are_slugs(self, name, country, state):
        record = {"name": name, "country": country, "state-province": state}

        generated = UniversityNormalizer.generate_id(record)

        assert SLUG_PATTERN.match(generated)
        assert "--" not in generated

    def test_slugify(self):
        assert slugify("  Hello, World!  ") == "hello-world"
        assert slugify("a---b") == "a-b"
        assert slugify("!!!") == ""


class TestFieldCleanup:

    def test_sanitize_string(self):
        assert UniversityNormalizer.sanitize_string("  a \t b\n c  ") == "a b c"
        assert UniversityNormalizer.sanitize_string(12) == "12"

    def test_transform_domains(self):
        domains = ["Example.EDU", " example.edu ", "", None, "other.edu"]
        assert UniversityNormalizer.transform_domains(domains) == ["example.edu", "other.edu"]

    def test_transform_domains_non_list(self):
        assert UniversityNormalizer.transform_domains("example.edu") == []
        assert UniversityNormalizer.transform_domains(None) == []

    def test_transform_web_pages(self):
        pages = ["www.example.edu", " https://a.edu ", "", 5, "https://www.example.edu", "http://b.edu"]
        assert UniversityNormalizer.transform_web_pages(pages) == [
            "https://www.example.edu",
            "https://a.edu",
            "http://b.edu"
        ]


class TestBatchTransform:
    """Per-record isolation over a whole batch"""

    @pytest.mark.asyncio
    async def test_mixed_batch(self):
        normalizer = UniversityNormalizer()
        raw_records = [
            {"name": "Test University", "country": "United States", "state-province": "California"},
            "not an object",
            {"country": "United States"},
            {"name": "   ", "country": "United States"},
            {"name": "!!!", "country": "???"},
            {"name": "Second College", "country": "Canada"},
        ]

        batch = await normalizer.transform(raw_records)

        assert batch.total_input == 6
        assert batch.success_count == 2
        assert batch.failure_count == 4
        assert [r.id for r in batch.records] == [
            "united-states-california-test-university",
            "canada-second-college"
        ]
        assert [f.index for f in batch.failures] == [1, 2, 3, 4]
        assert batch.failures[0].raw_record == "not an object"
        assert batch.failures[1].error_message == "Missing or invalid required field 'name'"
        assert batch.failures[3].error_message.startswith("Transformed record failed validation")

    @pytest.mark.asyncio
    async def test_sample_data(self, mock_university_data):
        normalizer = UniversityNormalizer()

        batch = await normalizer.transform(mock_university_data)

        assert batch.success_count == 2
        assert batch.failure_count == 1
        harvard, mit = batch.records
        assert harvard.id == "united-states-massachusetts-harvard-university"
        assert harvard.domains == ["harvard.edu"]
        assert mit.id == "united-states-massachusetts-institute-of-technology"
        assert mit.name == "Massachusetts Institute of Technology"
        assert mit.web_pages == ["https://web.mit.edu", "http://web.mit.edu"]
        assert batch.failures[0].index == 2

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        batch = await UniversityNormalizer().transform([])

        assert batch.total_input == 0
        assert batch.records == []
        assert batch.failures == []

    @pytest.mark.asyncio
    async def test_idempotent(self, mock_university_data):
        normalizer = UniversityNormalizer()

        first = await normalizer.transform(mock_university_data)
        second = await normalizer.transform(mock_university_data)

        strip_time = {"last_updated"}
        assert [r.model_dump(exclude=strip_time) for r in first.records] == \
            [r.model_dump(exclude=strip_time) for r in second.records]
        assert first.failures == second.failures

    @pytest.mark.asyncio
    async def test_rejects_non_list_input(self):
        with pytest.raises(TransformationError) as exc_info:
            await UniversityNormalizer().transform({"name": "Test University"})

        assert exc_info.value.message == "Input data must be an array"

    @pytest.mark.asyncio
    async def test_transformation_stats(self, mock_university_data):
        normalizer = UniversityNormalizer()
        batch = await normalizer.transform(mock_university_data)

        stats = normalizer.get_transformation_stats(batch)

        assert stats["total_records"] == 3
        assert stats["successful_transformations"] == 2
        assert stats["failed_transformations"] == 1
        assert stats["success_rate"] == "66.67%"
        assert stats["unique_countries"] == 1
        assert stats["records_with_domains"] == 2
        assert stats["records_with_web_pages"] == 2


class TestTransformBatchSchema:

    def test_counts_must_reconcile(self):
        with pytest.raises(PydanticValidationError):
            TransformBatch(records=[], total_input=2, success_count=1, failure_count=0)

    def test_success_count_must_match_records(self):
        with pytest.raises(PydanticValidationError):
            TransformBatch(records=[], total_input=1, success_count=1, failure_count=0)

    def test_aliases_accepted(self):
        batch = TransformBatch(totalInput=1, successCount=0, failureCount=1)
        assert batch.failure_count == 1
