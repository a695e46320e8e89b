import pytest

from pipeline_jobs.core.exceptions import JobValidationError
from pipeline_jobs.execution.naming import (
    MAX_JOB_NAME_LENGTH,
    MAX_POD_NAME_LENGTH,
    cache_claim_name,
    clean_build_id,
    generate_pod_name,
    is_valid_name,
    new_build_id,
    validate_name,
)


class TestIsValidName:
    """Tests for job name validation."""

    @pytest.mark.parametrize("name", ["a", "build-1", "abc123", "a-b-c", "1job"])
    def test_valid_names(self, name):
        assert is_valid_name(name) is True

    def test_exactly_max_length(self):
        assert is_valid_name("a" * MAX_JOB_NAME_LENGTH) is True

    def test_one_over_max_length(self):
        assert is_valid_name("a" * (MAX_JOB_NAME_LENGTH + 1)) is False

    def test_far_over_max_length(self):
        assert is_valid_name("a" * 200) is False

    def test_empty(self):
        assert is_valid_name("") is False

    @pytest.mark.parametrize(
        "name",
        [
            "Build",
            "BUILD-1",
            "my_job",
            "Bad_Name!",
            "-leading",
            "trailing-",
            "-",
            "has space",
            "dotted.name",
            "jöb",
            "ジョブ",
        ],
    )
    def test_invalid_names(self, name):
        assert is_valid_name(name) is False

    def test_non_string(self):
        assert is_valid_name(None) is False


class TestValidateName:
    def test_valid_name_passes(self):
        validate_name("build-1")

    def test_empty_message(self):
        with pytest.raises(JobValidationError, match="must not be empty"):
            validate_name("")

    def test_length_message(self):
        with pytest.raises(JobValidationError, match="maximum is 36"):
            validate_name("a" * 37)

    def test_charset_message(self):
        with pytest.raises(JobValidationError, match="lowercase letters"):
            validate_name("Bad_Name!")


class TestGeneratedNames:
    def test_pod_name_combines_name_and_build(self):
        assert generate_pod_name("build-1", "01ABCDEF") == "build-1-01abcdef"

    def test_pod_name_cleans_build_id(self):
        pod_name = generate_pod_name("build-1", "Build_42")

        assert pod_name == "build-1-build-42"
        assert is_valid_name(pod_name)

    def test_clean_build_id(self):
        assert clean_build_id("Build_42") == "build-42"
        assert clean_build_id("release/1.2") == "release-1-2"
        assert clean_build_id("_ci_") == "ci"

    def test_pod_name_fits_label_limit(self):
        pod_name = generate_pod_name("a" * MAX_JOB_NAME_LENGTH, new_build_id())
        assert len(pod_name) <= MAX_POD_NAME_LENGTH
        assert is_valid_name(pod_name[:MAX_JOB_NAME_LENGTH])

    def test_pod_name_never_ends_with_hyphen(self):
        pod_name = generate_pod_name("a" * 62, "-b")
        assert not pod_name.endswith("-")

    def test_build_ids_are_unique(self):
        assert new_build_id() != new_build_id()

    def test_cache_claim_depends_only_on_project_and_name(self):
        assert cache_claim_name("demo", "build-1") == "demo-build-1-cache"
        assert cache_claim_name("demo", "build-1") == cache_claim_name("demo", "build-1")
        assert cache_claim_name("demo", "build-1") != cache_claim_name("demo", "build-2")

    def test_cache_claim_sanitizes_project(self):
        assert cache_claim_name("My_Project", "job") == "my-project-job-cache"
