"""
Pytest configuration and fixtures for audit-log organizer tests

This module provides shared fixtures for unit and integration tests.
"""
from collections.abc import Callable
from typing import Any

import pytest

from aws_fakes import FakeS3Client, FakeSQSClient
from factories import (
    TEST_BASE_PATH,
    TEST_BUCKET,
    make_audit_record,
    make_parsed_record,
    make_sqs_record,
)
from log_organizer.config import RetryPolicy
from log_organizer.core.models import ParsedRecord
from log_organizer.core.partitioning import HashedApiKeyCache, PartitionGrouper, PartitionKeyDeriver
from log_organizer.messaging import SqsAcknowledger
from log_organizer.pipeline import LogOrganizerPipeline
from log_organizer.storage import S3GroupWriter


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that run the full pipeline against in-memory AWS fakes"
    )


# =======================
# RECORD FIXTURES
# =======================

@pytest.fixture
def audit_record() -> Callable[..., dict[str, Any]]:
    return make_audit_record


@pytest.fixture
def sqs_record() -> Callable[..., dict[str, Any]]:
    return make_sqs_record


@pytest.fixture
def parsed_record() -> Callable[..., ParsedRecord]:
    return make_parsed_record


# =======================
# AWS FIXTURES
# =======================

@pytest.fixture
def call_log() -> list:
    """Ordered log of put_object / delete_message calls across both fakes"""
    return []


@pytest.fixture
def s3_client(call_log) -> FakeS3Client:
    return FakeS3Client(call_log)


@pytest.fixture
def sqs_client(call_log) -> FakeSQSClient:
    return FakeSQSClient(call_log)


# =======================
# PIPELINE FIXTURES
# =======================

@pytest.fixture
def retry_policy() -> RetryPolicy:
    """Three attempts, no pauses between them"""
    return RetryPolicy(max_attempts=3)


@pytest.fixture
def api_key_cache() -> HashedApiKeyCache:
    """Fresh cache so hit/miss counts are per test"""
    return HashedApiKeyCache()


@pytest.fixture
def deriver(api_key_cache) -> PartitionKeyDeriver:
    return PartitionKeyDeriver(api_key_cache)


@pytest.fixture
def make_pipeline(retry_policy, api_key_cache) -> Callable[..., LogOrganizerPipeline]:
    """Build a pipeline around the given fake clients"""

    def _make(s3: FakeS3Client, sqs: FakeSQSClient) -> LogOrganizerPipeline:
        writer = S3GroupWriter(s3, TEST_BUCKET, TEST_BASE_PATH, retry_policy)
        acknowledger = SqsAcknowledger(sqs, retry_policy)
        grouper = PartitionGrouper(PartitionKeyDeriver(api_key_cache))
        return LogOrganizerPipeline(writer, acknowledger, grouper=grouper)

    return _make


# =======================
# CONFIGURATION FIXTURES
# =======================

@pytest.fixture
def organizer_env(monkeypatch) -> dict[str, str]:
    """
    Set the required environment variables and clear optional ones

    Returns:
        The variables that were set
    """
    for name in (
        "LOG_ORGANIZER_ENV_FILE",
        "RETRY_POLICY_FILE",
        "METRICS_PORT",
        "S3_PUT_DELAY_IN_MILLIS",
        "S3_PUT_MAX_ATTEMPTS",
        "SQS_DELETE_DELAY_IN_MILLIS",
        "SQS_DELETE_MAX_ATTEMPTS",
        "DEFAULT_DELAY_IN_MILLIS",
        "DEFAULT_MIN_DELAY_IN_MILLIS",
        "DEFAULT_MAX_DELAY_IN_MILLIS",
        "DEFAULT_IS_JITTER",
    ):
        monkeypatch.delenv(name, raising=False)

    values = {
        "STAGE": "test",
        "PM_BUCKET_NAME": TEST_BUCKET,
        "S3_KEY_BASE_PATH": TEST_BASE_PATH,
        "DEFAULT_MAX_ATTEMPTS": "2",
        "LOG_LEVEL": "WARNING",
    }
    for name, value in values.items():
        monkeypatch.setenv(name, value)
    return values
