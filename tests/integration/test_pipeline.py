"""
Integration tests for the full organizer flow.

Runs SQS events through the Lambda handler against in-memory S3 and SQS
clients: decode, validate, group, write and acknowledge.
"""

import pytest

from aws_fakes import FakeS3Client, FakeSQSClient
from factories import TEST_BASE_PATH, TEST_BUCKET, TEST_QUEUE_URL, make_audit_record, make_sqs_record
from log_organizer.core.errors import ConfigurationError
from log_organizer.core.models import RawMessage
from log_organizer.handler import handle


def _event(*records):
    return {"Records": list(records)}


def _assert_accounted(response):
    body = response["body"]
    assert body["successfulRecords"] + body["failedRecords"] == body["totalRecords"]


@pytest.mark.integration
class TestHandler:
    """End-to-end scenarios through the Lambda handler"""

    def test_valid_batch_single_partition(self, organizer_env, s3_client, sqs_client, api_key_cache):
        """Test that records sharing a key become one object and are all deleted"""
        event = _event(make_sqs_record("m1"), make_sqs_record("m2"), make_sqs_record("m3"))

        response = handle(event, s3_client=s3_client, sqs_client=sqs_client, cache=api_key_cache)

        assert response == {
            "statusCode": 200,
            "body": {"totalRecords": 3, "successfulRecords": 3, "failedRecords": 0, "groupsProcessed": 1},
        }
        (key,) = s3_client.objects
        assert key.startswith(f"{TEST_BASE_PATH}/message_type=audit_record/project_code=intel/")
        assert s3_client.objects[key]["Bucket"] == TEST_BUCKET
        assert len(s3_client.records_at(key)) == 3
        assert sqs_client.deleted == [(TEST_QUEUE_URL, f"receipt-m{i}") for i in (1, 2, 3)]

    def test_records_stored_in_input_order(self, organizer_env, s3_client, sqs_client, api_key_cache):
        event = _event(*(make_sqs_record(f"m{i}", make_audit_record(correlationId=f"c{i}")) for i in range(5)))

        handle(event, s3_client=s3_client, sqs_client=sqs_client, cache=api_key_cache)

        (key,) = s3_client.objects
        assert [r["correlationId"] for r in s3_client.records_at(key)] == [f"c{i}" for i in range(5)]

    def test_invalid_json_body(self, organizer_env, s3_client, sqs_client, api_key_cache):
        """Test that an undecodable body fails alone and is not deleted"""
        event = _event(make_sqs_record("m1"), make_sqs_record("bad", body="{not json"), make_sqs_record("m3"))

        response = handle(event, s3_client=s3_client, sqs_client=sqs_client, cache=api_key_cache)

        assert response["body"]["successfulRecords"] == 2
        assert response["body"]["failedRecords"] == 1
        assert "receipt-bad" not in sqs_client.deleted_handles
        _assert_accounted(response)

    def test_missing_mandatory_fields(self, organizer_env, s3_client, sqs_client, api_key_cache):
        event = _event(make_sqs_record("m1"), make_sqs_record("m2", make_audit_record(projectCode=None)))

        response = handle(event, s3_client=s3_client, sqs_client=sqs_client, cache=api_key_cache)

        assert response["body"] == {
            "totalRecords": 2,
            "successfulRecords": 1,
            "failedRecords": 1,
            "groupsProcessed": 1,
        }
        assert sqs_client.deleted_handles == ["receipt-m1"]

    def test_write_failure_keeps_group_on_queue(self, organizer_env, sqs_client, api_key_cache, call_log):
        """Test that a failed write leaves every member of that group undeleted"""
        s3_client = FakeS3Client(call_log, fail_when=lambda key: "component=geo" in key)
        event = _event(
            make_sqs_record("m1"),
            make_sqs_record("g1", make_audit_record(component="geo")),
            make_sqs_record("g2", make_audit_record(component="geo")),
            make_sqs_record("g3", make_audit_record(component="geo")),
            make_sqs_record("m2"),
        )

        response = handle(event, s3_client=s3_client, sqs_client=sqs_client, cache=api_key_cache)

        assert response["body"] == {
            "totalRecords": 5,
            "successfulRecords": 2,
            "failedRecords": 3,
            "groupsProcessed": 1,
        }
        assert sqs_client.deleted_handles == ["receipt-m1", "receipt-m2"]
        # DEFAULT_MAX_ATTEMPTS=2 in the test environment
        assert s3_client.put_calls == 1 + 2
        assert all("component=geo" not in key for key in s3_client.objects)

    def test_delete_failure_isolated(self, organizer_env, s3_client, api_key_cache, call_log):
        """Test that a failed deletion fails only its own record"""
        sqs_client = FakeSQSClient(call_log, fail_handles={"receipt-m2"})
        event = _event(make_sqs_record("m1"), make_sqs_record("m2"), make_sqs_record("m3"))

        response = handle(event, s3_client=s3_client, sqs_client=sqs_client, cache=api_key_cache)

        assert response["body"] == {
            "totalRecords": 3,
            "successfulRecords": 2,
            "failedRecords": 1,
            "groupsProcessed": 1,
        }
        assert sqs_client.deleted_handles == ["receipt-m1", "receipt-m3"]
        assert len(s3_client.objects) == 1

    def test_write_precedes_delete(self, organizer_env, s3_client, sqs_client, api_key_cache, call_log):
        """Test that no message is deleted before its group's object is written"""
        event = _event(
            make_sqs_record("m1"),
            make_sqs_record("e1", make_audit_record(env="prod")),
            make_sqs_record("m2"),
        )

        handle(event, s3_client=s3_client, sqs_client=sqs_client, cache=api_key_cache)

        assert [call for call, _ in call_log] == [
            "put_object",
            "delete_message",
            "delete_message",
            "put_object",
            "delete_message",
        ]
        first_put, second_put = [arg for call, arg in call_log if call == "put_object"]
        assert "/env=prod/" in second_put
        assert "env=" not in first_put

    def test_env_partitions(self, organizer_env, s3_client, sqs_client, api_key_cache):
        event = _event(
            make_sqs_record("p1", make_audit_record(env="prod")),
            make_sqs_record("s1", make_audit_record(env="staging")),
            make_sqs_record("p2", make_audit_record(env="prod")),
        )

        response = handle(event, s3_client=s3_client, sqs_client=sqs_client, cache=api_key_cache)

        assert response["body"]["groupsProcessed"] == 2
        prefixes = sorted(key.split("/")[1] for key in s3_client.objects)
        assert prefixes == ["env=prod", "env=staging"]

    def test_customer_split(self, organizer_env, s3_client, sqs_client, api_key_cache):
        """Test that records differing only in customer land in separate objects"""
        event = _event(
            make_sqs_record("a1", make_audit_record(customer="customer-a")),
            make_sqs_record("b1", make_audit_record(customer="customer-b")),
        )

        response = handle(event, s3_client=s3_client, sqs_client=sqs_client, cache=api_key_cache)

        assert response["body"] == {
            "totalRecords": 2,
            "successfulRecords": 2,
            "failedRecords": 0,
            "groupsProcessed": 2,
        }
        assert len(s3_client.objects) == 2
        assert sorted("/customer=customer-a/" in key for key in s3_client.objects) == [False, True]
        assert sqs_client.deleted_handles == ["receipt-a1", "receipt-b1"]

    def test_boolean_attribute_accepted(self, organizer_env, s3_client, sqs_client, api_key_cache):
        """Test that a non-string partition attribute is stored and acknowledged"""
        event = _event(make_sqs_record("m1", make_audit_record(partner=True)))

        response = handle(event, s3_client=s3_client, sqs_client=sqs_client, cache=api_key_cache)

        assert response["body"]["successfulRecords"] == 1
        assert sqs_client.deleted_handles == ["receipt-m1"]
        (key,) = s3_client.objects
        assert "/partner=true/" in key

    def test_stored_record_keeps_json_types(self, organizer_env, s3_client, sqs_client, api_key_cache):
        """Test that numbers used in the key are stored as numbers"""
        event = _event(make_sqs_record("m1", make_audit_record(clientId=42, region=7)))

        handle(event, s3_client=s3_client, sqs_client=sqs_client, cache=api_key_cache)

        (key,) = s3_client.objects
        assert "/client_id=42/" in key
        assert "/region=7/" in key
        (stored,) = s3_client.records_at(key)
        assert stored["clientId"] == 42
        assert stored["region"] == 7
        assert stored == make_audit_record(clientId=42, region=7)

    def test_invalid_timestamp(self, organizer_env, s3_client, sqs_client, api_key_cache):
        event = _event(make_sqs_record("m1"), make_sqs_record("t1", make_audit_record(dateTime="soon")))

        response = handle(event, s3_client=s3_client, sqs_client=sqs_client, cache=api_key_cache)

        assert response["body"]["failedRecords"] == 1
        assert sqs_client.deleted_handles == ["receipt-m1"]

    def test_malformed_queue_message(self, organizer_env, s3_client, sqs_client, api_key_cache):
        broken = make_sqs_record("m2")
        del broken["receiptHandle"]
        event = _event(make_sqs_record("m1"), broken, make_sqs_record("m3", event_source_arn="bogus"))

        response = handle(event, s3_client=s3_client, sqs_client=sqs_client, cache=api_key_cache)

        assert response["body"]["successfulRecords"] == 1
        assert response["body"]["failedRecords"] == 2
        _assert_accounted(response)

    def test_empty_batch(self, organizer_env, s3_client, sqs_client, api_key_cache):
        response = handle(_event(), s3_client=s3_client, sqs_client=sqs_client, cache=api_key_cache)

        assert response["body"] == {
            "totalRecords": 0,
            "successfulRecords": 0,
            "failedRecords": 0,
            "groupsProcessed": 0,
        }
        assert s3_client.put_calls == 0

    def test_missing_configuration_aborts(self, organizer_env, monkeypatch, s3_client, sqs_client, call_log):
        """Test that missing settings abort before any record is touched"""
        monkeypatch.delenv("PM_BUCKET_NAME")

        with pytest.raises(ConfigurationError) as exc_info:
            handle(_event(make_sqs_record("m1")), s3_client=s3_client, sqs_client=sqs_client)

        assert exc_info.value.missing == ["PM_BUCKET_NAME"]
        assert call_log == []

    def test_event_without_records(self, organizer_env, s3_client, sqs_client):
        with pytest.raises(ValueError):
            handle({"detail": {}}, s3_client=s3_client, sqs_client=sqs_client)

    def test_api_key_cache_shared_across_invocations(self, organizer_env, s3_client, sqs_client, api_key_cache):
        """Test that warm invocations reuse hashed API keys"""
        record = make_audit_record(apiKeyId="key-1")

        handle(_event(make_sqs_record("m1", record)), s3_client=s3_client, sqs_client=sqs_client, cache=api_key_cache)
        handle(_event(make_sqs_record("m2", record)), s3_client=s3_client, sqs_client=sqs_client, cache=api_key_cache)

        assert api_key_cache.misses == 1
        assert api_key_cache.hits == 1
        assert all("key-1" not in key for key in s3_client.objects)


@pytest.mark.integration
class TestPipeline:
    """Pipeline scenarios driven directly, without settings"""

    def test_accepts_raw_messages(self, make_pipeline, s3_client, sqs_client):
        pipeline = make_pipeline(s3_client, sqs_client)
        messages = [RawMessage.from_sqs_record(make_sqs_record(f"m{i}")) for i in range(2)]

        summary = pipeline.process_batch(messages)

        assert summary.successful_records == 2
        assert [success.message_id for success in summary.successes] == ["m0", "m1"]
        assert len({success.s3_key for success in summary.successes}) == 1

    def test_failure_reasons(self, make_pipeline, s3_client, sqs_client):
        """Test that each failure carries a readable reason"""
        pipeline = make_pipeline(s3_client, sqs_client)
        records = [
            make_sqs_record("json", body="[oops"),
            make_sqs_record("fields", make_audit_record(messageType=None, component=None)),
            make_sqs_record("array", body="[1, 2]"),
        ]

        summary = pipeline.process_batch(records)
        reasons = {failure.message_id: failure.error for failure in summary.failures}

        assert reasons["json"].startswith("Failed to parse JSON body")
        assert reasons["fields"] == "Missing mandatory fields: messageType, component"
        assert reasons["array"] == "Missing mandatory fields: messageType, projectCode, component"

    def test_transient_errors_recovered(self, make_pipeline, call_log):
        s3_client = FakeS3Client(call_log, failures=2)
        sqs_client = FakeSQSClient(call_log, failures=2)
        pipeline = make_pipeline(s3_client, sqs_client)

        summary = pipeline.process_batch([make_sqs_record("m1")])

        assert summary.successful_records == 1
        assert summary.failed_records == 0
        assert s3_client.put_calls == 3
        assert sqs_client.delete_calls == 3
