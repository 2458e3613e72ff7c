"""Tests for src/audit.py: structured audit logging and the audited_tool decorator."""

import asyncio
import json
import logging

import pytest

import audit
import cache


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def audit_records(caplog):
    """Capture audit log records and return them as parsed JSON dicts."""

    class _Collector:
        @property
        def entries(self) -> list[dict]:
            return [
                json.loads(r.message)
                for r in caplog.records
                if r.name == "dataverse.audit"
            ]

    with caplog.at_level(logging.INFO, logger="dataverse.audit"):
        yield _Collector()


# ---------------------------------------------------------------------------
# log_tool_call
# ---------------------------------------------------------------------------

class TestLogToolCall:
    def test_basic_fields(self, audit_records):
        audit.log_tool_call("List_forms", "READ", "ok")
        entries = audit_records.entries
        assert len(entries) == 1
        e = entries[0]
        assert e["event"] == "tool_call"
        assert e["tool"] == "List_forms"
        assert e["category"] == "READ"
        assert e["status"] == "ok"
        assert "ts" in e

    def test_includes_user_context(self, audit_records):
        audit.log_tool_call(
            "Update_form_xml", "UPDATE", "ok",
            user_id="uid-123", user_name="John",
        )
        e = audit_records.entries[0]
        assert e["user_id"] == "uid-123"
        assert e["user_name"] == "John"

    def test_omits_none_fields(self, audit_records):
        audit.log_tool_call("List_forms", "READ", "ok")
        e = audit_records.entries[0]
        assert "user_id" not in e
        assert "user_name" not in e
        assert "correlation_id" not in e
        assert "details" not in e

    def test_extra_fields_go_to_details(self, audit_records):
        audit.log_tool_call("Create_view", "CREATE", "ok", view_id="v-1")
        assert audit_records.entries[0]["details"] == {"view_id": "v-1"}


# ---------------------------------------------------------------------------
# log_validation
# ---------------------------------------------------------------------------

class TestLogValidation:
    def test_invalid_document_is_blocked(self, audit_records):
        audit.log_validation("formxml", errors=2, warnings=1, record_id="form-1")
        e = audit_records.entries[0]
        assert e["event"] == "validation"
        assert e["target"] == "formxml"
        assert e["errors"] == 2
        assert e["warnings"] == 1
        assert e["blocked"] is True
        assert e["record_id"] == "form-1"

    def test_valid_document_is_not_blocked(self, audit_records):
        audit.log_validation("layoutxml", errors=0, warnings=3)
        e = audit_records.entries[0]
        assert e["blocked"] is False
        assert "record_id" not in e

    def test_bypass_is_recorded(self, audit_records):
        audit.log_validation("formxml", errors=4, warnings=0, bypassed=True)
        e = audit_records.entries[0]
        assert e["event"] == "validation_bypassed"
        assert e["blocked"] is False


# ---------------------------------------------------------------------------
# log_publish
# ---------------------------------------------------------------------------

class TestLogPublish:
    def test_success(self, audit_records):
        audit.log_publish(["account"], True)
        e = audit_records.entries[0]
        assert e["event"] == "publish"
        assert e["tables"] == ["account"]
        assert e["success"] is True

    def test_failure_with_reason(self, audit_records):
        audit.log_publish(["account", "contact"], False, reason="403 Forbidden")
        e = audit_records.entries[0]
        assert e["event"] == "publish_failed"
        assert e["success"] is False
        assert e["reason"] == "403 Forbidden"


# ---------------------------------------------------------------------------
# audited_tool decorator
# ---------------------------------------------------------------------------

class TestAuditedTool:
    def test_logs_ok_on_success(self, audit_records):
        @audit.audited_tool("TestTool", "READ")
        async def my_tool():
            return "result"

        result = asyncio.run(my_tool())
        assert result == "result"
        e = audit_records.entries[0]
        assert e["tool"] == "TestTool"
        assert e["status"] == "ok"

    def test_logs_error_on_exception(self, audit_records):
        @audit.audited_tool("FailTool", "CREATE")
        async def my_tool():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            asyncio.run(my_tool())
        e = audit_records.entries[0]
        assert e["tool"] == "FailTool"
        assert e["status"] == "error"

    def test_uses_cached_identity(self, audit_records):
        cache.set_whoami(None, {"UserId": "uid-9", "FullName": "Ada Lovelace"})

        @audit.audited_tool("Update_form_xml", "UPDATE")
        async def my_tool():
            return "done"

        asyncio.run(my_tool())
        e = audit_records.entries[0]
        assert e["user_id"] == "uid-9"
        assert e["user_name"] == "Ada Lovelace"

    def test_unknown_identity(self, audit_records):
        @audit.audited_tool("Update_form_xml", "UPDATE")
        async def my_tool():
            return "done"

        asyncio.run(my_tool())
        assert audit_records.entries[0]["user_id"] == "unknown"

    def test_preserves_function_name(self):
        @audit.audited_tool("Wrapped", "READ")
        async def original_name():
            pass

        assert original_name.__name__ == "original_name"
