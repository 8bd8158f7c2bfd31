#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testAuditLog.py
    Author: Alex Biddle

    Description:
        Tests for the JSON-lines AuditLog: path resolution, record format,
        and that a failed write never raises into the caller.
"""

import json
import os
import tempfile
import unittest
from unittest import mock
from parley.utilities.audit_log import AuditLog
import parley.constants as CONSTANTS


class TestAuditLog(unittest.TestCase):

    def setUp(self):
        self.directory = tempfile.TemporaryDirectory()
        self.addCleanup(self.directory.cleanup)
        self.path = os.path.join(self.directory.name, "audit.log")

    def read_records(self):
        with open(self.path, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f]

    def test_one_json_object_per_event(self):

        audit = AuditLog(self.path)

        audit.event(event="verify_users", email="alice@example.com", context="authorization_handler")
        audit.event(event="create_messages", email="alice@example.com", detail="count=2")

        records = self.read_records()

        self.assertEqual(2, len(records))
        self.assertEqual("verify_users", records[0]["event"])
        self.assertEqual("count=2", records[1]["detail"])
        self.assertTrue(records[0]["timestamp"].endswith("Z"))

    def test_path_from_environment(self):

        with mock.patch.dict(os.environ, {CONSTANTS._ENV_AUDIT_LOG: self.path}):
            audit = AuditLog()

        self.assertEqual(self.path, audit.path)

    def test_explicit_path_wins(self):

        with mock.patch.dict(os.environ, {CONSTANTS._ENV_AUDIT_LOG: "/elsewhere/audit.log"}):
            audit = AuditLog(self.path)

        self.assertEqual(self.path, audit.path)

    def test_non_json_values_stringified(self):

        AuditLog(self.path).event(event="read_messages", conversation_id=12, payload=b"raw")

        record = self.read_records()[0]

        self.assertEqual(12, record["conversation_id"])
        self.assertEqual(str(b"raw"), record["payload"])

    def test_write_failure_does_not_raise(self):

        audit = AuditLog(os.path.join(self.directory.name, "missing", "audit.log"))

        with mock.patch("sys.stderr"):
            audit.event(event="server_exception")


if __name__ == "__main__":
    unittest.main()
