#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testErrorHandler.py
    Author: Alex Biddle

    Description:
        Tests for ParleyError kinds and the error packets built by ErrorHandler.
"""

import unittest
from unittest import mock
from parley.handlers.error_handler import ErrorHandler, ParleyError, ApplicationCodes, HTTPCodes, ErrorKinds
from parley.utilities.audit_log import AuditLog
import parley.constants as CONSTANTS


class TestErrorKinds(unittest.TestCase):

    def test_kinds(self):

        cases = [
            (ApplicationCodes.MISSING_FIELDS, HTTPCodes.BAD_REQUEST, ErrorKinds.INVALID_REQUEST),
            (ApplicationCodes.UNSUPPORTED_OPERATION, HTTPCodes.BAD_REQUEST, ErrorKinds.INVALID_REQUEST),
            (ApplicationCodes.NOT_AUTHENTICATED, HTTPCodes.UNAUTHORIZED, ErrorKinds.UNAUTHORIZED),
            (ApplicationCodes.NOT_FOUND, HTTPCodes.NOT_FOUND, ErrorKinds.NOT_FOUND),
            (ApplicationCodes.STORAGE_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, ErrorKinds.STORAGE_ERROR),
            (ApplicationCodes.INTEGRITY_ERROR, HTTPCodes.BAD_REQUEST, ErrorKinds.INTEGRITY_ERROR),
            (ApplicationCodes.PASSWORD_HASH_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, ErrorKinds.INTERNAL),
        ]

        for code, http_code, kind in cases:
            with self.subTest(code=code):
                self.assertEqual(kind, ParleyError(code, http_code, "detail").kind)



class TestErrorHandler(unittest.TestCase):

    def setUp(self):
        self.audit = mock.MagicMock(spec=AuditLog)
        self.handler = ErrorHandler(self.audit)

    def test_parley_error_packet(self):

        e = ParleyError(ApplicationCodes.MISSING_FIELDS, HTTPCodes.BAD_REQUEST, "Missing 'users' list", "users")

        packet, status = self.handler.handle_server_error(e, email="alice@example.com", context="handle_request")

        self.assertEqual(HTTPCodes.BAD_REQUEST, status)
        self.assertEqual(CONSTANTS.RESPONSE_STATUS_FAILURE, packet["status"])
        self.assertEqual("alice@example.com", packet["email"])
        self.assertEqual("Missing 'users' list", packet["message"])
        self.assertEqual(ApplicationCodes.MISSING_FIELDS, packet["error_code"])
        self.assertEqual("users", packet["field"])
        self.assertRegex(packet["timestamp"], CONSTANTS._ISO8601Z)

    """
        Unexpected exceptions are audited in full but reported generically.
    """
    def test_unexpected_exception_masked(self):

        packet, status = self.handler.handle_server_error(KeyError("secret detail"), context="handle_request")

        self.assertEqual(HTTPCodes.INTERNAL_SERVER_ERROR, status)
        self.assertEqual(ApplicationCodes.INTERNAL_SERVER_ERROR, packet["error_code"])
        self.assertNotIn("secret detail", packet["message"])
        self.assertIn("secret detail", self.audit.event.call_args[1]["detail"])


if __name__ == "__main__":
    unittest.main()
