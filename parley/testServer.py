#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testServer.py
    Author: Alex Biddle

    Description:
        End-to-end tests of the Flask request route with the database mocked
        out: content-type and body errors, the login flow carried across
        requests by the signed cookie, and the error packet format.
"""

import base64
import json
import os
import unittest
from unittest import mock
from flask import Flask
from flask.sessions import SecureCookieSessionInterface
from parley.server import create_app
from parley.database.database_object import Database
from parley.encryption.argon2i_manager import Argon2iManager
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes
from parley.utilities.audit_log import AuditLog
import parley.constants as CONSTANTS


def b64u(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")



class TestServer(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.credential = Argon2iManager().hash("correct horse")

    def setUp(self):
        self.database = mock.MagicMock(spec=Database)
        self.audit = mock.MagicMock(spec=AuditLog)

        self.app = create_app(database=self.database, audit_log=self.audit, config={"TESTING": True, "SECRET_KEY": "test-secret"})
        self.client = self.app.test_client()

    def post(self, envelope, client=None):
        return (client or self.client).post("/api/request", data=json.dumps(envelope), content_type="application/json")

    def login(self):
        self.database.get_exactly_one_row.return_value = {"pass": self.credential.hash, "salt": self.credential.salt}
        return self.post({"function": "VERIFY USERS", "users": [{"email": "alice@example.com", "password": "correct horse"}]})


    def test_tables_created_at_startup(self):

        created = " ".join(c[0][0] for c in self.database.execute_statment.call_args_list)

        for table in ("users", "conversations", "conversation_members", "messages"):
            self.assertIn(f"CREATE TABLE IF NOT EXISTS {table} ", created)

    """
        A successful login is remembered by the cookie and unlocks the conversation reads.
    """
    def test_login_then_read_conversations(self):

        response = self.login()

        self.assertEqual(HTTPCodes.OK, response.status_code)
        self.assertEqual({"status": CONSTANTS.RESPONSE_STATUS_SUCCESS}, response.get_json())

        self.database.get_exactly_one_row.return_value = {"id": 7, "name": "general"}

        response = self.post({"function": "READ CONVERSATIONS"})

        self.assertEqual(HTTPCodes.OK, response.status_code)
        self.assertEqual({"status": 1, "conversations": [{"id": 7, "name": b64u(b"general")}]}, response.get_json())
        self.assertEqual(("alice@example.com",), self.database.get_exactly_one_row.call_args[0][1])

    def test_unauthenticated_read_rejected(self):

        response = self.post({"function": "READ CONVERSATIONS"})

        body = response.get_json()
        self.assertEqual(HTTPCodes.UNAUTHORIZED, response.status_code)
        self.assertEqual(CONSTANTS.RESPONSE_STATUS_FAILURE, body["status"])
        self.assertEqual(ApplicationCodes.NOT_AUTHENTICATED, body["error_code"])
        self.assertEqual("session", body["field"])
        self.database.get_exactly_one_row.assert_not_called()

    def test_login_does_not_leak_across_clients(self):

        self.login()

        other = self.app.test_client()
        response = self.post({"function": "READ CONVERSATIONS"}, client=other)

        self.assertEqual(HTTPCodes.UNAUTHORIZED, response.status_code)

    def test_wrong_password(self):

        self.database.get_exactly_one_row.return_value = {"pass": self.credential.hash, "salt": self.credential.salt}

        response = self.post({"function": "VERIFY USERS", "users": [{"email": "alice@example.com", "password": "x"}]})

        body = response.get_json()
        self.assertEqual(HTTPCodes.UNAUTHORIZED, response.status_code)
        self.assertEqual(ApplicationCodes.AUTH_FAILED, body["error_code"])
        self.assertEqual("Invalid email or password", body["message"])

    """
        An email with no stored credential is reported as NotFound and leaves the client logged out.
    """
    def test_unknown_email_is_not_found(self):

        self.database.get_exactly_one_row.side_effect = ParleyError(ApplicationCodes.NOT_FOUND, HTTPCodes.NOT_FOUND, "No matching row", "sql_fetch_exactly_one")

        response = self.post({"function": "VERIFY USERS", "users": [{"email": "nobody@example.com", "password": "x"}]})

        self.assertEqual(HTTPCodes.NOT_FOUND, response.status_code)
        self.assertEqual(ApplicationCodes.NOT_FOUND, response.get_json()["error_code"])

        self.database.get_exactly_one_row.side_effect = None
        self.assertEqual(HTTPCodes.UNAUTHORIZED, self.post({"function": "READ CONVERSATIONS"}).status_code)



    def test_create_users_over_http(self):

        response = self.post({"function": "CREATE USERS", "users": [{"email": "bob@example.com", "password": "pw", "public_key": b64u(b"key-b")}]})

        self.assertEqual(HTTPCodes.OK, response.status_code)
        sql, params = self.database.execute_statment.call_args[0]
        self.assertIn("INSERT INTO users", sql)
        self.assertEqual(("bob@example.com", b"key-b"), params[:2])

    def test_request_errors(self):

        cases = [
            ({"function": "PATCH USERS"}, ApplicationCodes.UNKNOWN_OPERATION),
            ({"function": "CREATE GROUPS"}, ApplicationCodes.UNKNOWN_TARGET),
            ({"function": "DELETE USERS"}, ApplicationCodes.UNSUPPORTED_OPERATION),
            ({}, ApplicationCodes.INVALID_REQUEST),
        ]

        for envelope, code in cases:
            with self.subTest(envelope=envelope):
                response = self.post(envelope)

                self.assertEqual(HTTPCodes.BAD_REQUEST, response.status_code)
                self.assertEqual(code, response.get_json()["error_code"])

    def test_malformed_body(self):

        response = self.client.post("/api/request", data="{not json", content_type="application/json")

        self.assertEqual(HTTPCodes.BAD_REQUEST, response.status_code)
        self.assertEqual(ApplicationCodes.MALFORMED_JSON, response.get_json()["error_code"])

    def test_wrong_content_type(self):

        response = self.client.post("/api/request", data=json.dumps({"function": "READ USERS"}), content_type="text/plain")

        self.assertEqual(HTTPCodes.BAD_REQUEST, response.status_code)
        self.assertEqual(ApplicationCodes.INVALID_CONTENT_TYPE, response.get_json()["error_code"])

    def test_oversized_body(self):

        payload = json.dumps({"function": "CREATE MESSAGES", "padding": "x" * (CONSTANTS._MAX_CONTENT_LENGTH + 1)})

        response = self.client.post("/api/request", data=payload, content_type="application/json")

        self.assertEqual(HTTPCodes.BAD_REQUEST, response.status_code)
        self.assertEqual(ApplicationCodes.INVALID_LENGTH, response.get_json()["error_code"])

    """
        Unexpected exceptions become a generic internal error without leaking their text.
    """
    def test_unexpected_error_is_masked(self):

        self.login()
        self.database.get_exactly_one_row.side_effect = RuntimeError("connection pool exploded")

        response = self.post({"function": "READ CONVERSATIONS"})

        body = response.get_json()
        self.assertEqual(HTTPCodes.INTERNAL_SERVER_ERROR, response.status_code)
        self.assertEqual(ApplicationCodes.INTERNAL_SERVER_ERROR, body["error_code"])
        self.assertNotIn("exploded", body["message"])
        self.assertEqual("alice@example.com", body["email"])



####################################################################################################
#                                   Login cookie signing
####################################################################################################

class TestLoginCookieSigning(unittest.TestCase):

    def setUp(self):
        self.database = mock.MagicMock(spec=Database)
        self.audit = mock.MagicMock(spec=AuditLog)

    def build_app(self, config=None):
        return create_app(database=self.database, audit_log=self.audit, config=config)

    """
        Build a session cookie claiming an authenticated email, signed with secret_key.
    """
    def signed_login_cookie(self, secret_key, email):
        signer = Flask(__name__)
        signer.config["SECRET_KEY"] = secret_key

        serializer = SecureCookieSessionInterface().get_signing_serializer(signer)

        return serializer.dumps({CONSTANTS._SESSION_EMAIL_KEY: email, CONSTANTS._SESSION_AUTHENTICATED_KEY: True})

    def read_conversations_with_cookie(self, app, cookie):
        client = app.test_client()
        client.set_cookie(app.config["SESSION_COOKIE_NAME"], cookie)

        return client.post("/api/request", data=json.dumps({"function": "READ CONVERSATIONS"}), content_type="application/json")

    def test_missing_secret_key_refuses_to_start(self):

        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ParleyError) as cm:
                self.build_app()

        self.assertEqual(ApplicationCodes.INTERNAL_SERVER_ERROR, cm.exception.application_code)
        self.assertEqual(CONSTANTS._ENV_SECRET_KEY, cm.exception.field)

    def test_secret_key_from_environment(self):

        with mock.patch.dict(os.environ, {CONSTANTS._ENV_SECRET_KEY: "from-env"}, clear=True):
            app = self.build_app()

        self.assertEqual("from-env", app.config["SECRET_KEY"])

    """
        A cookie signed with another key is ignored; the same claim signed with the app's key is honoured.
    """
    def test_cookie_signed_with_other_key_rejected(self):

        with mock.patch.dict(os.environ, {CONSTANTS._ENV_SECRET_KEY: "server-only-secret"}, clear=True):
            app = self.build_app({"TESTING": True})

        self.database.get_exactly_one_row.return_value = {"id": 7, "name": "general"}

        forged = self.read_conversations_with_cookie(app, self.signed_login_cookie("dev-secret", "victim@example.com"))

        self.assertEqual(HTTPCodes.UNAUTHORIZED, forged.status_code)
        self.assertEqual(ApplicationCodes.NOT_AUTHENTICATED, forged.get_json()["error_code"])
        self.database.get_exactly_one_row.assert_not_called()

        genuine = self.read_conversations_with_cookie(app, self.signed_login_cookie("server-only-secret", "victim@example.com"))

        self.assertEqual(HTTPCodes.OK, genuine.status_code)
        self.assertEqual(("victim@example.com",), self.database.get_exactly_one_row.call_args[0][1])


if __name__ == "__main__":
    unittest.main()
