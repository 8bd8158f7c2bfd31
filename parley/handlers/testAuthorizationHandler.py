#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testAuthorizationHandler.py
    Author: Alex Biddle

    Description:
        Unit tests for AuthorizationHandler. The Database and UsersTable are
        replaced by mocks so no PostgreSQL server is needed; the Argon2i
        hasher is the real one so stored credentials round-trip.
"""

import unittest
from unittest import mock
from parley.database.database_object import Database
from parley.database.users_table import UsersTable
from parley.encryption.argon2i_manager import Argon2iManager, Credential
from parley.handlers.authorization_handler import AuthorizationHandler
from parley.handlers.canonical_request import CanonicalRequest, Operation, Target
from parley.handlers.packet_handler import Response, User
from parley.handlers.session_handler import LoginState
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes, ErrorKinds
from parley.utilities.audit_log import AuditLog


def verify_request(*users):
    return CanonicalRequest(operation=Operation.VERIFY, target=Target.USERS, users=list(users))


def create_request(users):
    return CanonicalRequest(operation=Operation.CREATE, target=Target.USERS, users=users)



class AuthorizationHandlerTestCase(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.argon2_manager = Argon2iManager()
        cls.alice_credential = cls.argon2_manager.hash("correct horse")

    def setUp(self):
        self.database = mock.MagicMock(spec=Database)
        self.audit = mock.MagicMock(spec=AuditLog)

        self.handler = AuthorizationHandler(self.database, self.argon2_manager, self.audit)

        self.users_table = mock.MagicMock(spec=UsersTable)
        self.handler._users_table = self.users_table



####################################################################################################
#                                         Construction
####################################################################################################

class TestConstruction(unittest.TestCase):

    def test_users_table_created_on_init(self):

        database = mock.MagicMock(spec=Database)

        AuthorizationHandler(database, Argon2iManager(), mock.MagicMock(spec=AuditLog))

        sql = database.execute_statment.call_args[0][0]
        self.assertIn("CREATE TABLE IF NOT EXISTS users", sql)

    def test_rejects_wrong_dependency_types(self):

        with self.assertRaises(ParleyError):
            AuthorizationHandler(object(), Argon2iManager())

        with self.assertRaises(ParleyError):
            AuthorizationHandler(mock.MagicMock(spec=Database), object())



####################################################################################################
#                                         VERIFY USERS
####################################################################################################

class TestVerifyUsers(AuthorizationHandlerTestCase):

    """
        Matching credentials authenticate the login state for that email.
    """
    def test_success_authenticates(self):

        self.users_table.get_credential_by_email.return_value = self.alice_credential
        login_state = LoginState()

        response = self.handler.verify_users(verify_request(User(email="alice@example.com", password="correct horse")), login_state)

        self.assertEqual(Response(), response)
        self.assertEqual(LoginState(email="alice@example.com", is_authenticated=True), login_state)
        self.users_table.get_credential_by_email.assert_called_once_with("alice@example.com")

    """
        A wrong password is Unauthorized with a message that names neither the email nor the password.
    """
    def test_wrong_password_is_unauthorized(self):

        self.users_table.get_credential_by_email.return_value = self.alice_credential
        login_state = LoginState()

        with self.assertRaises(ParleyError) as cm:
            self.handler.verify_users(verify_request(User(email="alice@example.com", password="wrong")), login_state)

        self.assertEqual(ApplicationCodes.AUTH_FAILED, cm.exception.application_code)
        self.assertEqual(HTTPCodes.UNAUTHORIZED, cm.exception.http_code)
        self.assertEqual(ErrorKinds.UNAUTHORIZED, cm.exception.kind)
        self.assertEqual("Invalid email or password", cm.exception.detail)
        self.assertEqual(LoginState(), login_state)

    """
        An unknown email is NotFound from the credential lookup, not an authentication failure.
    """
    def test_unknown_email_is_not_found(self):

        not_found = ParleyError(ApplicationCodes.NOT_FOUND, HTTPCodes.NOT_FOUND, "No matching row", "sql_fetch_exactly_one")
        self.users_table.get_credential_by_email.side_effect = not_found
        login_state = LoginState()

        with mock.patch.object(self.argon2_manager, "verify") as verify:
            with self.assertRaises(ParleyError) as cm:
                self.handler.verify_users(verify_request(User(email="nobody@example.com", password="correct horse")), login_state)

            verify.assert_not_called()

        self.assertIs(not_found, cm.exception)
        self.assertEqual(ErrorKinds.NOT_FOUND, cm.exception.kind)
        self.assertEqual(LoginState(), login_state)

    def test_already_authenticated_state_kept_on_failure(self):

        self.users_table.get_credential_by_email.return_value = self.alice_credential
        login_state = LoginState(email="bob@example.com", is_authenticated=True)

        with self.assertRaises(ParleyError):
            self.handler.verify_users(verify_request(User(email="alice@example.com", password="nope")), login_state)

        self.assertEqual(LoginState(email="bob@example.com", is_authenticated=True), login_state)

    def test_only_first_user_is_checked(self):

        self.users_table.get_credential_by_email.return_value = self.alice_credential
        login_state = LoginState()

        self.handler.verify_users(
            verify_request(User(email="alice@example.com", password="correct horse"), User(email="eve@example.com", password="x")),
            login_state,
        )

        self.users_table.get_credential_by_email.assert_called_once_with("alice@example.com")
        self.assertEqual("alice@example.com", login_state.email)

    def test_missing_list_or_fields(self):

        cases = [
            (CanonicalRequest(operation=Operation.VERIFY, target=Target.USERS), "users"),
            (verify_request(), "users"),
            (verify_request(User(password="correct horse")), "email"),
            (verify_request(User(email="alice@example.com")), "password"),
        ]

        for request, field_name in cases:
            with self.subTest(field=field_name):
                with self.assertRaises(ParleyError) as cm:
                    self.handler.verify_users(request, LoginState())

                self.assertEqual(ApplicationCodes.MISSING_FIELDS, cm.exception.application_code)
                self.assertEqual(field_name, cm.exception.field)

        self.users_table.get_credential_by_email.assert_not_called()

    def test_storage_error_propagates(self):

        self.users_table.get_credential_by_email.side_effect = ParleyError(ApplicationCodes.STORAGE_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Database execution error", "sql_fetch_one")

        with self.assertRaises(ParleyError) as cm:
            self.handler.verify_users(verify_request(User(email="alice@example.com", password="correct horse")), LoginState())

        self.assertEqual(ErrorKinds.STORAGE_ERROR, cm.exception.kind)

    def test_plaintext_password_never_audited(self):

        self.users_table.get_credential_by_email.return_value = self.alice_credential

        with self.assertRaises(ParleyError):
            self.handler.verify_users(verify_request(User(email="alice@example.com", password="s3cret-guess")), LoginState())

        self.handler.verify_users(verify_request(User(email="alice@example.com", password="correct horse")), LoginState())

        for call in self.audit.event.call_args_list:
            self.assertNotIn("s3cret-guess", repr(call))
            self.assertNotIn("correct horse", repr(call))



####################################################################################################
#                                         CREATE USERS
####################################################################################################

class TestCreateUsers(AuthorizationHandlerTestCase):

    """
        Every user is written with a fresh credential that verifies against its password.
    """
    def test_creates_every_user(self):

        users = [
            User(email="alice@example.com", password="pw-a", public_key=b"key-a"),
            User(email="bob@example.com", password="pw-b", public_key=b"key-b"),
        ]

        response = self.handler.create_users(create_request(users), LoginState())

        self.assertEqual(Response(), response)
        self.assertEqual(2, self.users_table.create_user.call_count)

        (email_a, key_a, cred_a), _ = self.users_table.create_user.call_args_list[0]
        (email_b, key_b, cred_b), _ = self.users_table.create_user.call_args_list[1]

        self.assertEqual(("alice@example.com", b"key-a"), (email_a, key_a))
        self.assertEqual(("bob@example.com", b"key-b"), (email_b, key_b))
        self.assertIsInstance(cred_a, Credential)
        self.assertNotEqual(cred_a.salt, cred_b.salt)
        self.assertTrue(self.argon2_manager.verify("pw-a", cred_a))
        self.assertTrue(self.argon2_manager.verify("pw-b", cred_b))

    def test_needs_no_authentication(self):

        login_state = LoginState()

        self.handler.create_users(create_request([User(email="carol@example.com", password="pw", public_key=b"k")]), login_state)

        self.assertFalse(login_state.is_authenticated)

    """
        A missing field on element N fails after elements 0..N-1 were written.
    """
    def test_missing_public_key_stops_at_that_element(self):

        users = [
            User(email="alice@example.com", password="pw-a", public_key=b"key-a"),
            User(email="bob@example.com", password="pw-b"),
            User(email="carol@example.com", password="pw-c", public_key=b"key-c"),
        ]

        with self.assertRaises(ParleyError) as cm:
            self.handler.create_users(create_request(users), LoginState())

        self.assertEqual(ApplicationCodes.MISSING_FIELDS, cm.exception.application_code)
        self.assertEqual("public_key", cm.exception.field)
        self.assertEqual(1, self.users_table.create_user.call_count)
        self.assertEqual("alice@example.com", self.users_table.create_user.call_args[0][0])

    def test_empty_or_absent_list_rejected(self):

        for users in (None, []):
            with self.subTest(users=users):
                with self.assertRaises(ParleyError) as cm:
                    self.handler.create_users(create_request(users), LoginState())

                self.assertEqual(ErrorKinds.INVALID_REQUEST, cm.exception.kind)

        self.users_table.create_user.assert_not_called()

    def test_missing_email_or_password(self):

        for user, field_name in ((User(password="pw", public_key=b"k"), "email"), (User(email="a@example.com", public_key=b"k"), "password")):
            with self.subTest(field=field_name):
                with self.assertRaises(ParleyError) as cm:
                    self.handler.create_users(create_request([user]), LoginState())

                self.assertEqual(field_name, cm.exception.field)

        self.users_table.create_user.assert_not_called()


if __name__ == "__main__":
    unittest.main()
