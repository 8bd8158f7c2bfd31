#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testDatabase.py
    Author: Alex Biddle

    Description:
        Unit tests for the Parley database layer. Database credential loading
        and statement validation run against temporary files; statement
        execution runs against a mocked psycopg2 connection so commit,
        rollback, and single-row semantics can be checked without a server.
        The table helpers are exercised against a mocked Database.
"""


import json
import os
import tempfile
import unittest
from datetime import datetime, timezone
from unittest import mock
import psycopg2
from parley.database.database_object import Database
from parley.database.users_table import UsersTable
from parley.database.conversations_table import ConversationsTable
from parley.database.messages_table import MessagesTable
from parley.encryption.argon2i_manager import Credential
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes, ErrorKinds
import parley.constants as CONSTANTS


VALID_CREDENTIALS = {"database": "parley", "user": "parley", "password": "pw", "host": "db.internal", "port": 5433}


"""
    Write a credentials object to a temporary file and return its path.
"""
def write_credentials(testcase, content):

    fd, path = tempfile.mkstemp(suffix=".json")
    os.close(fd)
    testcase.addCleanup(os.remove, path)

    with open(path, "w", encoding="utf-8") as f:
        if isinstance(content, str):
            f.write(content)
        else:
            json.dump(content, f)

    return path


"""
    Build a Database with credentials loaded but no connection made.
"""
def make_database(testcase):
    return Database(write_credentials(testcase, VALID_CREDENTIALS))



####################################################################################################
#                                   Credential loading
####################################################################################################

class TestDatabaseCredentials(unittest.TestCase):

    def test_valid_credentials_loaded(self):

        db = make_database(self)

        self.assertEqual(("parley", "parley", "pw", "db.internal", 5433), (db._database, db._user, db._password, db._host, db._port))

    def test_host_and_port_default(self):

        db = Database(write_credentials(self, {"database": "parley", "user": "u", "password": "pw"}))

        self.assertEqual(("localhost", 5432), (db._host, db._port))

    def test_path_falls_back_to_environment(self):

        path = write_credentials(self, VALID_CREDENTIALS)

        with mock.patch.dict(os.environ, {CONSTANTS._ENV_DB_CREDENTIALS: path}):
            db = Database()

        self.assertEqual("db.internal", db._host)

    """
        Verify that an unusable credentials path raises INVALID_PATH before any file I/O.
    """
    def test_invalid_paths(self):

        for path in (123, "   ", "/tmp/this_file_should_not_exist_12345.json"):
            with self.subTest(path=path):
                db = Database.__new__(Database)
                db._credentials_path = path

                with self.assertRaises(ParleyError) as cm:
                    db._load_database_credentials()

                self.assertEqual(ApplicationCodes.INVALID_PATH, cm.exception.application_code)

    def test_missing_environment_variable(self):

        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ParleyError) as cm:
                Database()

        self.assertEqual(ApplicationCodes.INVALID_PATH, cm.exception.application_code)

    def test_invalid_json(self):

        with self.assertRaises(ParleyError) as cm:
            Database(write_credentials(self, "not-json"))

        self.assertEqual(ApplicationCodes.MALFORMED_JSON, cm.exception.application_code)

    def test_json_not_object(self):

        with self.assertRaises(ParleyError) as cm:
            Database(write_credentials(self, ["not", "an", "object"]))

        self.assertEqual(ApplicationCodes.INVALID_TYPE, cm.exception.application_code)

    """
        Verify that missing or mistyped credential fields raise a ParleyError naming the field.
    """
    def test_invalid_fields(self):

        invalid_cases = [
            ({"user": "u", "password": "pw"}, "database"),
            ({"database": 123, "user": "u", "password": "pw"}, "database"),
            ({"database": "d", "user": "  ", "password": "pw"}, "user"),
            ({"database": "d", "user": "u", "password": ["pw"]}, "password"),
            ({"database": "d", "user": "u", "password": "pw", "host": 456}, "host"),
            ({"database": "d", "user": "u", "password": "pw", "port": "5432"}, "port"),
            ({"database": "d", "user": "u", "password": "pw", "port": True}, "port"),
            ({"database": "d", "user": "u", "password": "pw", "port": 70000}, "port"),
        ]

        for creds, field_name in invalid_cases:
            with self.subTest(field=field_name, creds=creds):
                with self.assertRaises(ParleyError) as cm:
                    Database(write_credentials(self, creds))

                self.assertEqual(field_name, cm.exception.field)



####################################################################################################
#                                   Statement validation
####################################################################################################

class TestStatementValidation(unittest.TestCase):

    def setUp(self):
        self.db = make_database(self)

    def test_rejects_bad_sql_and_params(self):

        for sql, params in (("", ()), ("   ", ()), (None, ()), ("SELECT 1", ["list"]), ("SELECT 1", "x")):
            with self.subTest(sql=sql, params=params):
                with mock.patch("parley.database.database_object.psycopg2.connect") as connect:
                    with self.assertRaises(ParleyError) as cm:
                        self.db.execute_statment(sql, params)

                    connect.assert_not_called()

                self.assertEqual(ApplicationCodes.INVALID_TYPE, cm.exception.application_code)

    def test_none_params_become_empty_tuple(self):

        self.assertEqual((), self.db._validate_statement("SELECT 1", None))



####################################################################################################
#                                   Statement execution
####################################################################################################

class TestStatementExecution(unittest.TestCase):

    def setUp(self):
        self.db = make_database(self)

        patcher = mock.patch("parley.database.database_object.psycopg2.connect")
        self.connect = patcher.start()
        self.addCleanup(patcher.stop)

        self.conn = self.connect.return_value
        self.cursor = mock.MagicMock()
        self.conn.cursor.return_value.__enter__.return_value = self.cursor

    def test_connects_with_loaded_credentials(self):

        self.db.execute_statment("SELECT 1")

        self.connect.assert_called_once_with(dbname="parley", user="parley", password="pw", host="db.internal", port=5433)

    def test_execute_statement_commits_and_returns_rowcount(self):

        self.cursor.rowcount = 3

        result = self.db.execute_statment("DELETE FROM t WHERE a = %s", ("x",))

        self.assertEqual(3, result)
        self.cursor.execute.assert_called_once_with("DELETE FROM t WHERE a = %s", ("x",))
        self.conn.commit.assert_called_once()
        self.conn.close.assert_called_once()

    def test_get_row(self):

        self.cursor.fetchone.return_value = {"pass": b"h", "salt": b"s"}
        self.assertEqual({"pass": b"h", "salt": b"s"}, self.db.get_row("SELECT pass, salt FROM users WHERE email = %s", ("a",)))

        self.cursor.fetchone.return_value = None
        self.assertIsNone(self.db.get_row("SELECT pass, salt FROM users WHERE email = %s", ("b",)))

    """
        Exactly one row is returned; none is NotFound and several are a StorageError, both rolled back.
    """
    def test_exactly_one_row_semantics(self):

        self.cursor.fetchmany.return_value = [{"id": 1}]
        self.assertEqual({"id": 1}, self.db.get_exactly_one_row("SELECT id FROM conversations"))
        self.cursor.fetchmany.assert_called_with(2)

        self.cursor.fetchmany.return_value = []
        with self.assertRaises(ParleyError) as cm:
            self.db.get_exactly_one_row("SELECT id FROM conversations")
        self.assertEqual(ErrorKinds.NOT_FOUND, cm.exception.kind)
        self.assertEqual(HTTPCodes.NOT_FOUND, cm.exception.http_code)

        self.cursor.fetchmany.return_value = [{"id": 1}, {"id": 2}]
        with self.assertRaises(ParleyError) as cm:
            self.db.get_exactly_one_row("SELECT id FROM conversations")
        self.assertEqual(ErrorKinds.STORAGE_ERROR, cm.exception.kind)

        self.assertEqual(2, self.conn.rollback.call_count)
        self.assertEqual(3, self.conn.close.call_count)

    def test_execute_returning(self):

        self.cursor.fetchmany.return_value = [{"id": 17}]

        self.assertEqual({"id": 17}, self.db.execute_returning("INSERT INTO conversations (name) VALUES (%s) RETURNING id;", ("team",)))
        self.conn.commit.assert_called_once()

    def test_driver_error_becomes_storage_error(self):

        self.cursor.execute.side_effect = psycopg2.IntegrityError("duplicate key")

        with self.assertRaises(ParleyError) as cm:
            self.db.execute_statment("INSERT INTO users VALUES (%s)", ("a",))

        self.assertEqual(ApplicationCodes.STORAGE_ERROR, cm.exception.application_code)
        self.assertEqual(ErrorKinds.STORAGE_ERROR, cm.exception.kind)
        self.conn.rollback.assert_called_once()
        self.conn.commit.assert_not_called()
        self.conn.close.assert_called_once()

    def test_connection_failure_becomes_storage_error(self):

        self.connect.side_effect = psycopg2.OperationalError("could not connect")

        with self.assertRaises(ParleyError) as cm:
            self.db.execute_statment("SELECT 1")

        self.assertEqual(ApplicationCodes.STORAGE_ERROR, cm.exception.application_code)
        self.assertEqual("database_connection", cm.exception.field)



####################################################################################################
#                                         Table helpers
####################################################################################################

class TestTableHelpers(unittest.TestCase):

    def setUp(self):
        self.db = mock.MagicMock(spec=Database)

    def test_helpers_require_database(self):

        for table in (UsersTable, ConversationsTable, MessagesTable):
            with self.subTest(table=table.__name__):
                with self.assertRaises(ParleyError):
                    table(object())

    def test_create_user_stores_hash_and_salt_only(self):

        users = UsersTable(self.db)

        users.create_user("alice@example.com", b"key", Credential(hash=b"h" * 32, salt=b"s" * 32))

        sql, params = self.db.execute_statment.call_args[0]
        self.assertIn("INSERT INTO users", sql)
        self.assertEqual(("alice@example.com", b"key", b"h" * 32, b"s" * 32), params)

    def test_get_credential_by_email(self):

        users = UsersTable(self.db)

        self.db.get_exactly_one_row.return_value = {"pass": memoryview(b"h" * 32), "salt": memoryview(b"s" * 32)}
        self.assertEqual(Credential(hash=b"h" * 32, salt=b"s" * 32), users.get_credential_by_email("alice@example.com"))
        self.assertEqual(("alice@example.com",), self.db.get_exactly_one_row.call_args[0][1])

    def test_get_credential_for_unknown_email_is_not_found(self):

        users = UsersTable(self.db)
        self.db.get_exactly_one_row.side_effect = ParleyError(ApplicationCodes.NOT_FOUND, HTTPCodes.NOT_FOUND, "No matching row", "sql_fetch_exactly_one")

        with self.assertRaises(ParleyError) as cm:
            users.get_credential_by_email("nobody@example.com")

        self.assertEqual(ErrorKinds.NOT_FOUND, cm.exception.kind)
        self.db.get_row.assert_not_called()

    def test_create_conversation_returns_id(self):

        conversations = ConversationsTable(self.db)
        self.db.execute_returning.return_value = {"id": 41}

        self.assertEqual(41, conversations.create_conversation("team"))

        sql, params = self.db.execute_returning.call_args[0]
        self.assertIn("RETURNING id", sql)
        self.assertEqual(("team",), params)

    def test_add_member_ignores_duplicates(self):

        conversations = ConversationsTable(self.db)

        conversations.add_member(41, "bob@example.com")

        sql, params = self.db.execute_statment.call_args[0]
        self.assertIn("ON CONFLICT DO NOTHING", sql)
        self.assertEqual((41, "bob@example.com"), params)

    def test_create_message(self):

        messages = MessagesTable(self.db)
        sent_at = datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc)

        messages.create_message("alice@example.com", b"hello", "text/plain", sent_at, b"sig")

        sql, params = self.db.execute_statment.call_args[0]
        self.assertIn("INSERT INTO messages", sql)
        self.assertEqual(("alice@example.com", b"hello", "text/plain", sent_at, b"sig"), params)

    """
        Every read scoped to a conversation is bound to the caller's membership.
    """
    def test_reads_use_single_row_lookups(self):

        UsersTable(self.db).get_user_by_conversation_and_member("alice@example.com", 41)
        ConversationsTable(self.db).get_conversation_by_member("alice@example.com")
        MessagesTable(self.db).get_message_by_conversation_and_member("alice@example.com", 41)

        params = [c[0][1] for c in self.db.get_exactly_one_row.call_args_list]

        self.assertEqual([("alice@example.com", 41), ("alice@example.com",), ("alice@example.com", 41)], params)


if __name__ == "__main__":
    unittest.main()
