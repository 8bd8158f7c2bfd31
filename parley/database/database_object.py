#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: database_object.py
    Author: Alex Biddle

    Description:
        Provides PostgreSQL connection handling and parameterized SQL execution
        for all Parley table helpers. Loads credentials from a JSON file,
        runs every statement on its own connection and transaction, and
        normalizes driver failures into ParleyError (STORAGE_ERROR, or
        NOT_FOUND when exactly one row was expected and none matched).
"""


import os
import typing
import json
import psycopg2
import psycopg2.extras
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes
import parley.constants as CONSTANTS


# Fetch modes understood by Database._run
_FETCH_NONE = "none"
_FETCH_ONE = "one"
_FETCH_EXACTLY_ONE = "exactly_one"


"""
    Provides connection management and query execution methods for Parley.

    @ensures Database credentials are validated, connections use parameterized queries, and all errors are raised upward as ParleyError instances.
"""
class Database:

    """
        Initialize a Database helper bound to a single PostgreSQL credential set.

        @param credentials_path (str|None): Path to the database credential file; falls back to PARLEY_DB_CREDENTIALS.

        @ensures Loads and validates database, user, password, host, port values.
    """
    def __init__(self, credentials_path: typing.Optional[str] = None) -> None:

        if credentials_path is None:
            credentials_path = os.environ.get(CONSTANTS._ENV_DB_CREDENTIALS, "")

        self._credentials_path: str = credentials_path

        self._database: str = ""
        self._user: str = ""
        self._password: str = ""
        self._host: str = ""
        self._port: int = 5432

        self._load_database_credentials()


    """
        Load and validate database credentials from disk.

        @require self._credentials_path is a non-empty string naming a JSON object file
        @require JSON contains fields: database, user, password; host and port are optional

        @ensures Populates self._database, self._user, self._password, self._host, and self._port.
    """
    def _load_database_credentials(self) -> None:

        if not isinstance(self._credentials_path, str) or not self._credentials_path.strip():
            raise ParleyError(ApplicationCodes.INVALID_PATH, HTTPCodes.INTERNAL_SERVER_ERROR, "Database credentials path must be a non-empty string", "database_credentials_path")

        if not os.path.isfile(self._credentials_path):
            raise ParleyError(ApplicationCodes.INVALID_PATH, HTTPCodes.INTERNAL_SERVER_ERROR, "Database credentials file not found", "database_credentials_path")

        try:
            with open(self._credentials_path, "r", encoding="utf-8") as f:
                creds = json.load(f)
        except (OSError, ValueError):
            raise ParleyError(ApplicationCodes.MALFORMED_JSON, HTTPCodes.INTERNAL_SERVER_ERROR, "Database credentials file must contain valid JSON", "database_credentials")

        if not isinstance(creds, dict):
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "Database credentials JSON must be an object", "database_credentials")

        database = creds.get("database")
        user = creds.get("user")
        password = creds.get("password")
        host = creds.get("host", "localhost")
        port = creds.get("port", 5432)

        for name, value in (("database", database), ("user", user), ("password", password), ("host", host)):
            if not isinstance(value, str) or not value.strip():
                raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, f"Missing or invalid '{name}' in credentials file", name)

        if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "Missing or invalid 'port' in credentials file", "port")

        self._database = database.strip()
        self._user = user.strip()
        self._password = password
        self._host = host.strip()
        self._port = port


    """
        Create a new psycopg2 database connection using validated credentials.

        @return connection (psycopg2.extensions.connection): A live PostgreSQL connection object.
    """
    def _get_database_connection(self):

        try:
            return psycopg2.connect(
                dbname=self._database,
                user=self._user,
                password=self._password,
                host=self._host,
                port=self._port,
            )

        except psycopg2.Error:
            raise ParleyError(ApplicationCodes.STORAGE_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Error connecting to PostgreSQL database", "database_connection")


    """
        Validate the SQL text and parameter tuple before any connection is opened.
    """
    def _validate_statement(self, sql: typing.Any, params: typing.Any) -> typing.Tuple[typing.Any, ...]:

        if not isinstance(sql, str) or not sql.strip():
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "SQL must be a non-empty string", "sql")

        if params is None:
            params = ()

        if not isinstance(params, tuple):
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "params must be a tuple", "params")

        return params


    """
        Run one statement on its own connection and transaction.

        @param sql (str): SQL statement with %s placeholders.
        @param params (tuple): Parameter tuple.
        @param fetch (str): _FETCH_NONE returns the row count; _FETCH_ONE returns the first row or None;
                            _FETCH_EXACTLY_ONE returns the only row or raises.
        @param context (str): Field reported on failure.
        @ensures Committed on success, rolled back on any failure; connection always closed.
    """
    def _run(self, sql: str, params: typing.Tuple[typing.Any, ...], fetch: str, context: str) -> typing.Any:

        conn = self._get_database_connection()

        try:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(sql, params)

                if fetch == _FETCH_NONE:
                    result = cur.rowcount

                elif fetch == _FETCH_ONE:
                    row = cur.fetchone()
                    result = None if row is None else dict(row)

                else:
                    rows = cur.fetchmany(2)

                    if len(rows) == 0:
                        raise ParleyError(ApplicationCodes.NOT_FOUND, HTTPCodes.NOT_FOUND, "No matching row", context)

                    if len(rows) > 1:
                        raise ParleyError(ApplicationCodes.STORAGE_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "More than one matching row", context)

                    result = dict(rows[0])

            conn.commit()
            return result

        except ParleyError:
            conn.rollback()
            raise

        except psycopg2.Error:
            conn.rollback()
            raise ParleyError(ApplicationCodes.STORAGE_ERROR, HTTPCodes.INTERNAL_SERVER_ERROR, "Database execution error", context)

        finally:
            conn.close()


    """
        Execute a non-SELECT SQL statement such as INSERT, UPDATE, or DELETE.

        @param sql (str): SQL statement with %s placeholders.
        @param params (tuple|None): Parameter tuple for the statement.

        @return int: Number of rows affected by the SQL operation.

        @ensures Statement is executed in its own transaction and committed on success.
    """
    def execute_statment(self, sql: str, params: typing.Optional[typing.Tuple[typing.Any, ...]] = None) -> int:

        params = self._validate_statement(sql, params)
        return self._run(sql, params, _FETCH_NONE, "sql_execute")


    """
        Execute a write statement with a RETURNING clause and return the produced row.

        @return dict: The single row produced by the statement.
        @ensures Statement is committed; exactly one returned row is required.
    """
    def execute_returning(self, sql: str, params: typing.Optional[typing.Tuple[typing.Any, ...]] = None) -> dict:

        params = self._validate_statement(sql, params)
        return self._run(sql, params, _FETCH_EXACTLY_ONE, "sql_execute_returning")


    """
        Execute a SELECT query and return its first row.

        @return dict|None: Dictionary row if one exists, otherwise None.
    """
    def get_row(self, sql: str, params: typing.Optional[typing.Tuple[typing.Any, ...]] = None) -> typing.Optional[dict]:

        params = self._validate_statement(sql, params)
        return self._run(sql, params, _FETCH_ONE, "sql_fetch_one")


    """
        Execute a SELECT query that must match exactly one row.

        @return dict: The matching row.
        @ensures Raises NOT_FOUND when no row matches and STORAGE_ERROR when more than one does.
    """
    def get_exactly_one_row(self, sql: str, params: typing.Optional[typing.Tuple[typing.Any, ...]] = None) -> dict:

        params = self._validate_statement(sql, params)
        return self._run(sql, params, _FETCH_EXACTLY_ONE, "sql_fetch_exactly_one")
