#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: users_table.py
    Author: Alex Biddle

    Description:
        Implements creation and lookup operations for the Parley users table,
        which stores each user's email, public key, and Argon2i credential
        (hash and salt, never the plaintext). Also resolves the members of a
        conversation on behalf of another member.
"""

from parley.database.database_object import Database
from parley.encryption.argon2i_manager import Credential
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes



class UsersTable:

    """
        Initialize a UsersTable helper bound to a Database instance.

        @param db (Database): Shared Database helper used for PostgreSQL access.

        @ensures Internal references are stored and the users table exists.
    """
    def __init__(self, db: Database) -> None:

        if not isinstance(db, Database):
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "UsersTable requires a Database instance", "db")

        self._db: Database = db

        self._ensure_table_exists()


    def _ensure_table_exists(self) -> None:

        create_users_sql = """
            CREATE TABLE IF NOT EXISTS users (
                email       TEXT  PRIMARY KEY,
                public_key  BYTEA NOT NULL,
                pass        BYTEA NOT NULL,
                salt        BYTEA NOT NULL
            );
        """

        self._db.execute_statment(create_users_sql)


    """
        Insert a new user row.

        @param email (str): User identity.
        @param public_key (bytes): The user's public key as supplied by the client.
        @param credential (Credential): Freshly generated Argon2i hash and salt.

        @ensures Exactly one row is written; no plaintext password is stored.
    """
    def create_user(self, email: str, public_key: bytes, credential: Credential) -> None:

        insert_user_sql = """
            INSERT INTO users (email, public_key, pass, salt)
            VALUES (%s, %s, %s, %s);
        """

        self._db.execute_statment(
            insert_user_sql,
            (email, public_key, credential.hash, credential.salt),
        )


    """
        Look up the stored credential for an email.

        @param email (str): Identity to look up.

        @return Credential: The stored hash and salt.
        @ensures Single-row semantics: an unknown email raises NOT_FOUND.
    """
    def get_credential_by_email(self, email: str) -> Credential:

        select_sql = """
            SELECT pass, salt
            FROM users
            WHERE email = %s;
        """

        row = self._db.get_exactly_one_row(select_sql, (email,))

        return Credential(hash=bytes(row["pass"]), salt=bytes(row["salt"]))


    """
        Fetch the user row of a conversation the caller belongs to.

        @param member_email (str): Authenticated caller; must be a member of the conversation.
        @param conversation_id (int): Conversation to read.

        @return dict: Row with email and public_key.
        @ensures Single-row semantics: none raises NOT_FOUND, several raise STORAGE_ERROR.
    """
    def get_user_by_conversation_and_member(self, member_email: str, conversation_id: int) -> dict:

        select_sql = """
            SELECT u.email, u.public_key
            FROM users u
            JOIN conversation_members target ON target.email = u.email
            JOIN conversation_members caller ON caller.conversation_id = target.conversation_id
            WHERE caller.email = %s
              AND target.conversation_id = %s;
        """

        return self._db.get_exactly_one_row(select_sql, (member_email, conversation_id))
