#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: conversations_table.py
    Author: Alex Biddle

    Description:
        Implements the conversations and conversation_members tables: creating
        a conversation, adding members to it, and fetching the conversation a
        member belongs to. Every call is one parameterized statement; callers
        that issue several calls get no cross-statement transaction.
"""

from parley.database.database_object import Database
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes
import parley.handlers.sanitization_validation as VALIDATION



class ConversationsTable:

    """
        Initialize a ConversationsTable helper bound to a Database instance.

        @param db (Database): Shared Database helper used for PostgreSQL access.
        @require The users table already exists (conversation_members references it)
    """
    def __init__(self, db: Database) -> None:

        if not isinstance(db, Database):
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "ConversationsTable requires a Database instance", "db")

        self._db: Database = db

        self._ensure_table_exists()


    def _ensure_table_exists(self) -> None:

        create_conversations_sql = """
            CREATE TABLE IF NOT EXISTS conversations (
                id    BIGSERIAL PRIMARY KEY,
                name  TEXT      NOT NULL
            );
        """

        create_members_sql = """
            CREATE TABLE IF NOT EXISTS conversation_members (
                conversation_id  BIGINT NOT NULL REFERENCES conversations (id),
                email            TEXT   NOT NULL REFERENCES users (email),
                PRIMARY KEY (conversation_id, email)
            );
        """

        self._db.execute_statment(create_conversations_sql)
        self._db.execute_statment(create_members_sql)


    """
        Insert a conversation row.

        @param name (str): Conversation name.
        @return int: Identifier assigned by the database.
    """
    def create_conversation(self, name: str) -> int:

        insert_sql = """
            INSERT INTO conversations (name)
            VALUES (%s)
            RETURNING id;
        """

        row = self._db.execute_returning(insert_sql, (name,))

        return VALIDATION.coerce_to_int(row["id"], "id")


    """
        Add one member to a conversation.

        @param conversation_id (int): Conversation to join.
        @param email (str): Member identity.
        @ensures Adding an existing member is a no-op.
    """
    def add_member(self, conversation_id: int, email: str) -> None:

        insert_sql = """
            INSERT INTO conversation_members (conversation_id, email)
            VALUES (%s, %s)
            ON CONFLICT DO NOTHING;
        """

        self._db.execute_statment(insert_sql, (conversation_id, email))


    """
        Fetch the conversation a member belongs to.

        @param member_email (str): Authenticated caller.
        @return dict: Row with id and name.
        @ensures Single-row semantics: none raises NOT_FOUND, several raise STORAGE_ERROR.
    """
    def get_conversation_by_member(self, member_email: str) -> dict:

        select_sql = """
            SELECT c.id, c.name
            FROM conversations c
            JOIN conversation_members m ON m.conversation_id = c.id
            WHERE m.email = %s;
        """

        return self._db.get_exactly_one_row(select_sql, (member_email,))
