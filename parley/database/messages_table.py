#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: messages_table.py
    Author: Alex Biddle

    Description:
        Implements the messages table: appending one message attributed to its
        sender, and fetching a message of a conversation the caller belongs
        to. Message bodies and signatures are stored as opaque bytes and are
        never inspected.
"""

from datetime import datetime
from parley.database.database_object import Database
from parley.handlers.error_handler import ParleyError, ApplicationCodes, HTTPCodes



class MessagesTable:

    """
        Initialize a MessagesTable helper bound to a Database instance.

        @param db (Database): Shared Database helper used for PostgreSQL access.
        @require The users and conversations tables already exist
    """
    def __init__(self, db: Database) -> None:

        if not isinstance(db, Database):
            raise ParleyError(ApplicationCodes.INVALID_TYPE, HTTPCodes.INTERNAL_SERVER_ERROR, "MessagesTable requires a Database instance", "db")

        self._db: Database = db

        self._ensure_table_exists()


    def _ensure_table_exists(self) -> None:

        # conversation_id stays nullable: message creation does not bind it yet
        create_messages_sql = """
            CREATE TABLE IF NOT EXISTS messages (
                id               BIGSERIAL   PRIMARY KEY,
                conversation_id  BIGINT      REFERENCES conversations (id),
                sender           TEXT        NOT NULL REFERENCES users (email),
                data             BYTEA       NOT NULL,
                media_type       TEXT        NOT NULL,
                sent_at          TIMESTAMPTZ NOT NULL,
                signature        BYTEA       NOT NULL
            );
        """

        self._db.execute_statment(create_messages_sql)


    """
        Append one message.

        @param sender (str): Authenticated caller the message is attributed to.
        @param data (bytes): Message body.
        @param media_type (str): Media type of data.
        @param timestamp (datetime): Sender-supplied send time.
        @param signature (bytes): Sender signature over the message.
    """
    def create_message(self, sender: str, data: bytes, media_type: str, timestamp: datetime, signature: bytes) -> None:

        insert_sql = """
            INSERT INTO messages (sender, data, media_type, sent_at, signature)
            VALUES (%s, %s, %s, %s, %s);
        """

        self._db.execute_statment(insert_sql, (sender, data, media_type, timestamp, signature))


    """
        Fetch the message of a conversation the caller belongs to.

        @param member_email (str): Authenticated caller; must be a member of the conversation.
        @param conversation_id (int): Conversation to read.
        @return dict: Row with data, media_type, sent_at, signature.
        @ensures Single-row semantics: none raises NOT_FOUND, several raise STORAGE_ERROR.
    """
    def get_message_by_conversation_and_member(self, member_email: str, conversation_id: int) -> dict:

        select_sql = """
            SELECT msg.data, msg.media_type, msg.sent_at, msg.signature
            FROM messages msg
            JOIN conversation_members m ON m.conversation_id = msg.conversation_id
            WHERE m.email = %s
              AND msg.conversation_id = %s;
        """

        return self._db.get_exactly_one_row(select_sql, (member_email, conversation_id))
