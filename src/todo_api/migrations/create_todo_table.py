"""
Create the 'todos' table.

The table is declared here on its own MetaData so that the migration keeps
describing the schema as of this version even if the ORM model changes later.
"""
from sqlalchemy import Boolean, Column, DateTime, Integer, MetaData, String, Table, Text, false
from sqlalchemy.engine import Connection

VERSION = "20230319171415"
NAME = "create_todo_table"

metadata = MetaData()

todos = Table(
    "todos",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("description", Text, nullable=True),
    Column("completed", Boolean, nullable=False, server_default=false()),
    Column("created_at", DateTime, nullable=True),
    Column("updated_at", DateTime, nullable=True),
)


def up(connection: Connection) -> None:
    # No checkfirst: an existing table surfaces the store's own error
    todos.create(connection)


def down(connection: Connection) -> None:
    todos.drop(connection)
