"""
Todo API package.

A REST CRUD server for a single 'todos' table, built on FastAPI and
SQLAlchemy. Build the application with create_app():

    from todo_api import create_app
    app = create_app()
"""

from .main import create_app  # noqa: F401
