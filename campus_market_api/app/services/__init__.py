"""
Service layer abstraction.

Each service encapsulates business logic for a domain and talks to
SQLite through ``core.db``.  Services raise the errors defined in
``core.errors``; API handlers translate them into HTTP responses.
"""
